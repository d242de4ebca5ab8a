"""Generative-AI crop suggestions: prompt assembly, model call, persistence."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.config import Settings, get_settings
from agrimarket.errors import GenerativeModelError, NotFoundError, UpstreamError
from agrimarket.models.field import FarmField, SuggestionBatch
from agrimarket.schemas.suggestion import CropSuggestion, SuggestionsResponse
from agrimarket.services.field_service import FieldService
from agrimarket.services.suggestion_parser import parse_suggestions

logger = structlog.get_logger("agrimarket.llm")


class GeminiClient:
	"""Calls the ``generateContent`` REST endpoint and returns the answer text."""

	def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
		self.settings = settings or get_settings()
		self.client = client or httpx.AsyncClient(timeout=self.settings.gemini_timeout_seconds)

	async def generate(self, prompt: str) -> str:
		url = f"{self.settings.gemini_base_url}/models/{self.settings.gemini_model}:generateContent"
		headers = {
			"x-goog-api-key": self.settings.gemini_api_key,
			"content-type": "application/json",
		}
		body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

		try:
			response = await self.client.post(url, headers=headers, json=body)
			response.raise_for_status()
			payload = response.json()
		except httpx.HTTPStatusError as exc:
			logger.error("llm_request_failed", status_code=exc.response.status_code)
			raise GenerativeModelError(
				f"Generative model request failed with status code {exc.response.status_code}"
			) from exc
		except (httpx.HTTPError, ValueError) as exc:
			logger.error("llm_request_failed", error=str(exc))
			raise GenerativeModelError(f"Generative model request failed: {exc}") from exc

		text = self._extract_text(payload)
		if not text:
			raise GenerativeModelError("Generative model returned no text")
		return text

	@staticmethod
	def _extract_text(payload: Any) -> str:
		if not isinstance(payload, dict):
			return ""
		candidates = payload.get("candidates")
		if not isinstance(candidates, list) or not candidates:
			return ""
		content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
		parts = content.get("parts") if isinstance(content, dict) else None
		if not isinstance(parts, list):
			return ""
		return "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict)).strip()

	async def aclose(self) -> None:
		await self.client.aclose()


def build_prompt(field: FarmField) -> str:
	crops = ", ".join(field.crops) if field.crops else "None recorded"
	return (
		"As an agricultural expert, provide crop suggestions for a field in Sri Lanka "
		"with the following characteristics:\n\n"
		f"Location: {field.fieldlocation}\n"
		f"Soil Type: {field.fieldtype}\n"
		f"Field Size: {field.fieldsize}\n"
		f"Current/Past Crops: {crops}\n\n"
		"Please suggest 5 suitable crops that would grow well in these conditions. "
		"Format your response exactly as follows for each crop (including the numbering):\n\n"
		"1. [Crop Name]\n"
		"Reason: [Why it's suitable for this field]\n"
		"Best Planting Month: [Month]\n"
		"Estimated Yield: [Amount per hectare]\n"
		"Care Instructions: [Basic care instructions]\n\n"
		"2. [Next crop...]"
	)


class SuggestionService:
	def __init__(self, db: AsyncSession, gemini: GeminiClient | None = None):
		self.db = db
		self.gemini = gemini

	async def generate_for_field(self, field_id: uuid.UUID) -> SuggestionsResponse:
		if self.gemini is None:
			raise UpstreamError("Generative model is not configured")
		field = await FieldService(self.db).get_field(field_id)

		text = await self.gemini.generate(build_prompt(field))
		suggestions = parse_suggestions(text)
		if not suggestions:
			logger.warning("llm_response_unparsed", field_id=str(field_id), length=len(text))
			raise UpstreamError("Failed to parse crop suggestions from AI response")

		batch = SuggestionBatch(
			field_id=field.id,
			suggestions=[item.model_dump(mode="json", by_alias=True) for item in suggestions],
			generated_at=datetime.now(UTC),
		)
		self.db.add(batch)
		await self.db.flush()
		logger.info("suggestions_saved", field_id=str(field_id), count=len(suggestions))
		return SuggestionsResponse(suggestions=suggestions, generated_at=batch.generated_at)

	async def latest_for_field(self, field_id: uuid.UUID) -> SuggestionsResponse:
		stmt = (
			select(SuggestionBatch)
			.where(SuggestionBatch.field_id == field_id)
			.order_by(SuggestionBatch.generated_at.desc())
			.limit(1)
		)
		row = await self.db.execute(stmt)
		batch = row.scalar_one_or_none()
		if batch is None:
			raise NotFoundError("No suggestions found for this field")
		return SuggestionsResponse(
			suggestions=[CropSuggestion.model_validate(item) for item in batch.suggestions],
			generated_at=batch.generated_at,
		)
