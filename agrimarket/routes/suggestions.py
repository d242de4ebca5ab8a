"""AI crop suggestion routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.clients import get_gemini
from agrimarket.database import get_db
from agrimarket.errors import error_boundary
from agrimarket.schemas.suggestion import SuggestionsResponse
from agrimarket.services.llm_service import GeminiClient, SuggestionService

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.get("/{field_id}", response_model=SuggestionsResponse)
async def generate_suggestions(
	field_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	gemini: GeminiClient = Depends(get_gemini),
) -> SuggestionsResponse:
	with error_boundary("Failed to generate crop suggestions"):
		return await SuggestionService(db, gemini).generate_for_field(field_id)


@router.get("/{field_id}/saved", response_model=SuggestionsResponse)
async def get_saved_suggestions(
	field_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
) -> SuggestionsResponse:
	with error_boundary("Failed to fetch suggestions"):
		return await SuggestionService(db).latest_for_field(field_id)
