"""Pydantic schemas for AI crop suggestions."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from agrimarket.schemas.common import CamelModel


class CropSuggestion(CamelModel):
	crop_name: str
	reason: str = ""
	best_planting_month: str = ""
	estimated_yield: str = ""
	care_instructions: str = ""


class SuggestionsResponse(CamelModel):
	success: bool = True
	suggestions: list[CropSuggestion] = Field(default_factory=list)
	generated_at: datetime | None = None
