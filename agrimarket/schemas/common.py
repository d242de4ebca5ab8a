"""Shared pydantic base for camelCase JSON bodies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(
		alias_generator=to_camel,
		populate_by_name=True,
		from_attributes=True,
	)


class MessageResponse(CamelModel):
	message: str


class ErrorResponse(BaseModel):
	error: str
