"""Pydantic request/response schemas for fields."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from agrimarket.schemas.common import CamelModel


class FieldCreate(CamelModel):
	fieldname: str = ""
	fieldlocation: str = ""
	fieldsize: str = ""
	fieldtype: str = ""
	crops: list[str] = Field(default_factory=list)


class FieldUpdate(CamelModel):
	fieldname: str | None = Field(default=None, min_length=1, max_length=255)
	fieldlocation: str | None = Field(default=None, min_length=1, max_length=255)
	fieldsize: str | None = Field(default=None, min_length=1, max_length=100)
	fieldtype: str | None = Field(default=None, min_length=1, max_length=100)
	crops: list[str] | None = None


class FieldRead(CamelModel):
	id: uuid.UUID
	owner_id: uuid.UUID | None = None
	fieldname: str
	fieldlocation: str
	fieldsize: str
	fieldtype: str
	crops: list[str] = Field(default_factory=list)
	created_at: datetime
	updated_at: datetime


class FieldCreateResponse(CamelModel):
	message: str
	id: uuid.UUID
