"""Pydantic request/response schemas for harvest listings."""

from __future__ import annotations

import uuid
from datetime import datetime

from agrimarket.schemas.common import CamelModel


class HarvestCreate(CamelModel):
	field_name: str = ""
	quantity: float | None = None
	price: float | None = None
	description: str = ""
	location: str = ""


class HarvestRead(CamelModel):
	id: uuid.UUID
	farmer_id: uuid.UUID | None = None
	field_name: str
	quantity: float
	price: float
	description: str
	location: str
	farmer_name: str
	created_at: datetime


class HarvestCreateResponse(CamelModel):
	message: str
	id: uuid.UUID


class PurchaseRequest(CamelModel):
	quantity: float | None = None


class PurchaseResponse(CamelModel):
	message: str
	remaining_quantity: float
