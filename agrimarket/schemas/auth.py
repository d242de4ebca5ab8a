"""Pydantic request/response schemas for farmer accounts."""

from __future__ import annotations

import uuid
from datetime import datetime

from agrimarket.schemas.common import CamelModel


class RegisterRequest(CamelModel):
	email: str = ""
	password: str = ""
	name: str = ""
	phone: str = ""
	location: str = ""
	insurance_preference: str = ""
	experience_level: str = ""


class RegisterResponse(CamelModel):
	message: str
	user_id: uuid.UUID


class LoginRequest(CamelModel):
	email: str = ""
	password: str = ""


class FarmerSummary(CamelModel):
	id: uuid.UUID
	name: str
	email: str


class LoginResponse(CamelModel):
	message: str
	token: str
	user: FarmerSummary


class FarmerProfile(CamelModel):
	id: uuid.UUID
	email: str
	name: str
	phone: str
	location: str
	insurance_preference: str
	experience_level: str
	created_at: datetime


class ProfileResponse(CamelModel):
	user: FarmerProfile
