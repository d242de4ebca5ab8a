"""Farmer registration, login and profile lookup."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.auth.dependencies import hash_password, verify_password
from agrimarket.auth.jwt import create_access_token
from agrimarket.errors import ConflictError, NotFoundError, ValidationError
from agrimarket.models.farmer import Farmer
from agrimarket.schemas.auth import LoginRequest, RegisterRequest

logger = structlog.get_logger("agrimarket.farmers")


class FarmerService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def register(self, payload: RegisterRequest) -> Farmer:
		values = payload.model_dump()
		if not all(str(value).strip() for value in values.values()):
			raise ValidationError("All fields are required")

		email = payload.email.strip().lower()
		if await self._find_by_email(email) is not None:
			raise ConflictError("User already exists")

		farmer = Farmer(
			email=email,
			hashed_password=hash_password(payload.password),
			name=payload.name.strip(),
			phone=payload.phone.strip(),
			location=payload.location.strip(),
			insurance_preference=payload.insurance_preference.strip(),
			experience_level=payload.experience_level.strip(),
		)
		self.db.add(farmer)
		try:
			await self.db.flush()
		except IntegrityError as exc:
			raise ConflictError("User already exists") from exc
		await self.db.refresh(farmer)
		logger.info("farmer_registered", farmer_id=str(farmer.id))
		return farmer

	async def login(self, payload: LoginRequest) -> tuple[Farmer, str]:
		if not payload.email.strip() or not payload.password:
			raise ValidationError("All fields are required")

		farmer = await self._find_by_email(payload.email.strip().lower())
		if farmer is None:
			raise ValidationError("User does not exist")
		if not verify_password(payload.password, farmer.hashed_password):
			raise ValidationError("Invalid credentials")

		token = create_access_token(str(farmer.id), farmer.email)
		return farmer, token

	async def get_farmer(self, farmer_id: uuid.UUID) -> Farmer:
		row = await self.db.execute(select(Farmer).where(Farmer.id == farmer_id))
		farmer = row.scalar_one_or_none()
		if farmer is None:
			raise NotFoundError("User not found")
		return farmer

	async def _find_by_email(self, email: str) -> Farmer | None:
		row = await self.db.execute(select(Farmer).where(Farmer.email == email))
		return row.scalar_one_or_none()
