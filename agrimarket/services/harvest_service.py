"""Harvest listing service: create, list, purchase."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.errors import NotFoundError, ValidationError
from agrimarket.models.farmer import Farmer
from agrimarket.models.harvest import Harvest
from agrimarket.schemas.harvest import HarvestCreate

logger = structlog.get_logger("agrimarket.harvests")

ANONYMOUS_FARMER = "Anonymous Farmer"


class HarvestService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def create_harvest(self, payload: HarvestCreate, farmer: Farmer | None = None) -> Harvest:
		if (
			not payload.field_name.strip()
			or not payload.quantity
			or not payload.price
			or not payload.location.strip()
		):
			raise ValidationError("Required fields are missing")
		if payload.quantity < 0 or payload.price < 0:
			raise ValidationError("Quantity and price must be positive")

		harvest = Harvest(
			farmer_id=farmer.id if farmer is not None else None,
			field_name=payload.field_name.strip(),
			quantity=float(payload.quantity),
			price=float(payload.price),
			description=payload.description or "",
			location=payload.location.strip(),
			farmer_name=farmer.name if farmer is not None else ANONYMOUS_FARMER,
		)
		self.db.add(harvest)
		await self.db.flush()
		await self.db.refresh(harvest)
		return harvest

	async def list_harvests(self) -> list[Harvest]:
		rows = await self.db.execute(select(Harvest).order_by(Harvest.created_at.desc()))
		return list(rows.scalars().all())

	async def get_harvest(self, harvest_id: uuid.UUID) -> Harvest:
		row = await self.db.execute(select(Harvest).where(Harvest.id == harvest_id))
		harvest = row.scalar_one_or_none()
		if harvest is None:
			raise NotFoundError("Harvest not found")
		return harvest

	async def purchase(self, harvest_id: uuid.UUID, quantity: float | None) -> float:
		"""Decrement availability in one conditional UPDATE and return what is left.

		The row is only touched when enough quantity remains, so a rejected
		purchase leaves the listing unchanged.
		"""
		if quantity is None or quantity <= 0:
			raise ValidationError("Quantity must be greater than 0")

		stmt = (
			update(Harvest)
			.where(Harvest.id == harvest_id, Harvest.quantity >= quantity)
			.values(quantity=Harvest.quantity - quantity)
			.returning(Harvest.quantity)
		)
		row = await self.db.execute(stmt)
		remaining = row.scalar_one_or_none()
		if remaining is None:
			await self.get_harvest(harvest_id)
			raise ValidationError("Insufficient quantity available")

		logger.info("harvest_purchased", harvest_id=str(harvest_id), quantity=quantity, remaining=remaining)
		return float(remaining)
