"""Field CRUD service."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from agrimarket.models.farmer import Farmer
from agrimarket.models.field import FarmField
from agrimarket.schemas.field import FieldCreate, FieldUpdate

_REQUIRED = ("fieldname", "fieldlocation", "fieldsize", "fieldtype")


class FieldService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def create_field(self, payload: FieldCreate, owner: Farmer | None = None) -> FarmField:
		if not all(getattr(payload, name).strip() for name in _REQUIRED):
			raise ValidationError("All fields are required")

		fieldname = payload.fieldname.strip()
		await self._ensure_name_free(fieldname)

		field = FarmField(
			owner_id=owner.id if owner is not None else None,
			fieldname=fieldname,
			fieldlocation=payload.fieldlocation.strip(),
			fieldsize=payload.fieldsize.strip(),
			fieldtype=payload.fieldtype.strip(),
			crops=self._clean_crops(payload.crops),
		)
		self.db.add(field)
		await self._flush_unique()
		await self.db.refresh(field)
		return field

	async def list_fields(self) -> list[FarmField]:
		rows = await self.db.execute(select(FarmField).order_by(FarmField.created_at.desc()))
		return list(rows.scalars().all())

	async def get_field(self, field_id: uuid.UUID) -> FarmField:
		row = await self.db.execute(select(FarmField).where(FarmField.id == field_id))
		field = row.scalar_one_or_none()
		if field is None:
			raise NotFoundError("Field not found")
		return field

	async def update_field(self, field_id: uuid.UUID, owner: Farmer, payload: FieldUpdate) -> FarmField:
		field = await self._get_owned(field_id, owner)
		changes = payload.model_dump(exclude_unset=True, exclude_none=True)
		if not changes:
			raise ValidationError("No updatable fields supplied")

		new_name = changes.get("fieldname")
		if new_name is not None and new_name.strip() != field.fieldname:
			await self._ensure_name_free(new_name.strip())

		for name, value in changes.items():
			if name == "crops":
				field.crops = self._clean_crops(value)
			else:
				setattr(field, name, value.strip())
		await self._flush_unique()
		await self.db.refresh(field)
		return field

	async def delete_field(self, field_id: uuid.UUID, owner: Farmer) -> None:
		field = await self._get_owned(field_id, owner)
		await self.db.delete(field)
		await self.db.flush()

	async def _get_owned(self, field_id: uuid.UUID, owner: Farmer) -> FarmField:
		field = await self.get_field(field_id)
		if field.owner_id is None or field.owner_id != owner.id:
			raise ForbiddenError("You do not have permission to modify this field")
		return field

	async def _ensure_name_free(self, fieldname: str) -> None:
		row = await self.db.execute(select(FarmField.id).where(FarmField.fieldname == fieldname))
		if row.scalar_one_or_none() is not None:
			raise ConflictError("Field already exists")

	async def _flush_unique(self) -> None:
		try:
			await self.db.flush()
		except IntegrityError as exc:
			raise ConflictError("Field already exists") from exc

	@staticmethod
	def _clean_crops(crops: list[str]) -> list[str]:
		return [crop.strip() for crop in crops if crop and crop.strip()]
