"""Field CRUD routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.auth.dependencies import get_current_farmer, get_optional_farmer
from agrimarket.database import get_db
from agrimarket.errors import error_boundary
from agrimarket.models.farmer import Farmer
from agrimarket.schemas.field import FieldCreate, FieldCreateResponse, FieldRead, FieldUpdate
from agrimarket.services.field_service import FieldService

router = APIRouter(prefix="/fields", tags=["fields"])


@router.post("/create", response_model=FieldCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_field(
	payload: FieldCreate,
	db: AsyncSession = Depends(get_db),
	farmer: Farmer | None = Depends(get_optional_farmer),
) -> FieldCreateResponse:
	with error_boundary():
		field = await FieldService(db).create_field(payload, farmer)
	return FieldCreateResponse(message="Field created successfully", id=field.id)


@router.get("/", response_model=list[FieldRead])
async def list_fields(db: AsyncSession = Depends(get_db)) -> list[FieldRead]:
	with error_boundary():
		fields = await FieldService(db).list_fields()
	return [FieldRead.model_validate(field) for field in fields]


@router.get("/{field_id}", response_model=FieldRead)
async def get_field(field_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> FieldRead:
	with error_boundary():
		field = await FieldService(db).get_field(field_id)
	return FieldRead.model_validate(field)


@router.patch("/{field_id}", response_model=FieldRead)
async def update_field(
	field_id: uuid.UUID,
	payload: FieldUpdate,
	db: AsyncSession = Depends(get_db),
	farmer: Farmer = Depends(get_current_farmer),
) -> FieldRead:
	with error_boundary():
		field = await FieldService(db).update_field(field_id, farmer, payload)
	return FieldRead.model_validate(field)


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_field(
	field_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
	farmer: Farmer = Depends(get_current_farmer),
) -> Response:
	with error_boundary():
		await FieldService(db).delete_field(field_id, farmer)
	return Response(status_code=status.HTTP_204_NO_CONTENT)
