"""Harvest listing (marketplace product) routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.auth.dependencies import get_optional_farmer
from agrimarket.database import get_db
from agrimarket.errors import error_boundary
from agrimarket.models.farmer import Farmer
from agrimarket.schemas.harvest import (
	HarvestCreate,
	HarvestCreateResponse,
	HarvestRead,
	PurchaseRequest,
	PurchaseResponse,
)
from agrimarket.services.harvest_service import HarvestService

router = APIRouter(prefix="/products", tags=["products"])


@router.post("/create", response_model=HarvestCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_harvest(
	payload: HarvestCreate,
	db: AsyncSession = Depends(get_db),
	farmer: Farmer | None = Depends(get_optional_farmer),
) -> HarvestCreateResponse:
	with error_boundary():
		harvest = await HarvestService(db).create_harvest(payload, farmer)
	return HarvestCreateResponse(message="Harvest listed successfully", id=harvest.id)


@router.get("/", response_model=list[HarvestRead])
async def list_harvests(db: AsyncSession = Depends(get_db)) -> list[HarvestRead]:
	with error_boundary():
		harvests = await HarvestService(db).list_harvests()
	return [HarvestRead.model_validate(harvest) for harvest in harvests]


@router.post("/harvests/{harvest_id}/buy", response_model=PurchaseResponse)
async def buy_harvest(
	harvest_id: uuid.UUID,
	payload: PurchaseRequest,
	db: AsyncSession = Depends(get_db),
) -> PurchaseResponse:
	with error_boundary():
		remaining = await HarvestService(db).purchase(harvest_id, payload.quantity)
	return PurchaseResponse(message="Purchase successful", remaining_quantity=remaining)
