"""Farmer registration, login and profile routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.auth.dependencies import get_current_farmer
from agrimarket.database import get_db
from agrimarket.errors import error_boundary
from agrimarket.models.farmer import Farmer
from agrimarket.schemas.auth import (
	FarmerProfile,
	FarmerSummary,
	LoginRequest,
	LoginResponse,
	ProfileResponse,
	RegisterRequest,
	RegisterResponse,
)
from agrimarket.services.farmer_service import FarmerService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_farmer(
	payload: RegisterRequest,
	db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
	with error_boundary():
		farmer = await FarmerService(db).register(payload)
	return RegisterResponse(message="User created successfully", user_id=farmer.id)


@router.post("/login", response_model=LoginResponse)
async def login_farmer(
	payload: LoginRequest,
	db: AsyncSession = Depends(get_db),
) -> LoginResponse:
	with error_boundary("Internal server error"):
		farmer, token = await FarmerService(db).login(payload)
	return LoginResponse(
		message="Login successful",
		token=token,
		user=FarmerSummary(id=farmer.id, name=farmer.name, email=farmer.email),
	)


@router.get("/get", response_model=ProfileResponse)
async def get_profile(
	db: AsyncSession = Depends(get_db),
	farmer: Farmer = Depends(get_current_farmer),
) -> ProfileResponse:
	with error_boundary("Internal server error"):
		current = await FarmerService(db).get_farmer(farmer.id)
	return ProfileResponse(user=FarmerProfile.model_validate(current))
