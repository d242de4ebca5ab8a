"""Weather routes: by coordinates, by place name, by caller address, forecast."""

from __future__ import annotations

import ipaddress
import math

from fastapi import APIRouter, Depends, Query, Request

from agrimarket.auth.dependencies import client_address
from agrimarket.clients import get_weather_client, get_weather_service
from agrimarket.errors import ValidationError, error_boundary
from agrimarket.schemas.weather import CurrentWeatherResponse, ForecastResponse, WeatherSnapshot
from agrimarket.services.weather_service import WeatherClient, WeatherService

router = APIRouter(prefix="/weather", tags=["weather"])


def _parse_coordinates(lat: str | None, lon: str | None) -> tuple[float, float]:
	try:
		lat_value = float(lat) if lat is not None else math.nan
		lon_value = float(lon) if lon is not None else math.nan
	except ValueError as exc:
		raise ValidationError("Invalid coordinates") from exc
	if math.isnan(lat_value) or math.isnan(lon_value):
		raise ValidationError("Invalid coordinates")
	return lat_value, lon_value


def _lookup_address(request: Request) -> str:
	"""Caller address for geolocation; loopback callers are located by egress address."""
	address = client_address(request)
	try:
		ip = ipaddress.ip_address(address)
	except ValueError:
		return address
	mapped = getattr(ip, "ipv4_mapped", None)
	if ip.is_loopback or (mapped is not None and mapped.is_loopback):
		return ""
	return address


@router.get("/coordinates", response_model=WeatherSnapshot)
async def weather_by_coordinates(
	lat: str | None = None,
	lon: str | None = None,
	weather: WeatherClient = Depends(get_weather_client),
) -> WeatherSnapshot:
	lat_value, lon_value = _parse_coordinates(lat, lon)
	with error_boundary():
		return await weather.by_coordinates(lat_value, lon_value)


@router.get("/location", response_model=WeatherSnapshot)
async def weather_by_location(
	location: str | None = None,
	weather: WeatherClient = Depends(get_weather_client),
) -> WeatherSnapshot:
	if not location or not location.strip():
		raise ValidationError("Location is required")
	with error_boundary():
		return await weather.by_location_name(location.strip())


@router.get("/current", response_model=CurrentWeatherResponse, response_model_exclude_none=True)
async def weather_for_caller(
	request: Request,
	service: WeatherService = Depends(get_weather_service),
) -> CurrentWeatherResponse:
	with error_boundary():
		return await service.current_for_address(_lookup_address(request))


@router.get("/forecast", response_model=ForecastResponse)
async def hourly_forecast(
	lat: str | None = None,
	lon: str | None = None,
	hours: int = Query(default=24, ge=1, le=120),
	weather: WeatherClient = Depends(get_weather_client),
) -> ForecastResponse:
	lat_value, lon_value = _parse_coordinates(lat, lon)
	with error_boundary():
		return await weather.hourly_forecast(lat_value, lon_value, hours)
