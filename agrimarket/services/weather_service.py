"""OpenWeather adapter, rainfall normalization and the by-address composite."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from pydantic import ValidationError as PayloadError

from agrimarket.errors import GeolocationLookupError, WeatherProviderError
from agrimarket.schemas.weather import (
	CurrentWeatherResponse,
	ForecastEntry,
	ForecastResponse,
	IpDetails,
	OwmCurrentPayload,
	OwmForecastPayload,
	RainfallReading,
	WeatherSnapshot,
)
from agrimarket.services.geolocation import GeolocationResolver

logger = structlog.get_logger("agrimarket.weather")

WEATHER_TIMEOUT_SECONDS = 5.0
ICON_URL_TEMPLATE = "https://openweathermap.org/img/wn/{icon}@2x.png"

# Condition codes 2xx (thunderstorm) through 5xx (rain) mean precipitation now.
_RAIN_CODES = range(200, 600)
# Reported when it is raining but the provider gave no measurable amount.
_UNMEASURED_RAIN_MM = 0.1

_FALLBACK_READING: dict[str, Any] = {
	"temperature": 20,
	"humidity": 50,
	"wind_speed": 5,
	"rainfall": 0,
}


def icon_url(icon: str) -> str:
	return ICON_URL_TEMPLATE.format(icon=icon)


def extract_rainfall(payload: OwmCurrentPayload) -> RainfallReading:
	"""Normalize the provider's rain fields to an hourly amount plus a raining flag."""
	condition_id = payload.weather[0].id if payload.weather else 0
	is_raining = condition_id in _RAIN_CODES

	rain = payload.rain
	amount = 0.0
	if isinstance(rain, (int, float)):
		amount = float(rain)
	elif rain is not None and rain.one_hour is not None:
		amount = float(rain.one_hour)
	elif rain is not None and rain.three_hours is not None:
		amount = float(rain.three_hours) / 3
	elif payload.precipitation is not None:
		amount = float(payload.precipitation)

	if is_raining and amount == 0:
		amount = _UNMEASURED_RAIN_MM
	return RainfallReading(amount=amount, is_raining=is_raining)


def to_snapshot(payload: OwmCurrentPayload, location: str | None = None) -> WeatherSnapshot:
	if not payload.weather or payload.main is None or payload.wind is None:
		raise WeatherProviderError("Malformed weather provider response")
	condition = payload.weather[0]
	rainfall = extract_rainfall(payload)
	return WeatherSnapshot(
		temperature=payload.main.temp,
		humidity=payload.main.humidity,
		wind_speed=payload.wind.speed,
		rainfall=rainfall.amount,
		is_raining=rainfall.is_raining,
		location=location if location is not None else payload.name,
		weather_condition=condition.description,
		weather_icon=icon_url(condition.icon),
	)


class WeatherClient:
	"""Thin async client for the OpenWeather 2.5 REST API (metric units)."""

	def __init__(
		self,
		api_key: str,
		base_url: str = "https://api.openweathermap.org/data/2.5",
		client: httpx.AsyncClient | None = None,
	):
		if not api_key or len(api_key) <= 5:
			raise ValueError("WeatherClient requires a valid API key")
		self.api_key = api_key
		self.base_url = base_url.rstrip("/")
		self.client = client or httpx.AsyncClient(timeout=WEATHER_TIMEOUT_SECONDS)

	async def by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot:
		logger.info("weather_fetch", lat=lat, lon=lon)
		body = await self._fetch("/weather", {"lat": lat, "lon": lon})
		return to_snapshot(self._validate(OwmCurrentPayload, body))

	async def by_location_name(self, name: str) -> WeatherSnapshot:
		logger.info("weather_fetch", location=name)
		body = await self._fetch("/weather", {"q": name})
		return to_snapshot(self._validate(OwmCurrentPayload, body))

	async def hourly_forecast(self, lat: float, lon: float, hours: int = 24) -> ForecastResponse:
		"""The provider reports in 3-hour steps; keep enough steps to cover ``hours``."""
		logger.info("forecast_fetch", lat=lat, lon=lon, hours=hours)
		body = await self._fetch("/forecast", {"lat": lat, "lon": lon})
		payload = self._validate(OwmForecastPayload, body)

		location = payload.city.name
		items: list[ForecastEntry] = []
		for entry in payload.entries[: math.ceil(hours / 3)]:
			if entry.dt is None:
				raise WeatherProviderError("Malformed weather provider response")
			snapshot = to_snapshot(entry, location=location)
			items.append(
				ForecastEntry(
					**snapshot.model_dump(),
					time=datetime.fromtimestamp(entry.dt, tz=UTC),
				)
			)
		return ForecastResponse(location=location, items=items)

	async def _fetch(self, path: str, params: dict[str, Any]) -> Any:
		query = {**params, "appid": self.api_key, "units": "metric"}
		try:
			response = await self.client.get(
				f"{self.base_url}{path}",
				params=query,
				timeout=WEATHER_TIMEOUT_SECONDS,
			)
			response.raise_for_status()
			return response.json()
		except httpx.HTTPStatusError as exc:
			logger.error("weather_provider_error", path=path, status_code=exc.response.status_code)
			raise WeatherProviderError(
				f"Weather provider request failed with status code {exc.response.status_code}"
			) from exc
		except httpx.TimeoutException as exc:
			logger.error("weather_provider_timeout", path=path)
			raise WeatherProviderError("Weather provider request timed out") from exc
		except (httpx.HTTPError, ValueError) as exc:
			logger.error("weather_provider_error", path=path, error=str(exc))
			raise WeatherProviderError(f"Weather provider request failed: {exc}") from exc

	@staticmethod
	def _validate(model: Any, body: Any) -> Any:
		try:
			return model.model_validate(body)
		except PayloadError as exc:
			raise WeatherProviderError("Malformed weather provider response") from exc

	async def aclose(self) -> None:
		await self.client.aclose()


class WeatherService:
	"""Weather for a caller's network address with an independent fallback per stage.

	A failed address lookup yields a fixed default reading; a failed weather
	call after a successful lookup yields the same reading tagged with the
	resolved place. Neither failure reaches the client.
	"""

	def __init__(self, resolver: GeolocationResolver, weather: WeatherClient):
		self.resolver = resolver
		self.weather = weather

	async def current_for_address(self, address: str) -> CurrentWeatherResponse:
		try:
			place = await self.resolver.resolve(address)
		except GeolocationLookupError as exc:
			logger.warning("weather_default_used", stage="geolocation", error=exc.message)
			return CurrentWeatherResponse(
				**_FALLBACK_READING,
				location="Unknown Location",
				ip_details=IpDetails(city="Unknown", country="Unknown", district="Unknown"),
			)

		ip_details = IpDetails(city=place.city, country=place.country, district=place.district)
		try:
			snapshot = await self.weather.by_coordinates(place.lat, place.lon)
		except WeatherProviderError as exc:
			logger.warning("weather_default_used", stage="weather", error=exc.message, city=place.city)
			return CurrentWeatherResponse(
				**_FALLBACK_READING,
				location="Unknown",
				ip_details=ip_details,
			)

		return CurrentWeatherResponse(**snapshot.model_dump(), ip_details=ip_details)
