"""Weather and geolocation schemas: API responses plus provider payloads.

Provider payloads are modelled explicitly so normalization never inspects raw
dicts; every provider field is optional and missing data is decided on in
the service layer.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from agrimarket.schemas.common import CamelModel

# ── API responses ───────────────────────────────────────────────────────────


class LocationDetails(CamelModel):
	country: str
	city: str
	district: str
	lat: float
	lon: float


class WeatherSnapshot(CamelModel):
	temperature: float
	humidity: float
	wind_speed: float
	rainfall: float
	is_raining: bool
	location: str
	weather_condition: str
	weather_icon: str


class ForecastEntry(WeatherSnapshot):
	time: datetime


class ForecastResponse(CamelModel):
	location: str
	items: list[ForecastEntry] = Field(default_factory=list)


class IpDetails(CamelModel):
	city: str
	country: str
	district: str


class CurrentWeatherResponse(CamelModel):
	"""Weather for the caller's address; optional fields are absent on fallback."""

	temperature: float
	humidity: float
	wind_speed: float
	rainfall: float
	location: str
	is_raining: bool | None = None
	weather_condition: str | None = None
	weather_icon: str | None = None
	ip_details: IpDetails


class RainfallReading(BaseModel):
	amount: float
	is_raining: bool


# ── OpenWeather payloads ────────────────────────────────────────────────────


class OwmCondition(BaseModel):
	id: int = 0
	description: str = ""
	icon: str = ""


class OwmMain(BaseModel):
	temp: float
	humidity: float


class OwmWind(BaseModel):
	speed: float = 0.0


class OwmRain(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	one_hour: float | None = Field(default=None, alias="1h")
	three_hours: float | None = Field(default=None, alias="3h")


class OwmCurrentPayload(BaseModel):
	"""``/weather`` response (also the shape of one ``/forecast`` list entry)."""

	weather: list[OwmCondition] = Field(default_factory=list)
	main: OwmMain | None = None
	wind: OwmWind | None = None
	rain: OwmRain | float | None = None
	precipitation: float | None = None
	name: str = ""
	dt: int | None = None


class OwmCity(BaseModel):
	name: str = ""


class OwmForecastPayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	entries: list[OwmCurrentPayload] = Field(default_factory=list, alias="list")
	city: OwmCity = Field(default_factory=OwmCity)


# ── IP geolocation payloads ─────────────────────────────────────────────────


class SelfLocatePayload(BaseModel):
	"""ipapi.co ``/json/`` locates the caller from its own network path."""

	country_name: str
	city: str
	region: str
	latitude: float
	longitude: float


class AddressLookupPayload(BaseModel):
	"""ip-api.com ``/json/<address>`` restricted by a field mask."""

	status: str = "success"
	message: str | None = None
	country: str | None = None
	city: str | None = None
	regionName: str | None = None
	lat: float | None = None
	lon: float | None = None
