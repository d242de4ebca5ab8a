from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import mock_http_client

from agrimarket.clients import get_weather_client, get_weather_service
from agrimarket.errors import GeolocationLookupError, WeatherProviderError
from agrimarket.main import app
from agrimarket.schemas.weather import LocationDetails, OwmCurrentPayload, WeatherSnapshot
from agrimarket.services.weather_service import (
    WeatherClient,
    WeatherService,
    extract_rainfall,
    icon_url,
)

CURRENT_BODY: dict[str, Any] = {
    "weather": [{"id": 501, "main": "Rain", "description": "moderate rain", "icon": "10d"}],
    "main": {"temp": 27.5, "humidity": 83, "pressure": 1009},
    "wind": {"speed": 3.6, "deg": 240},
    "rain": {"1h": 2.4},
    "name": "Kandy",
}


def _payload(body: dict[str, Any]) -> OwmCurrentPayload:
    return OwmCurrentPayload.model_validate(body)


# ── extract_rainfall ────────────────────────────────────────────────────────


def test_zero_rain_while_raining_is_floored() -> None:
    reading = extract_rainfall(_payload({"weather": [{"id": 500}], "rain": {"1h": 0}}))
    assert reading.amount == 0.1
    assert reading.is_raining is True


def test_clear_sky_without_rain_field() -> None:
    reading = extract_rainfall(_payload({"weather": [{"id": 800}]}))
    assert reading.amount == 0
    assert reading.is_raining is False


def test_three_hour_volume_becomes_hourly_rate() -> None:
    reading = extract_rainfall(_payload({"weather": [{"id": 501}], "rain": {"3h": 3}}))
    assert reading.amount == 1
    assert reading.is_raining is True


def test_one_hour_volume_preferred_over_three_hour() -> None:
    reading = extract_rainfall(_payload({"weather": [{"id": 502}], "rain": {"1h": 4.2, "3h": 9}}))
    assert reading.amount == 4.2


def test_numeric_rain_and_precipitation_fields() -> None:
    assert extract_rainfall(_payload({"weather": [{"id": 801}], "rain": 1.5})).amount == 1.5
    assert extract_rainfall(_payload({"weather": [{"id": 801}], "precipitation": 0.7})).amount == 0.7


@pytest.mark.parametrize(("code", "raining"), [(199, False), (200, True), (599, True), (600, False)])
def test_raining_flag_boundaries(code: int, raining: bool) -> None:
    assert extract_rainfall(_payload({"weather": [{"id": code}]})).is_raining is raining


def test_missing_conditions_mean_not_raining() -> None:
    reading = extract_rainfall(_payload({"rain": {"1h": 0.3}}))
    assert reading.is_raining is False
    assert reading.amount == 0.3


# ── WeatherClient ───────────────────────────────────────────────────────────


def test_short_api_key_rejected() -> None:
    with pytest.raises(ValueError):
        WeatherClient("abc")


@pytest.mark.asyncio
async def test_by_coordinates_builds_snapshot() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=CURRENT_BODY)

    client = WeatherClient("test-openweather-key", client=mock_http_client(handler))
    snapshot = await client.by_coordinates(7.29, 80.63)

    [request] = seen
    assert request.url.path == "/data/2.5/weather"
    assert request.url.params["lat"] == "7.29"
    assert request.url.params["units"] == "metric"
    assert request.url.params["appid"] == "test-openweather-key"
    assert snapshot.temperature == 27.5
    assert snapshot.humidity == 83
    assert snapshot.wind_speed == 3.6
    assert snapshot.rainfall == 2.4
    assert snapshot.is_raining is True
    assert snapshot.location == "Kandy"
    assert snapshot.weather_condition == "moderate rain"
    assert snapshot.weather_icon == "https://openweathermap.org/img/wn/10d@2x.png"


@pytest.mark.asyncio
async def test_by_location_name_passes_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=CURRENT_BODY)

    client = WeatherClient("test-openweather-key", client=mock_http_client(handler))
    await client.by_location_name("Nuwara Eliya")

    assert seen[0].url.params["q"] == "Nuwara Eliya"


@pytest.mark.asyncio
async def test_provider_error_status_raises() -> None:
    client = WeatherClient(
        "test-openweather-key",
        client=mock_http_client(lambda request: httpx.Response(404, json={"message": "city not found"})),
    )

    with pytest.raises(WeatherProviderError) as excinfo:
        await client.by_location_name("Atlantis")
    assert "404" in excinfo.value.message


@pytest.mark.asyncio
async def test_provider_timeout_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = WeatherClient("test-openweather-key", client=mock_http_client(handler))

    with pytest.raises(WeatherProviderError):
        await client.by_coordinates(0, 0)


@pytest.mark.asyncio
async def test_malformed_payload_raises() -> None:
    client = WeatherClient(
        "test-openweather-key",
        client=mock_http_client(lambda request: httpx.Response(200, json={"weather": []})),
    )

    with pytest.raises(WeatherProviderError):
        await client.by_coordinates(0, 0)


@pytest.mark.asyncio
async def test_hourly_forecast_limits_entries() -> None:
    entry = {
        "dt": 1_760_000_000,
        "weather": [{"id": 500, "description": "light rain", "icon": "10n"}],
        "main": {"temp": 22.0, "humidity": 90},
        "wind": {"speed": 1.2},
        "rain": {"3h": 0.6},
    }
    body = {"list": [entry] * 10, "city": {"name": "Galle"}}
    client = WeatherClient(
        "test-openweather-key",
        client=mock_http_client(lambda request: httpx.Response(200, json=body)),
    )

    forecast = await client.hourly_forecast(6.03, 80.21, hours=7)

    assert forecast.location == "Galle"
    assert len(forecast.items) == 3
    assert forecast.items[0].location == "Galle"
    assert forecast.items[0].rainfall == pytest.approx(0.2)
    assert forecast.items[0].time.year == 2025


def test_icon_url() -> None:
    assert icon_url("01d") == "https://openweathermap.org/img/wn/01d@2x.png"


# ── WeatherService (address composite) ──────────────────────────────────────


class _FailingResolver:
    async def resolve(self, address: str) -> LocationDetails:
        raise GeolocationLookupError("Unable to fetch IP details.")


class _StaticResolver:
    def __init__(self) -> None:
        self.addresses: list[str] = []

    async def resolve(self, address: str) -> LocationDetails:
        self.addresses.append(address)
        return LocationDetails(country="Sri Lanka", city="Kandy", district="Central", lat=7.29, lon=80.63)


class _FailingWeather:
    async def by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot:
        raise WeatherProviderError("Weather provider request timed out")


class _StaticWeather:
    async def by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot:
        return WeatherSnapshot(
            temperature=25.0,
            humidity=70,
            wind_speed=2.0,
            rainfall=0,
            is_raining=False,
            location="Kandy",
            weather_condition="clear sky",
            weather_icon=icon_url("01d"),
        )


@pytest.mark.asyncio
async def test_resolver_failure_returns_default_reading() -> None:
    service = WeatherService(_FailingResolver(), _StaticWeather())  # type: ignore[arg-type]

    result = await service.current_for_address("8.8.8.8")

    assert result.temperature == 20
    assert result.location == "Unknown Location"
    assert result.ip_details.city == "Unknown"


@pytest.mark.asyncio
async def test_weather_failure_keeps_resolved_place() -> None:
    service = WeatherService(_StaticResolver(), _FailingWeather())  # type: ignore[arg-type]

    result = await service.current_for_address("8.8.8.8")

    assert result.location == "Unknown"
    assert result.wind_speed == 5
    assert result.ip_details.city == "Kandy"
    assert result.ip_details.district == "Central"


# ── Routes ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_current_weather_endpoint_degrades_to_default(client: AsyncClient) -> None:
    app.dependency_overrides[get_weather_service] = lambda: WeatherService(
        _FailingResolver(), _FailingWeather()  # type: ignore[arg-type]
    )

    response = await client.get("/api/weather/current")

    assert response.status_code == 200
    body = response.json()
    assert {key: body[key] for key in ("temperature", "humidity", "windSpeed", "rainfall", "location")} == {
        "temperature": 20,
        "humidity": 50,
        "windSpeed": 5,
        "rainfall": 0,
        "location": "Unknown Location",
    }
    assert body["ipDetails"] == {"city": "Unknown", "country": "Unknown", "district": "Unknown"}


@pytest.mark.asyncio
async def test_current_weather_uses_forwarded_address(client: AsyncClient) -> None:
    resolver = _StaticResolver()
    app.dependency_overrides[get_weather_service] = lambda: WeatherService(
        resolver, _StaticWeather()  # type: ignore[arg-type]
    )

    response = await client.get("/api/weather/current", headers={"x-forwarded-for": "8.8.8.8, 10.0.0.1"})
    loopback = await client.get("/api/weather/current")

    assert response.status_code == 200
    assert response.json()["isRaining"] is False
    assert response.json()["ipDetails"]["city"] == "Kandy"
    assert loopback.status_code == 200
    assert resolver.addresses == ["8.8.8.8", ""]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("forwarded", "expected"),
    [("2001:db8::1", "2001:db8::1"), ("::1", ""), ("::ffff:127.0.0.1", ""), ("127.0.0.1", "")],
)
async def test_only_true_loopback_is_self_located(client: AsyncClient, forwarded: str, expected: str) -> None:
    resolver = _StaticResolver()
    app.dependency_overrides[get_weather_service] = lambda: WeatherService(
        resolver, _StaticWeather()  # type: ignore[arg-type]
    )

    response = await client.get("/api/weather/current", headers={"x-forwarded-for": forwarded})

    assert response.status_code == 200
    assert resolver.addresses == [expected]


@pytest.mark.asyncio
async def test_current_weather_survives_redis_outage(client: AsyncClient) -> None:
    broken = MagicMock()
    broken.incr = AsyncMock(side_effect=RedisConnectionError("redis gone"))
    app.state.redis = broken
    app.dependency_overrides[get_weather_service] = lambda: WeatherService(
        _FailingResolver(), _FailingWeather()  # type: ignore[arg-type]
    )

    response = await client.get("/api/weather/current")

    assert response.status_code == 200
    assert response.json()["location"] == "Unknown Location"
    broken.incr.assert_awaited_once()


@pytest.mark.asyncio
async def test_coordinates_endpoint(client: AsyncClient) -> None:
    app.dependency_overrides[get_weather_client] = lambda: _StaticWeather()

    response = await client.get("/api/weather/coordinates", params={"lat": "7.29", "lon": "80.63"})

    assert response.status_code == 200
    assert response.json()["weatherCondition"] == "clear sky"


@pytest.mark.asyncio
async def test_coordinates_endpoint_rejects_bad_input(client: AsyncClient) -> None:
    app.dependency_overrides[get_weather_client] = lambda: _StaticWeather()

    response = await client.get("/api/weather/coordinates", params={"lat": "north", "lon": "80"})
    missing = await client.get("/api/weather/coordinates", params={"lat": "7.2"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid coordinates"}
    assert missing.status_code == 400


@pytest.mark.asyncio
async def test_location_endpoint_requires_location(client: AsyncClient) -> None:
    app.dependency_overrides[get_weather_client] = lambda: _StaticWeather()

    response = await client.get("/api/weather/location")

    assert response.status_code == 400
    assert response.json() == {"error": "Location is required"}


@pytest.mark.asyncio
async def test_adapter_errors_surface_as_500(client: AsyncClient) -> None:
    app.dependency_overrides[get_weather_client] = lambda: _FailingWeather()

    response = await client.get("/api/weather/coordinates", params={"lat": "1", "lon": "2"})

    assert response.status_code == 500
    assert response.json() == {"error": "Weather provider request timed out"}
