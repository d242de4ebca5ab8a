"""Process-wide external service clients, built once in the app lifespan.

Handlers receive them through the ``get_*`` dependencies below, never through
module globals, so tests can swap any of them with ``dependency_overrides``.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from agrimarket.config import Settings
from agrimarket.errors import InternalError
from agrimarket.services.geolocation import GeolocationResolver
from agrimarket.services.llm_service import GeminiClient
from agrimarket.services.payment_service import StripeClient
from agrimarket.services.weather_service import WeatherClient, WeatherService


@dataclass(slots=True)
class ExternalClients:
	gemini: GeminiClient
	weather: WeatherClient
	geolocation: GeolocationResolver
	stripe: StripeClient

	@classmethod
	def from_settings(cls, settings: Settings) -> ExternalClients:
		return cls(
			gemini=GeminiClient(settings),
			weather=WeatherClient(settings.openweather_api_key, settings.openweather_base_url),
			geolocation=GeolocationResolver(),
			stripe=StripeClient(settings),
		)

	async def aclose(self) -> None:
		await self.gemini.aclose()
		await self.weather.aclose()
		await self.geolocation.aclose()
		await self.stripe.aclose()


def _clients(request: Request) -> ExternalClients:
	clients = getattr(request.app.state, "clients", None)
	if clients is None:
		raise InternalError("External clients are not initialized")
	return clients


def get_gemini(request: Request) -> GeminiClient:
	return _clients(request).gemini


def get_weather_client(request: Request) -> WeatherClient:
	return _clients(request).weather


def get_geolocation(request: Request) -> GeolocationResolver:
	return _clients(request).geolocation


def get_stripe(request: Request) -> StripeClient:
	return _clients(request).stripe


def get_weather_service(request: Request) -> WeatherService:
	clients = _clients(request)
	return WeatherService(clients.geolocation, clients.weather)
