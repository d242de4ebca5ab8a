"""Resolve a client network address to an approximate location.

Two providers are used, picked by address class:

* local, private or unknown addresses go to ipapi.co, which locates the
  server's own egress address (no input parameter);
* public addresses go to ip-api.com with a fixed field mask.

There is no retry and no cross-provider fallback; one failed call raises
``GeolocationLookupError``.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError as PayloadError

from agrimarket.errors import GeolocationLookupError
from agrimarket.schemas.weather import AddressLookupPayload, LocationDetails, SelfLocatePayload

logger = structlog.get_logger("agrimarket.geolocation")

GEOLOCATION_TIMEOUT_SECONDS = 3.0
SELF_LOCATE_URL = "https://ipapi.co/json/"
ADDRESS_LOOKUP_URL = "http://ip-api.com/json/{address}"
# country, city, lat, lon, district
ADDRESS_LOOKUP_FIELD_MASK = "524497"

_LOOPBACK_ADDRESSES = {"127.0.0.1", "::1"}


def is_local_address(address: str) -> bool:
	return not address or address in _LOOPBACK_ADDRESSES or address.startswith("192.168.")


class GeolocationResolver:
	def __init__(self, client: httpx.AsyncClient | None = None):
		self.client = client or httpx.AsyncClient(timeout=GEOLOCATION_TIMEOUT_SECONDS)

	async def resolve(self, address: str) -> LocationDetails:
		try:
			if is_local_address(address):
				return await self._self_locate()
			return await self._lookup_address(address)
		except GeolocationLookupError:
			raise
		except (httpx.HTTPError, PayloadError, ValueError) as exc:
			logger.error("ip_lookup_failed", address=address or "default", error=str(exc))
			raise GeolocationLookupError("Unable to fetch IP details.") from exc

	async def _self_locate(self) -> LocationDetails:
		logger.info("ip_lookup", provider="ipapi.co")
		body = await self._get_json(SELF_LOCATE_URL)
		payload = SelfLocatePayload.model_validate(body)
		return LocationDetails(
			country=payload.country_name,
			city=payload.city,
			district=payload.region,
			lat=payload.latitude,
			lon=payload.longitude,
		)

	async def _lookup_address(self, address: str) -> LocationDetails:
		logger.info("ip_lookup", provider="ip-api.com", address=address)
		body = await self._get_json(
			ADDRESS_LOOKUP_URL.format(address=address),
			params={"fields": ADDRESS_LOOKUP_FIELD_MASK},
		)
		payload = AddressLookupPayload.model_validate(body)
		if payload.status != "success" or payload.lat is None or payload.lon is None:
			logger.error("ip_lookup_rejected", address=address, reason=payload.message)
			raise GeolocationLookupError("Unable to fetch IP details.")
		return LocationDetails(
			country=payload.country or "",
			city=payload.city or "",
			district=payload.regionName or "",
			lat=payload.lat,
			lon=payload.lon,
		)

	async def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
		response = await self.client.get(url, params=params, timeout=GEOLOCATION_TIMEOUT_SECONDS)
		response.raise_for_status()
		return response.json()

	async def aclose(self) -> None:
		await self.client.aclose()
