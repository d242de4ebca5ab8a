"""Redis-backed rate limiting for routes that spend third-party quota."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import Request
from redis.exceptions import RedisError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from agrimarket.auth.dependencies import extract_identity_hint
from agrimarket.config import get_settings

logger = structlog.get_logger("agrimarket.rate_limit")

# Generative model, weather and geolocation calls.
_LIMITED_PREFIXES = ("/api/suggestions", "/api/weather")
_BUCKET_TTL_SECONDS = 65


class RateLimitMiddleware(BaseHTTPMiddleware):
	"""Fixed one-minute window per client identity and route group."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		path = request.url.path
		if not path.startswith(_LIMITED_PREFIXES):
			return await call_next(request)

		redis_client = getattr(request.app.state, "redis", None)
		if redis_client is None:
			return await call_next(request)

		quota = get_settings().rate_limit_per_minute
		identity = extract_identity_hint(request)
		scope = path.split("/")[2]
		now = datetime.now(UTC)

		key = f"ratelimit:{scope}:{identity}:{now.strftime('%Y%m%d%H%M')}"
		try:
			current = await redis_client.incr(key)
			if current == 1:
				await redis_client.expire(key, _BUCKET_TTL_SECONDS)
		except RedisError as exc:
			# Fail open while Redis is unreachable.
			logger.warning("rate_limit_unavailable", scope=scope, error=str(exc))
			return await call_next(request)

		if current > quota:
			logger.warning("rate_limited", scope=scope, identity=identity, quota=quota)
			return JSONResponse(
				status_code=429,
				content={"error": "Rate limit exceeded", "quota": quota},
				headers={"Retry-After": str(60 - now.second)},
			)

		return await call_next(request)
