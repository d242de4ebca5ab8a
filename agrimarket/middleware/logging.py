"""structlog setup and per-request access logging."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from agrimarket.auth.dependencies import client_address
from agrimarket.config import LogFormat, Settings, get_settings

# httpx logs every outbound provider call at INFO; the services already do.
_QUIET_LOGGERS = ("httpx", "httpcore")
_HEALTH_PATHS = frozenset({"/health"})

_configured = False


def configure_structured_logging(settings: Settings | None = None) -> None:
	"""Route structlog through stdlib logging once per process."""
	global _configured
	if _configured:
		return

	settings = settings or get_settings()
	level = logging.getLevelName(settings.log_level.upper())
	if not isinstance(level, int):
		level = logging.INFO

	renderer: Any
	if settings.log_format == LogFormat.json:
		renderer = structlog.processors.JSONRenderer()
		logging.basicConfig(level=level, format="%(message)s", force=True)
	else:
		renderer = structlog.dev.ConsoleRenderer()
		logging.basicConfig(level=level, force=True)
	for name in _QUIET_LOGGERS:
		logging.getLogger(name).setLevel(max(level, logging.WARNING))

	structlog.configure(
		processors=[
			structlog.contextvars.merge_contextvars,
			structlog.processors.add_log_level,
			structlog.processors.TimeStamper(fmt="iso", utc=True),
			structlog.processors.StackInfoRenderer(),
			structlog.processors.format_exc_info,
			renderer,
		],
		wrapper_class=structlog.make_filtering_bound_logger(level),
		logger_factory=structlog.PrintLoggerFactory(),
		cache_logger_on_first_use=True,
	)
	_configured = True


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Bind a request id for every log line of the request and log its outcome."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
		request.state.request_id = request_id

		structlog.contextvars.clear_contextvars()
		structlog.contextvars.bind_contextvars(request_id=request_id, client=client_address(request) or None)
		logger = structlog.get_logger("agrimarket.request")
		started = time.perf_counter()

		try:
			response = await call_next(request)
		except Exception:
			logger.exception(
				"request_failed",
				method=request.method,
				path=request.url.path,
				duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
			)
			raise

		response.headers["x-request-id"] = request_id
		fields = {
			"method": request.method,
			"path": request.url.path,
			"status_code": response.status_code,
			"duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
		}
		if request.url.path in _HEALTH_PATHS:
			logger.debug("request_completed", **fields)
		elif response.status_code >= 500:
			logger.warning("request_completed", **fields)
		else:
			logger.info("request_completed", **fields)
		return response
