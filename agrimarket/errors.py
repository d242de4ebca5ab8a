"""Closed error taxonomy shared by services and routes.

Every failure that reaches the HTTP edge is one of the ``ErrorKind`` values;
the application exception handlers render it as ``{"error": message}``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum

import structlog
from fastapi import status

logger = structlog.get_logger("agrimarket.errors")


class ErrorKind(StrEnum):
	validation = "validation"
	not_found = "not_found"
	auth = "auth"
	forbidden = "forbidden"
	conflict = "conflict"
	upstream = "upstream"
	internal = "internal"


# Duplicates are reported as 400, not 409.
_STATUS_CODES: dict[ErrorKind, int] = {
	ErrorKind.validation: status.HTTP_400_BAD_REQUEST,
	ErrorKind.not_found: status.HTTP_404_NOT_FOUND,
	ErrorKind.auth: status.HTTP_401_UNAUTHORIZED,
	ErrorKind.forbidden: status.HTTP_403_FORBIDDEN,
	ErrorKind.conflict: status.HTTP_400_BAD_REQUEST,
	ErrorKind.upstream: status.HTTP_500_INTERNAL_SERVER_ERROR,
	ErrorKind.internal: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class AgriMarketError(Exception):
	"""Base class for every error the API reports to its callers."""

	kind: ErrorKind = ErrorKind.internal

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message

	@property
	def status_code(self) -> int:
		return _STATUS_CODES[self.kind]

	def __repr__(self) -> str:
		return f"<{type(self).__name__} kind={self.kind} message={self.message!r}>"


class ValidationError(AgriMarketError, ValueError):
	kind = ErrorKind.validation


class NotFoundError(AgriMarketError, LookupError):
	kind = ErrorKind.not_found


class AuthError(AgriMarketError):
	kind = ErrorKind.auth


class ForbiddenError(AgriMarketError):
	kind = ErrorKind.forbidden


class ConflictError(AgriMarketError):
	kind = ErrorKind.conflict


class UpstreamError(AgriMarketError):
	kind = ErrorKind.upstream


class InternalError(AgriMarketError):
	kind = ErrorKind.internal


class GeolocationLookupError(UpstreamError, LookupError):
	"""Raised when an IP geolocation provider is unreachable or returns junk."""


class WeatherProviderError(UpstreamError):
	"""Raised on a non-2xx, timed-out or malformed weather provider response."""


class GenerativeModelError(UpstreamError):
	pass


class PaymentProviderError(UpstreamError):
	pass


class WebhookSignatureError(ValidationError):
	pass


def map_error(exc: Exception, fallback: str = "Something went wrong") -> AgriMarketError:
	"""Normalize any exception raised below a route into the closed taxonomy."""
	if isinstance(exc, AgriMarketError):
		return exc
	logger.error("unexpected_error", error=str(exc), error_type=type(exc).__name__)
	return InternalError(fallback)


@contextmanager
def error_boundary(fallback: str = "Something went wrong") -> Iterator[None]:
	"""Let taxonomy errors through and turn anything else into ``InternalError``."""
	try:
		yield
	except AgriMarketError:
		raise
	except Exception as exc:
		raise map_error(exc, fallback) from exc
