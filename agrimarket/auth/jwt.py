"""JWT token creation and validation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from agrimarket.config import get_settings
from agrimarket.errors import AuthError

TOKEN_TYPE = "access"


def _settings() -> Any:
	return get_settings()


def create_access_token(farmer_id: str, email: str, expires_minutes: int | None = None) -> str:
	settings = _settings()
	ttl = expires_minutes or settings.jwt_access_token_expire_minutes
	now = datetime.now(UTC)
	claims: dict[str, Any] = {
		"sub": farmer_id,
		"id": farmer_id,
		"email": email,
		"typ": TOKEN_TYPE,
		"iat": int(now.timestamp()),
		"exp": int((now + timedelta(minutes=ttl)).timestamp()),
	}
	return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
	settings = _settings()
	try:
		payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
	except JWTError as exc:
		raise AuthError("Invalid or expired token") from exc

	farmer_id = payload.get("id") or payload.get("sub")
	if not isinstance(farmer_id, str) or not farmer_id:
		raise AuthError("Invalid or expired token")
	if payload.get("typ") != TOKEN_TYPE:
		raise AuthError("Invalid or expired token")

	exp_raw = payload.get("exp")
	if not isinstance(exp_raw, int):
		raise AuthError("Invalid or expired token")
	if datetime.now(UTC).timestamp() >= exp_raw:
		raise AuthError("Invalid or expired token")

	return payload
