"""Authentication dependencies: get_current_farmer, get_optional_farmer."""

from __future__ import annotations

import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.auth.jwt import decode_token
from agrimarket.database import get_db
from agrimarket.errors import AuthError
from agrimarket.models.farmer import Farmer

bearer_scheme = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plaintext: str) -> str:
	return pwd_context.hash(plaintext)


def verify_password(plaintext: str, hashed: str) -> bool:
	try:
		return pwd_context.verify(plaintext, hashed)
	except ValueError:
		return False


def extract_identity_hint(request: Request) -> str:
	"""Best-effort client identity for quota keys, without touching the DB."""
	auth_header = request.headers.get("authorization", "")
	if auth_header.lower().startswith("bearer "):
		try:
			payload = decode_token(auth_header.split(" ", 1)[1].strip())
		except AuthError:
			pass
		else:
			return f"farmer:{payload.get('id') or payload.get('sub')}"
	return f"ip:{client_address(request) or 'unknown'}"


def client_address(request: Request) -> str:
	forwarded = request.headers.get("x-forwarded-for", "")
	if forwarded:
		return forwarded.split(",")[0].strip()
	if request.client is not None:
		return request.client.host
	return ""


async def _resolve_farmer_from_token(
	db: AsyncSession,
	credentials: HTTPAuthorizationCredentials | None,
) -> Farmer:
	if credentials is None or credentials.scheme.lower() != "bearer":
		raise AuthError("Authorization token required")

	payload = decode_token(credentials.credentials)
	try:
		farmer_id = uuid.UUID(str(payload.get("id") or payload["sub"]))
	except (ValueError, KeyError) as exc:
		raise AuthError("Invalid or expired token") from exc

	row = await db.execute(select(Farmer).where(Farmer.id == farmer_id))
	farmer = row.scalar_one_or_none()
	if farmer is None:
		raise AuthError("Invalid or expired token")
	return farmer


async def get_current_farmer(
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> Farmer:
	credentials = await bearer_scheme(request)
	return await _resolve_farmer_from_token(db, credentials)


async def get_optional_farmer(
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> Farmer | None:
	credentials = await bearer_scheme(request)
	if credentials is None:
		return None
	return await _resolve_farmer_from_token(db, credentials)
