"""Shared pytest fixtures: async test client, fake DB session, fake providers."""

from __future__ import annotations

import os

# Secrets are required settings; seed them before the app is imported.
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("OPENWEATHER_API_KEY", "test-openweather-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_agrimarket")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_agrimarket")

import uuid
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from agrimarket.auth.dependencies import get_current_farmer
from agrimarket.auth.jwt import create_access_token
from agrimarket.database import get_db
from agrimarket.main import app


class FakeAsyncSession:
	def __init__(self) -> None:
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.execute = AsyncMock()
		self.flush = AsyncMock()
		self.refresh = AsyncMock()
		self.delete = AsyncMock()
		self.add = MagicMock()


class FakeRedis:
	def __init__(self) -> None:
		self._counter: dict[str, int] = {}
		self.incr = AsyncMock(side_effect=self._incr)
		self.expire = AsyncMock(return_value=True)

	async def _incr(self, key: str) -> int:
		value = self._counter.get(key, 0) + 1
		self._counter[key] = value
		return value


def result_of(value: Any) -> MagicMock:
	"""Mimic the parts of a SQLAlchemy ``Result`` the services use."""
	result = MagicMock()
	result.scalar_one_or_none.return_value = value
	result.scalars.return_value.all.return_value = value if isinstance(value, list) else [value]
	return result


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
	return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	return FakeRedis()


@pytest.fixture
def farmer() -> SimpleNamespace:
	now = datetime.now(UTC)
	return SimpleNamespace(
		id=uuid.UUID("11111111-1111-1111-1111-111111111111"),
		email="farmer@test.local",
		hashed_password="$2b$12$notarealhash",
		name="Test Farmer",
		phone="+94 71 000 0000",
		location="Kandy",
		insurance_preference="basic",
		experience_level="intermediate",
		created_at=now,
		updated_at=now,
	)


@asynccontextmanager
async def _noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
	yield


async def _build_client(overrides: dict[Any, Any]) -> AsyncGenerator[AsyncClient, None]:
	app.dependency_overrides.update(overrides)
	original_lifespan = app.router.lifespan_context
	app.router.lifespan_context = _noop_lifespan
	app.state.redis = None

	# Starlette re-raises after rendering a 500; tests assert on the rendered body.
	transport = ASGITransport(app=app, raise_app_exceptions=False)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()
	app.state.redis = None


@pytest.fixture
async def client(fake_db_session: FakeAsyncSession, farmer: SimpleNamespace) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled, DB mocked and a signed-in farmer."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		try:
			yield fake_db_session
			await fake_db_session.commit()
		except Exception:
			await fake_db_session.rollback()
			raise

	async def override_current_farmer() -> Any:
		return farmer

	async for test_client in _build_client(
		{get_db: override_get_db, get_current_farmer: override_current_farmer}
	):
		yield test_client


@pytest.fixture
async def auth_client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with DB override only (real auth dependencies active)."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		try:
			yield fake_db_session
			await fake_db_session.commit()
		except Exception:
			await fake_db_session.rollback()
			raise

	async for test_client in _build_client({get_db: override_get_db}):
		yield test_client


@pytest.fixture
def access_token(farmer: SimpleNamespace) -> str:
	return create_access_token(str(farmer.id), farmer.email, expires_minutes=30)
