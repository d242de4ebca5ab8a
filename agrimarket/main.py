"""FastAPI application entrypoint — lifespan, routers, middleware, error rendering."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from agrimarket.clients import ExternalClients
from agrimarket.config import get_settings
from agrimarket.database import engine
from agrimarket.errors import AgriMarketError, map_error
from agrimarket.middleware.logging import RequestLoggingMiddleware, configure_structured_logging
from agrimarket.middleware.rate_limit import RateLimitMiddleware
from agrimarket.routes import auth, fields, payments, products, suggestions, weather

logger = structlog.get_logger("agrimarket")


async def connect_redis(url: str) -> Redis | None:
    """Return a live client, or None so rate limiting is skipped."""
    redis = Redis.from_url(url, decode_responses=True)
    try:
        await redis.ping()
    except RedisError as exc:
        logger.warning("redis unavailable, rate limiting disabled", error=str(exc))
        await redis.aclose()
        return None
    return redis


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup / shutdown lifecycle.

    Startup:
      1. Initialize structured logging
      2. Verify database connectivity
      3. Connect to Redis
      4. Build the shared external service clients

    Shutdown:
      1. Close external clients
      2. Close Redis connection pool
      3. Dispose SQLAlchemy engine
    """
    configure_structured_logging()
    settings = get_settings()
    logger.info("AgriMarket starting", log_level=settings.log_level)

    redis: Redis | None = None
    clients: ExternalClients | None = None
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

        redis = await connect_redis(settings.redis_url)
        app.state.redis = redis

        clients = ExternalClients.from_settings(settings)
        app.state.clients = clients
    except Exception as exc:
        logger.exception("startup failure", error=str(exc))
        raise

    yield

    logger.info("AgriMarket shutting down")
    if clients is not None:
        await clients.aclose()
    if redis is not None:
        await redis.aclose()
    await engine.dispose()


app = FastAPI(
    title="AgriMarket API",
    description=(
        "Agricultural marketplace API — farmer accounts, field management, "
        "AI crop suggestions, harvest listings, weather lookup and payments."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS ────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)


# ── Error rendering ─────────────────────────────────────────────────────────
@app.exception_handler(AgriMarketError)
async def agrimarket_error_handler(_request: Request, exc: AgriMarketError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    error = map_error(exc)
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


# ── Health check ────────────────────────────────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Basic health check — verifies the API process is alive."""
    return {
        "status": "ok",
        "service": "agrimarket",
        "version": "0.1.0",
    }


# ── Router registration ────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api")
app.include_router(fields.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(suggestions.router, prefix="/api")
app.include_router(weather.router, prefix="/api")
app.include_router(payments.router, prefix="/api")
