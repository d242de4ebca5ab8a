"""Payment intent and processor webhook routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.auth.dependencies import get_current_farmer
from agrimarket.clients import get_stripe
from agrimarket.config import get_settings
from agrimarket.database import get_db
from agrimarket.errors import WebhookSignatureError, error_boundary
from agrimarket.models.farmer import Farmer
from agrimarket.schemas.payment import PaymentIntentRequest, PaymentIntentResponse, WebhookAck
from agrimarket.services.payment_service import (
	PaymentService,
	StripeClient,
	handle_webhook_event,
	verify_webhook_signature,
)

router = APIRouter(prefix="/payments", tags=["payments"])
logger = structlog.get_logger("agrimarket.payments")


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
	payload: PaymentIntentRequest,
	idempotency_key: str | None = Header(default=None),
	db: AsyncSession = Depends(get_db),
	farmer: Farmer = Depends(get_current_farmer),
	stripe: StripeClient = Depends(get_stripe),
) -> PaymentIntentResponse:
	with error_boundary("Failed to create payment intent"):
		return await PaymentService(db, stripe).create_payment_intent(farmer, payload, idempotency_key)


@router.post("/webhook", response_model=WebhookAck, response_model_exclude_none=True)
async def stripe_webhook(
	request: Request,
	stripe_signature: str | None = Header(default=None),
) -> WebhookAck | JSONResponse:
	settings = get_settings()
	body = await request.body()
	try:
		event = verify_webhook_signature(
			body,
			stripe_signature,
			settings.stripe_webhook_secret,
			tolerance_seconds=settings.stripe_webhook_tolerance_seconds,
		)
	except WebhookSignatureError as exc:
		logger.warning("webhook_signature_rejected", error=exc.message)
		return JSONResponse(
			status_code=status.HTTP_400_BAD_REQUEST,
			content={"error": f"Webhook Error: {exc.message}"},
		)

	# Acknowledge even when handling fails so the processor does not retry.
	try:
		handle_webhook_event(event)
	except Exception as exc:
		logger.exception("webhook_event_failed", event_type=event.get("type"), error=str(exc))
		return WebhookAck(processing_error=str(exc))
	return WebhookAck()
