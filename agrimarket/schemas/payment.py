"""Pydantic schemas for payment intents and processor webhooks."""

from __future__ import annotations

from typing import Any

from agrimarket.schemas.common import CamelModel


class PaymentIntentRequest(CamelModel):
	# Left loose so the service can report the exact validation failure.
	amount: Any = None
	product_id: str | None = None


class PaymentIntentResponse(CamelModel):
	payment_intent: str
	payment_intent_id: str
	ephemeral_key: str
	customer: str
	success: bool = True


class WebhookAck(CamelModel):
	received: bool = True
	processing_error: str | None = None
