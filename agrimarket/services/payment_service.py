"""Payment intents and webhook verification against the Stripe REST API."""

from __future__ import annotations

import hashlib
import hmac
import json
import math
import time
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.config import Settings, get_settings
from agrimarket.errors import (
	ForbiddenError,
	PaymentProviderError,
	ValidationError,
	WebhookSignatureError,
)
from agrimarket.models.farmer import Farmer
from agrimarket.schemas.payment import PaymentIntentRequest, PaymentIntentResponse
from agrimarket.services.harvest_service import HarvestService

logger = structlog.get_logger("agrimarket.payments")


class StripeClient:
	"""Minimal form-encoded client for the three calls a checkout needs."""

	def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
		self.settings = settings or get_settings()
		self.client = client or httpx.AsyncClient(timeout=self.settings.stripe_timeout_seconds)

	async def create_customer(self, metadata: dict[str, str], idempotency_key: str) -> dict[str, Any]:
		data = {f"metadata[{key}]": value for key, value in metadata.items()}
		return await self._post("/customers", data, idempotency_key)

	async def create_ephemeral_key(self, customer_id: str, idempotency_key: str) -> dict[str, Any]:
		return await self._post(
			"/ephemeral_keys",
			{"customer": customer_id},
			idempotency_key,
			api_version=self.settings.stripe_api_version,
		)

	async def create_payment_intent(
		self,
		*,
		amount: int,
		customer_id: str,
		metadata: dict[str, str],
		idempotency_key: str,
	) -> dict[str, Any]:
		data = {
			"amount": str(amount),
			"currency": self.settings.stripe_currency,
			"customer": customer_id,
			"automatic_payment_methods[enabled]": "true",
			**{f"metadata[{key}]": value for key, value in metadata.items()},
		}
		return await self._post("/payment_intents", data, idempotency_key)

	async def _post(
		self,
		path: str,
		data: dict[str, str],
		idempotency_key: str,
		api_version: str | None = None,
	) -> dict[str, Any]:
		headers = {
			"authorization": f"Bearer {self.settings.stripe_secret_key}",
			"idempotency-key": idempotency_key,
		}
		if api_version is not None:
			headers["stripe-version"] = api_version

		try:
			response = await self.client.post(f"{self.settings.stripe_base_url}{path}", data=data, headers=headers)
		except httpx.HTTPError as exc:
			logger.error("stripe_request_failed", path=path, error=str(exc))
			raise PaymentProviderError(f"Payment provider unreachable: {exc}") from exc

		try:
			body = response.json()
		except ValueError:
			body = {}
		if response.is_error:
			error = body.get("error") if isinstance(body, dict) else None
			message = error.get("message") if isinstance(error, dict) else None
			logger.error(
				"stripe_request_rejected",
				path=path,
				status_code=response.status_code,
				error_type=error.get("type") if isinstance(error, dict) else None,
				error_code=error.get("code") if isinstance(error, dict) else None,
			)
			raise PaymentProviderError(
				f"Failed to create payment intent: {message or f'status code {response.status_code}'}"
			)
		if not isinstance(body, dict):
			raise PaymentProviderError("Failed to create payment intent: malformed provider response")
		return body

	async def aclose(self) -> None:
		await self.client.aclose()


def normalize_amount(raw: Any) -> int:
	"""Validate a client-supplied amount and round it half-up to whole minor units."""
	if raw is None or (isinstance(raw, str) and not raw.strip()):
		raise ValidationError("Amount is missing")
	if isinstance(raw, bool):
		raise ValidationError("Invalid amount format")
	try:
		value = Decimal(str(raw).strip())
	except InvalidOperation as exc:
		raise ValidationError("Invalid amount format") from exc
	if not value.is_finite():
		raise ValidationError("Invalid amount format")
	if value <= 0:
		raise ValidationError("Amount must be greater than 0")

	rounded = int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
	if rounded <= 0:
		raise ValidationError("Amount must be greater than 0")
	return rounded


def build_idempotency_key(product_id: str, user_id: str, client_key: str | None = None) -> str:
	"""``payment_<product>_<user>_<suffix>``.

	With a client key a retried request maps to the same processor objects;
	without one the millisecond timestamp makes every call distinct.
	"""
	suffix = client_key.strip() if client_key and client_key.strip() else str(math.floor(time.time() * 1000))
	return f"payment_{product_id}_{user_id}_{suffix}"


def verify_webhook_signature(
	payload: bytes,
	signature_header: str | None,
	secret: str,
	tolerance_seconds: int = 300,
	now: float | None = None,
) -> dict[str, Any]:
	"""Check a ``Stripe-Signature`` header and return the decoded event."""
	if not signature_header:
		raise WebhookSignatureError("No signatures found matching the expected signature for payload")

	timestamp: int | None = None
	signatures: list[str] = []
	for item in signature_header.split(","):
		key, _, value = item.strip().partition("=")
		if key == "t":
			try:
				timestamp = int(value)
			except ValueError:
				timestamp = None
		elif key == "v1":
			signatures.append(value)
	if timestamp is None or not signatures:
		raise WebhookSignatureError("Unable to extract timestamp and signatures from header")

	signed = f"{timestamp}.".encode("utf-8") + payload
	expected = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
	if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
		raise WebhookSignatureError("No signatures found matching the expected signature for payload")

	current = time.time() if now is None else now
	if tolerance_seconds > 0 and abs(current - timestamp) > tolerance_seconds:
		raise WebhookSignatureError("Timestamp outside the tolerance zone")

	try:
		event = json.loads(payload)
	except ValueError as exc:
		raise WebhookSignatureError("Invalid payload") from exc
	if not isinstance(event, dict) or not isinstance(event.get("type"), str):
		raise WebhookSignatureError("Invalid payload")
	return event


def handle_webhook_event(event: dict[str, Any]) -> None:
	"""Log payment lifecycle events; nothing is persisted."""
	event_type = event["type"]
	data = event.get("data")
	obj = data.get("object") if isinstance(data, dict) else None
	intent_id = obj.get("id") if isinstance(obj, dict) else None

	if event_type == "payment_intent.succeeded":
		logger.info("payment_intent_succeeded", payment_intent_id=intent_id)
	elif event_type == "payment_intent.payment_failed":
		logger.warning("payment_intent_failed", payment_intent_id=intent_id)
	else:
		logger.info("webhook_event_unhandled", event_type=event_type)


class PaymentService:
	def __init__(self, db: AsyncSession, stripe: StripeClient):
		self.db = db
		self.stripe = stripe

	async def create_payment_intent(
		self,
		farmer: Farmer,
		payload: PaymentIntentRequest,
		client_key: str | None = None,
	) -> PaymentIntentResponse:
		amount = normalize_amount(payload.amount)
		if not payload.product_id or not payload.product_id.strip():
			raise ValidationError("Product ID is required")

		try:
			product_id = uuid.UUID(payload.product_id.strip())
		except ValueError as exc:
			raise ValidationError("Product ID is invalid") from exc
		product = await HarvestService(self.db).get_harvest(product_id)
		if product.farmer_id != farmer.id:
			raise ForbiddenError("You do not have permission to pay for this product")

		user_id = str(farmer.id)
		key = build_idempotency_key(str(product_id), user_id, client_key)
		metadata = {"productId": str(product_id), "userId": user_id}

		customer = await self.stripe.create_customer({"userId": user_id}, f"customer_{key}")
		ephemeral = await self.stripe.create_ephemeral_key(customer["id"], f"ephemeral_{key}")
		intent = await self.stripe.create_payment_intent(
			amount=amount,
			customer_id=customer["id"],
			metadata=metadata,
			idempotency_key=key,
		)
		logger.info("payment_intent_created", payment_intent_id=intent.get("id"), amount=amount)

		return PaymentIntentResponse(
			payment_intent=str(intent.get("client_secret") or ""),
			payment_intent_id=str(intent.get("id") or ""),
			ephemeral_key=str(ephemeral.get("secret") or ""),
			customer=str(customer["id"]),
		)
