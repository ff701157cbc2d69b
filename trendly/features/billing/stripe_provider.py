"""
Stripe billing provider implementation.

Implements BillingProvider using the Stripe API. Keys are passed per call
rather than through the stripe module global.
"""
import json
from typing import Any, Dict, Optional, Tuple

import stripe

from trendly.features.billing.provider import (
    BillingEvent,
    BillingEventKind,
    BillingProviderError,
    BillingWebhookError,
)


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str], webhook_secret: Optional[str]):
        if not secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def create_checkout_session(
        self,
        user_id: str,
        email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Tuple[str, str]:
        """Create Stripe subscription checkout session."""
        params: Dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {"userId": user_id},
            "allow_promotion_codes": True,
            "billing_address_collection": "required",
        }
        if email:
            params["customer_email"] = email
        try:
            session = stripe.checkout.Session.create(api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")
        return session.id, session.url

    def construct_event(self, body: bytes, signature: Optional[str]) -> BillingEvent:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")
        if not signature:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            payload = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")

        try:
            stripe.WebhookSignature.verify_header(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        if not isinstance(event, dict) or "type" not in event:
            raise BillingWebhookError("Invalid payload: not an event")

        return parse_event(event)

    def get_customer_email(self, customer_id: str) -> Optional[str]:
        try:
            customer = stripe.Customer.retrieve(customer_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer lookup failed: {e}")
        if getattr(customer, "deleted", False):
            return None
        return getattr(customer, "email", None) or None


def parse_event(event: Dict[str, Any]) -> BillingEvent:
    """Parse a Stripe event dict into a normalized BillingEvent."""
    event_type = event.get("type", "")
    data = (event.get("data") or {}).get("object") or {}
    metadata = data.get("metadata") or {}

    customer = data.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")

    return BillingEvent(
        event_id=event.get("id", ""),
        event_type=event_type,
        kind=BillingEventKind.from_type(event_type),
        object_id=data.get("id"),
        user_id=metadata.get("userId"),
        customer_id=customer,
        status=data.get("status"),
        metadata=dict(metadata),
    )
