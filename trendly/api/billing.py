"""
Billing API routes.

Minimal surface:
- POST /create-checkout-session: Create premium checkout session
- POST /webhooks/billing: Handle Stripe webhooks
"""
import logging

from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from trendly.api.deps import Services, get_current_user, get_services, get_settings_dep
from trendly.core.config import Settings
from trendly.core.errors import AppError, BillingUnavailableError, SignatureVerificationError
from trendly.core.logging import log_event
from trendly.features.billing.provider import BillingWebhookError
from trendly.features.billing.service import payments_enabled, start_checkout
from trendly.models.user import User

logger = logging.getLogger("trendly.billing")

router = APIRouter(tags=["billing"])


@router.post("/create-checkout-session")
def create_checkout_session(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    cfg: Settings = Depends(get_settings_dep),
):
    """
    Create Stripe checkout session for the premium plan.

    Returns:
        {"sessionId": "cs_...", "url": "https://checkout.stripe.com/..."}

    Errors:
        400: Already premium
        503: Payments disabled or Stripe not configured
        500: Stripe API error
    """
    return start_checkout(user, services.billing_provider, cfg)


@router.post("/webhooks/billing")
async def billing_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    services: Services = Depends(get_services),
    cfg: Settings = Depends(get_settings_dep),
):
    """
    Handle Stripe webhook events.

    Verifies the signature against the raw body, then dispatches the event.
    Unknown event types and handler failures are still acknowledged.

    Returns:
        {"received": true}

    Errors:
        400: Missing or invalid signature
        503: Stripe not configured
        500: Signed event that could not be processed
    """
    if not payments_enabled(cfg):
        logger.info("Webhook ignored: payments disabled")
        return {"ok": True, "message": "Payments disabled"}

    provider = services.billing_provider
    if provider is None:
        raise BillingUnavailableError("Billing is not configured")

    # Read raw body (required for signature verification)
    body = await request.body()

    try:
        event = provider.construct_event(body, stripe_signature)
        outcome = await run_in_threadpool(services.billing_handler.handle, event)
    except BillingWebhookError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise SignatureVerificationError("Invalid signature")
    except Exception:
        # Signed but unprocessable
        logger.error("Webhook processing error", exc_info=True)
        raise AppError("Webhook handler failed", code="webhook_failed", status_code=500)

    log_event("info", "billing.webhook.processed", event_type=event.event_type,
              extra={"event_id": event.event_id, "outcome": outcome.value})
    return {"received": True}
