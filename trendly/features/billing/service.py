"""
Billing service orchestrator.

Coordinates:
- Checkout start for the premium subscription
- Webhook event dispatch and the resulting tier transitions
- Mirroring the tier into Clerk public metadata

All Stripe-specific code is in stripe_provider.py.
"""
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from trendly.core.config import Settings
from trendly.core.errors import AlreadySubscribedError, BillingProviderFailure, BillingUnavailableError
from trendly.core.tracing import start_span
from trendly.features.billing.provider import (
    BillingEvent,
    BillingEventKind,
    BillingProvider,
    BillingProviderError,
)
from trendly.features.billing.stripe_provider import StripeProvider
from trendly.features.users.clerk_client import ClerkIdentityClient, IdentityProviderError
from trendly.features.users.service import UserStore
from trendly.models.user import SubscriptionTier, User

logger = logging.getLogger("trendly.billing")

PREMIUM_STATUSES = frozenset({"active", "trialing"})


class BillingOutcome(str, Enum):
    APPLIED = "applied"  # tier changed (or re-applied)
    OBSERVED = "observed"  # logged only
    DROPPED = "dropped"  # subject could not be resolved
    UNHANDLED = "unhandled"  # unknown event type
    FAILED = "failed"  # handler raised; logged


class UnresolvableBillingSubject(Exception):
    """Webhook user lookup matched no user or more than one."""


def payments_enabled(cfg: Settings) -> bool:
    return not cfg.PAYMENTS_DISABLED


def build_provider(cfg: Settings) -> Optional[BillingProvider]:
    """Stripe provider if a secret key is configured, else None."""
    if not cfg.STRIPE_SECRET_KEY:
        return None
    try:
        return StripeProvider(cfg.STRIPE_SECRET_KEY, cfg.STRIPE_WEBHOOK_SECRET)
    except BillingProviderError as e:
        logger.warning(f"Stripe provider unavailable: {e}")
        return None


def start_checkout(user: User, provider: Optional[BillingProvider], cfg: Settings) -> dict:
    """
    Start the premium subscription checkout for a user.

    Returns:
        {"sessionId", "url"}

    Raises:
        BillingUnavailableError: payments disabled or Stripe not configured
        AlreadySubscribedError: user is already premium
        BillingProviderFailure: Stripe rejected the request
    """
    if not payments_enabled(cfg):
        raise BillingUnavailableError("Payments are currently disabled")
    if provider is None or not cfg.STRIPE_PREMIUM_PRICE_ID:
        raise BillingUnavailableError("Billing is not configured")
    if user.is_premium:
        raise AlreadySubscribedError("User already has premium subscription")

    app_url = cfg.APP_URL.rstrip("/")
    try:
        session_id, url = provider.create_checkout_session(
            user_id=user.external_auth_id,
            email=user.email,
            price_id=cfg.STRIPE_PREMIUM_PRICE_ID,
            success_url=f"{app_url}/dashboard?success=true",
            cancel_url=f"{app_url}/dashboard?canceled=true",
        )
    except BillingProviderError as e:
        logger.error(f"Error creating checkout session: {e}", extra={"user_id": user.external_auth_id})
        raise BillingProviderFailure("Failed to create checkout session")

    logger.info("Checkout session created", extra={"user_id": user.external_auth_id})
    return {"sessionId": session_id, "url": url}


class BillingEventHandler:
    """
    Turns verified billing events into tier transitions.

    Every handler failure is caught and logged here so the webhook can
    acknowledge the delivery regardless.
    """

    def __init__(
        self,
        user_store: UserStore,
        provider: Optional[BillingProvider],
        identity: Optional[ClerkIdentityClient],
    ):
        self.user_store = user_store
        self.provider = provider
        self.identity = identity
        self._dispatch: Dict[BillingEventKind, Callable[[BillingEvent], BillingOutcome]] = {
            BillingEventKind.CHECKOUT_COMPLETED: self._on_checkout_completed,
            BillingEventKind.SUBSCRIPTION_UPDATED: self._on_subscription_updated,
            BillingEventKind.SUBSCRIPTION_DELETED: self._on_subscription_deleted,
            BillingEventKind.INVOICE_PAID: self._on_invoice,
            BillingEventKind.INVOICE_FAILED: self._on_invoice,
        }
        missing = set(BillingEventKind) - set(self._dispatch)
        if missing:
            raise RuntimeError(f"No billing handler for: {sorted(k.value for k in missing)}")

    def handle(self, event: BillingEvent) -> BillingOutcome:
        if event.kind is None:
            logger.info(f"Unhandled event type: {event.event_type}", extra={"event_type": event.event_type})
            return BillingOutcome.UNHANDLED

        with start_span("billing.dispatch", {"event_type": event.event_type, "event_id": event.event_id}):
            try:
                outcome = self._dispatch[event.kind](event)
            except UnresolvableBillingSubject as e:
                logger.warning(f"Dropping {event.event_type} {event.event_id}: {e}",
                               extra={"event_type": event.event_type})
                return BillingOutcome.DROPPED
            except Exception:
                logger.error(f"Error handling {event.event_type} {event.event_id}", exc_info=True,
                             extra={"event_type": event.event_type})
                return BillingOutcome.FAILED

        logger.info(f"Billing event {event.event_type} -> {outcome.value}", extra={"event_type": event.event_type})
        return outcome

    def _on_checkout_completed(self, event: BillingEvent) -> BillingOutcome:
        if not event.user_id:
            raise UnresolvableBillingSubject("checkout session has no userId metadata")
        self._apply_tier(event.user_id, SubscriptionTier.PREMIUM, {
            "subscriptionTier": SubscriptionTier.PREMIUM.value,
            "stripeCustomerId": event.customer_id,
        })
        return BillingOutcome.APPLIED

    def _on_subscription_updated(self, event: BillingEvent) -> BillingOutcome:
        user_id = self._resolve_customer(event.customer_id)
        tier = SubscriptionTier.PREMIUM if event.status in PREMIUM_STATUSES else SubscriptionTier.FREE
        self._apply_tier(user_id, tier, {
            "subscriptionTier": tier.value,
            "stripeCustomerId": event.customer_id,
            "subscriptionStatus": event.status,
        })
        return BillingOutcome.APPLIED

    def _on_subscription_deleted(self, event: BillingEvent) -> BillingOutcome:
        user_id = self._resolve_customer(event.customer_id)
        self._apply_tier(user_id, SubscriptionTier.FREE, {
            "subscriptionTier": SubscriptionTier.FREE.value,
            "stripeCustomerId": event.customer_id,
            "subscriptionStatus": "canceled",
        })
        return BillingOutcome.APPLIED

    def _on_invoice(self, event: BillingEvent) -> BillingOutcome:
        level = logging.INFO if event.kind == BillingEventKind.INVOICE_PAID else logging.WARNING
        logger.log(level, f"{event.event_type} for customer {event.customer_id}",
                   extra={"event_type": event.event_type})
        return BillingOutcome.OBSERVED

    def _resolve_customer(self, customer_id: Optional[str]) -> str:
        """Customer -> email -> exactly one Clerk user id."""
        if not customer_id:
            raise UnresolvableBillingSubject("event has no customer")
        if self.provider is None or self.identity is None:
            raise UnresolvableBillingSubject("customer lookup is not configured")

        email = self.provider.get_customer_email(customer_id)
        if not email:
            raise UnresolvableBillingSubject(f"customer {customer_id} is deleted or has no email")

        matches: List[str] = self.identity.find_user_ids_by_email(email)
        if len(matches) != 1:
            raise UnresolvableBillingSubject(f"{len(matches)} users match customer {customer_id}")
        return matches[0]

    def _apply_tier(self, external_auth_id: str, tier: SubscriptionTier, metadata: dict) -> None:
        if not self.user_store.set_tier(external_auth_id, tier):
            logger.warning(f"No local user {external_auth_id}; tier {tier.value} mirrored to Clerk only",
                           extra={"user_id": external_auth_id})
        else:
            logger.info(f"Set tier {tier.value}", extra={"user_id": external_auth_id})

        if self.identity is None:
            return
        try:
            self.identity.update_public_metadata(external_auth_id, metadata)
        except IdentityProviderError as e:
            logger.error(f"Clerk metadata update failed for {external_auth_id}: {e}",
                         extra={"user_id": external_auth_id})
