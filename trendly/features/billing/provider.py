"""
Billing provider protocol.

Defines the interface for the payment provider (Stripe) and the normalized
webhook event the billing handler consumes.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple


class BillingEventKind(str, Enum):
    """Webhook event types the billing handler acts on."""
    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAID = "invoice.payment_succeeded"
    INVOICE_FAILED = "invoice.payment_failed"

    @classmethod
    def from_type(cls, event_type: str) -> Optional["BillingEventKind"]:
        try:
            return cls(event_type)
        except ValueError:
            return None


@dataclass
class BillingEvent:
    """A verified webhook event, reduced to the fields the handler needs."""
    event_id: str
    event_type: str
    kind: Optional[BillingEventKind]
    object_id: Optional[str] = None
    user_id: Optional[str] = None  # metadata.userId set at checkout
    customer_id: Optional[str] = None
    status: Optional[str] = None  # subscription status: active, trialing, past_due, ...
    metadata: Dict[str, Any] = field(default_factory=dict)


class BillingProvider(Protocol):
    """
    Protocol for the payment provider.

    Implementations must handle:
    - Subscription checkout session creation
    - Webhook signature verification and parsing
    - Customer email lookup
    """

    def create_checkout_session(
        self,
        user_id: str,
        email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Tuple[str, str]:
        """
        Create a subscription checkout session.

        Returns:
            (session_id, checkout_url)

        Raises:
            BillingProviderError: If session creation fails
        """
        ...

    def construct_event(self, body: bytes, signature: Optional[str]) -> BillingEvent:
        """
        Verify the webhook signature against the raw body and parse the event.

        Raises:
            BillingWebhookError: If the signature is missing/invalid or the body is not an event
        """
        ...

    def get_customer_email(self, customer_id: str) -> Optional[str]:
        """
        Email on file for a customer; None for deleted customers or no email.

        Raises:
            BillingProviderError: If the lookup fails
        """
        ...


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass


class BillingWebhookError(BillingProviderError):
    """Exception for webhook verification errors."""
    pass
