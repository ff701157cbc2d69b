"""
Stripe provider: real signature verification, stubbed API calls.
"""
import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe

from trendly.features.billing.provider import BillingEventKind, BillingProviderError, BillingWebhookError
from trendly.features.billing.stripe_provider import StripeProvider, parse_event

WEBHOOK_SECRET = "whsec_test_secret"


def _sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    ts = timestamp or int(time.time())
    signature = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


@pytest.fixture
def provider():
    return StripeProvider("sk_test_123", WEBHOOK_SECRET)


def _payload() -> str:
    return json.dumps({
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_1", "customer": "cus_1", "metadata": {"userId": "user_1"}}},
    })


def test_construct_event_with_valid_signature(provider):
    payload = _payload()
    event = provider.construct_event(payload.encode(), _sign(payload))

    assert event.event_id == "evt_1"
    assert event.kind == BillingEventKind.CHECKOUT_COMPLETED
    assert event.user_id == "user_1"
    assert event.customer_id == "cus_1"


def test_construct_event_rejects_tampered_body(provider):
    payload = _payload()
    header = _sign(payload)
    with pytest.raises(BillingWebhookError):
        provider.construct_event(payload.replace("user_1", "user_2").encode(), header)


def test_construct_event_rejects_wrong_secret(provider):
    payload = _payload()
    with pytest.raises(BillingWebhookError):
        provider.construct_event(payload.encode(), _sign(payload, secret="whsec_other"))


def test_construct_event_requires_signature(provider):
    with pytest.raises(BillingWebhookError):
        provider.construct_event(_payload().encode(), None)


def test_construct_event_requires_webhook_secret():
    with pytest.raises(BillingWebhookError):
        StripeProvider("sk_test_123", None).construct_event(b"{}", "t=1,v1=x")


def test_provider_requires_secret_key():
    with pytest.raises(BillingProviderError):
        StripeProvider(None, WEBHOOK_SECRET)


def test_parse_event_expanded_customer():
    event = parse_event({
        "id": "evt_2",
        "type": "customer.subscription.updated",
        "data": {"object": {"id": "sub_1", "customer": {"id": "cus_9"}, "status": "active"}},
    })
    assert event.customer_id == "cus_9"
    assert event.status == "active"
    assert event.user_id is None


def test_create_checkout_session_passes_subscription_params(provider, monkeypatch):
    calls = {}

    def fake_create(**kwargs):
        calls.update(kwargs)
        return SimpleNamespace(id="cs_new", url="https://checkout.stripe.com/cs_new")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    session_id, url = provider.create_checkout_session(
        "user_1", "a@example.com", "price_1", "https://app/success", "https://app/cancel"
    )

    assert (session_id, url) == ("cs_new", "https://checkout.stripe.com/cs_new")
    assert calls["api_key"] == "sk_test_123"
    assert calls["mode"] == "subscription"
    assert calls["customer_email"] == "a@example.com"
    assert calls["metadata"] == {"userId": "user_1"}
    assert calls["line_items"] == [{"price": "price_1", "quantity": 1}]


def test_create_checkout_session_wraps_stripe_errors(provider, monkeypatch):
    def fake_create(**kwargs):
        raise stripe.StripeError("card declined")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    with pytest.raises(BillingProviderError):
        provider.create_checkout_session("user_1", "", "price_1", "s", "c")


def test_get_customer_email(provider, monkeypatch):
    customers = {
        "cus_live": SimpleNamespace(email="live@example.com"),
        "cus_deleted": SimpleNamespace(deleted=True),
        "cus_noemail": SimpleNamespace(email=None),
    }
    monkeypatch.setattr(stripe.Customer, "retrieve", lambda cid, **kwargs: customers[cid])

    assert provider.get_customer_email("cus_live") == "live@example.com"
    assert provider.get_customer_email("cus_deleted") is None
    assert provider.get_customer_email("cus_noemail") is None
