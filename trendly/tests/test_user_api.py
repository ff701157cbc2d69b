from datetime import datetime, timezone

from trendly.models.user import SubscriptionTier


def test_get_user_creates_free_user(client, auth_headers):
    resp = client.get("/user", headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["user"]["email"] == "ana@example.com"
    assert data["user"]["subscription_tier"] == "free"
    assert data["user"]["id"]
    assert data["usage"] == {
        "daily_generations": 0,
        "remaining_generations": 5,
        "can_generate": True,
        "last_reset_date": datetime.now(timezone.utc).date().isoformat(),
    }


def test_get_user_reflects_usage(client, services, auth_headers, set_usage):
    user = services.user_store.get_or_create("user_clerk_1", "ana@example.com")
    set_usage(user.id, 5)

    usage = client.get("/user", headers=auth_headers).json()["usage"]
    assert usage["daily_generations"] == 5
    assert usage["remaining_generations"] == 0
    assert usage["can_generate"] is False


def test_get_user_premium_is_unlimited(client, services, auth_headers):
    services.user_store.get_or_create("user_clerk_1")
    services.user_store.set_tier("user_clerk_1", SubscriptionTier.PREMIUM)

    data = client.get("/user", headers=auth_headers).json()
    assert data["user"]["subscription_tier"] == "premium"
    assert data["usage"]["remaining_generations"] == -1
    assert data["usage"]["can_generate"] is True


def test_get_user_requires_auth(client):
    resp = client.get("/user")
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthorized"


def test_get_user_rejects_garbage_token(client):
    resp = client.get("/user", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401
