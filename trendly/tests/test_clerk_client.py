import json

import httpx
import pytest

from trendly.features.users.clerk_client import ClerkIdentityClient, IdentityProviderError


def _client(handler) -> ClerkIdentityClient:
    return ClerkIdentityClient("sk_clerk_test", http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_find_user_ids_by_email():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/users"
        assert request.url.params["email_address"] == "a@example.com"
        assert request.headers["authorization"] == "Bearer sk_clerk_test"
        return httpx.Response(200, json=[{"id": "user_1"}, {"id": "user_2"}])

    assert _client(handler).find_user_ids_by_email("a@example.com") == ["user_1", "user_2"]


def test_find_user_ids_accepts_wrapped_list():
    handler = lambda request: httpx.Response(200, json={"data": [{"id": "user_1"}], "total_count": 1})  # noqa: E731
    assert _client(handler).find_user_ids_by_email("a@example.com") == ["user_1"]


def test_update_public_metadata_patches_metadata_endpoint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "user_1"})

    _client(handler).update_public_metadata("user_1", {"subscriptionTier": "premium"})

    assert seen == {
        "method": "PATCH",
        "path": "/v1/users/user_1/metadata",
        "body": {"public_metadata": {"subscriptionTier": "premium"}},
    }


def test_non_success_raises():
    client = _client(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(IdentityProviderError):
        client.find_user_ids_by_email("a@example.com")
    with pytest.raises(IdentityProviderError):
        client.update_public_metadata("user_1", {})


def test_secret_key_required():
    with pytest.raises(IdentityProviderError):
        ClerkIdentityClient("")
