"""
Clerk Backend API client.

Two calls only: look up users by email (to resolve billing subjects) and
patch a user's public metadata (to mirror the subscription tier).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx


CLERK_API_BASE = "https://api.clerk.com/v1"
CLERK_TIMEOUT_SECONDS = 10.0

logger = logging.getLogger("trendly.users")


class IdentityProviderError(Exception):
    """Clerk unreachable or answered with a non-success status."""


class ClerkIdentityClient:
    def __init__(self, secret_key: str, http_client: Optional[httpx.Client] = None):
        if not secret_key:
            raise IdentityProviderError("CLERK_SECRET_KEY is not configured")
        self._headers = {
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
        }
        self._client = http_client or httpx.Client(timeout=CLERK_TIMEOUT_SECONDS)

    def find_user_ids_by_email(self, email: str) -> List[str]:
        try:
            response = self._client.get(
                f"{CLERK_API_BASE}/users",
                headers=self._headers,
                params={"email_address": email},
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Clerk lookup failed: {exc}") from exc
        if response.status_code >= 300:
            raise IdentityProviderError(f"Clerk lookup failed: {response.status_code} {response.text}")

        body = response.json()
        # The list endpoint returns a bare array; paginated variants wrap it in "data"
        users = body.get("data", []) if isinstance(body, dict) else body
        return [u["id"] for u in users if isinstance(u, dict) and u.get("id")]

    def update_public_metadata(self, user_id: str, metadata: Dict[str, Any]) -> None:
        try:
            response = self._client.patch(
                f"{CLERK_API_BASE}/users/{user_id}/metadata",
                headers=self._headers,
                json={"public_metadata": metadata},
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Clerk metadata update failed: {exc}") from exc
        if response.status_code >= 300:
            raise IdentityProviderError(
                f"Clerk metadata update failed: {response.status_code} {response.text}"
            )
        logger.info(f"Updated Clerk metadata for {user_id}", extra={"user_id": user_id})
