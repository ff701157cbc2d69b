"""
Admin authentication for operator actions.

Admin endpoints take a shared X-Admin-Key header. The actor identity
recorded in logs is a short hash of the key, never the key itself.
"""
import hashlib
import hmac
from dataclasses import dataclass

from fastapi import Request, HTTPException


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    actor_id: str  # "admin_key:<hash>"
    auth_mechanism: str = "x_admin_key"


def verify_admin_key(request: Request, expected_key: str) -> AdminActor | None:
    """
    Verify the X-Admin-Key header.
    Returns AdminActor if valid, None if not present/invalid.
    """
    header_key = request.headers.get("X-Admin-Key", "").strip()
    if not header_key or not hmac.compare_digest(header_key.encode(), expected_key.encode()):
        return None

    key_hash = hashlib.sha256(header_key.encode()).hexdigest()[:16]
    return AdminActor(actor_id=f"admin_key:{key_hash}")


def require_admin(request: Request) -> AdminActor:
    """
    FastAPI dependency: Require admin authentication.
    Raises HTTPException if authentication fails.

    Usage:
        @router.post("/admin/endpoint")
        def admin_endpoint(actor: AdminActor = Depends(require_admin)):
            ...
    """
    expected_key = request.app.state.settings.ADMIN_KEY
    if not expected_key:
        raise HTTPException(
            status_code=503,
            detail="Admin authentication not configured. Set ADMIN_KEY.",
        )

    actor = verify_admin_key(request, expected_key)
    if not actor:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized: invalid or missing X-Admin-Key header",
        )
    return actor
