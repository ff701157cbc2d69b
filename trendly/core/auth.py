"""
Auth utilities for the Trendly API.

Validates Clerk session JWTs and extracts the caller identity, and guards
the cron endpoints with a shared bearer secret.
"""
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Request

from trendly.core.clerk_auth import verify_jwt_token
from trendly.core.errors import AuthenticationRequired, AuthorizationError

logger = logging.getLogger("trendly.auth")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as seen by the identity provider."""
    external_id: str
    email: str = ""


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def get_current_identity(request: Request) -> Identity:
    """
    FastAPI dependency: resolve the Clerk identity of the caller.

    Raises:
        AuthenticationRequired: missing, invalid or expired session token
    """
    token = _bearer_token(request)
    if not token:
        raise AuthenticationRequired("Unauthorized")

    cfg = request.app.state.settings
    try:
        claims = verify_jwt_token(token, cfg)
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequired("Token expired")
    except jwt.PyJWTError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthenticationRequired("Unauthorized")

    email = claims.get("email") or ""
    return Identity(external_id=claims["sub"], email=email if isinstance(email, str) else "")


def require_cron_secret(request: Request) -> None:
    """
    FastAPI dependency: require `Authorization: Bearer <CRON_SECRET>`.

    An unset CRON_SECRET rejects every caller.
    """
    expected = request.app.state.settings.CRON_SECRET
    token = _bearer_token(request)
    if not expected or not token or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning("cron.unauthorized")
        raise AuthorizationError("Unauthorized")
