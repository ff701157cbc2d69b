"""
Clerk session JWT verification.

Handles:
- Networkless verification with the instance PEM public key (CLERK_JWT_KEY)
- JWKS-based verification (CLERK_JWKS_URL or CLERK_ISSUER)
- Expiry and issuer checks

Clerk session tokens are RS256; the subject claim is the Clerk user id.
"""
from typing import Dict, Any, Optional

import jwt

from trendly.core.config import Settings, settings


# JWKS clients keyed by URL; PyJWKClient caches fetched keys itself
_jwks_clients: Dict[str, jwt.PyJWKClient] = {}


def _jwks_url(cfg: Settings) -> Optional[str]:
    if cfg.CLERK_JWKS_URL:
        return cfg.CLERK_JWKS_URL
    if cfg.CLERK_ISSUER:
        return f"{cfg.CLERK_ISSUER.rstrip('/')}/.well-known/jwks.json"
    return None


def _jwks_client(url: str) -> jwt.PyJWKClient:
    client = _jwks_clients.get(url)
    if client is None:
        client = jwt.PyJWKClient(url, cache_keys=True, timeout=5)
        _jwks_clients[url] = client
    return client


def reset_jwks_cache() -> None:
    _jwks_clients.clear()


def verify_jwt_token(token: str, settings_obj: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Verify a Clerk session JWT and return its claims.

    Raises jwt.PyJWTError on an invalid, expired or unverifiable token.

    Args:
        token: Raw JWT string (without "Bearer " prefix)

    Returns:
        Decoded claims dict with keys: sub, email (when the session template adds it), exp, iss...
    """
    cfg = settings_obj or settings

    if cfg.CLERK_JWT_KEY:
        key = cfg.CLERK_JWT_KEY.replace("\\n", "\n")
    else:
        url = _jwks_url(cfg)
        if not url:
            raise jwt.PyJWTError("CLERK_JWT_KEY, CLERK_JWKS_URL or CLERK_ISSUER must be configured")
        key = _jwks_client(url).get_signing_key_from_jwt(token).key

    options = {"verify_signature": True, "verify_exp": True, "verify_aud": False}
    claims = jwt.decode(
        token,
        key,
        algorithms=["RS256"],
        issuer=cfg.CLERK_ISSUER or None,
        options={**options, "verify_iss": bool(cfg.CLERK_ISSUER)},
    )

    if not claims.get("sub"):
        raise jwt.InvalidTokenError("No 'sub' claim in token")
    return claims
