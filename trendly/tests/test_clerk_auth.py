"""
Clerk session verification with RS256 keys generated per session.

Goals:
- PEM key verification (no network).
- JWKS path with the key client stubbed out.
- Missing/invalid/expired tokens are rejected.
"""
import time
from types import SimpleNamespace

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

import trendly.core.clerk_auth as clerk_auth
from trendly.core.clerk_auth import verify_jwt_token


def test_pem_key_verifies_token(app_settings, make_token):
    claims = verify_jwt_token(make_token(sub="user_abc"), app_settings)
    assert claims["sub"] == "user_abc"
    assert claims["email"] == "ana@example.com"


def test_escaped_newlines_in_pem_are_accepted(app_settings, make_token):
    cfg = app_settings.model_copy(update={"CLERK_JWT_KEY": app_settings.CLERK_JWT_KEY.replace("\n", "\\n")})
    assert verify_jwt_token(make_token(), cfg)["sub"] == "user_clerk_1"


def test_expired_token_rejected(app_settings, make_token):
    with pytest.raises(jwt.ExpiredSignatureError):
        verify_jwt_token(make_token(expires_in=-10), app_settings)


def test_token_from_other_key_rejected(app_settings):
    other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = other.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    token = jwt.encode({"sub": "intruder", "exp": int(time.time()) + 60}, pem, algorithm="RS256")
    with pytest.raises(jwt.InvalidSignatureError):
        verify_jwt_token(token, app_settings)


def test_token_without_sub_rejected(app_settings, rsa_keys):
    private_pem, _ = rsa_keys
    token = jwt.encode({"exp": int(time.time()) + 60}, private_pem, algorithm="RS256")
    with pytest.raises(jwt.InvalidTokenError):
        verify_jwt_token(token, app_settings)


def test_hs256_token_rejected(app_settings):
    token = jwt.encode({"sub": "user_x", "exp": int(time.time()) + 60}, "shared-secret-that-is-long-enough", algorithm="HS256")
    with pytest.raises(jwt.PyJWTError):
        verify_jwt_token(token, app_settings)


def test_issuer_checked_when_configured(app_settings, make_token):
    cfg = app_settings.model_copy(update={"CLERK_ISSUER": "https://clerk.trendly.test"})
    with pytest.raises(jwt.InvalidIssuerError):
        verify_jwt_token(make_token(iss="https://evil.test"), cfg)
    assert verify_jwt_token(make_token(iss="https://clerk.trendly.test"), cfg)["sub"] == "user_clerk_1"


def test_jwks_path_uses_issuer_well_known(app_settings, rsa_keys, make_token, monkeypatch):
    _, public_pem = rsa_keys
    public_key = serialization.load_pem_public_key(public_pem.encode())
    requested = []

    class StubJWKClient:
        def get_signing_key_from_jwt(self, token):
            return SimpleNamespace(key=public_key)

    def fake_client(url):
        requested.append(url)
        return StubJWKClient()

    monkeypatch.setattr(clerk_auth, "_jwks_client", fake_client)
    cfg = app_settings.model_copy(update={"CLERK_JWT_KEY": None, "CLERK_ISSUER": "https://clerk.trendly.test"})

    claims = verify_jwt_token(make_token(iss="https://clerk.trendly.test"), cfg)

    assert claims["sub"] == "user_clerk_1"
    assert requested == ["https://clerk.trendly.test/.well-known/jwks.json"]


def test_no_key_material_rejects(app_settings, make_token):
    cfg = app_settings.model_copy(update={"CLERK_JWT_KEY": None, "CLERK_ISSUER": None, "CLERK_JWKS_URL": None})
    with pytest.raises(jwt.PyJWTError):
        verify_jwt_token(make_token(), cfg)


def test_jwks_clients_are_cached():
    clerk_auth.reset_jwks_cache()
    first = clerk_auth._jwks_client("https://clerk.trendly.test/.well-known/jwks.json")
    second = clerk_auth._jwks_client("https://clerk.trendly.test/.well-known/jwks.json")
    assert first is second
    clerk_auth.reset_jwks_cache()
