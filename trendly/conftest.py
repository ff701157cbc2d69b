# trendly/conftest.py
import sys
import time
from pathlib import Path

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from sqlalchemy import update

# Add repo root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from trendly.api.deps import build_services  # noqa: E402
from trendly.core.config import Settings  # noqa: E402
from trendly.core.database import build_engine, create_all_tables, usage  # noqa: E402
from trendly.features.generation.gateway import GenerationGateway  # noqa: E402
from trendly.main import create_app  # noqa: E402
from trendly.tests.mocks import (  # noqa: E402
    ADMIN_KEY,
    CRON_SECRET,
    PRICE_ID,
    FakeBackend,
    FakeBillingProvider,
    FakeIdentity,
)


@pytest.fixture(scope="session")
def rsa_keys():
    """(private_pem, public_pem) for signing test session tokens."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return private_pem, public_pem


@pytest.fixture
def make_token(rsa_keys):
    private_pem, _ = rsa_keys

    def _make(sub: str = "user_clerk_1", email: str = "ana@example.com", expires_in: int = 3600, **claims):
        now = int(time.time())
        payload = {"sub": sub, "email": email, "iat": now, "exp": now + expires_in, **claims}
        return jwt.encode(payload, private_pem, algorithm="RS256")

    return _make


@pytest.fixture
def auth_headers(make_token):
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    eng = build_engine("sqlite://")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def app_settings(rsa_keys):
    _, public_pem = rsa_keys
    return Settings(
        _env_file=None,
        ENV="test",
        DATABASE_URL="sqlite://",
        GEMINI_API_KEY=None,
        OPENAI_API_KEY=None,
        CLERK_SECRET_KEY=None,
        CLERK_JWT_KEY=public_pem,
        CLERK_ISSUER=None,
        CLERK_JWKS_URL=None,
        STRIPE_SECRET_KEY=None,
        STRIPE_WEBHOOK_SECRET=None,
        STRIPE_PREMIUM_PRICE_ID=PRICE_ID,
        PAYMENTS_DISABLED=False,
        APP_URL="https://trendly.test",
        CRON_SECRET=CRON_SECRET,
        ADMIN_KEY=ADMIN_KEY,
        OTEL_ENABLED=False,
    )


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def fake_billing():
    return FakeBillingProvider()


@pytest.fixture
def fake_identity():
    return FakeIdentity()


@pytest.fixture
def services(app_settings, engine, fake_backend, fake_billing, fake_identity):
    return build_services(
        app_settings,
        engine=engine,
        gateway=GenerationGateway(fake_backend),
        billing_provider=fake_billing,
        identity=fake_identity,
    )


@pytest.fixture
def app(app_settings, services):
    return create_app(app_settings, services)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def set_usage(engine):
    """Force a user's daily counter to a given value."""

    def _set(user_id: str, count: int) -> None:
        with engine.begin() as conn:
            conn.execute(update(usage).where(usage.c.user_id == user_id).values(daily_generations=count))

    return _set
