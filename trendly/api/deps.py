"""
Request-scoped dependencies.

Components are built once per app from Settings and kept in a Services
container on `app.state`; routes pull them through `get_services`.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.engine import Engine

from trendly.core.auth import Identity, get_current_identity
from trendly.core.config import Settings
from trendly.core.database import build_engine
from trendly.features.billing.provider import BillingProvider
from trendly.features.billing.service import BillingEventHandler, build_provider
from trendly.features.generation.backends import select_backend
from trendly.features.generation.gateway import GenerationGateway
from trendly.features.trends.service import TrendStore
from trendly.features.usage.store import QuotaStore
from trendly.features.users.clerk_client import ClerkIdentityClient
from trendly.features.users.service import UserStore
from trendly.models.user import User

logger = logging.getLogger("trendly")


@dataclass
class Services:
    engine: Engine
    quota_store: QuotaStore
    user_store: UserStore
    trend_store: TrendStore
    gateway: GenerationGateway
    billing_provider: Optional[BillingProvider]
    identity: Optional[ClerkIdentityClient]
    billing_handler: BillingEventHandler


def build_services(
    cfg: Settings,
    *,
    engine: Optional[Engine] = None,
    gateway: Optional[GenerationGateway] = None,
    billing_provider: Optional[BillingProvider] = None,
    identity: Optional[ClerkIdentityClient] = None,
) -> Services:
    """Wire every component from settings; explicit arguments win over settings."""
    engine = engine if engine is not None else build_engine(cfg.DATABASE_URL)
    quota_store = QuotaStore(engine)
    user_store = UserStore(engine, quota_store)
    if gateway is None:
        gateway = GenerationGateway(select_backend(cfg))
    if billing_provider is None:
        billing_provider = build_provider(cfg)
    if identity is None and cfg.CLERK_SECRET_KEY:
        identity = ClerkIdentityClient(cfg.CLERK_SECRET_KEY)

    return Services(
        engine=engine,
        quota_store=quota_store,
        user_store=user_store,
        trend_store=TrendStore(engine),
        gateway=gateway,
        billing_provider=billing_provider,
        identity=identity,
        billing_handler=BillingEventHandler(user_store, billing_provider, identity),
    )


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_user(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> User:
    """Authenticated caller as a local user, created on first sight."""
    return services.user_store.get_or_create(identity.external_id, identity.email)
