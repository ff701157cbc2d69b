"""
User domain service.
- get_by_external_id(external_auth_id)
- get_or_create(external_auth_id, email)
- set_tier(external_auth_id, tier)
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import select, insert, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trendly.core.database import build_session_factory, session_scope, users as users_table
from trendly.core.errors import PersistenceError
from trendly.features.usage.store import QuotaStore
from trendly.models.user import SubscriptionTier, User

logger = logging.getLogger("trendly.users")


def _row_to_user(row) -> User:
    created_at = row.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return User(
        id=row.id,
        external_auth_id=row.external_auth_id,
        email=row.email or "",
        subscription_tier=SubscriptionTier(row.subscription_tier),
        created_at=created_at,
    )


class UserStore:
    def __init__(self, engine: Engine, quota_store: QuotaStore):
        self._sessions = build_session_factory(engine)
        self._quota_store = quota_store

    def get_by_external_id(self, external_auth_id: str) -> Optional[User]:
        try:
            with session_scope(self._sessions) as session:
                row = session.execute(
                    select(users_table).where(users_table.c.external_auth_id == external_auth_id)
                ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching user {external_auth_id}: {e}")
            raise PersistenceError("Failed to fetch user")
        return _row_to_user(row) if row else None

    def get_or_create(self, external_auth_id: str, email: str = "") -> User:
        """
        Return the user for an external identity, creating it (free tier,
        zeroed usage counter) on first sight.

        Raises:
            PersistenceError: store unreachable or creation failed
        """
        existing = self.get_by_external_id(external_auth_id)
        if existing:
            return existing

        now = datetime.now(timezone.utc)
        user_id = str(uuid4())
        try:
            with session_scope(self._sessions) as session:
                session.execute(
                    insert(users_table).values(
                        id=user_id,
                        external_auth_id=external_auth_id,
                        email=email,
                        subscription_tier=SubscriptionTier.FREE.value,
                        created_at=now,
                    )
                )
        except IntegrityError:
            # A concurrent first request created the row
            existing = self.get_by_external_id(external_auth_id)
            if existing:
                return existing
            raise PersistenceError("Failed to create user")
        except SQLAlchemyError as e:
            logger.error(f"Error creating user {external_auth_id}: {e}")
            raise PersistenceError("Failed to create user")

        self._quota_store.ensure_counter(user_id, now.date())
        logger.info(f"Created user {external_auth_id}", extra={"user_id": external_auth_id})
        return User(
            id=user_id,
            external_auth_id=external_auth_id,
            email=email,
            subscription_tier=SubscriptionTier.FREE,
            created_at=now,
        )

    def set_tier(self, external_auth_id: str, tier: SubscriptionTier) -> bool:
        """
        Set a user's subscription tier. Re-applying the same tier is a no-op.

        Returns:
            False if no such user exists.

        Raises:
            PersistenceError: store unreachable
        """
        try:
            with session_scope(self._sessions) as session:
                result = session.execute(
                    update(users_table)
                    .where(users_table.c.external_auth_id == external_auth_id)
                    .values(subscription_tier=tier.value)
                )
        except SQLAlchemyError as e:
            logger.error(f"Error updating tier for {external_auth_id}: {e}")
            raise PersistenceError("Failed to update user")

        if result.rowcount == 0:
            logger.warning(f"No user {external_auth_id} to set tier {tier.value}")
            return False
        return True
