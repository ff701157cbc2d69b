"""
trendly/features/usage/store.py

Quota store: per-user daily generation counters.

Handles:
- Counter reads
- Atomic increment-if-below-limit reservations (and their release)
- Plain increments for unlimited users
- The daily reset used by the cron job
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from trendly.core.database import build_session_factory, session_scope, usage
from trendly.core.errors import PersistenceError
from trendly.models.usage import UsageCounter

logger = logging.getLogger("trendly.usage")


class QuotaStore:
    def __init__(self, engine: Engine):
        self._sessions = build_session_factory(engine)

    def get_counter(self, user_id: str) -> Optional[UsageCounter]:
        """
        Read the counter for a user.

        Raises:
            PersistenceError: store unreachable
        """
        try:
            with session_scope(self._sessions) as session:
                row = session.execute(
                    select(usage.c.daily_generations, usage.c.last_reset_date).where(usage.c.user_id == user_id)
                ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching usage for {user_id}: {e}")
            raise PersistenceError("Failed to read usage")

        if not row:
            return None
        return UsageCounter(
            user_id=user_id,
            daily_generations=row.daily_generations,
            last_reset_date=row.last_reset_date,
        )

    def ensure_counter(self, user_id: str, today: date) -> None:
        """Create the counter row for a user if it does not exist yet."""
        try:
            with session_scope(self._sessions) as session:
                existing = session.execute(select(usage.c.id).where(usage.c.user_id == user_id)).first()
                if existing:
                    return
                session.execute(
                    insert(usage).values(user_id=user_id, daily_generations=0, last_reset_date=today)
                )
        except SQLAlchemyError as e:
            logger.error(f"Error creating usage for {user_id}: {e}")
            raise PersistenceError("Failed to create usage record")

    def try_consume(self, user_id: str, limit: int) -> Optional[int]:
        """
        Atomically increment the counter if it is below `limit`.

        Returns:
            The count before the increment, or None if the limit was already reached
            (or the user has no counter).

        Raises:
            PersistenceError: store unreachable
        """
        try:
            with session_scope(self._sessions) as session:
                result = session.execute(
                    update(usage)
                    .where(usage.c.user_id == user_id, usage.c.daily_generations < limit)
                    .values(daily_generations=usage.c.daily_generations + 1)
                )
                if result.rowcount != 1:
                    return None
                # The updated row stays locked until commit, so this read sees our own write
                current = session.execute(
                    select(usage.c.daily_generations).where(usage.c.user_id == user_id)
                ).scalar_one()
                return current - 1
        except SQLAlchemyError as e:
            logger.error(f"Error reserving generation for {user_id}: {e}")
            raise PersistenceError("Failed to update usage")

    def release(self, user_id: str) -> bool:
        """Give back one reserved generation. Never goes below zero."""
        try:
            with session_scope(self._sessions) as session:
                session.execute(
                    update(usage)
                    .where(usage.c.user_id == user_id, usage.c.daily_generations > 0)
                    .values(daily_generations=usage.c.daily_generations - 1)
                )
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error releasing generation for {user_id}: {e}")
            return False

    def increment_counter(self, user_id: str) -> bool:
        """Increment by exactly one. Failures are logged and reported as False."""
        try:
            with session_scope(self._sessions) as session:
                result = session.execute(
                    update(usage)
                    .where(usage.c.user_id == user_id)
                    .values(daily_generations=usage.c.daily_generations + 1)
                )
                if result.rowcount != 1:
                    logger.error(f"No usage record to increment for {user_id}")
                    return False
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error incrementing usage for {user_id}: {e}")
            return False

    def reset_all(self, today: date) -> bool:
        """Zero every counter and stamp today's date. Intended to run once per day."""
        try:
            with session_scope(self._sessions) as session:
                result = session.execute(
                    update(usage).values(daily_generations=0, last_reset_date=today)
                )
            logger.info(f"Reset {result.rowcount} usage counters for {today.isoformat()}")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error resetting daily generations: {e}")
            return False
