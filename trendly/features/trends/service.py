"""Read access to collected trend records."""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from trendly.core.database import build_session_factory, session_scope, trend_data
from trendly.models.generation import TrendRecord

logger = logging.getLogger("trendly.trends")

MAX_TREND_RECORDS = 10


class TrendStore:
    def __init__(self, engine: Engine):
        self._sessions = build_session_factory(engine)

    def recent(self, limit: int = MAX_TREND_RECORDS) -> List[TrendRecord]:
        """Most recent trends first. Errors degrade to an empty list."""
        try:
            with session_scope(self._sessions) as session:
                rows = session.execute(
                    select(trend_data.c.title, trend_data.c.description)
                    .order_by(trend_data.c.date_added.desc(), trend_data.c.id.desc())
                    .limit(min(limit, MAX_TREND_RECORDS))
                ).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching trend data: {e}")
            return []

        return [TrendRecord(title=row.title, description=row.description or "") for row in rows]
