"""
Usage models for the daily generation quota.
"""

from datetime import date
from pydantic import BaseModel, ConfigDict, Field


class UsageCounter(BaseModel):
    """
    Per-user daily generation counter.

    daily_generations only grows within a day; the cron reset job zeros it
    and moves last_reset_date forward.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    daily_generations: int = Field(default=0, ge=0)
    last_reset_date: date


class QuotaDecision(BaseModel):
    """Outcome of the tier policy. remaining == -1 means unlimited."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    remaining: int
