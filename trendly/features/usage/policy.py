"""
Tier policy for the daily generation quota.

Pure decision logic; no I/O.
"""

from typing import Optional

from trendly.models.usage import QuotaDecision, UsageCounter
from trendly.models.user import SubscriptionTier

FREE_DAILY_LIMIT = 5

# Sentinel for "no limit" in remaining counts
UNLIMITED = -1


def remaining_after(count: int, limit: int = FREE_DAILY_LIMIT) -> int:
    return max(0, limit - count)


def can_generate(tier: SubscriptionTier, counter: Optional[UsageCounter]) -> QuotaDecision:
    """
    Decide whether a user of `tier` with `counter` may generate now.

    Premium is always allowed with remaining == UNLIMITED. Free users get
    FREE_DAILY_LIMIT generations per day; a missing counter counts as zero.
    """
    if tier == SubscriptionTier.PREMIUM:
        return QuotaDecision(allowed=True, remaining=UNLIMITED)

    count = counter.daily_generations if counter else 0
    remaining = remaining_after(count)
    return QuotaDecision(allowed=remaining > 0, remaining=remaining)
