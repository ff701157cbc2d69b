"""
Quota-metered content generation for one authenticated user.

Order of operations:
1. Tier policy against the stored counter (deny before any provider call)
2. Atomic reservation of one generation for free users
3. Trend context + gateway call
4. Release the reservation if generation failed
5. Watermark free-tier output
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from trendly.core.errors import PersistenceError, QuotaExceededError, UpstreamGenerationError
from trendly.core.tracing import start_span
from trendly.features.generation.gateway import GenerationGateway, apply_watermark
from trendly.features.trends.service import TrendStore
from trendly.features.usage.policy import FREE_DAILY_LIMIT, UNLIMITED, can_generate, remaining_after
from trendly.features.usage.store import QuotaStore
from trendly.models.generation import ContentType
from trendly.models.user import User

logger = logging.getLogger("trendly.generation")


def _release(quota_store: QuotaStore, user: User) -> None:
    if not quota_store.release(user.id):
        logger.error(f"Failed to release reserved generation for {user.external_auth_id}")


def generate_for_user(
    user: User,
    topic: str,
    types: Sequence[ContentType],
    trends_enabled: bool,
    *,
    quota_store: QuotaStore,
    gateway: GenerationGateway,
    trend_store: Optional[TrendStore] = None,
) -> dict:
    """
    Generate content for `user` and meter it against the daily quota.

    Returns:
        {"ideas", "captions", "hashtags", "remainingGenerations"}

    Raises:
        QuotaExceededError: free user already at the daily limit
        UpstreamGenerationError: backend failed or returned unusable content
        PersistenceError: usage counter unreadable
    """
    with start_span("generation.request", {"user_id": user.external_auth_id, "tier": user.subscription_tier.value}):
        counter = quota_store.get_counter(user.id)
        if counter is None:
            quota_store.ensure_counter(user.id, datetime.now(timezone.utc).date())

        decision = can_generate(user.subscription_tier, counter)
        if not decision.allowed:
            logger.info("Generation denied: daily limit reached", extra={"user_id": user.external_auth_id})
            raise QuotaExceededError()

        reserved = False
        prior_count = counter.daily_generations if counter else 0
        if not user.is_premium:
            try:
                claimed = quota_store.try_consume(user.id, FREE_DAILY_LIMIT)
            except PersistenceError:
                # Fail open
                logger.error(f"Could not reserve generation for {user.external_auth_id}; continuing")
                claimed = prior_count
            else:
                if claimed is None:
                    logger.info("Generation denied: concurrent requests used the quota",
                                extra={"user_id": user.external_auth_id})
                    raise QuotaExceededError()
                reserved = True
            prior_count = claimed

        try:
            trends = trend_store.recent() if (trends_enabled and trend_store is not None) else []
            result = gateway.generate(topic, types, trends_enabled, trends)
        except Exception:
            if reserved:
                _release(quota_store, user)
            raise

        if result is None:
            if reserved:
                _release(quota_store, user)
            raise UpstreamGenerationError("Failed to generate content")

        if user.is_premium:
            if not quota_store.increment_counter(user.id):
                logger.error(f"Failed to update usage for premium user {user.external_auth_id}")
            remaining = UNLIMITED
        else:
            result = apply_watermark(result)
            remaining = remaining_after(prior_count + 1)

        logger.info(
            f"Generated {','.join(t.value for t in types)} for topic of {len(topic)} chars",
            extra={"user_id": user.external_auth_id, "event_type": "generation.success"},
        )
        return {
            "ideas": result.ideas,
            "captions": result.captions,
            "hashtags": result.hashtags,
            "remainingGenerations": remaining,
        }
