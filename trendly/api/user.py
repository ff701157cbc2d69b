"""
Current user profile and quota status.

- GET /user
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from trendly.api.deps import Services, get_current_user, get_services
from trendly.features.usage.policy import can_generate
from trendly.models.user import User

router = APIRouter(tags=["user"])


@router.get("/user")
def get_user(user: User = Depends(get_current_user), services: Services = Depends(get_services)):
    counter = services.quota_store.get_counter(user.id)
    if counter is None:
        services.quota_store.ensure_counter(user.id, datetime.now(timezone.utc).date())
        counter = services.quota_store.get_counter(user.id)

    decision = can_generate(user.subscription_tier, counter)
    return {
        "user": {
            "id": user.id,
            "email": user.email,
            "subscription_tier": user.subscription_tier.value,
            "created_at": user.created_at.isoformat(),
        },
        "usage": {
            "daily_generations": counter.daily_generations if counter else 0,
            "remaining_generations": decision.remaining,
            "can_generate": decision.allowed,
            "last_reset_date": counter.last_reset_date.isoformat() if counter else None,
        },
    }
