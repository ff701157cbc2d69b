"""
Admin API routes for subscription operations.

All routes require the X-Admin-Key header.
"""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from trendly.api.deps import Services, get_services
from trendly.core.admin_auth import AdminActor, require_admin
from trendly.core.errors import NotFoundError
from trendly.models.user import SubscriptionTier

logger = logging.getLogger("trendly.admin")

router = APIRouter(prefix="/admin", tags=["admin"])


class SetTierRequest(BaseModel):
    tier: SubscriptionTier


@router.post("/users/{external_auth_id}/tier")
def set_user_tier(
    external_auth_id: str,
    body: SetTierRequest,
    actor: AdminActor = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict:
    """Set a user's subscription tier by hand (support refunds, comps)."""
    if not services.user_store.set_tier(external_auth_id, body.tier):
        raise NotFoundError(f"User {external_auth_id} not found")

    logger.info(
        f"Tier set to {body.tier.value} by {actor.actor_id}",
        extra={"user_id": external_auth_id, "event_type": "admin.set_tier"},
    )
    return {"external_auth_id": external_auth_id, "subscription_tier": body.tier.value}
