from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    external_auth_id: str
    email: str = ""
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    created_at: datetime

    @property
    def is_premium(self) -> bool:
        return self.subscription_tier == SubscriptionTier.PREMIUM
