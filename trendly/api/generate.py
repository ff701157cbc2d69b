"""
Content generation API.

- POST /generate: quota-metered ideas, captions and hashtags for a topic
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from trendly.api.deps import Services, get_current_user, get_services
from trendly.features.generation.service import generate_for_user
from trendly.models.generation import ContentType
from trendly.models.user import User

router = APIRouter(tags=["generate"])

MAX_TOPIC_LENGTH = 80


class GenerateRequest(BaseModel):
    topic: str = Field(..., max_length=MAX_TOPIC_LENGTH)
    types: List[ContentType] = Field(..., min_length=1)
    trends_enabled: bool = False

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("topic must not be empty")
        return v

    @field_validator("types")
    @classmethod
    def dedupe_types(cls, v: List[ContentType]) -> List[ContentType]:
        return list(dict.fromkeys(v))


class GenerateResponse(BaseModel):
    ideas: List[str]
    captions: List[str]
    hashtags: List[str]
    remainingGenerations: int


@router.post("/generate", response_model=GenerateResponse)
def generate(
    body: GenerateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """
    Generate social content for a topic.

    Errors:
        400: invalid topic/types
        401: not signed in
        403: daily limit reached (free tier)
        500: provider failure
    """
    return generate_for_user(
        user,
        body.topic,
        body.types,
        body.trends_enabled,
        quota_store=services.quota_store,
        gateway=services.gateway,
        trend_store=services.trend_store,
    )
