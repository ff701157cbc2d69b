from enum import Enum
from typing import List
from pydantic import BaseModel, ConfigDict


class ContentType(str, Enum):
    IDEAS = "ideas"
    CAPTIONS = "captions"
    HASHTAGS = "hashtags"


class GenerationResult(BaseModel):
    """Generated content; never persisted."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    ideas: List[str]
    captions: List[str]
    hashtags: List[str]

    def entries(self, content_type: ContentType) -> List[str]:
        return getattr(self, content_type.value)


class TrendRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
