"""Generation gateway.

Builds the prompt, calls the selected backend once, and validates the reply
into a GenerationResult. Every failure mode collapses to None so the caller
can map it to a single "generation failed" response.
"""

import json
import logging
import re
from typing import Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from trendly.core.tracing import start_span
from trendly.features.generation.backends import GenerationBackend, GenerationBackendError
from trendly.features.generation.prompts import WATERMARK, build_prompt, format_trend_context
from trendly.models.generation import ContentType, GenerationResult, TrendRecord

logger = logging.getLogger("trendly.generation")

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


def _strip_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text.strip()


def parse_result(raw: str, requested_types: Sequence[ContentType]) -> Optional[GenerationResult]:
    """
    Parse model output into a GenerationResult.

    Returns None unless the output is a JSON object whose three keys are lists
    of strings and every requested type has at least one entry.
    """
    try:
        data = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError as e:
        logger.error(f"Generation output is not valid JSON: {e}")
        return None

    if not isinstance(data, dict):
        logger.error("Generation output is not a JSON object")
        return None

    try:
        result = GenerationResult.model_validate(data, strict=True)
    except PydanticValidationError as e:
        logger.error(f"Invalid response structure from AI: {e.error_count()} errors")
        return None

    empty = [t.value for t in requested_types if not result.entries(t)]
    if empty:
        logger.error(f"Generated content missing requested types: {', '.join(empty)}")
        return None
    return result


def apply_watermark(result: GenerationResult) -> GenerationResult:
    """Append the watermark to every idea and caption. Hashtags are left alone."""
    return GenerationResult(
        ideas=[idea + WATERMARK for idea in result.ideas],
        captions=[caption + WATERMARK for caption in result.captions],
        hashtags=list(result.hashtags),
    )


class GenerationGateway:
    def __init__(self, backend: Optional[GenerationBackend]):
        self.backend = backend

    def generate(
        self,
        topic: str,
        requested_types: Sequence[ContentType],
        trends_enabled: bool = False,
        trends: Sequence[TrendRecord] = (),
    ) -> Optional[GenerationResult]:
        if self.backend is None:
            logger.error("No generation provider configured")
            return None

        trend_context = format_trend_context(trends) if trends_enabled else ""
        prompt = build_prompt(topic, requested_types, trend_context)

        with start_span(
            "generation.complete",
            {"backend": self.backend.name, "types": ",".join(t.value for t in requested_types)},
        ):
            try:
                raw = self.backend.complete(prompt)
            except GenerationBackendError as e:
                logger.error(f"Generation backend {self.backend.name} failed: {e}")
                return None

        return parse_result(raw, requested_types)
