"""Prompt templates for social content generation.

The user prompt asks for a strict JSON object with the three content lists so
the gateway can validate the reply structurally.
"""

from typing import Iterable, Sequence

from trendly.models.generation import ContentType, TrendRecord

SYSTEM_PROMPT = (
    "You are an expert social media content creator specializing in TikTok trends. "
    "Generate engaging, authentic, and trend-aware content that resonates with Gen Z "
    "and millennial audiences. Always respond with valid JSON format."
)

WATERMARK = "\n\n✨ Generated with Trendly.ai - Upgrade for unlimited generations!"

_PROMPT_TEMPLATE = """Generate social media content for the topic: "{topic}"{trend_context}

Please create the following types of content: {requested_types}

Requirements:
- Generate content that is engaging, authentic, and suitable for TikTok
- Use current trends and viral formats when appropriate
- Keep captions under 150 characters for optimal engagement
- Include relevant hashtags that mix trending and niche tags
- Make content ideas actionable and specific
- Ensure all content is appropriate and brand-safe

Return the response as a JSON object with this exact structure:
{{
  "ideas": ["5 creative content ideas if requested"],
  "captions": ["5 engaging captions if requested"],
  "hashtags": ["20-30 relevant hashtags if requested, each starting with #"]
}}

Guidelines:
- Ideas: Be specific about the video concept, format, and hook
- Captions: Include calls-to-action and engagement drivers
- Hashtags: Mix of trending (#fyp, #viral), niche topic tags, and descriptive tags
- Make everything feel natural and not overly promotional

Only fill the arrays for the content types that were requested. If a type wasn't requested, return an empty array for it."""


def format_trend_context(trends: Sequence[TrendRecord]) -> str:
    if not trends:
        return ""
    lines = "\n".join(f"- {trend.title}: {trend.description}" for trend in trends)
    return f"\n\nCurrent trending content on TikTok:\n{lines}"


def build_prompt(topic: str, types: Iterable[ContentType], trend_context: str = "") -> str:
    requested = ", ".join(t.value for t in types)
    return _PROMPT_TEMPLATE.format(topic=topic, trend_context=trend_context, requested_types=requested)
