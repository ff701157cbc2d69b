"""
Generation backends.

Two interchangeable providers behind one protocol: Google Gemini (REST via
httpx) and OpenAI (official SDK). select_backend() picks one at startup;
Gemini wins when both are configured.
"""
import logging
from typing import Optional, Protocol

import httpx
import openai

from trendly.core.config import Settings
from trendly.features.generation.prompts import SYSTEM_PROMPT

logger = logging.getLogger("trendly.generation")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GenerationBackendError(Exception):
    """Backend unreachable, non-success status, or empty output."""


class GenerationBackend(Protocol):
    """Turns a prompt into raw model text (expected to be JSON)."""

    name: str

    def complete(self, prompt: str) -> str:
        ...


class GeminiBackend:
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.model = model
        self._api_key = api_key
        self._client = http_client or httpx.Client(timeout=timeout)

    def complete(self, prompt: str) -> str:
        url = f"{GEMINI_API_BASE}/models/{self.model}:generateContent"
        body = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json", "temperature": 0.8},
        }
        try:
            response = self._client.post(
                url,
                json=body,
                headers={"Content-Type": "application/json", "X-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as e:
            raise GenerationBackendError(f"Gemini API unreachable: {e}") from e

        if response.status_code >= 400:
            raise GenerationBackendError(f"Gemini API error: {response.status_code} {response.text[:500]}")

        try:
            payload = response.json()
        except ValueError as e:
            raise GenerationBackendError("Gemini API returned non-JSON body") from e

        try:
            candidates = payload.get("candidates") or []
            parts = ((candidates[0].get("content") or {}).get("parts") or []) if candidates else []
            text = "".join(part.get("text") or "" for part in parts if isinstance(part, dict))
        except (AttributeError, TypeError, IndexError, KeyError) as e:
            raise GenerationBackendError(f"Unexpected Gemini response shape: {type(e).__name__}") from e
        if not text:
            raise GenerationBackendError("No content returned from Gemini")
        return text


class OpenAIBackend:
    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        client: Optional[openai.OpenAI] = None,
    ):
        self.model = model
        self._client = client or openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def complete(self, prompt: str) -> str:
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.8,
                max_tokens=2000,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise GenerationBackendError(f"OpenAI API error: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise GenerationBackendError("No content generated")
        return content


def select_backend(cfg: Settings) -> Optional[GenerationBackend]:
    """Pick the configured backend once; None when no provider key is set."""
    if cfg.GEMINI_API_KEY:
        logger.info(f"Using Gemini backend ({cfg.GEMINI_MODEL})")
        return GeminiBackend(cfg.GEMINI_API_KEY, cfg.GEMINI_MODEL, cfg.GENERATION_TIMEOUT_SECONDS)
    if cfg.OPENAI_API_KEY:
        logger.info(f"Using OpenAI backend ({cfg.OPENAI_MODEL})")
        return OpenAIBackend(cfg.OPENAI_API_KEY, cfg.OPENAI_MODEL, cfg.GENERATION_TIMEOUT_SECONDS)
    logger.warning("No generation provider configured. Set GEMINI_API_KEY or OPENAI_API_KEY.")
    return None
