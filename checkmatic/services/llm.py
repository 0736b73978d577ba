"""Gemini generateContent wrapper used for synthesis and image transcription."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from checkmatic.config import Settings
from checkmatic.exceptions import CheckmaticError, TranscriptionError
from checkmatic.models import PhotoPayload
from checkmatic.prompts.registry import get_transcription_prompt
from checkmatic.services.fetcher import fetch_json_with_retry

logger = logging.getLogger(__name__)

NO_TEXT_SENTINEL = "NO_TEXT_FOUND"


def first_candidate_text(result: Any) -> Optional[str]:
    """Return ``candidates[0].content.parts[0].text`` or None if absent."""
    try:
        text = result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


class LLMClient:
    """Async client for a generateContent-style LLM endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        endpoint: str,
        *,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        prompt_version: str = "v1",
    ):
        self.client = client
        self.api_key = api_key
        self.endpoint = endpoint
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.prompt_version = prompt_version

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "LLMClient":
        return cls(
            client,
            settings.llm_api_key,
            settings.llm_endpoint,
            max_attempts=settings.fetch_max_attempts,
            base_delay=settings.retry_base_delay,
            prompt_version=settings.prompt_version,
        )

    async def generate(self, parts: list[dict[str, Any]]) -> Optional[str]:
        """Send one user turn and return the first candidate's text."""
        result = await fetch_json_with_retry(
            self.client,
            "POST",
            self.endpoint,
            json={"contents": [{"parts": parts}]},
            headers={
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            },
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
        )
        return first_candidate_text(result)

    async def generate_text(self, prompt: str) -> Optional[str]:
        return await self.generate([{"text": prompt}])

    async def transcribe_image(self, photo: PhotoPayload) -> str:
        """Read the text in an image.

        Returns:
            The transcribed text, or an empty string when the model reports
            that the image contains none

        Raises:
            TranscriptionError: If the call fails or the response has no text
        """
        mime_type = "image/jpeg" if photo.mime_type == "image/jpg" else photo.mime_type
        parts = [
            {"text": get_transcription_prompt(self.prompt_version)},
            {"inlineData": {"mimeType": mime_type, "data": photo.base64_data}},
        ]
        try:
            text = await self.generate(parts)
        except CheckmaticError as e:
            logger.error(f"[Transcription Error] {e}")
            raise TranscriptionError() from e
        if text is None:
            logger.error("[Transcription Error] Invalid response from the LLM endpoint")
            raise TranscriptionError()
        if text.strip() == NO_TEXT_SENTINEL:
            return ""
        return text
