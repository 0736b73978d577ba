"""Clients for the hosted classification models."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from checkmatic.config import Settings
from checkmatic.models import SarcasmResult
from checkmatic.services.fetcher import fetch_json_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    """A hosted model and how much input it accepts."""

    id: str
    endpoint: str
    max_length: int | None = None


def sarcasm_score(raw: Any, label: str = "LABEL_1") -> float:
    """Probability of the sarcastic ``label`` in a text-classification payload.

    The endpoint returns ``[[{label, score}, ...]]`` for a single input; a flat
    list is accepted too. A missing label scores 0.
    """
    predictions = raw
    if isinstance(predictions, list) and predictions and isinstance(predictions[0], list):
        predictions = predictions[0]
    if not isinstance(predictions, list):
        return 0.0
    for item in predictions:
        if isinstance(item, dict) and item.get("label") == label:
            return float(item.get("score", 0.0))
    return 0.0


class InferenceClient:
    """Async client for the three classification endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        *,
        zero_shot: ModelSpec,
        sarcasm: ModelSpec,
        political_bias: ModelSpec,
        sarcasm_label: str = "LABEL_1",
        max_attempts: int = 3,
        base_delay: float = 1.0,
    ):
        self.client = client
        self.token = token
        self.zero_shot = zero_shot
        self.sarcasm = sarcasm
        self.political_bias = political_bias
        self.sarcasm_label = sarcasm_label
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "InferenceClient":
        base = settings.hf_inference_base_url.rstrip("/")
        return cls(
            client,
            settings.hf_access_token,
            zero_shot=ModelSpec(settings.zero_shot_model, f"{base}/{settings.zero_shot_model}"),
            sarcasm=ModelSpec(
                settings.sarcasm_model,
                f"{base}/{settings.sarcasm_model}",
                settings.sarcasm_max_chars,
            ),
            political_bias=ModelSpec(
                settings.political_bias_model,
                f"{base}/{settings.political_bias_model}",
                settings.political_bias_max_chars,
            ),
            sarcasm_label=settings.sarcasm_label,
            max_attempts=settings.fetch_max_attempts,
            base_delay=settings.retry_base_delay,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    async def _post(self, model: ModelSpec, payload: dict[str, Any]) -> Any:
        return await fetch_json_with_retry(
            self.client,
            "POST",
            model.endpoint,
            json=payload,
            headers=self._headers(),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
        )

    async def detect_sarcasm(self, text: str) -> SarcasmResult:
        truncated = text[: self.sarcasm.max_length]
        raw = await self._post(self.sarcasm, {"inputs": truncated})
        return SarcasmResult(score=sarcasm_score(raw, self.sarcasm_label), raw=raw)

    async def classify_zero_shot(self, text: str, labels: Sequence[str]) -> Any:
        """Multi-label zero-shot classification; labels are not mutually exclusive."""
        return await self._post(
            self.zero_shot,
            {
                "inputs": text,
                "parameters": {"candidate_labels": list(labels), "multi_label": True},
            },
        )

    async def detect_political_bias(self, text: str) -> Any:
        truncated = text[: self.political_bias.max_length]
        return await self._post(self.political_bias, {"inputs": truncated})
