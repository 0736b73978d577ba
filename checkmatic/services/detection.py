"""Run the three classifiers concurrently and synthesize their outputs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from string import Template
from typing import Any, Awaitable, Generic, Optional, Sequence, TypeVar

from checkmatic.exceptions import ErrorKind, InputValidationError
from checkmatic.models import CombinedResult
from checkmatic.prompts.registry import get_synthesis_template
from checkmatic.services.inference import InferenceClient
from checkmatic.services.llm import LLMClient
from checkmatic.services.synthesis import synthesize

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LABELS: tuple[str, ...] = (
    "authentic",
    "fabricated",
    "misinformation",
    "report",
    "opinion",
    "analysis",
    "advertisement",
    "sponsored",
    "blog",
    "press_release",
    "interview",
    "extreme",
    "emotional",
    "clickbait",
    "conspiracy",
    "scam",
)

MODELS_FAILED = "One or more detection models failed."


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one settled task: a value or the exception it raised."""

    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


async def settle_all(tasks: dict[str, Awaitable[Any]]) -> dict[str, Outcome[Any]]:
    """Await every task to completion and capture each outcome independently.

    One task failing never cancels the others. Cancellation of the caller
    still propagates.
    """
    names = list(tasks)
    results = await asyncio.gather(*tasks.values(), return_exceptions=True)
    outcomes: dict[str, Outcome[Any]] = {}
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            outcomes[name] = Outcome(name, error=result)
        else:
            outcomes[name] = Outcome(name, value=result)
    return outcomes


def format_current_date(today: date) -> str:
    """Long US-style date, e.g. 'Sunday, October 18, 2026'."""
    return f"{today:%A}, {today:%B} {today.day}, {today.year}"


def _validate_inputs(text: Any, labels: Any) -> list[str]:
    if not isinstance(text, str) or not text.strip():
        raise InputValidationError(ErrorKind.INVALID_INPUT, "Invalid or missing 'text'.")
    if (
        isinstance(labels, (str, bytes))
        or not isinstance(labels, Sequence)
        or not labels
        or not all(isinstance(label, str) and label.strip() for label in labels)
    ):
        raise InputValidationError(ErrorKind.INVALID_INPUT, "Invalid or missing 'labelGroup'.")
    return list(labels)


async def detect_content(
    text: str,
    labels: Sequence[str],
    *,
    inference: InferenceClient,
    llm: LLMClient,
    prompt_template: Template | None = None,
    today: date | None = None,
) -> CombinedResult:
    """
    Classify text with all three models and merge the results.

    Args:
        text: Sanitized, non-blank text
        labels: Candidate labels for zero-shot classification
        inference: Classification client
        llm: LLM client for the synthesis step
        prompt_template: Synthesis prompt; the bundled one by default
        today: Date given to the synthesis step; today by default

    Returns:
        CombinedResult with every model output that succeeded. When any
        model failed, ``synthesis`` names the failed models and why.

    Raises:
        InputValidationError: If text or labels are invalid
    """
    label_list = _validate_inputs(text, labels)
    logger.info(f"[Detection] Text (first 80 chars): {text[:80]!r}; {len(label_list)} labels")

    outcomes = await settle_all(
        {
            "sarcasm": inference.detect_sarcasm(text),
            "zeroShot": inference.classify_zero_shot(text, label_list),
            "politicalBias": inference.detect_political_bias(text),
        }
    )
    sarcasm = outcomes["sarcasm"]
    zero_shot = outcomes["zeroShot"]
    political_bias = outcomes["politicalBias"]

    failed = [outcome for outcome in outcomes.values() if not outcome.ok]
    if not failed:
        current_date = format_current_date(today or date.today())
        synthesis = await synthesize(
            llm,
            text,
            zero_shot.value,
            sarcasm.value,
            political_bias.value,
            current_date,
            template=prompt_template or get_synthesis_template(),
        )
    else:
        for outcome in failed:
            logger.warning(f"[Detection] {outcome.name} model failed: {outcome.reason}")
        synthesis = {
            "error": MODELS_FAILED,
            "kind": ErrorKind.PARTIAL_MODEL_FAILURE.value,
            "failed": [outcome.name for outcome in failed],
            "details": {outcome.name: outcome.reason for outcome in failed},
        }

    logger.info(
        "[Detection] Complete",
        extra={
            "models": {name: outcome.ok for name, outcome in outcomes.items()},
            "sarcasm_score": sarcasm.value.score if sarcasm.ok else None,
            "synthesized": not (isinstance(synthesis, dict) and "error" in synthesis),
        },
    )

    return CombinedResult(
        synthesis=synthesis,
        zero_shot_analysis=zero_shot.value,
        sarcasm_analysis=sarcasm.value.raw if sarcasm.ok else None,
        political_bias_analysis=political_bias.value,
    )
