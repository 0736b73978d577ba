"""Merge the raw classifier outputs into one verdict with a single LLM call."""

from __future__ import annotations

import json
import logging
import re
from string import Template
from typing import Any

from pydantic import ValidationError

from checkmatic.exceptions import CheckmaticError
from checkmatic.models import SarcasmResult, SynthesisVerdict
from checkmatic.services.llm import LLMClient

logger = logging.getLogger(__name__)

SYNTHESIS_UNAVAILABLE = "Synthesis unavailable"

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL | re.IGNORECASE)


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def build_prompt(
    template: Template,
    text: str,
    zero_shot: Any,
    sarcasm: SarcasmResult,
    political_bias: Any,
    current_date: str,
) -> str:
    return template.safe_substitute(
        current_date=current_date,
        text=text,
        zero_shot=_dump(zero_shot),
        sarcasm=_dump(sarcasm.raw),
        political_bias=_dump(political_bias),
    )


def strip_code_fence(response_text: str) -> str:
    """Return the body of a fenced code block, or the text unchanged."""
    match = _FENCE_RE.search(response_text)
    return match.group(1) if match else response_text


def parse_verdict(response_text: str) -> Any:
    """Parse an LLM response as JSON and return it unchanged.

    A payload that does not match :class:`SynthesisVerdict` is still returned;
    the deviation is only logged.

    Raises:
        ValueError: If the text is not valid JSON
    """
    payload = json.loads(strip_code_fence(response_text).strip())
    try:
        SynthesisVerdict.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"[Synthesis] Verdict does not match the expected shape: {e.error_count()} issue(s)")
    return payload


async def synthesize(
    llm: LLMClient,
    text: str,
    zero_shot: Any,
    sarcasm: SarcasmResult,
    political_bias: Any,
    current_date: str,
    *,
    template: Template,
) -> Any:
    """
    Produce the structured verdict for an article.

    Returns:
        The parsed JSON verdict, ``{"error": ...}`` when the LLM call failed or
        returned no text, or ``{"error": ..., "rawResponse": ...}`` when its
        text is not valid JSON
    """
    prompt = build_prompt(template, text, zero_shot, sarcasm, political_bias, current_date)
    try:
        response_text = await llm.generate_text(prompt)
    except CheckmaticError as e:
        logger.error(f"[Synthesis Error] {e}")
        return {"error": SYNTHESIS_UNAVAILABLE}

    if not response_text:
        return {"error": SYNTHESIS_UNAVAILABLE}

    try:
        return parse_verdict(response_text)
    except ValueError as e:
        logger.error(f"[LLM JSON Parse Error] {e}")
        return {"error": SYNTHESIS_UNAVAILABLE, "rawResponse": response_text}
