"""POST /api/detection: classify caller-supplied text against caller-supplied labels."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from checkmatic.config import Settings
from checkmatic.dependencies import (
    enforce_rate_limit,
    get_app_settings,
    get_inference_client,
    get_llm_client,
)
from checkmatic.exceptions import CheckmaticError, ErrorKind, InputValidationError, InternalError
from checkmatic.models import Provenance
from checkmatic.prompts.registry import get_synthesis_template
from checkmatic.routers.analyze import read_json_body
from checkmatic.services.detection import detect_content
from checkmatic.services.inference import InferenceClient
from checkmatic.services.llm import LLMClient
from checkmatic.validators import sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["detection"])


@router.post("/detection", dependencies=[Depends(enforce_rate_limit)])
async def detection(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    inference: InferenceClient = Depends(get_inference_client),
    llm: LLMClient = Depends(get_llm_client),
) -> dict[str, Any]:
    body = await read_json_body(request)
    text = body.get("text")
    if not isinstance(text, str) or not text.strip():
        raise InputValidationError(ErrorKind.INVALID_INPUT, "Invalid or missing 'text'.")

    sanitized = sanitize_text(text, Provenance.USER_INPUT)
    try:
        result = await detect_content(
            sanitized,
            body.get("labelGroup"),
            inference=inference,
            llm=llm,
            prompt_template=get_synthesis_template(settings.prompt_version, settings.llm_prompt),
        )
    except CheckmaticError:
        raise
    except Exception as e:
        logger.exception("[Detection] Unexpected failure")
        raise InternalError() from e
    return result.to_response()
