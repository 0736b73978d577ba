"""POST /api/analyze: dispatch link, text and photo submissions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from fastapi import APIRouter, Depends, Request

from checkmatic.config import Settings
from checkmatic.dependencies import (
    enforce_rate_limit,
    get_app_settings,
    get_http_client,
    get_inference_client,
    get_llm_client,
)
from checkmatic.exceptions import CheckmaticError, ErrorKind, InputValidationError, InternalError
from checkmatic.models import (
    AnalysisRequest,
    CombinedResult,
    LinkRequest,
    PhotoRequest,
    Provenance,
    TextRequest,
)
from checkmatic.prompts.registry import get_synthesis_template
from checkmatic.services.detection import DEFAULT_LABELS, detect_content
from checkmatic.services.extractor import extract
from checkmatic.services.inference import InferenceClient
from checkmatic.services.llm import LLMClient
from checkmatic.validators import sanitize_text, validate_photo, validate_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])

VALID_MODES = ("link", "text", "photo")


@dataclass
class Pipeline:
    """Collaborators for one request."""

    settings: Settings
    client: httpx.AsyncClient
    inference: InferenceClient
    llm: LLMClient

    async def detect(self, text: str) -> CombinedResult:
        return await detect_content(
            text,
            DEFAULT_LABELS,
            inference=self.inference,
            llm=self.llm,
            prompt_template=get_synthesis_template(
                self.settings.prompt_version, self.settings.llm_prompt
            ),
        )


async def read_json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InputValidationError(ErrorKind.INVALID_FORMAT, "Invalid JSON in request body") from None
    if not isinstance(body, dict):
        raise InputValidationError(ErrorKind.INVALID_FORMAT, "Request body must be a JSON object")
    return body


def _parse_link(body: dict[str, Any]) -> LinkRequest:
    query = body.get("query")
    if not query:
        raise InputValidationError(ErrorKind.MISSING_INPUT, "URL is required for link mode")
    return LinkRequest(url=validate_url(query))


def _parse_text(body: dict[str, Any]) -> TextRequest:
    content = body.get("content")
    if not content:
        raise InputValidationError(ErrorKind.MISSING_INPUT, "Text content is required for text mode")
    text = sanitize_text(content, Provenance.USER_INPUT)
    if not text:
        raise InputValidationError(ErrorKind.NO_CONTENT, "Text content cannot be empty after sanitization")
    return TextRequest(content=text)


def _parse_photo(body: dict[str, Any]) -> PhotoRequest:
    photo = body.get("photo")
    if not photo:
        raise InputValidationError(ErrorKind.MISSING_INPUT, "Photo is required for photo mode")
    return PhotoRequest(photo=validate_photo(photo))


REQUEST_PARSERS: dict[str, Callable[[dict[str, Any]], AnalysisRequest]] = {
    "link": _parse_link,
    "text": _parse_text,
    "photo": _parse_photo,
}


def parse_analysis_request(body: dict[str, Any]) -> AnalysisRequest:
    """Check the mode, then validate the one payload field that mode reads.

    No outbound call has been made when this returns or raises.
    """
    mode = body.get("mode")
    if not mode or not isinstance(mode, str):
        raise InputValidationError(
            ErrorKind.MISSING_INPUT, "Mode parameter is required and must be a string"
        )
    if mode not in VALID_MODES:
        raise InputValidationError(
            ErrorKind.UNKNOWN_MODE, "Invalid mode. Must be one of: link, text, photo"
        )
    return REQUEST_PARSERS[mode](body)


async def handle_link(request: LinkRequest, pipeline: Pipeline) -> CombinedResult:
    settings = pipeline.settings
    article = await extract(
        request.url,
        pipeline.client,
        max_redirects=settings.max_redirects,
        max_attempts=settings.page_fetch_attempts,
        base_delay=settings.retry_base_delay,
        resolve_hosts=settings.resolve_dns,
        timeout=settings.page_timeout,
    )

    if len(article.content.strip()) < settings.min_article_chars:
        raise InputValidationError(
            ErrorKind.NO_CONTENT,
            "Could not extract article content from the provided URL. Please check if the URL "
            "is accessible and contains readable content.",
        )

    text = sanitize_text(article.content, Provenance.EXTRACTED_CONTENT)
    if not text:
        raise InputValidationError(ErrorKind.NO_CONTENT, "Text content cannot be empty after sanitization")
    return await pipeline.detect(text)


async def handle_text(request: TextRequest, pipeline: Pipeline) -> CombinedResult:
    return await pipeline.detect(request.content)


async def handle_photo(request: PhotoRequest, pipeline: Pipeline) -> CombinedResult:
    transcribed = await pipeline.llm.transcribe_image(request.photo)
    if not transcribed.strip():
        raise InputValidationError(ErrorKind.NO_CONTENT, "No discernible text was found in the provided image.")

    text = sanitize_text(transcribed, Provenance.EXTRACTED_CONTENT)
    if len(text) < pipeline.settings.min_photo_text_chars:
        raise InputValidationError(ErrorKind.NO_CONTENT, "No discernible text was found in the provided image.")
    return await pipeline.detect(text)


MODE_HANDLERS: dict[str, Callable[[Any, Pipeline], Awaitable[CombinedResult]]] = {
    "link": handle_link,
    "text": handle_text,
    "photo": handle_photo,
}


@router.post("/analyze", dependencies=[Depends(enforce_rate_limit)])
async def analyze(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
    inference: InferenceClient = Depends(get_inference_client),
    llm: LLMClient = Depends(get_llm_client),
) -> dict[str, Any]:
    """Analyze a URL, a block of text or a photo of text."""
    analysis = parse_analysis_request(await read_json_body(request))
    pipeline = Pipeline(settings=settings, client=client, inference=inference, llm=llm)
    logger.info(f"[Analyze] mode={analysis.mode}")

    try:
        result = await MODE_HANDLERS[analysis.mode](analysis, pipeline)
    except CheckmaticError:
        raise
    except Exception as e:
        logger.exception(f"[Analyze] Unexpected failure in {analysis.mode} mode")
        raise InternalError() from e

    return result.to_response()
