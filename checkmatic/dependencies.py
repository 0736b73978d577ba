"""FastAPI dependencies."""

from collections.abc import AsyncGenerator

import httpx
from fastapi import Depends, Request

from checkmatic.config import Settings
from checkmatic.exceptions import RateLimitedError
from checkmatic.services.inference import InferenceClient
from checkmatic.services.llm import LLMClient


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


async def get_http_client(
    settings: Settings = Depends(get_app_settings),
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """One HTTP client per request; closed when the response is sent."""
    timeout = httpx.Timeout(settings.http_timeout, connect=10.0)
    async with httpx.AsyncClient(timeout=timeout) as client:
        yield client


def get_inference_client(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_app_settings),
) -> InferenceClient:
    return InferenceClient.from_settings(client, settings)


def get_llm_client(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_app_settings),
) -> LLMClient:
    return LLMClient.from_settings(client, settings)


def client_identity(request: Request) -> str:
    """First X-Forwarded-For address, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request) -> None:
    limiter = request.app.state.rate_limiter
    if limiter is None:
        return
    if not await limiter.hit(client_identity(request)):
        raise RateLimitedError()
