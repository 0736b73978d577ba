"""Resilient HTTP calls with exponential backoff.

Every outbound request (page fetches, classifier calls, LLM calls) goes
through :func:`send_with_retry`. Retries are sequential and in-process; the
per-call deadline is whatever ``httpx.Timeout`` the client was built with.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from checkmatic.exceptions import NetworkError, UpstreamAPIError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Seconds to wait after the zero-indexed ``attempt`` failed."""
    return (2**attempt) * base_delay


async def send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    accept_redirects: bool = False,
    sleep: Sleep = asyncio.sleep,
    **request_kwargs: Any,
) -> httpx.Response:
    """
    Send an HTTP request, retrying rate limits and failures with backoff.

    Args:
        client: HTTP client to send through
        method: HTTP method
        url: Target URL
        max_attempts: Total number of attempts, including the first
        base_delay: Backoff base; attempt ``n`` waits ``2**n * base_delay``
        accept_redirects: Treat 3xx responses as success
        sleep: Awaitable used for backoff waits
        **request_kwargs: Passed to ``client.request``

    Returns:
        The first successful response

    Raises:
        UpstreamAPIError: If the final attempt got a non-2xx status
        NetworkError: If the final attempt failed at the transport level
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(max_attempts):
        is_last = attempt == max_attempts - 1
        delay = backoff_delay(attempt, base_delay)

        try:
            response = await client.request(method, url, **request_kwargs)
        except httpx.TransportError as e:
            logger.error(f"[Fetch Error] Attempt {attempt + 1}: {type(e).__name__}: {e}")
            if is_last:
                raise NetworkError(f"Network error calling {_host(url)}: {type(e).__name__}") from e
            await sleep(delay)
            continue

        if response.is_success or (accept_redirects and response.is_redirect):
            return response

        if response.status_code == 429 and not is_last:
            logger.warning(f"[Rate Limit] {_host(url)} returned 429, retrying in {delay * 1000:.0f}ms")
            await sleep(delay)
            continue

        error = UpstreamAPIError(response.status_code, response.reason_phrase, response.text[:500])
        logger.error(f"[Fetch Error] Attempt {attempt + 1}: {error}")
        if is_last:
            raise error
        await sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover


async def fetch_json_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Call :func:`send_with_retry` and decode the JSON body."""
    response = await send_with_retry(client, method, url, **kwargs)
    try:
        return response.json()
    except ValueError as e:
        raise UpstreamAPIError(response.status_code, "response body is not valid JSON", response.text[:500]) from e


def _host(url: str) -> str:
    return httpx.URL(url).host or url
