"""Article extraction from web pages using readability and BeautifulSoup."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from lxml import html as lhtml
from readability import Document

from checkmatic.exceptions import FetchFailedError, NetworkError, UpstreamAPIError
from checkmatic.models import ExtractedArticle
from checkmatic.services.fetcher import send_with_retry
from checkmatic.validators import ensure_public_host, validate_url

logger = logging.getLogger(__name__)

# Some publishers refuse unknown agents outright.
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
BROWSER_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

_INLINE_WS_RE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def _clean(txt: str) -> str:
    txt = _INLINE_WS_RE.sub(" ", txt or "")
    txt = _BLANK_LINES_RE.sub("\n\n", txt)
    return txt.strip()


async def fetch_page(
    url: str,
    client: httpx.AsyncClient,
    *,
    max_redirects: int = 5,
    max_attempts: int = 1,
    base_delay: float = 1.0,
    resolve_hosts: bool = False,
    timeout: float | None = None,
) -> tuple[str, str]:
    """
    Download a page, re-validating every redirect target.

    Returns:
        Tuple of (final URL, HTML text)

    Raises:
        FetchFailedError: On non-2xx status, transport failure or a redirect loop
        InputValidationError: If a redirect points somewhere ``validate_url`` rejects
    """
    current = url
    for _ in range(max_redirects + 1):
        if resolve_hosts:
            await ensure_public_host(current)
        try:
            response = await send_with_retry(
                client,
                "GET",
                current,
                headers=BROWSER_HEADERS,
                follow_redirects=False,
                accept_redirects=True,
                max_attempts=max_attempts,
                base_delay=base_delay,
                timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
            )
        except UpstreamAPIError as e:
            logger.error(f"[Extraction Error] Request failed with error code {e.upstream_status}")
            raise FetchFailedError(e.upstream_status) from e
        except NetworkError as e:
            logger.error(f"[Extraction Error] {e}")
            raise FetchFailedError() from e

        if not response.is_redirect:
            return current, response.text

        location = response.headers.get("location")
        if not location:
            raise FetchFailedError(response.status_code)
        current = validate_url(urljoin(current, location))
        logger.info(f"[Extraction] Following redirect to {current}")

    raise FetchFailedError(message="Failed to fetch content: too many redirects")


def readability_extract(html: str, url: str | None = None) -> ExtractedArticle | None:
    """Isolate the main article body with readability-lxml."""
    try:
        doc = Document(html, url=url)
        summary = doc.summary(html_partial=True)
        tree = lhtml.fromstring(summary)
        text = _clean("\n".join(tree.itertext()))
        title = (doc.short_title() or doc.title() or "").strip()
    except Exception as e:
        logger.debug(f"Readability extraction failed for {url}: {e}")
        return None
    if not text:
        return None
    return ExtractedArticle(title=title, content=text, method="readability")


def paragraph_extract(html: str) -> ExtractedArticle:
    """Page title plus every ``<p>`` text in document order, newline-joined."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    content = "\n".join(p.get_text() for p in soup.find_all("p"))
    return ExtractedArticle(title=title, content=content, method="paragraphs")


def parse_article(html: str, url: str | None = None) -> ExtractedArticle:
    """Extract ``{title, content}`` from page markup.

    An empty ``content`` is a valid result meaning nothing was extractable.
    """
    article = readability_extract(html, url)
    if article is not None:
        return article
    logger.warning("[Extraction] Readability failed, falling back to paragraph scan...")
    return paragraph_extract(html)


async def extract(
    url: str,
    client: httpx.AsyncClient,
    *,
    max_redirects: int = 5,
    max_attempts: int = 1,
    base_delay: float = 1.0,
    resolve_hosts: bool = False,
    timeout: float | None = None,
) -> ExtractedArticle:
    """Fetch a validated URL and extract its article text."""
    final_url, html = await fetch_page(
        url,
        client,
        max_redirects=max_redirects,
        max_attempts=max_attempts,
        base_delay=base_delay,
        resolve_hosts=resolve_hosts,
        timeout=timeout,
    )
    article = parse_article(html, final_url)
    logger.info(
        f"[Extraction] {final_url}: {len(article.content)} chars via {article.method}"
    )
    return article
