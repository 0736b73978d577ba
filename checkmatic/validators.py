"""Input validation and sanitization for everything that arrives from clients.

All checks run before any outbound network call. They are pattern-based
heuristics: URL checks look at the literal host only, so
:func:`ensure_public_host` exists for callers that also want the resolved
addresses screened.
"""

from __future__ import annotations

import asyncio
import html
import ipaddress
import math
import re
import socket
import warnings
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Iterable, Optional
from urllib.parse import unquote, urlsplit

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from checkmatic.exceptions import ErrorKind, InputValidationError
from checkmatic.models import PhotoPayload, Provenance

warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

MAX_URL_LENGTH = 2048
MAX_TEXT_LENGTH = 50_000
MAX_PHOTO_SIZE = 10 * 1024 * 1024
MAX_PHOTO_NAME_LENGTH = 255
MIN_BASE64_LENGTH = 100

ALLOWED_SCHEMES = ("http", "https")
ALLOWED_IMAGE_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp", "image/bmp"}
)

BLOCKED_HOSTNAMES = frozenset(
    {"localhost", "0.0.0.0", "::1", "ip6-localhost", "ip6-loopback", "broadcasthost"}
)
BLOCKED_IPV6_PREFIXES = ("ff", "fe80:", "fc", "fd")

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_LEGACY_IPV4_RE = re.compile(r"^(0x[0-9a-f]+|\d+)(\.(0x[0-9a-f]+|\d+)){0,3}$", re.IGNORECASE)

SUSPICIOUS_URL_PATTERNS = [
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:", re.IGNORECASE),
    re.compile(r"file:", re.IGNORECASE),
    re.compile(r"ftp:", re.IGNORECASE),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"(?:/|^)\.\.(?:/|$)"),
]

SUSPICIOUS_FILENAME_PATTERNS = [
    re.compile(r"\.\."),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"\.(exe|bat|cmd|scr|com|pif)$", re.IGNORECASE),
    re.compile(r"\.(php|asp|jsp|py)$", re.IGNORECASE),
]

INJECTION_PATTERNS = [
    re.compile(
        r"\b(union|select|insert|update|delete|drop|exec|execute|declare|alter)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(eval|setTimeout|setInterval)\b", re.IGNORECASE),
    re.compile(r"(^|\s)(javascript|data|vbscript):", re.IGNORECASE),
]

# Elements whose content is code, not prose.
_DROPPED_ELEMENTS = ("script", "style", "iframe", "object", "embed", "noscript", "template", "svg", "math")

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
Resolver = Callable[[str, Optional[int]], Awaitable[Iterable[str]]]


def _reject(kind: ErrorKind, message: str) -> InputValidationError:
    return InputValidationError(kind, message)


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


def validate_url(raw: Any) -> str:
    """Validate a user-submitted URL for format, protocol, length and SSRF risks.

    Args:
        raw: The URL as received from the client

    Returns:
        The trimmed URL, with ``https://`` prepended when no scheme was given

    Raises:
        InputValidationError: If any rule is violated
    """
    if not raw or not isinstance(raw, str):
        raise _reject(ErrorKind.MISSING_INPUT, "URL is required and must be a string")

    url = raw.strip()
    if not url:
        raise _reject(ErrorKind.MISSING_INPUT, "URL cannot be empty")

    if not _SCHEME_RE.match(url):
        url = f"https://{url}"

    if len(url) > MAX_URL_LENGTH:
        raise _reject(ErrorKind.TOO_LONG, f"URL too long (maximum {MAX_URL_LENGTH} characters allowed)")

    if any(ch.isspace() for ch in url):
        raise _reject(ErrorKind.INVALID_FORMAT, "Invalid URL format")
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        raise _reject(ErrorKind.INVALID_FORMAT, "Invalid URL format") from None

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise _reject(ErrorKind.DISALLOWED_SCHEME, "Only HTTP and HTTPS URLs are allowed")
    if not parts.hostname:
        raise _reject(ErrorKind.INVALID_FORMAT, "Invalid URL format")

    decoded = unquote(url)
    for pattern in SUSPICIOUS_URL_PATTERNS:
        if pattern.search(url) or pattern.search(decoded):
            raise _reject(ErrorKind.SUSPICIOUS_PATTERN, "URL contains potentially malicious content")

    check_hostname(parts.hostname)
    return url


def check_hostname(hostname: str) -> None:
    """Reject local hostnames and private IP literals."""
    host = hostname.lower().rstrip(".")
    if host in BLOCKED_HOSTNAMES or host.endswith(".localhost"):
        raise _private_access()

    address = parse_ip_literal(host)
    if address is not None and is_forbidden_address(address):
        raise _private_access()


def parse_ip_literal(host: str) -> IPAddress | None:
    """Parse ``host`` as an IP address, including legacy IPv4 spellings.

    ``2130706433``, ``0x7f.1`` and ``127.1`` all reach 127.0.0.1 through the
    system resolver, so they are normalized the same way it would.
    """
    host = host.strip("[]")
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass
    if _LEGACY_IPV4_RE.match(host):
        try:
            return ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None
    return None


def is_forbidden_address(address: IPAddress) -> bool:
    """Return True for addresses a server-side fetch must never reach."""
    if isinstance(address, ipaddress.IPv6Address):
        mapped = address.ipv4_mapped or address.sixtofour
        if mapped is not None and is_forbidden_address(mapped):
            return True
        if address.compressed.startswith(BLOCKED_IPV6_PREFIXES):
            return True
        return (
            address.is_private
            or address.is_loopback
            or address.is_link_local
            or address.is_site_local
            or address.is_multicast
            or address.is_unspecified
        )
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_multicast
        or address.is_reserved
        or address.is_unspecified
        or address == ipaddress.IPv4Address("255.255.255.255")
    )


def _private_access() -> InputValidationError:
    return _reject(ErrorKind.PRIVATE_NETWORK_ACCESS, "Access to private/local URLs is not allowed")


async def _system_resolver(host: str, port: Optional[int]) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


async def ensure_public_host(url: str, resolver: Resolver | None = None) -> None:
    """Resolve the URL's host and reject it if any address is private.

    Unresolvable hosts are left for the HTTP client to fail on.
    """
    parts = urlsplit(url)
    host = parts.hostname
    if not host or parse_ip_literal(host) is not None:
        return
    resolve = resolver or _system_resolver
    try:
        addresses = await resolve(host, parts.port)
    except OSError:
        return
    for raw_address in addresses:
        address = parse_ip_literal(raw_address.split("%", 1)[0])
        if address is not None and is_forbidden_address(address):
            raise _private_access()


# ---------------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------------


def validate_photo(photo: Any) -> PhotoPayload:
    """Validate an uploaded photo descriptor.

    Each rule has its own error kind and message so the client can tell the
    user exactly what to fix.
    """
    if not photo or not isinstance(photo, Mapping):
        raise _reject(ErrorKind.MISSING_INPUT, "Photo data is required")

    data = photo.get("data")
    name = photo.get("name")
    size = photo.get("size")
    mime_type = photo.get("mimeType") or photo.get("type")

    if (
        not data
        or not isinstance(data, str)
        or not isinstance(name, str)
        or isinstance(size, bool)
        or not isinstance(size, (int, float))
        or not mime_type
        or not isinstance(mime_type, str)
    ):
        raise _reject(ErrorKind.MISSING_INPUT, "Photo data is incomplete or invalid")

    if size > MAX_PHOTO_SIZE:
        raise _reject(ErrorKind.TOO_LARGE, "Photo size too large (maximum 10MB allowed)")
    if not math.isfinite(size) or size <= 0:
        raise _reject(ErrorKind.INVALID_SIZE, "Invalid photo size")

    if mime_type.lower() not in ALLOWED_IMAGE_TYPES:
        raise _reject(
            ErrorKind.UNSUPPORTED_FILE_TYPE,
            "Unsupported file type. Only JPEG, PNG, GIF, WebP, and BMP are allowed",
        )

    if not name.strip():
        raise _reject(ErrorKind.MISSING_INPUT, "Photo name cannot be empty")
    if any(pattern.search(name) for pattern in SUSPICIOUS_FILENAME_PATTERNS):
        raise _reject(ErrorKind.SUSPICIOUS_PATTERN, "Photo name contains potentially malicious content")
    if len(name) > MAX_PHOTO_NAME_LENGTH:
        raise _reject(
            ErrorKind.TOO_LONG,
            f"Photo name too long (maximum {MAX_PHOTO_NAME_LENGTH} characters allowed)",
        )

    if not data.startswith("data:image/") or "base64," not in data:
        raise _reject(
            ErrorKind.INVALID_FORMAT,
            "Invalid photo data format - must be base64 encoded image",
        )
    payload = data.split("base64,", 1)[1]
    if len(payload) < MIN_BASE64_LENGTH:
        raise _reject(ErrorKind.CORRUPTED_DATA, "Invalid or corrupted photo data")

    return PhotoPayload(data=data, name=name, size=size, mime_type=mime_type.lower())


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def neutralize_html(text: str) -> str:
    """Strip all markup, keeping only text, and escape what is left.

    ``neutralize_html(neutralize_html(x)) == neutralize_html(x)``: the output
    contains no raw ``<`` and its entities decode back to the same text.
    """
    soup = BeautifulSoup(text, "html.parser")
    for element in soup(_DROPPED_ELEMENTS):
        element.decompose()
    return html.escape(soup.get_text(), quote=False)


def sanitize_text(text: Any, provenance: Provenance = Provenance.USER_INPUT) -> str:
    """Sanitize text before it is sent to any classifier.

    Args:
        text: Text to sanitize
        provenance: ``USER_INPUT`` applies the injection-pattern screen,
            ``EXTRACTED_CONTENT`` skips it

    Returns:
        HTML-neutralized, trimmed text

    Raises:
        InputValidationError: On non-string input, oversized text or a
            matched injection pattern
    """
    if not isinstance(text, str):
        raise _reject(ErrorKind.INVALID_FORMAT, "Input must be a string")

    neutralized = neutralize_html(text)
    trimmed = neutralized.strip()

    if len(trimmed) > MAX_TEXT_LENGTH:
        raise _reject(ErrorKind.TOO_LARGE, "Text content too large (maximum 50KB allowed)")

    if provenance is Provenance.USER_INPUT:
        for pattern in INJECTION_PATTERNS:
            if pattern.search(neutralized):
                raise _reject(ErrorKind.POTENTIAL_INJECTION, "Potentially malicious content detected")

    return trimmed
