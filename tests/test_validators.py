"""Tests for URL, photo and text validation."""

from __future__ import annotations

import pytest

from checkmatic.exceptions import ErrorKind, InputValidationError
from checkmatic.models import Provenance
from checkmatic.validators import (
    MAX_PHOTO_SIZE,
    MAX_TEXT_LENGTH,
    ensure_public_host,
    neutralize_html,
    sanitize_text,
    validate_photo,
    validate_url,
)

PNG_DATA = "data:image/png;base64," + "iVBORw0KGgo" * 20


def _kind(exc_info) -> ErrorKind:
    return exc_info.value.kind


# ---------------------------------------------------------------------------
# validate_url
# ---------------------------------------------------------------------------


def test_url_without_scheme_gets_https():
    assert validate_url("example.com/a") == "https://example.com/a"


def test_url_is_trimmed():
    assert validate_url("  https://news.example.org/story  ") == "https://news.example.org/story"


def test_plain_http_is_allowed():
    assert validate_url("http://example.com") == "http://example.com"


@pytest.mark.parametrize("raw", [None, "", 42, ["https://example.com"]])
def test_missing_url(raw):
    with pytest.raises(InputValidationError) as exc_info:
        validate_url(raw)
    assert _kind(exc_info) == ErrorKind.MISSING_INPUT


def test_blank_url():
    with pytest.raises(InputValidationError) as exc_info:
        validate_url("   ")
    assert _kind(exc_info) == ErrorKind.MISSING_INPUT
    assert exc_info.value.message == "URL cannot be empty"


def test_url_too_long():
    with pytest.raises(InputValidationError) as exc_info:
        validate_url("https://example.com/" + "a" * 2100)
    assert _kind(exc_info) == ErrorKind.TOO_LONG
    assert exc_info.value.status_code == 400


def test_url_at_length_limit_passes():
    url = "https://example.com/" + "a" * (2048 - len("https://example.com/"))
    assert validate_url(url) == url


@pytest.mark.parametrize("raw", ["ftp://example.com/file", "gopher://example.com", "ws://example.com"])
def test_disallowed_scheme(raw):
    with pytest.raises(InputValidationError) as exc_info:
        validate_url(raw)
    assert _kind(exc_info) == ErrorKind.DISALLOWED_SCHEME


@pytest.mark.parametrize("raw", ["https://exa mple.com", "https://example.com:99999/", "https://"])
def test_invalid_format(raw):
    with pytest.raises(InputValidationError) as exc_info:
        validate_url(raw)
    assert _kind(exc_info) == ErrorKind.INVALID_FORMAT


@pytest.mark.parametrize(
    "raw",
    [
        "https://example.com/<script>alert(1)</script>",
        "https://example.com/%3Cscript%3E",
        "https://example.com/../etc/passwd",
        "https://example.com/?next=javascript:alert(1)",
    ],
)
def test_suspicious_url(raw):
    with pytest.raises(InputValidationError) as exc_info:
        validate_url(raw)
    assert _kind(exc_info) == ErrorKind.SUSPICIOUS_PATTERN


@pytest.mark.parametrize(
    "raw",
    [
        "http://localhost:8080/admin",
        "HTTP://LOCALHOST/",
        "http://LocalHost:8080/admin",
        "localhost:8080/admin",
        "127.0.0.1/x",
        "http://api.localhost/",
        "http://127.0.0.1/",
        "http://127.1/",
        "http://2130706433/",
        "http://0x7f000001/",
        "http://0.0.0.0/",
        "http://10.1.2.3/",
        "http://172.16.0.1/",
        "http://192.168.1.1/",
        "http://169.254.169.254/latest/meta-data",
        "http://[::1]/",
        "http://[fd00::1]/",
        "http://[fe80::1]/",
        "http://[::ffff:127.0.0.1]/",
        "http://[::ffff:10.0.0.1]/",
    ],
)
def test_private_network_access(raw):
    with pytest.raises(InputValidationError) as exc_info:
        validate_url(raw)
    assert _kind(exc_info) == ErrorKind.PRIVATE_NETWORK_ACCESS
    assert exc_info.value.message == "Access to private/local URLs is not allowed"


@pytest.mark.parametrize("raw", ["https://93.184.216.34/", "https://[2606:4700::1111]/"])
def test_public_ip_literals_pass(raw):
    assert validate_url(raw) == raw


# ---------------------------------------------------------------------------
# ensure_public_host
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_resolved_private_address_is_rejected():
    async def resolver(host, port):
        return ["93.184.216.34", "10.0.0.5"]

    with pytest.raises(InputValidationError) as exc_info:
        await ensure_public_host("https://rebind.example.com/", resolver=resolver)
    assert _kind(exc_info) == ErrorKind.PRIVATE_NETWORK_ACCESS


@pytest.mark.asyncio
async def test_resolved_public_address_passes():
    async def resolver(host, port):
        assert host == "example.com"
        return ["93.184.216.34"]

    await ensure_public_host("https://example.com/", resolver=resolver)


@pytest.mark.asyncio
async def test_unresolvable_host_is_left_to_the_client():
    async def resolver(host, port):
        raise OSError("Name or service not known")

    await ensure_public_host("https://no-such-host.example/", resolver=resolver)


# ---------------------------------------------------------------------------
# validate_photo
# ---------------------------------------------------------------------------


def _photo(**overrides):
    photo = {"data": PNG_DATA, "name": "page.png", "size": 5_000_000, "mimeType": "image/png"}
    photo.update(overrides)
    return photo


def test_valid_photo():
    payload = validate_photo(_photo())
    assert payload.name == "page.png"
    assert payload.mime_type == "image/png"
    assert payload.base64_data == "iVBORw0KGgo" * 20


def test_photo_type_alias_and_case():
    photo = _photo(mimeType=None, type="IMAGE/JPEG")
    assert validate_photo(photo).mime_type == "image/jpeg"


@pytest.mark.parametrize(
    "overrides, kind",
    [
        ({"size": 11_000_000}, ErrorKind.TOO_LARGE),
        ({"size": MAX_PHOTO_SIZE + 1}, ErrorKind.TOO_LARGE),
        ({"size": 0}, ErrorKind.INVALID_SIZE),
        ({"size": -5}, ErrorKind.INVALID_SIZE),
        ({"size": float("nan")}, ErrorKind.INVALID_SIZE),
        ({"mimeType": "application/pdf"}, ErrorKind.UNSUPPORTED_FILE_TYPE),
        ({"name": "   "}, ErrorKind.MISSING_INPUT),
        ({"name": "../../etc/passwd.png"}, ErrorKind.SUSPICIOUS_PATTERN),
        ({"name": "payload.exe"}, ErrorKind.SUSPICIOUS_PATTERN),
        ({"name": "a" * 252 + ".png"}, ErrorKind.TOO_LONG),
        ({"data": "iVBORw0KGgo" * 20}, ErrorKind.INVALID_FORMAT),
        ({"data": "data:image/png;base64,abc"}, ErrorKind.CORRUPTED_DATA),
        ({"data": None}, ErrorKind.MISSING_INPUT),
        ({"size": "big"}, ErrorKind.MISSING_INPUT),
    ],
)
def test_photo_rules(overrides, kind):
    with pytest.raises(InputValidationError) as exc_info:
        validate_photo(_photo(**overrides))
    assert _kind(exc_info) == kind


@pytest.mark.parametrize("photo", [None, {}, "data:image/png;base64,abc"])
def test_photo_missing(photo):
    with pytest.raises(InputValidationError) as exc_info:
        validate_photo(photo)
    assert _kind(exc_info) == ErrorKind.MISSING_INPUT


# ---------------------------------------------------------------------------
# neutralize_html / sanitize_text
# ---------------------------------------------------------------------------


def test_neutralize_drops_scripts_and_tags():
    out = neutralize_html("<p>Hello <b>world</b></p><script>alert(1)</script>")
    assert out == "Hello world"


def test_neutralize_escapes_leftover_specials():
    out = neutralize_html("5 < 6 & 7 > 3")
    assert "<" not in out
    assert "&amp;" in out


@pytest.mark.parametrize(
    "text",
    [
        "<div onclick='x()'>Click <a href='javascript:void(0)'>here</a></div>",
        "Tom &amp; Jerry <3",
        "plain text",
        "<<script>script>alert(1)<</script>/script>",
    ],
)
def test_neutralize_is_idempotent(text):
    once = neutralize_html(text)
    assert neutralize_html(once) == once


def test_sanitize_trims():
    assert sanitize_text("  <em>hello</em> there \n") == "hello there"


def test_sanitize_rejects_non_string():
    with pytest.raises(InputValidationError) as exc_info:
        sanitize_text(123)
    assert _kind(exc_info) == ErrorKind.INVALID_FORMAT


def test_sanitize_rejects_oversized_text():
    with pytest.raises(InputValidationError) as exc_info:
        sanitize_text("a" * (MAX_TEXT_LENGTH + 1), Provenance.EXTRACTED_CONTENT)
    assert _kind(exc_info) == ErrorKind.TOO_LARGE


def test_sanitize_size_counts_trimmed_text():
    text = "  " + "a" * MAX_TEXT_LENGTH + "  "
    assert len(sanitize_text(text, Provenance.EXTRACTED_CONTENT)) == MAX_TEXT_LENGTH


@pytest.mark.parametrize(
    "text",
    ["SELECT * FROM users", "please eval this", "click javascript:alert(1)", "DROP table students"],
)
def test_injection_patterns_reject_user_input(text):
    with pytest.raises(InputValidationError) as exc_info:
        sanitize_text(text, Provenance.USER_INPUT)
    assert _kind(exc_info) == ErrorKind.POTENTIAL_INJECTION


def test_injection_patterns_skip_extracted_content():
    text = "The committee will select a new chair and update its rules."
    assert sanitize_text(text, Provenance.EXTRACTED_CONTENT) == text


def test_default_provenance_is_user_input():
    with pytest.raises(InputValidationError):
        sanitize_text("SELECT * FROM users")


@pytest.mark.parametrize("provenance", [Provenance.USER_INPUT, Provenance.EXTRACTED_CONTENT])
@pytest.mark.parametrize(
    "text",
    [
        "  <p>Breaking <b>news</b></p>\n",
        "Tom &amp; Jerry <3 ",
        "\t5 < 6 & 7 > 3\n\n",
        "<div><style>p {}</style>Council approves budget</div>",
        "plain",
    ],
)
def test_sanitize_is_idempotent(text, provenance):
    once = sanitize_text(text, provenance)
    assert sanitize_text(once, provenance) == once
