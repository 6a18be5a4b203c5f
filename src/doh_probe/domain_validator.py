"""
Domain and endpoint validation and normalization module.

Accepts a bare host name or a URL, reduces it to an ASCII host name
(IDNA-encoding international names) and validates DoH endpoint URLs
before any request is built.
"""

import re
from urllib.parse import urlsplit

import idna

from .exceptions import ValidationError


# Characters never valid in a host name: control chars, whitespace, symbols
FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!@#$%^&*()+=\[\]{}|\\:;"\'<>,?/`~]'
)

ALLOWED_ENDPOINT_SCHEMES = ("https", "http")


def _extract_host(raw: str) -> str:
    candidate = raw if "://" in raw else f"https://{raw}"
    try:
        host = urlsplit(candidate).hostname
    except ValueError:
        host = None
    # Fall back to the raw text when it does not parse as a URL.
    return host if host else raw


def normalize_domain(raw_domain: str) -> str:
    """
    Normalize a domain or URL to the ASCII host name that gets queried.

    Args:
        raw_domain: e.g. "Example.COM.", "https://example.com/path" or "bücher.de"

    Returns:
        Lowercase ASCII host name without a trailing dot

    Raises:
        ValidationError: If the input is empty, contains forbidden
            characters or cannot be IDNA-encoded
    """
    if raw_domain is None or not raw_domain.strip():
        raise ValidationError(
            code="empty_input",
            message="Domain must not be empty",
            details={"raw_input": raw_domain},
        )

    host = _extract_host(raw_domain.strip()).rstrip(".").lower()
    if not host:
        raise ValidationError(
            code="empty_input",
            message="Domain must not be empty",
            details={"raw_input": raw_domain},
        )

    if FORBIDDEN_CHARS_PATTERN.search(host):
        raise ValidationError(
            code="forbidden_chars",
            message=f"Domain contains forbidden characters: {host}",
            details={
                "raw_input": raw_domain,
                "forbidden_chars": FORBIDDEN_CHARS_PATTERN.findall(host),
            },
        )

    if host.isascii():
        return host

    try:
        return idna.encode(host, uts46=True).decode("ascii")
    except idna.IDNAError as e:
        raise ValidationError(
            code="idna_error",
            message=f"IDNA encoding failed: {e}",
            details={"raw_input": raw_domain},
        ) from e


def validate_endpoint_url(endpoint: str) -> str:
    """
    Check that a DoH endpoint is an absolute http(s) URL with a host.

    Returns:
        The endpoint, stripped of surrounding whitespace

    Raises:
        ValidationError: If the endpoint is not usable
    """
    endpoint = (endpoint or "").strip()
    try:
        parts = urlsplit(endpoint)
    except ValueError as e:
        raise ValidationError(
            code="invalid_endpoint",
            message=f"Invalid DoH endpoint URL: {endpoint}",
            details={"endpoint": endpoint},
        ) from e
    if parts.scheme.lower() not in ALLOWED_ENDPOINT_SCHEMES or not parts.netloc:
        raise ValidationError(
            code="invalid_endpoint",
            message=f"Invalid DoH endpoint URL: {endpoint}",
            details={"endpoint": endpoint, "scheme": parts.scheme},
        )
    return endpoint

