"""
Answer extraction from JSON-encoded DoH responses.

Handles the application/dns-json format served by Google, Cloudflare and
most public resolvers: a top-level "Answer" array of objects with "type"
and "data" fields. Only those two fields are read; everything else is
ignored.
"""

import ipaddress
from typing import Any, Optional

from .wire_codec import TYPE_HTTPS


ECH_MARKER = "ech="


def extract_answer_array(body: Any) -> list:
    """Return the Answer array of a parsed body, or an empty list."""
    if not isinstance(body, dict):
        return []
    answers = body.get("Answer")
    if not isinstance(answers, list):
        return []
    return answers


def is_ip_address(value: str) -> bool:
    """True if value is a syntactically valid IPv4 or IPv6 literal."""
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def extract_ips(body: Any) -> list[str]:
    """
    Collect every answer "data" value that is an IP literal.

    Args:
        body: Parsed JSON response body

    Returns:
        De-duplicated list of addresses in first-seen order
    """
    seen: list[str] = []
    for answer in extract_answer_array(body):
        if not isinstance(answer, dict):
            continue
        data = answer.get("data")
        if isinstance(data, str) and is_ip_address(data) and data not in seen:
            seen.append(data)
    return seen


def _answer_type(answer: dict) -> Optional[int]:
    value = answer.get("type")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def extract_https_record(body: Any) -> Optional[str]:
    """
    Find the first HTTPS (type 65) answer whose data carries an ECH parameter.

    Args:
        body: Parsed JSON response body

    Returns:
        The raw presentation-format record string, or None
    """
    for answer in extract_answer_array(body):
        if not isinstance(answer, dict):
            continue
        if _answer_type(answer) != TYPE_HTTPS:
            continue
        data = answer.get("data")
        if isinstance(data, str) and ECH_MARKER in data:
            return data
    return None
