"""
Merging of failed attempts into one reportable provider failure.

When no attempt for a provider succeeds, the partial information of all
attempts is folded together so that the report keeps the most useful
status, latency, shape and error text.
"""

from typing import Optional

from .enums import ResponseShape
from .i18n import get_message
from .models import ProviderResult, QueryAttempt


def combine_failures(
    attempts: list[QueryAttempt],
    union_values: bool = True,
    language: Optional[str] = None,
) -> ProviderResult:
    """
    Merge an ordered, non-empty list of failed attempts.

    Rules:
    - status and latency: first non-null value scanning from the last
      attempt backwards
    - response shape: first non-unknown shape, forward order
    - content type: first non-null content type, forward order
    - error: all non-empty errors joined with " | ", or a generic default
    - extracted values: union of all attempts (A records), or the first
      non-empty value list (HTTPS records, descriptive only)

    Args:
        attempts: Attempts in the order they were made
        union_values: True for address checks, False for HTTPS record checks
        language: Language for the default error message

    Returns:
        A failed ProviderResult

    Raises:
        ValueError: If attempts is empty
    """
    if not attempts:
        raise ValueError("combine_failures() needs at least one attempt")

    status = next(
        (item.http_status for item in reversed(attempts) if item.http_status is not None),
        None,
    )
    latency = next(
        (item.latency_ms for item in reversed(attempts) if item.latency_ms is not None),
        None,
    )
    shape = next(
        (item.response_shape for item in attempts if item.response_shape != ResponseShape.UNKNOWN),
        ResponseShape.UNKNOWN,
    )
    content_type = next((item.content_type for item in attempts if item.content_type), None)

    errors = [item.error for item in attempts if item.error]
    if errors:
        error = " | ".join(errors)
    else:
        key = "provider.query_failed" if union_values else "provider.https_query_failed"
        error = get_message(key, language)

    values: list[str] = []
    if union_values:
        for item in attempts:
            for value in item.extracted_values:
                if value not in values:
                    values.append(value)
    else:
        values = next(
            (list(item.extracted_values) for item in attempts if item.extracted_values),
            [],
        )

    last = attempts[-1]
    return ProviderResult(
        succeeded=False,
        http_status=status,
        extracted_values=values,
        latency_ms=latency,
        response_shape=shape,
        content_type=content_type,
        raw_payload=last.raw_payload,
        error=error,
        attempted_encodings=[item.encoding for item in attempts],
        attempts=list(attempts),
        encoding=None,
        error_code=next((item.error_code for item in reversed(attempts) if item.error_code), None),
    )
