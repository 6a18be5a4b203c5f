"""
Data models for the DoH probe.

This module defines the endpoint, attempt, per-provider result and report
structures. All of them are request-scoped: built fresh for each check,
read by the comparison engine and serialized to the caller.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .enums import (
    CheckStatus,
    ProbeErrorCode,
    RecordEncoding,
    ResponseShape,
    TriState,
)


@dataclass(frozen=True)
class ProviderEndpoint:
    """A DoH endpoint to query."""

    key: str  # 'target' or a reference key such as 'cloudflare'
    url: str
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.key


# Response body variants, chosen once from the Content-Type header.

@dataclass(frozen=True)
class JsonBody:
    content: bytes


@dataclass(frozen=True)
class WireBody:
    content: bytes


@dataclass(frozen=True)
class TextBody:
    text: str


ResponseBody = Union[JsonBody, WireBody, TextBody]


@dataclass(frozen=True)
class QueryAttempt:
    """One single-encoding round trip against one endpoint."""

    encoding: RecordEncoding
    http_status: Optional[int]
    succeeded: bool
    extracted_values: list[str]  # IPs, or one HTTPS record string
    latency_ms: Optional[int]
    response_shape: ResponseShape = ResponseShape.UNKNOWN
    content_type: Optional[str] = None
    raw_payload: Any = None
    error: Optional[str] = None
    error_code: Optional[ProbeErrorCode] = None

    def to_dict(self) -> dict:
        return {
            "encoding": self.encoding.value,
            "http_status": self.http_status,
            "succeeded": self.succeeded,
            "extracted_values": list(self.extracted_values),
            "latency_ms": self.latency_ms,
            "response_shape": self.response_shape.value,
            "content_type": self.content_type,
            "raw_payload": self.raw_payload,
            "error": self.error,
            "error_code": self.error_code.value if self.error_code else None,
        }


@dataclass
class ProviderResult:
    """
    Normalized outcome for one endpoint across all of its attempts.

    Carries the fields of the winning attempt, or of a merged failure,
    plus the encodings attempted and the attempts themselves for audit.
    """

    succeeded: bool
    http_status: Optional[int]
    extracted_values: list[str]
    latency_ms: Optional[int]
    response_shape: ResponseShape
    content_type: Optional[str]
    raw_payload: Any
    error: Optional[str]
    attempted_encodings: list[RecordEncoding]
    attempts: list[QueryAttempt] = field(default_factory=list)
    encoding: Optional[RecordEncoding] = None  # encoding of the winning attempt
    error_code: Optional[ProbeErrorCode] = None

    @property
    def ips(self) -> list[str]:
        return list(self.extracted_values)

    @property
    def found(self) -> bool:
        """HTTPS checks: an ECH parameter was found."""
        return self.succeeded

    @property
    def record(self) -> Optional[str]:
        """HTTPS checks: the record string (ECH-bearing or descriptive fallback)."""
        return self.extracted_values[0] if self.extracted_values else None

    @classmethod
    def from_attempt(
        cls,
        attempt: QueryAttempt,
        attempts: list[QueryAttempt],
    ) -> "ProviderResult":
        """Report a single attempt as the provider's result."""
        return cls(
            succeeded=attempt.succeeded,
            http_status=attempt.http_status,
            extracted_values=list(attempt.extracted_values),
            latency_ms=attempt.latency_ms,
            response_shape=attempt.response_shape,
            content_type=attempt.content_type,
            raw_payload=attempt.raw_payload,
            error=attempt.error,
            attempted_encodings=[item.encoding for item in attempts],
            attempts=list(attempts),
            encoding=attempt.encoding,
            error_code=attempt.error_code,
        )

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "http_status": self.http_status,
            "extracted_values": list(self.extracted_values),
            "latency_ms": self.latency_ms,
            "response_shape": self.response_shape.value,
            "content_type": self.content_type,
            "raw_payload": self.raw_payload,
            "error": self.error,
            "error_code": self.error_code.value if self.error_code else None,
            "encoding": self.encoding.value if self.encoding else None,
            "attempted_encodings": [item.value for item in self.attempted_encodings],
            "attempts": [item.to_dict() for item in self.attempts],
        }


@dataclass
class ComparisonResult:
    """IP-set equality of the target against each reference, by reference key."""

    matches: dict[str, bool]

    def matches_reference(self, key: str) -> bool:
        return self.matches.get(key, False)

    def to_dict(self) -> dict:
        return {f"matches_{key}": value for key, value in self.matches.items()}


@dataclass
class EchComparisonResult:
    """ECH configuration comparison of the target against each reference."""

    target: ProviderResult
    references: dict[str, ProviderResult]
    matches: dict[str, TriState]
    consistent: TriState
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"target": self.target.to_dict()}
        for key, result in self.references.items():
            data[key] = result.to_dict()
        for key, match in self.matches.items():
            data[f"matches_{key}"] = match.to_json()
        data["consistent"] = self.consistent.to_json()
        data["notes"] = list(self.notes)
        return data


@dataclass
class DohCheckReport:
    """Report of an A-record check."""

    status: CheckStatus
    message: str
    details: dict[str, ProviderResult]
    comparison: ComparisonResult
    ech_comparison: Optional[EchComparisonResult] = None

    def to_dict(self) -> dict:
        data = {
            "status": self.status.value,
            "message": self.message,
            "details": {key: result.to_dict() for key, result in self.details.items()},
            "comparison": self.comparison.to_dict(),
        }
        if self.ech_comparison is not None:
            data["ech_comparison"] = self.ech_comparison.to_dict()
        return data


@dataclass
class EchCheckReport:
    """Report of an ECH (HTTPS record) check against the references."""

    ech_enabled: bool
    message: str
    providers: dict[str, ProviderResult]

    def to_dict(self) -> dict:
        return {
            "ech_enabled": self.ech_enabled,
            "message": self.message,
            "providers": {key: result.to_dict() for key, result in self.providers.items()},
        }
