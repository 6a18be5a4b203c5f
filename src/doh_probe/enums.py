"""
Enumeration types for the DoH probe.

These enums provide type-safe constants for encodings, response shapes,
verdicts and error codes throughout the system.
"""

from enum import Enum


class RecordEncoding(Enum):
    """DoH request encoding used for one attempt."""

    JSON = "json"
    WIRE = "wire"


class ResponseShape(Enum):
    """Shape of a DoH response body, chosen from its Content-Type."""

    JSON = "json"
    WIRE = "wire"
    TEXT = "text"
    UNKNOWN = "unknown"


class CheckStatus(Enum):
    """Verdict of an A-record check against the reference resolvers."""

    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL_MATCH = "partial_match"


class TriState(Enum):
    """Three-valued comparison outcome."""

    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    def to_json(self):
        """Serialize as true/false/null."""
        if self is TriState.TRUE:
            return True
        if self is TriState.FALSE:
            return False
        return None


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ProbeErrorCode(Enum):
    """Cause of a failed attempt."""

    VALIDATION = "validation"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    JSON_DECODE = "json_decode"
    WIRE_DECODE = "wire_decode"
    TEXT_RESPONSE = "text_response"
    NO_ANSWER = "no_answer"
    UNEXPECTED = "unexpected"
