"""
Exception classes for the DoH probe.

All exceptions inherit from DohProbeError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class DohProbeError(Exception):
    """Base exception for all DoH probe errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DohProbeError):
    """Raised when a domain, endpoint or record type is rejected before sending."""

    pass


class LabelTooLongError(ValidationError):
    """Raised when a domain label exceeds 63 bytes."""

    pass


class UnsupportedRecordTypeError(ValidationError):
    """Raised when a record type token cannot be mapped to a QTYPE."""

    pass


class DecodeError(DohProbeError):
    """Raised when a DNS response cannot be decoded."""

    pass


class MalformedNameError(DecodeError):
    """Raised for bad compression pointers, pointer loops and truncated labels."""

    pass


class MalformedMessageError(DecodeError):
    """Raised when the header or question section of a message is truncated."""

    pass


class NetworkError(DohProbeError):
    """Raised when the HTTP round trip fails below the HTTP layer."""

    pass


class TransportTimeoutError(NetworkError):
    """Raised when the HTTP round trip exceeds its timeout."""

    pass
