"""
Query Executor module for the DoH probe.

Runs the JSON-mode and wire-mode attempts against one DoH endpoint and
folds them into a single ProviderResult. Every failure below this layer
(validation, transport, decode) is normalized into the attempt's error
field; nothing is raised to the caller.
"""

import base64
import json
from typing import Any, Callable, Optional

import httpx

from .audit_logger import AuditLogger
from .domain_validator import normalize_domain, validate_endpoint_url
from .enums import ProbeErrorCode, RecordEncoding, ResponseShape
from .exceptions import (
    DecodeError,
    DohProbeError,
    NetworkError,
    TransportTimeoutError,
    ValidationError,
)
from .failure_combiner import combine_failures
from .i18n import get_message
from .json_answer import ECH_MARKER, extract_https_record, extract_ips
from .models import (
    JsonBody,
    ProviderResult,
    QueryAttempt,
    ResponseBody,
    TextBody,
    WireBody,
)
from .name_codec import encode_name
from .transport import HttpResponse, HttpTransport, monotonic_ms
from .wire_codec import (
    TYPE_HTTPS,
    build_query,
    encode_query_base64url,
    generate_query_id,
    parse_response,
    record_type_to_number,
)


ACCEPT_HEADERS = {
    RecordEncoding.JSON: "application/dns-json",
    RecordEncoding.WIRE: "application/dns-message",
}

JSON_CONTENT_TYPES = ("application/dns-json", "application/json", "text/json")
TEXT_CONTENT_MARKERS = ("text/", "application/text")

TEXT_SNIPPET_LENGTH = 200

ENCODING_ORDER = (RecordEncoding.JSON, RecordEncoding.WIRE)


def is_json_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    normalized = content_type.lower()
    return any(marker in normalized for marker in JSON_CONTENT_TYPES)


def is_text_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    normalized = content_type.lower()
    return any(marker in normalized for marker in TEXT_CONTENT_MARKERS)


def classify_body(response: HttpResponse) -> ResponseBody:
    """
    Pick the body variant from the Content-Type header.

    JSON types take precedence over the generic text/* rule, so
    ``text/json`` is decoded as JSON.
    """
    content_type = response.content_type
    if is_json_content_type(content_type):
        return JsonBody(response.content)
    if is_text_content_type(content_type):
        return TextBody(response.content.decode("utf-8", errors="replace"))
    return WireBody(response.content)


def text_snippet(text: str) -> str:
    if len(text) > TEXT_SNIPPET_LENGTH:
        return f"{text[:TEXT_SNIPPET_LENGTH]}…"
    return text


def build_json_url(endpoint: str, name: str, record_type: str) -> str:
    url = httpx.URL(endpoint)
    url = url.copy_set_param("name", name).copy_set_param("type", record_type)
    return str(url)


def build_wire_url(endpoint: str, name: str, record_type: str,
                   id_source: Callable[[], int] = generate_query_id) -> str:
    message = build_query(name, record_type_to_number(record_type), id_source)
    url = httpx.URL(endpoint)
    url = url.copy_remove_param("name").copy_remove_param("type")
    return str(url.copy_set_param("dns", encode_query_base64url(message)))


def wire_raw_payload(content: bytes, content_type: Optional[str]) -> dict:
    return {
        "format": "dns-message",
        "content_type": content_type,
        "base64": base64.b64encode(content).decode("ascii"),
    }


class QueryExecutor:
    """
    Executes DoH attempts against one endpoint at a time.

    A-record checks always run both encodings. HTTPS-record checks stop
    at the first attempt that finds an ECH parameter.
    """

    COMPONENT = "query_executor"

    def __init__(
        self,
        transport: HttpTransport,
        clock: Callable[[], float] = monotonic_ms,
        id_source: Callable[[], int] = generate_query_id,
        logger: Optional[AuditLogger] = None,
        language: Optional[str] = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            transport: HTTP GET capability
            clock: Monotonic millisecond clock used for latency
            id_source: Source of 16-bit wire query IDs
            logger: Optional audit logger for per-attempt entries
            language: Language for error messages
        """
        self._transport = transport
        self._clock = clock
        self._id_source = id_source
        self._logger = logger
        self._language = language

    def _msg(self, key: str, **kwargs) -> str:
        return get_message(key, self._language, **kwargs)

    def _build_url(self, endpoint_url: str, name: str, record_type: str,
                   encoding: RecordEncoding) -> str:
        endpoint = validate_endpoint_url(endpoint_url)
        domain = normalize_domain(name)
        # Both encodings reject a bad type token or label before sending.
        record_type_to_number(record_type)
        encode_name(domain)
        if encoding == RecordEncoding.JSON:
            return build_json_url(endpoint, domain, record_type)
        return build_wire_url(endpoint, domain, record_type, self._id_source)

    async def perform_attempt(
        self,
        endpoint_url: str,
        name: str,
        record_type: str,
        encoding: RecordEncoding,
        timeout_ms: int,
    ) -> QueryAttempt:
        """
        Perform one single-encoding round trip.

        Args:
            endpoint_url: DoH endpoint URL
            name: Domain (or URL) to query
            record_type: "A", "AAAA", "HTTPS" or a numeric type string
            encoding: JSON or wire mode
            timeout_ms: Hard upper bound on the round trip

        Returns:
            The finished attempt; a fault raised by the transport becomes a
            failed attempt instead of propagating
        """
        https_mode = str(record_type).strip().upper() == "HTTPS" or (
            str(record_type).strip() == str(TYPE_HTTPS)
        )

        try:
            url = self._build_url(endpoint_url, name, record_type, encoding)
        except (ValidationError, httpx.InvalidURL) as e:
            detail = e.message if isinstance(e, ValidationError) else str(e)
            return QueryAttempt(
                encoding=encoding,
                http_status=None,
                succeeded=False,
                extracted_values=[],
                latency_ms=None,
                error=self._msg("attempt.validation_failed", error=detail),
                error_code=ProbeErrorCode.VALIDATION,
            )

        headers = {"Accept": ACCEPT_HEADERS[encoding]}
        started = self._clock()
        try:
            response = await self._transport.perform(url, headers, timeout_ms)
        except TransportTimeoutError:
            attempt = QueryAttempt(
                encoding=encoding,
                http_status=None,
                succeeded=False,
                extracted_values=[],
                latency_ms=None,
                error=self._msg("attempt.timeout", timeout_ms=timeout_ms),
                error_code=ProbeErrorCode.TIMEOUT,
            )
            self._log(attempt, url)
            return attempt
        except NetworkError as e:
            attempt = QueryAttempt(
                encoding=encoding,
                http_status=None,
                succeeded=False,
                extracted_values=[],
                latency_ms=None,
                error=self._msg("attempt.network_error", error=e.message),
                error_code=ProbeErrorCode.NETWORK_ERROR,
            )
            self._log(attempt, url)
            return attempt
        except Exception as e:
            attempt = QueryAttempt(
                encoding=encoding,
                http_status=None,
                succeeded=False,
                extracted_values=[],
                latency_ms=None,
                error=self._msg("provider.unexpected_error", error=describe_error(e)),
                error_code=ProbeErrorCode.UNEXPECTED,
            )
            self._log(attempt, url)
            return attempt
        latency_ms = int(round(self._clock() - started))

        attempt = self._decode(response, encoding, latency_ms, https_mode)
        self._log(attempt, url)
        return attempt

    def _decode(
        self,
        response: HttpResponse,
        encoding: RecordEncoding,
        latency_ms: int,
        https_mode: bool,
    ) -> QueryAttempt:
        body = classify_body(response)
        content_type = response.content_type
        common: dict[str, Any] = {
            "encoding": encoding,
            "http_status": response.status_code,
            "latency_ms": latency_ms,
            "content_type": content_type,
        }

        if isinstance(body, JsonBody):
            try:
                parsed = json.loads(body.content)
            except (ValueError, UnicodeDecodeError) as e:
                return QueryAttempt(
                    succeeded=False,
                    extracted_values=[],
                    response_shape=ResponseShape.JSON,
                    raw_payload=None,
                    error=self._msg("attempt.json_decode_failed", error=str(e)),
                    error_code=ProbeErrorCode.JSON_DECODE,
                    **common,
                )
            if https_mode:
                record = extract_https_record(parsed)
                found = record is not None and ECH_MARKER in record
                return QueryAttempt(
                    succeeded=found,
                    extracted_values=[record] if record else [],
                    response_shape=ResponseShape.JSON,
                    raw_payload=parsed,
                    error=None if found else self._msg("attempt.no_ech"),
                    error_code=None if found else ProbeErrorCode.NO_ANSWER,
                    **common,
                )
            ips = extract_ips(parsed)
            ok = response.ok and bool(ips)
            return QueryAttempt(
                succeeded=ok,
                extracted_values=ips,
                response_shape=ResponseShape.JSON,
                raw_payload=parsed,
                error=None if ok else self._failure_reason(response, ips),
                error_code=None if ok else ProbeErrorCode.NO_ANSWER,
                **common,
            )

        if isinstance(body, TextBody):
            snippet = text_snippet(body.text)
            if snippet:
                error = self._msg("attempt.text_response", snippet=snippet)
            else:
                error = self._msg("attempt.text_response_empty")
            return QueryAttempt(
                succeeded=False,
                extracted_values=[],
                response_shape=ResponseShape.TEXT,
                raw_payload=snippet,
                error=error,
                error_code=ProbeErrorCode.TEXT_RESPONSE,
                **common,
            )

        raw = wire_raw_payload(body.content, content_type)
        try:
            message = parse_response(body.content)
        except DecodeError as e:
            return QueryAttempt(
                succeeded=False,
                extracted_values=[],
                response_shape=ResponseShape.WIRE,
                raw_payload=raw,
                error=self._msg("attempt.wire_decode_failed", error=e.message),
                error_code=ProbeErrorCode.WIRE_DECODE,
                **common,
            )
        if https_mode:
            found = message.found_ech
            values = [message.https_record.describe()] if message.https_record else []
            if found:
                error = None
            elif message.truncated_reason:
                error = self._msg("attempt.wire_truncated", reason=message.truncated_reason)
            else:
                error = self._msg("attempt.no_ech")
            return QueryAttempt(
                succeeded=found,
                extracted_values=values,
                response_shape=ResponseShape.WIRE,
                raw_payload=raw,
                error=error,
                error_code=None if found else ProbeErrorCode.NO_ANSWER,
                **common,
            )
        ips = list(message.addresses)
        ok = response.ok and bool(ips)
        if ok:
            error = None
        elif message.truncated_reason and not ips:
            error = self._msg("attempt.wire_truncated", reason=message.truncated_reason)
        else:
            error = self._failure_reason(response, ips)
        return QueryAttempt(
            succeeded=ok,
            extracted_values=ips,
            response_shape=ResponseShape.WIRE,
            raw_payload=raw,
            error=error,
            error_code=None if ok else ProbeErrorCode.NO_ANSWER,
            **common,
        )

    def _failure_reason(self, response: HttpResponse, ips: list[str]) -> str:
        if not response.ok:
            return self._msg("attempt.http_status", status=response.status_code)
        return self._msg("attempt.no_addresses")

    def _log(self, attempt: QueryAttempt, url: str) -> None:
        if self._logger is not None:
            self._logger.log_attempt(self.COMPONENT, attempt, url)

    async def query_a_records(
        self,
        endpoint_url: str,
        domain: str,
        timeout_ms: int,
        record_type: str = "A",
    ) -> ProviderResult:
        """
        Query address records with both encodings, always.

        Returns:
            The first successful attempt in [json, wire] order, or the
            merged failure of both attempts
        """
        attempts = []
        for encoding in ENCODING_ORDER:
            attempts.append(
                await self.perform_attempt(endpoint_url, domain, record_type, encoding, timeout_ms)
            )

        for attempt in attempts:
            if attempt.succeeded:
                return ProviderResult.from_attempt(attempt, attempts)
        return combine_failures(attempts, union_values=True, language=self._language)

    async def query_https_record(
        self,
        endpoint_url: str,
        domain: str,
        timeout_ms: int,
    ) -> ProviderResult:
        """
        Look for an ECH-bearing HTTPS record, JSON first.

        Returns as soon as one attempt finds an ECH parameter; otherwise
        merges the attempts made.
        """
        attempts: list[QueryAttempt] = []
        for encoding in ENCODING_ORDER:
            attempt = await self.perform_attempt(
                endpoint_url, domain, str(TYPE_HTTPS), encoding, timeout_ms
            )
            attempts.append(attempt)
            if attempt.succeeded:
                return ProviderResult.from_attempt(attempt, attempts)
        return combine_failures(attempts, union_values=False, language=self._language)


def describe_error(error: BaseException) -> str:
    if isinstance(error, DohProbeError):
        return error.message
    return str(error) or type(error).__name__


def unexpected_failure(
    error: BaseException,
    language: Optional[str] = None,
) -> ProviderResult:
    """Wrap a fault that escaped a provider query into a failed result."""
    detail = describe_error(error)
    return ProviderResult(
        succeeded=False,
        http_status=None,
        extracted_values=[],
        latency_ms=None,
        response_shape=ResponseShape.UNKNOWN,
        content_type=None,
        raw_payload=None,
        error=get_message("provider.unexpected_error", language, error=detail),
        attempted_encodings=list(ENCODING_ORDER),
        attempts=[],
        error_code=ProbeErrorCode.UNEXPECTED,
    )
