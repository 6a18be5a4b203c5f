"""
DoH Probe - DNS-over-HTTPS diagnostic probe.

This package queries a target DoH endpoint and authoritative reference
resolvers in both the JSON and the wire (RFC 8484) encodings, and compares
their A answers and the ECH parameter of their HTTPS records.
"""

__version__ = "0.1.0"
__author__ = "DoH Probe Team"

from doh_probe.exceptions import (
    DohProbeError,
    ValidationError,
    LabelTooLongError,
    UnsupportedRecordTypeError,
    DecodeError,
    MalformedNameError,
    MalformedMessageError,
    NetworkError,
    TransportTimeoutError,
)
from doh_probe.enums import (
    RecordEncoding,
    ResponseShape,
    CheckStatus,
    TriState,
    LogLevel,
    ProbeErrorCode,
)
from doh_probe.domain_validator import (
    normalize_domain,
    validate_endpoint_url,
)
from doh_probe.name_codec import (
    encode_name,
    decode_name,
)
from doh_probe.wire_codec import (
    DnsHeader,
    DnsQuestion,
    ResourceRecord,
    SvcParam,
    SvcbRecord,
    ParsedMessage,
    WireReader,
    build_query,
    parse_response,
    parse_svcb_rdata,
    record_type_to_number,
)
from doh_probe.json_answer import (
    extract_ips,
    extract_https_record,
)
from doh_probe.models import (
    ProviderEndpoint,
    QueryAttempt,
    ProviderResult,
    ComparisonResult,
    EchComparisonResult,
    DohCheckReport,
    EchCheckReport,
)
from doh_probe.transport import (
    HttpTransport,
    HttpResponse,
    HttpxTransport,
)
from doh_probe.failure_combiner import (
    combine_failures,
)
from doh_probe.query_executor import (
    QueryExecutor,
)
from doh_probe.comparison_engine import (
    ComparisonEngine,
    extract_ech_config_string,
)
from doh_probe.checker import (
    check_a_records,
    check_ech,
)
from doh_probe.config import (
    LoggingConfig,
    ProbeConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from doh_probe.audit_logger import (
    AuditLogger,
    LogEntry,
)
from doh_probe.i18n import (
    get_message,
    get_all_message_keys,
    has_translation,
    get_missing_translations,
    validate_translations,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from doh_probe.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "DohProbeError",
    "ValidationError",
    "LabelTooLongError",
    "UnsupportedRecordTypeError",
    "DecodeError",
    "MalformedNameError",
    "MalformedMessageError",
    "NetworkError",
    "TransportTimeoutError",
    # Enums
    "RecordEncoding",
    "ResponseShape",
    "CheckStatus",
    "TriState",
    "LogLevel",
    "ProbeErrorCode",
    # Domain Validator
    "normalize_domain",
    "validate_endpoint_url",
    # Name Codec
    "encode_name",
    "decode_name",
    # Wire Codec
    "DnsHeader",
    "DnsQuestion",
    "ResourceRecord",
    "SvcParam",
    "SvcbRecord",
    "ParsedMessage",
    "WireReader",
    "build_query",
    "parse_response",
    "parse_svcb_rdata",
    "record_type_to_number",
    # JSON Answers
    "extract_ips",
    "extract_https_record",
    # Models
    "ProviderEndpoint",
    "QueryAttempt",
    "ProviderResult",
    "ComparisonResult",
    "EchComparisonResult",
    "DohCheckReport",
    "EchCheckReport",
    # Transport
    "HttpTransport",
    "HttpResponse",
    "HttpxTransport",
    # Failure Combiner
    "combine_failures",
    # Query Executor
    "QueryExecutor",
    # Comparison Engine
    "ComparisonEngine",
    "extract_ech_config_string",
    # Checker
    "check_a_records",
    "check_ech",
    # Configuration
    "LoggingConfig",
    "ProbeConfig",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # I18n
    "get_message",
    "get_all_message_keys",
    "has_translation",
    "get_missing_translations",
    "validate_translations",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # CLI
    "cli_main",
    "create_parser",
]
