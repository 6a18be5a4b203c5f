"""
DNS wire-format message codec.

Builds minimal query messages and parses response messages into
questions and answer records. Parsing goes through WireReader, a small
cursor whose every read is bounds-checked, so a malformed message can
only ever raise a DecodeError or end parsing early.

Answer-section problems (a record running past the buffer, a bad owner
name) stop parsing and keep whatever was collected so far; header and
question-section problems raise MalformedMessageError.
"""

import base64
import secrets
import struct
from dataclasses import dataclass, field
from typing import Callable, Optional

from .exceptions import (
    DecodeError,
    MalformedMessageError,
    UnsupportedRecordTypeError,
)
from .name_codec import decode_name, encode_name


HEADER_LENGTH = 12
FLAG_RECURSION_DESIRED = 0x0100
CLASS_IN = 1

TYPE_A = 1
TYPE_AAAA = 28
TYPE_HTTPS = 65

SVC_PARAM_ECH = 5

RECORD_TYPES = {
    "A": TYPE_A,
    "AAAA": TYPE_AAAA,
    "HTTPS": TYPE_HTTPS,
}


@dataclass
class DnsHeader:
    """Fixed 12-byte DNS message header."""

    id: int
    flags: int
    qdcount: int
    ancount: int
    nscount: int
    arcount: int


@dataclass
class DnsQuestion:
    """A single question section entry."""

    name: str
    qtype: int
    qclass: int


@dataclass
class ResourceRecord:
    """A single answer section resource record."""

    name: str
    rtype: int
    rclass: int
    ttl: int
    rdata: bytes


@dataclass
class SvcParam:
    """One SvcParamKey/SvcParamValue pair of an SVCB/HTTPS record."""

    key: int
    value: bytes


@dataclass
class SvcbRecord:
    """Decoded SVCB/HTTPS record data."""

    priority: int
    target_name: str
    params: list[SvcParam] = field(default_factory=list)

    @property
    def has_ech(self) -> bool:
        return any(param.key == SVC_PARAM_ECH for param in self.params)

    @property
    def ech_config_base64(self) -> Optional[str]:
        """Base64 of the raw ECH parameter value, if present."""
        for param in self.params:
            if param.key == SVC_PARAM_ECH:
                return base64.b64encode(param.value).decode("ascii")
        return None

    def describe(self) -> str:
        """
        Human-readable record string.

        Example: ``priority=1 target=. params=[key1(3B), key5(2B)] echconfig(base64)=3q0=``
        """
        text = f"priority={self.priority} target={self.target_name or '.'}"
        if self.params:
            listing = ", ".join(f"key{p.key}({len(p.value)}B)" for p in self.params)
            text += f" params=[{listing}]"
        if self.has_ech:
            text += f" echconfig(base64)={self.ech_config_base64}"
        return text


@dataclass
class ParsedMessage:
    """Result of parsing a DNS response message."""

    header: DnsHeader
    questions: list[DnsQuestion] = field(default_factory=list)
    answers: list[ResourceRecord] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    https_record: Optional[SvcbRecord] = None
    truncated_reason: Optional[str] = None

    @property
    def found_ech(self) -> bool:
        return self.https_record is not None and self.https_record.has_ech


class WireReader:
    """Bounds-checked read cursor over a DNS message."""

    def __init__(self, buffer: bytes, offset: int = 0, end: Optional[int] = None) -> None:
        self.buffer = buffer
        self.offset = offset
        self.end = len(buffer) if end is None else min(end, len(buffer))

    @property
    def remaining(self) -> int:
        return self.end - self.offset

    def _require(self, count: int, what: str) -> None:
        if count > self.remaining:
            raise MalformedMessageError(
                code="truncated",
                message=f"Message truncated while reading {what}",
                details={"offset": self.offset, "needed": count, "available": self.remaining},
            )

    def read_u16(self, what: str = "uint16") -> int:
        self._require(2, what)
        (value,) = struct.unpack_from("!H", self.buffer, self.offset)
        self.offset += 2
        return value

    def read_u32(self, what: str = "uint32") -> int:
        self._require(4, what)
        (value,) = struct.unpack_from("!I", self.buffer, self.offset)
        self.offset += 4
        return value

    def read_bytes(self, count: int, what: str = "bytes") -> bytes:
        self._require(count, what)
        data = self.buffer[self.offset:self.offset + count]
        self.offset += count
        return data

    def skip(self, count: int, what: str = "bytes") -> None:
        self._require(count, what)
        self.offset += count

    def read_name(self) -> str:
        # Compression pointers may reach anywhere in the full message.
        name, consumed = decode_name(self.buffer, self.offset)
        self._require(consumed, "name")
        self.offset += consumed
        return name


def record_type_to_number(record_type: str) -> int:
    """
    Map a record type token to its numeric QTYPE.

    Args:
        record_type: "A", "AAAA", "HTTPS" (case-insensitive) or a positive
            integer string

    Returns:
        Numeric record type

    Raises:
        UnsupportedRecordTypeError: For any other token
    """
    token = str(record_type).strip()
    known = RECORD_TYPES.get(token.upper())
    if known is not None:
        return known
    if token.isdigit():
        value = int(token)
        if 0 < value <= 0xFFFF:
            return value
    raise UnsupportedRecordTypeError(
        code="unsupported_record_type",
        message=f"Unsupported DNS record type: {record_type}",
        details={"record_type": record_type},
    )


def generate_query_id() -> int:
    """Random 16-bit transaction ID."""
    return secrets.randbelow(0x10000)


def build_query(
    name: str,
    record_type: int,
    id_source: Callable[[], int] = generate_query_id,
) -> bytes:
    """
    Build a recursion-desired query with a single question.

    Args:
        name: Domain name to query
        record_type: Numeric QTYPE
        id_source: Callable returning the 16-bit transaction ID

    Returns:
        The encoded query message

    Raises:
        LabelTooLongError: If a label of name exceeds 63 bytes
    """
    header = struct.pack(
        "!HHHHHH",
        id_source() & 0xFFFF,
        FLAG_RECURSION_DESIRED,
        1,
        0,
        0,
        0,
    )
    question = encode_name(name) + struct.pack("!HH", record_type, CLASS_IN)
    return header + question


def encode_query_base64url(message: bytes) -> str:
    """Base64url without padding, as used by the dns= GET parameter."""
    return base64.urlsafe_b64encode(message).decode("ascii").rstrip("=")


def format_ipv4(data: bytes) -> str:
    return ".".join(str(octet) for octet in data)


def format_ipv6(data: bytes) -> str:
    groups = struct.unpack("!8H", data)
    return ":".join(format(group, "x") for group in groups)


def parse_svcb_rdata(buffer: bytes, offset: int, rdlength: int) -> Optional[SvcbRecord]:
    """
    Decode SVCB/HTTPS rdata located at buffer[offset:offset + rdlength].

    The target name may be compressed. Parameters are consumed until the
    rdata is exhausted; a parameter whose declared length overruns the
    rdata ends the parameter list.

    Returns:
        The decoded record, or None if the rdata is too short to hold a
        priority and a target name
    """
    if rdlength < 3:
        return None
    reader = WireReader(buffer, offset, offset + rdlength)
    priority = reader.read_u16("SVCB priority")
    target_name = reader.read_name()

    params: list[SvcParam] = []
    while reader.remaining >= 4:
        key = reader.read_u16("SvcParamKey")
        length = reader.read_u16("SvcParamValue length")
        if length > reader.remaining:
            break
        params.append(SvcParam(key=key, value=reader.read_bytes(length)))

    return SvcbRecord(priority=priority, target_name=target_name, params=params)


def parse_header(reader: WireReader) -> DnsHeader:
    if reader.remaining < HEADER_LENGTH:
        raise MalformedMessageError(
            code="short_message",
            message=f"DNS message too short ({reader.remaining} bytes)",
            details={"length": reader.remaining},
        )
    values = [reader.read_u16("header") for _ in range(6)]
    return DnsHeader(*values)


def parse_response(buffer: bytes) -> ParsedMessage:
    """
    Parse a DNS response message.

    A/AAAA answers are collected into a de-duplicated address list; the
    first HTTPS record carrying an ECH parameter is kept, or else the first
    HTTPS record seen.

    Args:
        buffer: The raw response body

    Returns:
        ParsedMessage with whatever could be decoded

    Raises:
        DecodeError: If the header or question section is malformed
    """
    reader = WireReader(buffer)
    header = parse_header(reader)
    message = ParsedMessage(header=header)

    for _ in range(header.qdcount):
        name = reader.read_name()
        qtype = reader.read_u16("question type")
        qclass = reader.read_u16("question class")
        message.questions.append(DnsQuestion(name=name, qtype=qtype, qclass=qclass))

    fallback: Optional[SvcbRecord] = None
    seen: set[str] = set()

    for index in range(header.ancount):
        try:
            record = _read_record(reader)
        except DecodeError as e:
            message.truncated_reason = f"answer {index}: {e.message}"
            break

        message.answers.append(record)
        if record.rtype == TYPE_A and len(record.rdata) == 4:
            _add_address(message, seen, format_ipv4(record.rdata))
        elif record.rtype == TYPE_AAAA and len(record.rdata) == 16:
            _add_address(message, seen, format_ipv6(record.rdata))
        elif record.rtype == TYPE_HTTPS and message.https_record is None:
            rdata_offset = reader.offset - len(record.rdata)
            # The record itself was fully read, so a bad rdata only skips it.
            try:
                svcb = parse_svcb_rdata(buffer, rdata_offset, len(record.rdata))
            except DecodeError:
                continue
            if svcb is None:
                continue
            if svcb.has_ech:
                message.https_record = svcb
            elif fallback is None:
                fallback = svcb

    if message.https_record is None:
        message.https_record = fallback
    return message


def _read_record(reader: WireReader) -> ResourceRecord:
    name = reader.read_name()
    rtype = reader.read_u16("record type")
    rclass = reader.read_u16("record class")
    ttl = reader.read_u32("record TTL")
    rdlength = reader.read_u16("record length")
    rdata = reader.read_bytes(rdlength, "record data")
    return ResourceRecord(name=name, rtype=rtype, rclass=rclass, ttl=ttl, rdata=rdata)


def _add_address(message: ParsedMessage, seen: set[str], address: str) -> None:
    if address not in seen:
        seen.add(address)
        message.addresses.append(address)
