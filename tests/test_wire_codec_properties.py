"""
Property-based tests for the DNS wire message codec.

Covers query construction, record type mapping, response parsing with
A/AAAA/HTTPS answers, and the partial-result policy for truncated
answer sections.
"""

import base64
import struct

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from doh_probe.exceptions import DecodeError, LabelTooLongError, UnsupportedRecordTypeError
from doh_probe.name_codec import encode_name
from doh_probe.wire_codec import (
    FLAG_RECURSION_DESIRED,
    TYPE_A,
    TYPE_AAAA,
    TYPE_HTTPS,
    WireReader,
    build_query,
    encode_query_base64url,
    format_ipv6,
    parse_response,
    parse_svcb_rdata,
    record_type_to_number,
)

from doh_stubs import (
    a_rdata,
    aaaa_rdata,
    build_answer_message,
    svcb_rdata,
    wire_a_message,
    wire_https_message,
)


ipv4_strategy = st.tuples(*[st.integers(min_value=0, max_value=255)] * 4).map(
    lambda octets: ".".join(str(o) for o in octets)
)


class TestBuildQuery:
    """Query messages have the fixed header layout and one question."""

    @given(query_id=st.integers(min_value=0, max_value=0xFFFF))
    @settings(max_examples=100)
    def test_header_layout(self, query_id: int) -> None:
        """
        *For any* transaction ID, the header SHALL carry that ID, only the
        recursion-desired flag, QDCOUNT=1 and zero other counts.
        """
        message = build_query("example.com", TYPE_A, id_source=lambda: query_id)

        header = struct.unpack("!HHHHHH", message[:12])
        assert header == (query_id, FLAG_RECURSION_DESIRED, 1, 0, 0, 0)

    def test_question_section(self) -> None:
        message = build_query("example.com", TYPE_HTTPS, id_source=lambda: 7)

        question = message[12:]
        assert question == encode_name("example.com") + struct.pack("!HH", 65, 1)

    def test_long_label_rejected(self) -> None:
        with pytest.raises(LabelTooLongError):
            build_query("a" * 64 + ".com", TYPE_A)

    def test_default_id_is_16_bit(self) -> None:
        for _ in range(20):
            (query_id,) = struct.unpack("!H", build_query("example.com", TYPE_A)[:2])
            assert 0 <= query_id <= 0xFFFF

    def test_base64url_has_no_padding(self) -> None:
        message = build_query("example.com", TYPE_A, id_source=lambda: 0xABCD)
        encoded = encode_query_base64url(message)

        assert "=" not in encoded
        assert "+" not in encoded and "/" not in encoded
        padded = encoded + "=" * (-len(encoded) % 4)
        assert base64.urlsafe_b64decode(padded) == message


class TestRecordTypeMapping:
    """Record type tokens map to QTYPE numbers."""

    @pytest.mark.parametrize("token,expected", [
        ("A", 1), ("a", 1), ("AAAA", 28), ("aaaa", 28), ("HTTPS", 65), ("https", 65),
    ])
    def test_named_types(self, token: str, expected: int) -> None:
        assert record_type_to_number(token) == expected

    @given(value=st.integers(min_value=1, max_value=0xFFFF))
    @settings(max_examples=100)
    def test_numeric_passthrough(self, value: int) -> None:
        """*For any* positive 16-bit integer string, the number SHALL pass through."""
        assert record_type_to_number(str(value)) == value

    @pytest.mark.parametrize("token", ["MX", "", "0", "-1", "65536", "1.5", "A A"])
    def test_unsupported_tokens(self, token: str) -> None:
        with pytest.raises(UnsupportedRecordTypeError):
            record_type_to_number(token)


class TestParseAddresses:
    """A and AAAA answers are extracted and de-duplicated."""

    @given(ips=st.lists(ipv4_strategy, min_size=1, max_size=8))
    @settings(max_examples=100)
    def test_a_records_extracted(self, ips: list[str]) -> None:
        """*For any* list of A answers, the address set SHALL equal the input set."""
        message = parse_response(wire_a_message(*ips))

        assert set(message.addresses) == set(ips)
        assert len(message.addresses) == len(set(ips))

    def test_duplicate_addresses_collapse(self) -> None:
        message = parse_response(wire_a_message("1.1.1.1", "1.1.1.1", "8.8.8.8"))
        assert message.addresses == ["1.1.1.1", "8.8.8.8"]

    def test_aaaa_formatting(self) -> None:
        groups = [0x2606, 0x4700, 0, 0, 0, 0, 0x6810, 0x84E5]
        buffer = build_answer_message([(TYPE_AAAA, aaaa_rdata(groups))], qtype=TYPE_AAAA)

        message = parse_response(buffer)

        assert message.addresses == ["2606:4700:0:0:0:0:6810:84e5"]

    def test_wrong_rdata_length_ignored(self) -> None:
        buffer = build_answer_message([(TYPE_A, b"\x01\x02\x03"), (TYPE_AAAA, b"\x00" * 4)])
        assert parse_response(buffer).addresses == []

    def test_other_types_skipped(self) -> None:
        cname = encode_name("alias.example.net")
        buffer = build_answer_message([(5, cname), (TYPE_A, a_rdata("93.184.216.34"))])

        message = parse_response(buffer)

        assert message.addresses == ["93.184.216.34"]
        assert [record.rtype for record in message.answers] == [5, TYPE_A]

    def test_question_is_parsed(self) -> None:
        message = parse_response(wire_a_message("1.2.3.4"))

        assert message.header.qdcount == 1
        assert message.questions[0].name == "example.com"
        assert message.questions[0].qtype == TYPE_A

    def test_format_ipv6_has_eight_groups(self) -> None:
        assert format_ipv6(bytes(16)) == "0:0:0:0:0:0:0:0"


class TestTruncation:
    """Answer-section damage yields partial results; header damage raises."""

    def test_short_header_raises(self) -> None:
        with pytest.raises(DecodeError):
            parse_response(b"\x00\x01\x02")

    def test_truncated_question_raises(self) -> None:
        header = struct.pack("!HHHHHH", 1, 0x8180, 1, 0, 0, 0)
        with pytest.raises(DecodeError):
            parse_response(header + b"\x07exam")

    def test_truncated_answer_keeps_earlier_records(self) -> None:
        buffer = wire_a_message("1.1.1.1", "8.8.8.8")
        # Drop the last two bytes of the second record's rdata.
        message = parse_response(buffer[:-2])

        assert message.addresses == ["1.1.1.1"]
        assert message.truncated_reason is not None

    def test_rdlength_past_end(self) -> None:
        header = struct.pack("!HHHHHH", 1, 0x8180, 1, 1, 0, 0)
        question = encode_name("example.com") + struct.pack("!HH", 1, 1)
        answer = b"\xc0\x0c" + struct.pack("!HHIH", TYPE_A, 1, 60, 400) + b"\x01\x02\x03\x04"

        message = parse_response(header + question + answer)

        assert message.addresses == []
        assert message.truncated_reason

    def test_answer_count_larger_than_records(self) -> None:
        buffer = wire_a_message("1.1.1.1")
        inflated = buffer[:6] + struct.pack("!H", 5) + buffer[8:]

        message = parse_response(inflated)

        assert message.addresses == ["1.1.1.1"]
        assert message.truncated_reason

    @given(data=st.binary(max_size=80))
    @settings(max_examples=200)
    def test_arbitrary_bytes_never_crash(self, data: bytes) -> None:
        """*For any* byte string, parsing SHALL return or raise DecodeError only."""
        try:
            parse_response(data)
        except DecodeError:
            pass


class TestSvcbDecoding:
    """SVCB/HTTPS rdata decoding and ECH extraction."""

    def test_ech_parameter_detected(self) -> None:
        rdata = svcb_rdata(1, b"\x00", [(5, b"\xde\xad")])

        record = parse_svcb_rdata(rdata, 0, len(rdata))

        assert record is not None
        assert record.priority == 1
        assert record.target_name == ""
        assert record.has_ech is True
        assert record.ech_config_base64 == base64.b64encode(b"\xde\xad").decode("ascii")
        assert record.ech_config_base64 == "3q0="

    def test_description_lists_params(self) -> None:
        rdata = svcb_rdata(1, b"\x00", [(1, b"\x02h2"), (5, b"\xde\xad")])

        record = parse_svcb_rdata(rdata, 0, len(rdata))

        assert record.describe() == "priority=1 target=. params=[key1(3B), key5(2B)] echconfig(base64)=3q0="

    def test_no_ech_parameter(self) -> None:
        rdata = svcb_rdata(1, b"\x00", [(1, b"\x02h2")])

        record = parse_svcb_rdata(rdata, 0, len(rdata))

        assert record.has_ech is False
        assert record.ech_config_base64 is None
        assert "echconfig" not in record.describe()

    def test_too_short_rdata(self) -> None:
        assert parse_svcb_rdata(b"\x00\x01", 0, 2) is None

    def test_overrunning_param_ends_list(self) -> None:
        rdata = svcb_rdata(1, b"\x00", [(1, b"\x02h2")]) + struct.pack("!HH", 5, 50) + b"\x01"

        record = parse_svcb_rdata(rdata, 0, len(rdata))

        assert [p.key for p in record.params] == [1]

    def test_compressed_target_name(self) -> None:
        buffer = encode_name("svc.example") + svcb_rdata(2, b"\xc0\x00", [])
        offset = len(encode_name("svc.example"))

        record = parse_svcb_rdata(buffer, offset, len(buffer) - offset)

        assert record.target_name == "svc.example"
        assert record.describe() == "priority=2 target=svc.example"

    @given(value=st.binary(min_size=1, max_size=64))
    @settings(max_examples=100)
    def test_ech_value_round_trip(self, value: bytes) -> None:
        """*For any* ECH value, the base64 string SHALL encode the raw value bytes."""
        message = parse_response(wire_https_message([(5, value)]))

        assert message.found_ech
        assert base64.b64decode(message.https_record.ech_config_base64) == value

    def test_first_ech_record_preferred(self) -> None:
        plain = svcb_rdata(1, b"\x00", [(1, b"\x02h2")])
        with_ech = svcb_rdata(2, b"\x00", [(5, b"\x01\x02")])
        buffer = build_answer_message([(TYPE_HTTPS, plain), (TYPE_HTTPS, with_ech)], qtype=TYPE_HTTPS)

        message = parse_response(buffer)

        assert message.found_ech
        assert message.https_record.priority == 2

    def test_fallback_record_without_ech(self) -> None:
        first = svcb_rdata(1, b"\x00", [(1, b"\x02h2")])
        second = svcb_rdata(3, b"\x00", [])
        buffer = build_answer_message([(TYPE_HTTPS, first), (TYPE_HTTPS, second)], qtype=TYPE_HTTPS)

        message = parse_response(buffer)

        assert message.found_ech is False
        assert message.https_record is not None
        assert message.https_record.priority == 1


class TestWireReader:
    """The cursor refuses reads past its end."""

    def test_read_past_end_raises(self) -> None:
        reader = WireReader(b"\x00\x01\x02")
        assert reader.read_u16() == 1
        with pytest.raises(DecodeError):
            reader.read_u16()

    def test_end_bound_respected(self) -> None:
        reader = WireReader(b"\x00\x01\x02\x03\x04\x05", offset=0, end=4)
        reader.read_u16()
        reader.read_u16()
        assert reader.remaining == 0
        with pytest.raises(DecodeError):
            reader.read_bytes(1)
