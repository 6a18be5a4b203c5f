"""
Property-based tests for the check entry points.

Exercises check_a_records and check_ech end to end over StubTransport.
"""

import asyncio
import json
from io import StringIO

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from doh_probe.audit_logger import AuditLogger
from doh_probe.checker import check_a_records, check_ech
from doh_probe.enums import CheckStatus, LogLevel, RecordEncoding, TriState
from doh_probe.exceptions import ValidationError
from doh_probe.i18n import get_message
from doh_probe.models import ProviderEndpoint

from doh_stubs import (
    JSON_ACCEPT,
    WIRE_ACCEPT,
    FakeClock,
    StubTransport,
    a_answer_body,
    https_answer_body,
    json_response,
    timeout_error,
    wire_a_message,
    wire_response,
)


TARGET = ProviderEndpoint(key="target", url="https://doh.example/dns-query")
CLOUDFLARE = ProviderEndpoint(key="cloudflare", url="https://cloudflare-dns.com/dns-query", label="Cloudflare")
GOOGLE = ProviderEndpoint(key="google", url="https://dns.google/resolve", label="Google")
REFERENCES = [CLOUDFLARE, GOOGLE]


def a_routes(endpoint: ProviderEndpoint, *ips: str) -> dict:
    return {
        (endpoint.url, JSON_ACCEPT): lambda url: (
            json_response(https_answer_body(None)) if "type=65" in url
            else json_response(a_answer_body(*ips))
        ),
        (endpoint.url, WIRE_ACCEPT): wire_response(wire_a_message(*ips)),
    }


def ech_routes(endpoint: ProviderEndpoint, ips: tuple, ech_value) -> dict:
    def handle(url: str):
        if "type=65" in url:
            data = f"1 . alpn=h2 ech={ech_value}" if ech_value else None
            return json_response(https_answer_body(data))
        return json_response(a_answer_body(*ips))

    return {
        (endpoint.url, JSON_ACCEPT): handle,
        (endpoint.url, WIRE_ACCEPT): wire_response(wire_a_message(*ips)),
    }


def run_a_check(transport, **kwargs):
    return asyncio.run(check_a_records(
        TARGET, REFERENCES, "example.com", 1000,
        transport=transport, clock=FakeClock(), id_source=lambda: 1, **kwargs,
    ))


class TestARecordCheck:
    """A-record check reports and verdicts."""

    def test_all_match(self) -> None:
        routes = {}
        for endpoint in (TARGET, CLOUDFLARE, GOOGLE):
            routes.update(a_routes(endpoint, "93.184.216.34"))

        report = run_a_check(StubTransport(routes), include_ech=False)

        assert report.status == CheckStatus.SUCCESS
        assert report.comparison.to_dict() == {"matches_cloudflare": True, "matches_google": True}
        assert set(report.details) == {"target", "cloudflare", "google"}
        assert report.ech_comparison is None
        for result in report.details.values():
            assert result.attempted_encodings == [RecordEncoding.JSON, RecordEncoding.WIRE]

    def test_partial_match(self) -> None:
        routes = {}
        routes.update(a_routes(TARGET, "93.184.216.34"))
        routes.update(a_routes(CLOUDFLARE, "93.184.216.34"))
        routes.update(a_routes(GOOGLE, "1.2.3.4"))

        report = run_a_check(StubTransport(routes), include_ech=False)

        assert report.status == CheckStatus.PARTIAL_MATCH
        assert "Cloudflare" in report.message.split("but")[0]

    def test_target_timeout(self) -> None:
        routes = {
            (TARGET.url, JSON_ACCEPT): timeout_error(),
            (TARGET.url, WIRE_ACCEPT): timeout_error(),
        }
        routes.update(a_routes(CLOUDFLARE, "93.184.216.34"))
        routes.update(a_routes(GOOGLE, "93.184.216.34"))

        report = run_a_check(StubTransport(routes), include_ech=False)

        assert report.status == CheckStatus.FAILURE
        assert report.message == report.details["target"].error
        assert get_message("attempt.timeout", timeout_ms=1000) in report.message

    def test_nothing_reachable_still_reports(self) -> None:
        report = run_a_check(StubTransport())

        assert report.status == CheckStatus.FAILURE
        for result in report.details.values():
            assert not result.succeeded
            assert result.error
        assert report.ech_comparison.consistent is TriState.UNKNOWN
        # Serializes cleanly.
        data = json.loads(json.dumps(report.to_dict()))
        assert data["status"] == "failure"
        assert data["ech_comparison"]["consistent"] is None

    def test_ech_comparison_enriches_message(self) -> None:
        routes = {}
        routes.update(ech_routes(TARGET, ("1.1.1.1",), "AEF"))
        routes.update(ech_routes(CLOUDFLARE, ("1.1.1.1",), "AEF"))
        routes.update(ech_routes(GOOGLE, ("1.1.1.1",), "XYZ"))

        report = run_a_check(StubTransport(routes))

        assert report.status == CheckStatus.SUCCESS
        assert report.ech_comparison.matches == {"cloudflare": TriState.TRUE, "google": TriState.FALSE}
        assert report.ech_comparison.consistent is TriState.FALSE
        assert report.message.endswith(get_message("doh.ech_inconsistent"))

    def test_ech_consistent_sentence(self) -> None:
        routes = {}
        for endpoint in (TARGET, CLOUDFLARE, GOOGLE):
            routes.update(ech_routes(endpoint, ("1.1.1.1",), "AEF"))

        report = run_a_check(StubTransport(routes))

        assert report.ech_comparison.consistent is TriState.TRUE
        assert report.message.endswith(get_message("doh.ech_consistent"))

    def test_fault_in_one_provider_is_isolated(self) -> None:
        routes = {}
        routes.update(a_routes(TARGET, "93.184.216.34"))
        routes.update(a_routes(CLOUDFLARE, "93.184.216.34"))
        routes[(GOOGLE.url, JSON_ACCEPT)] = RuntimeError("stub exploded")
        routes[(GOOGLE.url, WIRE_ACCEPT)] = RuntimeError("stub exploded")

        report = run_a_check(StubTransport(routes), include_ech=False)

        assert report.status == CheckStatus.PARTIAL_MATCH
        google = report.details["google"]
        assert not google.succeeded
        fault = get_message("provider.unexpected_error", error="stub exploded")
        assert google.error == f"{fault} | {fault}"
        assert len(google.attempts) == 2
        assert report.details["cloudflare"].succeeded

    def test_requires_references(self) -> None:
        with pytest.raises(ValidationError):
            asyncio.run(check_a_records(TARGET, [], "example.com", 1000, transport=StubTransport()))

    def test_duplicate_reference_keys_rejected(self) -> None:
        first = ProviderEndpoint(key="ref", url="https://a.example/dns-query", label="A")
        second = ProviderEndpoint(key="ref", url="https://b.example/dns-query", label="B")
        transport = StubTransport()

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(check_a_records(TARGET, [first, second], "example.com", 1000, transport=transport))

        assert exc_info.value.code == "duplicate_endpoint_key"
        assert transport.calls == []

    def test_reference_using_target_key_rejected(self) -> None:
        clash = ProviderEndpoint(key=TARGET.key, url="https://other.example/dns-query")

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(check_a_records(TARGET, [clash], "example.com", 1000, transport=StubTransport()))

        assert exc_info.value.code == "duplicate_endpoint_key"

    def test_distinct_keys_keep_partial_verdict(self) -> None:
        first = ProviderEndpoint(key="ref_a", url="https://a.example/dns-query", label="A")
        second = ProviderEndpoint(key="ref_b", url="https://b.example/dns-query", label="B")
        routes = {}
        routes.update(a_routes(TARGET, "93.184.216.34"))
        routes.update(a_routes(first, "93.184.216.34"))
        routes.update(a_routes(second, "1.2.3.4"))

        report = asyncio.run(check_a_records(
            TARGET, [first, second], "example.com", 1000,
            transport=StubTransport(routes), include_ech=False,
        ))

        assert report.status == CheckStatus.PARTIAL_MATCH
        assert report.comparison.matches == {"ref_a": True, "ref_b": False}
        assert report.details["target"].extracted_values == ["93.184.216.34"]

    def test_logs_start_and_finish(self) -> None:
        logger = AuditLogger(output_format="text", output_stream=StringIO(), min_level=LogLevel.INFO)

        run_a_check(StubTransport(), logger=logger, include_ech=False)

        messages = [entry.message for entry in logger.entries if entry.component == "checker"]
        assert messages == ["A-record check started", "A-record check finished"]
        assert all(entry.level != LogLevel.DEBUG for entry in logger.entries)

    @given(reference_count=st.integers(min_value=1, max_value=4))
    @settings(max_examples=20, deadline=None)
    def test_any_number_of_references(self, reference_count: int) -> None:
        """*For any* number of references, each SHALL get a detail entry and a match flag."""
        references = [
            ProviderEndpoint(key=f"ref{i}", url=f"https://ref{i}.example/dns-query")
            for i in range(reference_count)
        ]
        routes = {}
        for endpoint in [TARGET, *references]:
            routes.update(a_routes(endpoint, "10.0.0.1"))

        report = asyncio.run(check_a_records(
            TARGET, references, "example.com", 1000, transport=StubTransport(routes),
        ))

        assert report.status == CheckStatus.SUCCESS
        assert set(report.comparison.matches) == {ref.key for ref in references}
        assert len(report.details) == reference_count + 1


class TestEchCheck:
    """ECH check over the reference resolvers."""

    def test_enabled_when_any_reference_finds_ech(self) -> None:
        routes = {}
        routes.update(ech_routes(CLOUDFLARE, (), "AEF"))
        routes.update(ech_routes(GOOGLE, (), None))

        report = asyncio.run(check_ech(REFERENCES, "example.com", 1000, transport=StubTransport(routes)))

        assert report.ech_enabled is True
        assert report.message == get_message("ech.enabled")
        assert report.providers["cloudflare"].found
        assert not report.providers["google"].found

    def test_not_enabled(self) -> None:
        report = asyncio.run(check_ech(REFERENCES, "example.com", 1000, transport=StubTransport(),
                                       language="zh"))

        assert report.ech_enabled is False
        assert report.message == get_message("ech.not_enabled", "zh")
        assert set(report.providers) == {"cloudflare", "google"}

    def test_short_circuit_per_reference(self) -> None:
        routes = {}
        routes.update(ech_routes(CLOUDFLARE, (), "AEF"))
        routes.update(ech_routes(GOOGLE, (), "AEF"))
        transport = StubTransport(routes)

        asyncio.run(check_ech(REFERENCES, "example.com", 1000, transport=transport))

        assert transport.call_count(accept=WIRE_ACCEPT) == 0
        assert transport.call_count(accept=JSON_ACCEPT) == 2

    def test_duplicate_reference_keys_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(check_ech([CLOUDFLARE, CLOUDFLARE], "example.com", 1000, transport=StubTransport()))

        assert exc_info.value.code == "duplicate_endpoint_key"

    def test_to_dict(self) -> None:
        report = asyncio.run(check_ech(REFERENCES, "example.com", 1000, transport=StubTransport()))

        data = report.to_dict()

        assert data["ech_enabled"] is False
        assert set(data["providers"]) == {"cloudflare", "google"}
        assert data["providers"]["google"]["attempted_encodings"] == ["json", "wire"]
