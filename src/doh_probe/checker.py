"""
Check entry points for the DoH probe.

check_a_records compares a target DoH endpoint's A answers against the
reference resolvers (optionally with an ECH sub-comparison over the same
endpoints); check_ech reports whether the references publish an ECH
parameter for a domain.

All provider queries of one check run concurrently and the check waits
for every one of them to settle before comparing. A fault escaping one
provider's query becomes a failed result for that provider only.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from .audit_logger import AuditLogger
from .comparison_engine import ComparisonEngine
from .enums import LogLevel
from .exceptions import ValidationError
from .models import (
    DohCheckReport,
    EchCheckReport,
    EchComparisonResult,
    ProviderEndpoint,
    ProviderResult,
)
from .query_executor import QueryExecutor, unexpected_failure
from .transport import HttpTransport, HttpxTransport, monotonic_ms
from .wire_codec import generate_query_id
from .i18n import get_message


COMPONENT = "checker"

TARGET_KEY = "target"


async def _settle_all(
    calls: list[Awaitable[ProviderResult]],
    language: Optional[str],
) -> list[ProviderResult]:
    outcomes = await asyncio.gather(*calls, return_exceptions=True)
    results = []
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            if isinstance(outcome, (KeyboardInterrupt, SystemExit, asyncio.CancelledError)):
                raise outcome
            results.append(unexpected_failure(outcome, language))
        else:
            results.append(outcome)
    return results


def _require_references(
    reference_endpoints: list[ProviderEndpoint],
    target_endpoint: Optional[ProviderEndpoint] = None,
) -> None:
    if not reference_endpoints:
        raise ValidationError(
            code="no_references",
            message="At least one reference endpoint is required",
        )

    # Results are keyed by endpoint key.
    seen = {target_endpoint.key} if target_endpoint is not None else set()
    for endpoint in reference_endpoints:
        if endpoint.key in seen:
            raise ValidationError(
                code="duplicate_endpoint_key",
                message=f"Endpoint key used more than once: {endpoint.key}",
                details={"key": endpoint.key},
            )
        seen.add(endpoint.key)


async def _with_transport(
    transport: Optional[HttpTransport],
    run: Callable[[HttpTransport], Awaitable],
):
    if transport is not None:
        return await run(transport)
    async with HttpxTransport() as owned:
        return await run(owned)


async def check_a_records(
    target_endpoint: ProviderEndpoint,
    reference_endpoints: list[ProviderEndpoint],
    test_domain: str,
    timeout_ms: int,
    transport: Optional[HttpTransport] = None,
    clock: Callable[[], float] = monotonic_ms,
    id_source: Callable[[], int] = generate_query_id,
    logger: Optional[AuditLogger] = None,
    language: Optional[str] = None,
    include_ech: bool = True,
) -> DohCheckReport:
    """
    Compare the target endpoint's A answers with the reference resolvers.

    Args:
        target_endpoint: The DoH endpoint under test
        reference_endpoints: Reference resolvers, in comparison order
        test_domain: Domain to resolve
        timeout_ms: Per-attempt timeout
        transport: HTTP capability (an httpx transport is created if omitted)
        clock: Monotonic millisecond clock
        id_source: Source of wire query IDs
        logger: Optional audit logger
        language: Language for messages
        include_ech: Also run the ECH sub-comparison over the same endpoints

    Returns:
        DohCheckReport; network and decode failures are reported, never raised

    Raises:
        ValidationError: If no reference endpoints are given, or two
            endpoints share a key
    """
    _require_references(reference_endpoints, target_endpoint)
    endpoints = [target_endpoint, *reference_endpoints]

    if logger:
        logger.log(LogLevel.INFO, COMPONENT, "A-record check started", {
            "endpoint": target_endpoint.url,
            "domain": test_domain,
            "references": [endpoint.key for endpoint in reference_endpoints],
            "timeout_ms": timeout_ms,
        })

    async def run(active: HttpTransport) -> DohCheckReport:
        executor = QueryExecutor(active, clock=clock, id_source=id_source,
                                 logger=logger, language=language)
        a_calls = [
            executor.query_a_records(endpoint.url, test_domain, timeout_ms)
            for endpoint in endpoints
        ]
        ech_calls = [
            executor.query_https_record(endpoint.url, test_domain, timeout_ms)
            for endpoint in endpoints
        ] if include_ech else []

        a_results, ech_results = await asyncio.gather(
            _settle_all(a_calls, language),
            _settle_all(ech_calls, language),
        )

        engine = ComparisonEngine(language)
        target_result = a_results[0]
        status, message, comparison = engine.evaluate_a_records(
            target_result, list(zip(reference_endpoints, a_results[1:]))
        )

        ech_comparison: Optional[EchComparisonResult] = None
        if include_ech:
            ech_comparison = engine.build_ech_comparison(
                ech_results[0], list(zip(reference_endpoints, ech_results[1:]))
            )
            message += engine.ech_message_suffix(ech_comparison)

        return DohCheckReport(
            status=status,
            message=message,
            details={endpoint.key: result for endpoint, result in zip(endpoints, a_results)},
            comparison=comparison,
            ech_comparison=ech_comparison,
        )

    report = await _with_transport(transport, run)

    if logger:
        logger.log(LogLevel.INFO, COMPONENT, "A-record check finished", {
            "status": report.status.value,
            "comparison": report.comparison.to_dict(),
            "ech_consistent": (
                report.ech_comparison.consistent.to_json() if report.ech_comparison else None
            ),
        })
    return report


async def check_ech(
    reference_endpoints: list[ProviderEndpoint],
    domain: str,
    timeout_ms: int,
    transport: Optional[HttpTransport] = None,
    clock: Callable[[], float] = monotonic_ms,
    id_source: Callable[[], int] = generate_query_id,
    logger: Optional[AuditLogger] = None,
    language: Optional[str] = None,
) -> EchCheckReport:
    """
    Report whether any reference resolver publishes an ECH parameter.

    Returns:
        EchCheckReport with ech_enabled true if any reference found ECH

    Raises:
        ValidationError: If no reference endpoints are given, or two
            references share a key
    """
    _require_references(reference_endpoints)

    if logger:
        logger.log(LogLevel.INFO, COMPONENT, "ECH check started", {
            "domain": domain,
            "references": [endpoint.key for endpoint in reference_endpoints],
            "timeout_ms": timeout_ms,
        })

    async def run(active: HttpTransport) -> list[ProviderResult]:
        executor = QueryExecutor(active, clock=clock, id_source=id_source,
                                 logger=logger, language=language)
        return await _settle_all(
            [
                executor.query_https_record(endpoint.url, domain, timeout_ms)
                for endpoint in reference_endpoints
            ],
            language,
        )

    results = await _with_transport(transport, run)
    providers = {endpoint.key: result for endpoint, result in zip(reference_endpoints, results)}
    ech_enabled = any(result.found for result in providers.values())
    message = get_message("ech.enabled" if ech_enabled else "ech.not_enabled", language)

    if logger:
        logger.log(LogLevel.INFO, COMPONENT, "ECH check finished", {
            "domain": domain,
            "ech_enabled": ech_enabled,
        })
    return EchCheckReport(ech_enabled=ech_enabled, message=message, providers=providers)
