"""
Comparison Engine module for the DoH probe.

Compares the target provider's result against the reference providers:
IP-set equality for A-record checks, ECH configuration string equality
for HTTPS-record checks.
"""

import re
from typing import Optional

from .enums import CheckStatus, TriState
from .i18n import get_message
from .models import (
    ComparisonResult,
    EchComparisonResult,
    ProviderEndpoint,
    ProviderResult,
)


# ech=..., or echconfig(base64)=... as written by SvcbRecord.describe()
ECH_CONFIG_PATTERN = re.compile(r'ech(?:config\(base64\))?=("[^"]+"|\S+)', re.IGNORECASE)


def sets_equal(left: list[str], right: list[str]) -> bool:
    """Order-independent equality of two value lists."""
    return set(left) == set(right)


def parse_ech_from_record(record: Optional[str]) -> Optional[str]:
    """
    Pull the ECH config token out of a record string.

    Surrounding double quotes are stripped. Returns None when the record
    carries no ECH parameter.
    """
    if not record:
        return None
    match = ECH_CONFIG_PATTERN.search(record)
    if not match:
        return None
    value = match.group(1)
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value or None


def extract_ech_config_string(result: Optional[ProviderResult]) -> Optional[str]:
    """
    Normalized ECH config string of one provider.

    The structured record is used only when the provider found ECH; the
    descriptive fallback record of a non-ECH HTTPS answer is never read.
    A textual raw payload is searched as a last resort.
    """
    if result is None:
        return None
    if result.found and result.record:
        return parse_ech_from_record(result.record)
    if isinstance(result.raw_payload, str):
        return parse_ech_from_record(result.raw_payload)
    return None


class ComparisonEngine:
    """
    Derives verdicts from fully-normalized provider results.

    Never performs I/O; all inputs are settled ProviderResult values.
    """

    def __init__(self, language: Optional[str] = None) -> None:
        self._language = language

    def _msg(self, key: str, **kwargs) -> str:
        return get_message(key, self._language, **kwargs)

    def _join(self, names: list[str]) -> str:
        return self._msg("doh.joiner").join(names)

    def evaluate_a_records(
        self,
        target: ProviderResult,
        references: list[tuple[ProviderEndpoint, ProviderResult]],
    ) -> tuple[CheckStatus, str, ComparisonResult]:
        """
        Four-way A-record verdict.

        Args:
            target: The target provider's result
            references: (endpoint, result) pairs in reference order

        Returns:
            Tuple of (status, message, comparison)
        """
        matches = {
            endpoint.key: (
                target.succeeded
                and result.succeeded
                and sets_equal(target.extracted_values, result.extracted_values)
            )
            for endpoint, result in references
        }
        comparison = ComparisonResult(matches=matches)

        if not target.succeeded:
            message = target.error or self._msg("doh.target_failed")
            return CheckStatus.FAILURE, message, comparison

        names = [endpoint.display_name for endpoint, _ in references]
        matched = [endpoint.display_name for endpoint, _ in references if matches[endpoint.key]]
        unmatched = [endpoint.display_name for endpoint, _ in references if not matches[endpoint.key]]

        if not unmatched:
            return (
                CheckStatus.SUCCESS,
                self._msg("doh.all_match", references=self._join(names)),
                comparison,
            )
        if matched:
            return (
                CheckStatus.PARTIAL_MATCH,
                self._msg(
                    "doh.partial_match",
                    matched=self._join(matched),
                    unmatched=self._join(unmatched),
                ),
                comparison,
            )
        return (
            CheckStatus.FAILURE,
            self._msg("doh.no_match", references=self._join(names)),
            comparison,
        )

    def compute_ech_match(
        self,
        target_ech: Optional[str],
        reference_ech: Optional[str],
        notes: list[str],
        label: str,
    ) -> TriState:
        """Three-valued match of the target's ECH config against one reference."""
        if not target_ech and not reference_ech:
            notes.append(self._msg("ech_note.both_missing", reference=label))
            return TriState.UNKNOWN
        if not target_ech:
            notes.append(self._msg("ech_note.target_missing", reference=label))
            return TriState.FALSE
        if not reference_ech:
            notes.append(self._msg("ech_note.reference_missing", reference=label))
            return TriState.UNKNOWN
        if target_ech == reference_ech:
            notes.append(self._msg("ech_note.match", reference=label))
            return TriState.TRUE
        notes.append(self._msg("ech_note.mismatch", reference=label))
        return TriState.FALSE

    @staticmethod
    def overall_consistency(matches: list[TriState]) -> TriState:
        """TRUE only if every match is TRUE; FALSE if any is FALSE."""
        if any(match is TriState.FALSE for match in matches):
            return TriState.FALSE
        if matches and all(match is TriState.TRUE for match in matches):
            return TriState.TRUE
        return TriState.UNKNOWN

    def build_ech_comparison(
        self,
        target: ProviderResult,
        references: list[tuple[ProviderEndpoint, ProviderResult]],
    ) -> EchComparisonResult:
        """
        Compare ECH configs of the target against each reference, in order.

        Notes are appended in reference order.
        """
        notes: list[str] = []
        target_ech = extract_ech_config_string(target)
        matches: dict[str, TriState] = {}
        for endpoint, result in references:
            matches[endpoint.key] = self.compute_ech_match(
                target_ech,
                extract_ech_config_string(result),
                notes,
                endpoint.display_name,
            )

        return EchComparisonResult(
            target=target,
            references={endpoint.key: result for endpoint, result in references},
            matches=matches,
            consistent=self.overall_consistency(list(matches.values())),
            notes=notes,
        )

    def ech_message_suffix(self, ech_comparison: Optional[EchComparisonResult]) -> str:
        """Sentence appended to an A-record verdict for a definite ECH outcome."""
        if ech_comparison is None:
            return ""
        if ech_comparison.consistent is TriState.FALSE:
            return self._msg("doh.ech_inconsistent")
        if ech_comparison.consistent is TriState.TRUE:
            return self._msg("doh.ech_consistent")
        return ""
