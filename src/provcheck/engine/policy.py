"""Exact-signature policy matching for pre-approved source deltas.

A policy entry approves one specific, known textual delta for specific
artifacts. Matching is full equality of the diff signature; there is no
similarity scoring, so an unrelated change can never hide behind an
approved-looking diff.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from provcheck.engine.differ import UnifiedDiff
from provcheck.engine.types import ComparisonStatus, DiffSignature, PolicyEntry

DETAIL_NO_APPLICABLE_POLICY = "no policy entry applies to this artifact"


@dataclass(frozen=True)
class PolicyDecision:
    """Classification of one non-empty diff."""

    status: ComparisonStatus
    entry: PolicyEntry | None = None
    detail: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status is ComparisonStatus.ACCEPTED_EXCEPTION


def fingerprint(unified: UnifiedDiff) -> DiffSignature:
    """Compute the structural signature of a rendered diff.

    line_count counts newline-separated segments, so the trailing newline
    contributes an empty final segment.
    """
    segments = unified.text.split("\n")
    hunk_header: str | None = None
    removed_line: str | None = None
    in_hunk = False

    for line in segments[1:]:
        if line.startswith("@@"):
            in_hunk = True
            if hunk_header is None:
                hunk_header = line
            continue
        if in_hunk and line.startswith("-") and removed_line is None:
            removed_line = line
        if hunk_header is not None and removed_line is not None:
            break

    return DiffSignature(
        line_count=len(segments),
        header=segments[0],
        hunk_header=hunk_header,
        removed_line=removed_line,
    )


def applicable_entries(artifact_id: str, policy: Iterable[PolicyEntry]) -> list[PolicyEntry]:
    """Return entries whose applicability set names artifact_id, in declaration order."""
    return [entry for entry in policy if entry.applies_to(artifact_id)]


def classify(
    unified: UnifiedDiff,
    artifact_id: str,
    policy: Iterable[PolicyEntry],
) -> PolicyDecision:
    """Decide whether a diff is an accepted exception for artifact_id.

    Args:
        unified: Diff of the raw reference and candidate texts
        artifact_id: Artifact whose bundle produced the diff
        policy: Policy entries loaded for the run

    Returns:
        PolicyDecision with ACCEPTED_EXCEPTION and the matching entry, or MISMATCH
    """
    candidates = applicable_entries(artifact_id, policy)
    if not candidates:
        return PolicyDecision(status=ComparisonStatus.MISMATCH, detail=DETAIL_NO_APPLICABLE_POLICY)

    observed = fingerprint(unified)
    for entry in candidates:
        if entry.signature == observed:
            return PolicyDecision(status=ComparisonStatus.ACCEPTED_EXCEPTION, entry=entry)

    compared = ", ".join(entry.id for entry in candidates)
    return PolicyDecision(
        status=ComparisonStatus.MISMATCH,
        detail=f"diff signature matches no applicable policy entry ({compared})",
    )
