"""Per-artifact verification: pair bundled files with the reference tree and decide a verdict."""

from __future__ import annotations

from collections.abc import Sequence

from provcheck.engine.canonical import canonicalize
from provcheck.engine.differ import diff
from provcheck.engine.policy import classify
from provcheck.engine.types import (
    ArtifactReport,
    ArtifactVerdict,
    ComparisonStatus,
    FileComparisonResult,
    PolicyEntry,
    SourceBundle,
)
from provcheck.errors import ReferenceFileUnreadable
from provcheck.reference.tree import ReferenceResolver

DETAIL_REFERENCE_MISSING = "file is absent from the reference tree"
DETAIL_REFERENCE_UNREADABLE = "reference file could not be read"


def compare_file(
    path: str,
    candidate_text: str,
    artifact_id: str,
    reference: ReferenceResolver,
    policy: Sequence[PolicyEntry],
) -> FileComparisonResult:
    """Compare one bundled file against its reference counterpart."""
    try:
        reference_text = reference.resolve(path)
    except ReferenceFileUnreadable as exc:
        return FileComparisonResult(
            path=path,
            status=ComparisonStatus.REFERENCE_FILE_MISSING,
            detail=f"{DETAIL_REFERENCE_UNREADABLE}: {exc.message}",
        )
    if reference_text is None:
        return FileComparisonResult(
            path=path,
            status=ComparisonStatus.REFERENCE_FILE_MISSING,
            detail=DETAIL_REFERENCE_MISSING,
        )

    if canonicalize(reference_text) == canonicalize(candidate_text):
        return FileComparisonResult(path=path, status=ComparisonStatus.MATCH)

    unified = diff(reference_text, candidate_text, path)
    decision = classify(unified, artifact_id, policy)
    if decision.accepted and decision.entry is not None:
        return FileComparisonResult(
            path=path,
            status=ComparisonStatus.ACCEPTED_EXCEPTION,
            diff=unified.text,
            policy_id=decision.entry.id,
            rationale=decision.entry.rationale,
        )
    return FileComparisonResult(
        path=path,
        status=ComparisonStatus.MISMATCH,
        diff=unified.text,
        detail=decision.detail,
    )


def aggregate(results: Sequence[FileComparisonResult]) -> ArtifactVerdict:
    """All-or-nothing verdict; an empty result set verifies nothing and fails."""
    if results and all(result.status.passed for result in results):
        return ArtifactVerdict.VERIFIED
    return ArtifactVerdict.FAILED


def verify(
    artifact_id: str,
    bundle: SourceBundle,
    reference: ReferenceResolver,
    policy: Sequence[PolicyEntry] = (),
) -> ArtifactReport:
    """Verify every file of a bundle against the reference tree.

    Args:
        artifact_id: Identity of the artifact the bundle was fetched for
        bundle: Claimed source bundle
        reference: Read-only reference tree
        policy: Accepted-exception entries for this run

    Returns:
        ArtifactReport with per-file results in path order and the aggregate verdict
    """
    results = tuple(
        compare_file(path, bundle.files[path], artifact_id, reference, policy)
        for path in sorted(bundle.files)
    )
    return ArtifactReport(
        artifact_id=artifact_id,
        name=bundle.name,
        verdict=aggregate(results),
        results=results,
    )
