"""Domain types for the verification engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


def normalize_artifact_id(artifact_id: str) -> str:
    """Return the comparison form of an artifact identity (explorer addresses are case-insensitive)."""
    return artifact_id.strip().lower()


class ComparisonStatus(str, Enum):
    """Outcome of comparing one bundled file against the reference tree."""

    MATCH = "match"
    ACCEPTED_EXCEPTION = "accepted_exception"
    MISMATCH = "mismatch"
    REFERENCE_FILE_MISSING = "reference_file_missing"

    @property
    def passed(self) -> bool:
        return self in (ComparisonStatus.MATCH, ComparisonStatus.ACCEPTED_EXCEPTION)


class ArtifactVerdict(str, Enum):
    """Aggregate decision for one artifact."""

    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceBundle:
    """Claimed source for one artifact as published by the explorer."""

    artifact_id: str
    name: str
    files: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))


@dataclass(frozen=True)
class DiffSignature:
    """Structural fingerprint of a unified diff.

    Two signatures are equal only if every field is equal.
    """

    line_count: int
    header: str
    hunk_header: str | None
    removed_line: str | None

    def to_dict(self) -> dict[str, int | str | None]:
        return {
            "line_count": self.line_count,
            "header": self.header,
            "hunk_header": self.hunk_header,
            "removed_line": self.removed_line,
        }


@dataclass(frozen=True)
class PolicyEntry:
    """One pre-approved textual delta, scoped to specific artifacts."""

    id: str
    artifacts: frozenset[str]
    signature: DiffSignature
    rationale: str

    def applies_to(self, artifact_id: str) -> bool:
        return normalize_artifact_id(artifact_id) in self.artifacts

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "artifacts": sorted(self.artifacts),
            "signature": self.signature.to_dict(),
            "rationale": self.rationale,
        }


@dataclass(frozen=True)
class FileComparisonResult:
    """Per-file comparison result."""

    path: str
    status: ComparisonStatus
    diff: str = ""
    detail: str | None = None
    policy_id: str | None = None
    rationale: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "path": self.path,
            "status": self.status.value,
            "detail": self.detail,
            "policy_id": self.policy_id,
            "rationale": self.rationale,
            "diff": self.diff,
        }


@dataclass(frozen=True)
class ArtifactReport:
    """Verdict and per-file results for one artifact."""

    artifact_id: str
    name: str
    verdict: ArtifactVerdict
    results: tuple[FileComparisonResult, ...] = field(default_factory=tuple)

    @property
    def verified(self) -> bool:
        return self.verdict is ArtifactVerdict.VERIFIED

    def count(self, status: ComparisonStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    def non_matches(self) -> list[FileComparisonResult]:
        return [result for result in self.results if result.status is not ComparisonStatus.MATCH]
