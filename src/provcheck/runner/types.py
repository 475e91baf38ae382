"""Batch runner result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from provcheck.engine.types import ArtifactReport


class OutcomeStatus(str, Enum):
    """Per-identity batch outcome."""

    VERIFIED = "verified"
    FAILED = "failed"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ArtifactOutcome:
    """What happened to one artifact identity in a batch."""

    artifact_id: str
    status: OutcomeStatus
    report: ArtifactReport | None = None
    error_kind: str | None = None
    error: str | None = None

    @classmethod
    def from_report(cls, report: ArtifactReport) -> ArtifactOutcome:
        status = OutcomeStatus.VERIFIED if report.verified else OutcomeStatus.FAILED
        return cls(artifact_id=report.artifact_id, status=status, report=report)


@dataclass
class BatchSummary:
    """Aggregate over a batch run."""

    outcomes: list[ArtifactOutcome] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    interrupted: bool = False

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def verified(self) -> int:
        return self._count(OutcomeStatus.VERIFIED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def unresolved(self) -> int:
        return self._count(OutcomeStatus.UNRESOLVED)

    @property
    def succeeded(self) -> bool:
        """True only if every processed artifact verified and nothing was skipped."""
        return (
            not self.interrupted
            and not self.pending
            and self.failed == 0
            and self.unresolved == 0
        )
