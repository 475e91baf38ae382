"""Sequential batch verification over a fixed list of artifact identities."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Protocol

from provcheck.engine.types import ArtifactReport, PolicyEntry, SourceBundle
from provcheck.engine.verify import verify
from provcheck.errors import BundleDecodeFailure, FetchFailure
from provcheck.reference.tree import ReferenceResolver
from provcheck.runner.types import ArtifactOutcome, BatchSummary, OutcomeStatus

logger = logging.getLogger(__name__)

DEFAULT_DELAY_S = 0.25

FetchBundle = Callable[[str], SourceBundle]
ArchiveBundle = Callable[[SourceBundle], Path]


class ReportSink(Protocol):
    """Receives per-artifact results for human consumption."""

    def record_artifact(self, report: ArtifactReport) -> None: ...

    def record_unresolved(self, outcome: ArtifactOutcome) -> None: ...


class BatchRunner:
    """Fetch, verify and report each artifact identity in turn.

    One identity is fully processed before the next fetch begins. Successive
    fetches are spaced by ``delay_seconds`` to respect the explorer's rate limit.
    """

    def __init__(
        self,
        fetch: FetchBundle,
        reference: ReferenceResolver,
        policy: Sequence[PolicyEntry] = (),
        *,
        delay_seconds: float = DEFAULT_DELAY_S,
        sleep: Callable[[float], None] = time.sleep,
        sinks: Iterable[ReportSink] = (),
        archive: ArchiveBundle | None = None,
    ) -> None:
        self.fetch = fetch
        self.reference = reference
        self.policy = tuple(policy)
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.sinks = list(sinks)
        self.archive = archive

    def _archive(self, bundle: SourceBundle) -> None:
        if self.archive is None:
            return
        try:
            self.archive(bundle)
        except (OSError, ValueError) as exc:
            logger.warning("Could not save sources for %s: %s", bundle.artifact_id, exc)

    def process(self, artifact_id: str) -> ArtifactOutcome:
        """Fetch and verify one identity; acquisition failures become UNRESOLVED."""
        try:
            bundle = self.fetch(artifact_id)
        except FetchFailure as exc:
            logger.warning("Fetch failed for %s: %s", artifact_id, exc.message)
            return ArtifactOutcome(
                artifact_id=artifact_id,
                status=OutcomeStatus.UNRESOLVED,
                error_kind="fetch_failure",
                error=exc.message,
            )
        except BundleDecodeFailure as exc:
            logger.warning("Bundle decode failed for %s: %s", artifact_id, exc.message)
            return ArtifactOutcome(
                artifact_id=artifact_id,
                status=OutcomeStatus.UNRESOLVED,
                error_kind="bundle_decode_failure",
                error=exc.message,
            )

        self._archive(bundle)
        report = verify(artifact_id, bundle, self.reference, self.policy)
        logger.info(
            "%s (%s): %s across %d file(s)",
            artifact_id,
            report.name,
            report.verdict.value,
            len(report.results),
        )
        return ArtifactOutcome.from_report(report)

    def _publish(self, outcome: ArtifactOutcome) -> None:
        for sink in self.sinks:
            if outcome.report is not None:
                sink.record_artifact(outcome.report)
            else:
                sink.record_unresolved(outcome)

    def run(self, artifact_ids: Sequence[str]) -> BatchSummary:
        """Verify every identity in order.

        An interrupt stops the batch; the in-flight artifact is discarded and
        the remaining identities are listed as pending.
        """
        summary = BatchSummary()
        for index, artifact_id in enumerate(artifact_ids):
            try:
                if index > 0 and self.delay_seconds > 0:
                    self.sleep(self.delay_seconds)
                outcome = self.process(artifact_id)
            except KeyboardInterrupt:
                summary.interrupted = True
                summary.pending = list(artifact_ids[index:])
                logger.warning(
                    "Batch interrupted at %s; %d identities not verified",
                    artifact_id,
                    len(summary.pending),
                )
                break
            summary.outcomes.append(outcome)
            self._publish(outcome)
        return summary
