"""Batch verification runner."""

from provcheck.runner.batch import BatchRunner, ReportSink
from provcheck.runner.types import ArtifactOutcome, BatchSummary, OutcomeStatus

__all__ = ["ArtifactOutcome", "BatchRunner", "BatchSummary", "OutcomeStatus", "ReportSink"]
