"""Verification and diff-classification engine."""

from provcheck.engine.canonical import canonicalize, equivalent
from provcheck.engine.differ import UnifiedDiff, diff
from provcheck.engine.policy import PolicyDecision, classify, fingerprint
from provcheck.engine.types import (
    ArtifactReport,
    ArtifactVerdict,
    ComparisonStatus,
    DiffSignature,
    FileComparisonResult,
    PolicyEntry,
    SourceBundle,
)
from provcheck.engine.verify import verify

__all__ = [
    "ArtifactReport",
    "ArtifactVerdict",
    "ComparisonStatus",
    "DiffSignature",
    "FileComparisonResult",
    "PolicyDecision",
    "PolicyEntry",
    "SourceBundle",
    "UnifiedDiff",
    "canonicalize",
    "classify",
    "diff",
    "equivalent",
    "fingerprint",
    "verify",
]
