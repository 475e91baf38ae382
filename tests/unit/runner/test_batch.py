"""Tests for the sequential batch runner."""
import logging
from pathlib import Path

import pytest

from provcheck.engine.types import ArtifactReport, SourceBundle
from provcheck.errors import BundleDecodeFailure, FetchFailure
from provcheck.reference.tree import MappingReferenceTree
from provcheck.runner.batch import BatchRunner
from provcheck.runner.types import ArtifactOutcome, OutcomeStatus

GOOD = "0x4f8629c1056d7c7fc7e132ad2234761488baa9be"
BAD = "0xd0186335f7b7c390b6d6c0c021212243ed297dda"
MISSING = "0x9d97c76102e72883cd25fa60e0f4143516d5b6db"
GARBLED = "0xcfd55ac7647454ea0f7c4c9ec231e0a282b30980"

REFERENCE = MappingReferenceTree({"src/V3Vault.sol": "contract V3Vault {}\n"})


def fake_fetch(artifact_id: str) -> SourceBundle:
    if artifact_id == MISSING:
        raise FetchFailure(artifact_id, "no source code on record")
    if artifact_id == GARBLED:
        raise BundleDecodeFailure(artifact_id, "SourceCode format not recognized")
    content = "contract V3Vault {}\n" if artifact_id == GOOD else "contract V3Vault { address owner; }\n"
    return SourceBundle(artifact_id=artifact_id, name="V3Vault", files={"src/V3Vault.sol": content})


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def record_artifact(self, report: ArtifactReport) -> None:
        self.events.append(("artifact", report.artifact_id))

    def record_unresolved(self, outcome: ArtifactOutcome) -> None:
        self.events.append(("unresolved", outcome.artifact_id))


def _runner(fetch=fake_fetch, **kwargs) -> tuple[BatchRunner, list[float]]:
    sleeps: list[float] = []
    kwargs.setdefault("delay_seconds", 0.25)
    runner = BatchRunner(fetch, REFERENCE, sleep=sleeps.append, **kwargs)
    return runner, sleeps


def test_run_processes_identities_in_order() -> None:
    sink = RecordingSink()
    runner, _ = _runner(sinks=[sink])

    summary = runner.run([GOOD, BAD, MISSING, GARBLED])

    assert [o.artifact_id for o in summary.outcomes] == [GOOD, BAD, MISSING, GARBLED]
    assert [o.status for o in summary.outcomes] == [
        OutcomeStatus.VERIFIED,
        OutcomeStatus.FAILED,
        OutcomeStatus.UNRESOLVED,
        OutcomeStatus.UNRESOLVED,
    ]
    assert sink.events == [
        ("artifact", GOOD),
        ("artifact", BAD),
        ("unresolved", MISSING),
        ("unresolved", GARBLED),
    ]
    assert (summary.verified, summary.failed, summary.unresolved) == (1, 1, 2)
    assert not summary.succeeded


def test_unresolved_outcomes_carry_error_kind() -> None:
    runner, _ = _runner()

    summary = runner.run([MISSING, GARBLED])

    assert [o.error_kind for o in summary.outcomes] == ["fetch_failure", "bundle_decode_failure"]
    assert summary.outcomes[0].error == "no source code on record"
    assert all(o.report is None for o in summary.outcomes)


def test_fetches_are_spaced_by_delay() -> None:
    runner, sleeps = _runner()

    runner.run([GOOD, GOOD, GOOD])

    assert sleeps == [0.25, 0.25]


def test_zero_delay_does_not_sleep() -> None:
    runner, sleeps = _runner(delay_seconds=0)

    runner.run([GOOD, GOOD])

    assert sleeps == []


def test_all_verified_batch_succeeds() -> None:
    runner, _ = _runner()

    summary = runner.run([GOOD])

    assert summary.succeeded
    assert summary.pending == []


def test_interrupt_during_fetch_discards_in_flight_artifact() -> None:
    def interrupting_fetch(artifact_id: str) -> SourceBundle:
        if artifact_id == BAD:
            raise KeyboardInterrupt
        return fake_fetch(artifact_id)

    runner, _ = _runner(fetch=interrupting_fetch)

    summary = runner.run([GOOD, BAD, MISSING])

    assert summary.interrupted
    assert [o.artifact_id for o in summary.outcomes] == [GOOD]
    assert summary.pending == [BAD, MISSING]
    assert not summary.succeeded


def test_interrupt_during_pacing_stops_batch() -> None:
    def interrupting_sleep(_seconds: float) -> None:
        raise KeyboardInterrupt

    runner = BatchRunner(fake_fetch, REFERENCE, delay_seconds=1.0, sleep=interrupting_sleep)

    summary = runner.run([GOOD, BAD])

    assert summary.interrupted
    assert summary.pending == [BAD]


def test_archive_receives_fetched_bundles(tmp_path: Path) -> None:
    archived: list[str] = []

    def archive(bundle: SourceBundle) -> Path:
        archived.append(bundle.artifact_id)
        return tmp_path

    runner, _ = _runner(archive=archive)
    runner.run([GOOD, MISSING])

    assert archived == [GOOD]


def test_archive_failure_is_logged_not_fatal(caplog: pytest.LogCaptureFixture) -> None:
    def archive(bundle: SourceBundle) -> Path:
        raise OSError("disk full")

    runner, _ = _runner(archive=archive)

    with caplog.at_level(logging.WARNING, logger="provcheck.runner.batch"):
        summary = runner.run([GOOD])

    assert summary.succeeded
    assert "disk full" in caplog.text


def test_policy_is_applied_per_artifact() -> None:
    runner, _ = _runner(policy=())
    outcome = runner.process(BAD)

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.report is not None
    assert outcome.report.non_matches()[0].path == "src/V3Vault.sol"
