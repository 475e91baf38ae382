"""Pytest configuration and fixtures for provcheck tests."""
from pathlib import Path

import pytest

SEQUENCER_ERROR_LINE = "    error SequencerUptimeFeedInvalid();"


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)

    if not cov_enabled:
        return

    coverage_files = list(Path.cwd().glob(".coverage*"))

    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'provcheck' (the package) not 'src/provcheck'.",
            returncode=1
        )


def _constants_source(include_sequencer_error: bool) -> str:
    """40-line Constants.sol whose line 31 declares SequencerUptimeFeedInvalid."""
    lines = [
        "// SPDX-License-Identifier: BUSL-1.1",
        "pragma solidity ^0.8.0;",
        "",
        "abstract contract Constants {",
    ]
    lines += [f"    error Error{i}();" for i in range(5, 31)]
    if include_sequencer_error:
        lines.append(SEQUENCER_ERROR_LINE)
    lines += [f"    error Error{i}();" for i in range(32, 40)]
    lines.append("}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def constants_reference() -> str:
    return _constants_source(include_sequencer_error=True)


@pytest.fixture
def constants_candidate() -> str:
    return _constants_source(include_sequencer_error=False)
