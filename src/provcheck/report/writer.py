"""Verification report files: VERIFICATION_REPORT.json and VERIFICATION_REPORT.md."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from provcheck import __version__
from provcheck.engine.types import ComparisonStatus, PolicyEntry
from provcheck.runner.types import ArtifactOutcome, BatchSummary, OutcomeStatus
from provcheck.utils.canonical_json import canonical_dumps, sha256_text
from provcheck.utils.json_output import write_json_strict

REPORT_JSON_FILENAME = "VERIFICATION_REPORT.json"
REPORT_MD_FILENAME = "VERIFICATION_REPORT.md"
DETERMINISTIC_TIMESTAMP = "1970-01-01T00:00:00Z"
TIMESTAMP_MODES = ("deterministic", "wallclock")


def _timestamp(timestamp_mode: str) -> str:
    if timestamp_mode == "deterministic":
        return DETERMINISTIC_TIMESTAMP
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def policy_digest(policy: Sequence[PolicyEntry]) -> str:
    """SHA-256 of the canonical JSON form of the policy entries applied to a run."""
    return sha256_text(canonical_dumps([entry.to_dict() for entry in policy]))


def _outcome_to_dict(outcome: ArtifactOutcome) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "artifact_id": outcome.artifact_id,
        "name": outcome.report.name if outcome.report else None,
        "status": outcome.status.value,
        "error_kind": outcome.error_kind,
        "error": outcome.error,
        "files": [],
    }
    if outcome.report is not None:
        for result in outcome.report.results:
            item = result.to_dict()
            item["diff_sha256"] = sha256_text(result.diff) if result.diff else None
            entry["files"].append(item)
    return entry


def build_report(
    summary: BatchSummary,
    *,
    timestamp_mode: str = "deterministic",
    reference: dict[str, str | None] | None = None,
    policy: Sequence[PolicyEntry] = (),
) -> dict[str, Any]:
    """Build the JSON-compatible verification report payload."""
    if timestamp_mode not in TIMESTAMP_MODES:
        raise ValueError(
            f"Unsupported timestamp mode: {timestamp_mode}. Expected one of {TIMESTAMP_MODES}."
        )

    data: dict[str, Any] = {
        "schema_version": "1.0",
        "pipeline_version": __version__,
        "generated_at": _timestamp(timestamp_mode),
        "timestamp_mode": timestamp_mode,
        "status": "passed" if summary.succeeded else "failed",
        "counts": {
            "verified": summary.verified,
            "failed": summary.failed,
            "unresolved": summary.unresolved,
        },
        "policy_sha256": policy_digest(policy),
        "interrupted": summary.interrupted,
        "pending": list(summary.pending),
        "artifacts": [_outcome_to_dict(outcome) for outcome in summary.outcomes],
    }
    if reference is not None:
        data["reference"] = dict(reference)
    return data


def _render_markdown(data: dict[str, Any]) -> str:
    counts = data["counts"]
    status = "PASS ✓" if data["status"] == "passed" else "FAIL ✗"

    lines = [
        "# Source Verification Report",
        "",
        f"**Status:** {status}",
        f"**Verified:** {counts['verified']}  **Failed:** {counts['failed']}  "
        f"**Unresolved:** {counts['unresolved']}",
        f"**Policy sha256:** `{data['policy_sha256']}`",
    ]
    reference = data.get("reference")
    if reference:
        lines.append(f"**Reference:** {reference.get('repo_url') or reference.get('root')}"
                     f" @ {reference.get('revision') or 'working tree'}")
    if data["interrupted"]:
        lines.append(f"**Interrupted:** {len(data['pending'])} identities not processed")
    lines.append("")

    for artifact in data["artifacts"]:
        title = artifact["artifact_id"]
        if artifact.get("name"):
            title = f"{artifact['name']} ({artifact['artifact_id']})"
        lines.extend([f"## {title}", "", f"**Outcome:** {artifact['status']}", ""])

        if artifact["status"] == OutcomeStatus.UNRESOLVED.value:
            lines.append(f"- {artifact['error_kind']}: {artifact['error']}")
            lines.append("")
            continue

        for item in artifact["files"]:
            if item["status"] == ComparisonStatus.MATCH.value:
                lines.append(f"- ✓ `{item['path']}`")
            elif item["status"] == ComparisonStatus.ACCEPTED_EXCEPTION.value:
                lines.append(f"- ✓ `{item['path']}` accepted by `{item['policy_id']}`: {item['rationale']}")
            else:
                lines.append(f"- ✗ `{item['path']}` {item['status']}: {item['detail']}")
        lines.append("")

        for item in artifact["files"]:
            if item["diff"] and item["status"] != ComparisonStatus.ACCEPTED_EXCEPTION.value:
                lines.extend([f"### {item['path']}", "", "```diff", item["diff"].rstrip("\n"), "```", ""])

    if data["pending"]:
        lines.extend(["## Pending", ""])
        lines.extend(f"- `{artifact_id}`" for artifact_id in data["pending"])
        lines.append("")

    return "\n".join(lines)


def write_verification_report(
    summary: BatchSummary,
    out_dir: Path,
    *,
    timestamp_mode: str = "deterministic",
    reference: dict[str, str | None] | None = None,
    policy: Sequence[PolicyEntry] = (),
) -> tuple[Path, Path]:
    """Write JSON and Markdown reports for a batch.

    Returns:
        (json_path, markdown_path)

    Raises:
        ValueError: If the report payload fails schema validation (nothing is written)
    """
    data = build_report(
        summary, timestamp_mode=timestamp_mode, reference=reference, policy=policy
    )

    json_path = out_dir / REPORT_JSON_FILENAME
    write_json_strict(data=data, output_path=json_path, schema_name="verification_report")

    md_path = out_dir / REPORT_MD_FILENAME
    md_path.write_text(_render_markdown(data), encoding="utf-8")
    return json_path, md_path
