"""Rich console sink for per-artifact verification results."""

from __future__ import annotations

from rich.console import Console

from provcheck.engine.types import ArtifactReport, ComparisonStatus
from provcheck.runner.types import ArtifactOutcome, BatchSummary


class ConsoleSink:
    """Print verdicts, non-matching files and their diffs."""

    def __init__(self, console: Console | None = None, *, show_diffs: bool = True) -> None:
        self.console = console or Console()
        self.show_diffs = show_diffs

    def record_artifact(self, report: ArtifactReport) -> None:
        label = f"{report.name} at {report.artifact_id}"
        for result in report.results:
            if result.status is ComparisonStatus.MATCH:
                self.console.print(f"[green]  ✓ {result.path}[/green]", highlight=False)
            elif result.status is ComparisonStatus.ACCEPTED_EXCEPTION:
                self.console.print(
                    f"[yellow]  ~ {result.path}: accepted by {result.policy_id}[/yellow]",
                    highlight=False,
                )
                if result.rationale:
                    self.console.print(f"    {result.rationale}", markup=False, highlight=False)
            else:
                self.console.print(
                    f"[red]  ✗ {result.path}: {result.status.value}[/red]", highlight=False
                )
                if result.detail:
                    self.console.print(f"    {result.detail}", markup=False, highlight=False)
                if self.show_diffs and result.diff:
                    self.console.print(result.diff, markup=False, highlight=False, end="")

        if report.verified:
            self.console.print(f"[green]✓ Verified: {label}[/green]", highlight=False)
        else:
            self.console.print(f"[red]✗ Differences found: {label}[/red]", highlight=False)

    def record_unresolved(self, outcome: ArtifactOutcome) -> None:
        self.console.print(
            f"[red]✗ Unresolved {outcome.artifact_id} ({outcome.error_kind}): {outcome.error}[/red]",
            highlight=False,
        )

    def print_summary(self, summary: BatchSummary) -> None:
        self.console.print()
        self.console.print(
            f"[cyan]Verified:[/cyan] {summary.verified}  "
            f"[cyan]Failed:[/cyan] {summary.failed}  "
            f"[cyan]Unresolved:[/cyan] {summary.unresolved}"
        )
        if summary.interrupted:
            self.console.print(
                f"[yellow]Interrupted; {len(summary.pending)} identities not processed[/yellow]"
            )
