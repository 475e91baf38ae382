"""provcheck CLI - verify explorer-published source against a pinned reference tree."""

import json
import tempfile
from contextlib import ExitStack
from pathlib import Path

import typer
from rich.console import Console

from provcheck import __version__
from provcheck.config import (
    DEFAULT_CONFIG_FILENAME,
    RunConfig,
    load_policy_file,
    load_run_config,
    write_default_config,
)
from provcheck.engine.canonical import canonicalize, equivalent
from provcheck.engine.differ import diff as unified_diff
from provcheck.engine.policy import fingerprint
from provcheck.errors import (
    ConfigError,
    ReferencePreparationError,
    ReferenceTreeUnavailable,
)
from provcheck.explorer.client import ExplorerClient
from provcheck.explorer.persist import save_bundle
from provcheck.logging_config import setup_logging
from provcheck.reference.checkout import apply_overrides, checkout_reference, run_setup_commands
from provcheck.reference.tree import DirectoryReferenceTree
from provcheck.report.console import ConsoleSink
from provcheck.report.writer import TIMESTAMP_MODES, write_verification_report
from provcheck.runner.batch import BatchRunner

EXIT_FAILED = 2
EXIT_INTERRUPTED = 130

cli = typer.Typer(
    name="provcheck",
    help="provcheck - verify explorer-published contract source against a pinned reference tree",
    no_args_is_help=True,
)
console = Console()


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show provcheck version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Verify that explorer-published source matches a reference tree."""
    _ = version


def _prepare_reference(
    run_config: RunConfig,
    *,
    reference_dir: Path | None,
    checkout_dir: Path | None,
    stack: ExitStack,
) -> tuple[DirectoryReferenceTree, dict[str, str | None]]:
    """Resolve the reference tree from --reference-dir or a pinned checkout."""
    if reference_dir is not None:
        tree = DirectoryReferenceTree(reference_dir)
        return tree, {"root": str(tree.root), "repo_url": None, "revision": None}

    reference = run_config.reference
    if reference is None:
        raise ConfigError("No `reference` configured; pass --reference-dir or add a reference section")

    if checkout_dir is None:
        temp_root = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="provcheck-")))
        checkout_dir = temp_root / "reference"

    console.print(f"[cyan]Checking out {reference.repo_url} @ {reference.revision}...[/cyan]")
    root = checkout_reference(reference.repo_url, reference.revision, checkout_dir)
    if reference.setup_commands:
        console.print("[cyan]Running reference setup commands...[/cyan]")
        run_setup_commands(root, reference.setup_commands)
    if reference.overrides:
        rewritten = apply_overrides(root, reference.overrides)
        for path in rewritten:
            console.print(f"[cyan]Override applied:[/cyan] {path}")

    tree = DirectoryReferenceTree(root)
    return tree, {
        "root": str(tree.root),
        "repo_url": reference.repo_url,
        "revision": reference.revision,
    }


@cli.command()
def verify(
    config: Path = typer.Option(
        Path(DEFAULT_CONFIG_FILENAME),
        "--config",
        "-c",
        help="Run configuration file",
    ),
    reference_dir: Path | None = typer.Option(
        None,
        "--reference-dir",
        help="Use an existing reference tree instead of checking out the configured revision",
    ),
    checkout_dir: Path | None = typer.Option(
        None,
        "--checkout-dir",
        help="Keep the reference checkout here (default: temporary directory, removed afterwards)",
    ),
    policy: Path | None = typer.Option(
        None,
        "--policy",
        help="Policy file replacing the policy section of the config",
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="PROVCHECK_API_KEY",
        help="Explorer API key (default: env var named by explorer.api_key_env)",
    ),
    out: Path | None = typer.Option(
        None,
        "--out",
        help="Report directory (default: output.report_dir)",
    ),
    save_sources: Path | None = typer.Option(
        None,
        "--save-sources",
        help="Save fetched sources here for inspection (default: output.sources_dir)",
    ),
    delay: float | None = typer.Option(
        None,
        "--delay",
        help="Seconds between explorer requests (default: explorer.delay_seconds)",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Explorer request timeout in seconds (default: explorer.timeout_seconds)",
    ),
    timestamp_mode: str = typer.Option(
        "deterministic",
        "--timestamp-mode",
        help="Report timestamp mode: deterministic or wallclock",
    ),
    no_report: bool = typer.Option(
        False,
        "--no-report",
        help="Skip writing VERIFICATION_REPORT.json/.md",
    ),
    show_diffs: bool = typer.Option(
        True,
        "--diffs/--no-diffs",
        help="Print diffs of mismatching files",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level (default: PROVCHECK_LOG_LEVEL or WARNING)",
    ),
) -> None:
    """Verify every configured artifact. Exit 0 only if all are verified."""
    try:
        setup_logging(log_level)
        if timestamp_mode not in TIMESTAMP_MODES:
            raise ConfigError(
                f"Unsupported timestamp mode: {timestamp_mode}. Expected one of {TIMESTAMP_MODES}."
            )
        run_config = load_run_config(config)
        entries = load_policy_file(policy) if policy is not None else run_config.policy
    except (ConfigError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e

    explorer = run_config.explorer
    sources_dir = save_sources or run_config.output.sources_dir
    report_dir = out or run_config.output.report_dir
    sink = ConsoleSink(console, show_diffs=show_diffs)

    with ExitStack() as stack:
        try:
            tree, reference_meta = _prepare_reference(
                run_config,
                reference_dir=reference_dir,
                checkout_dir=checkout_dir,
                stack=stack,
            )
        except (ConfigError, ReferencePreparationError, ReferenceTreeUnavailable) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1) from e

        client = ExplorerClient(
            api_url=explorer.api_url,
            api_key=api_key if api_key is not None else explorer.api_key(),
            timeout=timeout if timeout is not None else explorer.timeout_seconds,
        )
        runner = BatchRunner(
            client.fetch_bundle,
            tree,
            entries,
            delay_seconds=delay if delay is not None else explorer.delay_seconds,
            sinks=[sink],
            archive=(lambda bundle: save_bundle(bundle, sources_dir)) if sources_dir else None,
        )

        console.print(
            f"[cyan]Verifying {len(run_config.artifacts)} artifact(s) against {tree.root}[/cyan]"
        )
        summary = runner.run(run_config.artifacts)

    sink.print_summary(summary)

    if not no_report:
        try:
            json_path, md_path = write_verification_report(
                summary,
                report_dir,
                timestamp_mode=timestamp_mode,
                reference=reference_meta,
                policy=entries,
            )
        except (OSError, ValueError) as e:
            console.print(f"[bold red]Error:[/bold red] Report write failed: {e}")
            raise typer.Exit(1) from e
        console.print(f"[cyan]Report:[/cyan] {md_path}, {json_path}")

    if summary.interrupted:
        raise typer.Exit(EXIT_INTERRUPTED)
    if not summary.succeeded:
        raise typer.Exit(EXIT_FAILED)
    console.print("[green]✓ All artifacts verified[/green]")


@cli.command()
def diff(
    reference: Path = typer.Argument(..., help="Reference file"),
    candidate: Path = typer.Argument(..., help="Candidate file"),
    label: str | None = typer.Option(
        None,
        "--label",
        help="Logical path named in the diff header (default: reference path)",
    ),
    signature: bool = typer.Option(
        False,
        "--signature",
        help="Print the diff signature as JSON for authoring a policy entry",
    ),
) -> None:
    """Show the raw diff between two files. Exit 0 if canonically equivalent, 2 otherwise."""
    try:
        reference_text = reference.read_text(encoding="utf-8")
        candidate_text = candidate.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e

    result = unified_diff(reference_text, candidate_text, label or reference.as_posix())
    if result.text:
        typer.echo(result.text, nl=False)

    if signature and not result.is_empty:
        typer.echo(json.dumps(fingerprint(result).to_dict(), indent=2))

    if equivalent(reference_text, candidate_text):
        console.print("[green]✓ Canonically equivalent[/green]")
        return
    console.print("[red]✗ Canonical forms differ[/red]")
    raise typer.Exit(EXIT_FAILED)


@cli.command(name="canonicalize")
def canonicalize_cmd(
    file: Path = typer.Argument(..., help="Source file to canonicalize"),
) -> None:
    """Print the canonical comparison form of a source file."""
    try:
        text = file.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e
    typer.echo(canonicalize(text))


@cli.command(name="init-config")
def init_config(
    path: Path = typer.Option(
        Path(DEFAULT_CONFIG_FILENAME),
        "--path",
        help="Where to write the template configuration",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing configuration file",
    ),
) -> None:
    """Write a template run configuration."""
    try:
        written = write_default_config(path, force=force)
    except FileExistsError as e:
        console.print(f"[bold red]Error:[/bold red] {e}. Use --force to overwrite.")
        raise typer.Exit(2) from e
    console.print(f"[green]Created {written}[/green]")


def main() -> None:
    """Console script entry point."""
    cli(prog_name="provcheck")


if __name__ == "__main__":
    main()
