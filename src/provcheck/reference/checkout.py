"""Materialize the reference tree: git checkout at a pinned revision, setup, overrides."""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from provcheck.errors import ReferencePreparationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceOverride:
    """Regex substitution applied to one reference file before comparison."""

    path: str
    pattern: str
    replacement: str


def run_git_command(args: list[str], cwd: Path) -> str:
    """Run a git command and return stdout text."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise ReferencePreparationError("git executable not found on PATH") from exc
    except subprocess.CalledProcessError as exc:
        raise ReferencePreparationError(
            f"Git command failed in {cwd}: git {' '.join(args)}\n{exc.stderr.strip()}"
        ) from exc
    return result.stdout.strip()


def checkout_reference(repo_url: str, revision: str, dest: Path) -> Path:
    """Clone repo_url into dest and check out revision.

    Args:
        repo_url: Repository location understood by git clone
        revision: Pinned commit (or any revision git checkout accepts)
        dest: Target directory; must not exist or be empty

    Returns:
        Resolved checkout directory

    Raises:
        ReferencePreparationError: If the target is occupied or git fails
    """
    resolved = dest.expanduser().resolve()
    if resolved.exists() and any(resolved.iterdir()):
        raise ReferencePreparationError(f"Checkout directory is not empty: {resolved}")
    resolved.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Cloning %s into %s", repo_url, resolved)
    run_git_command(["clone", "--quiet", repo_url, str(resolved)], cwd=resolved.parent)

    logger.info("Checking out %s", revision)
    run_git_command(["checkout", "--quiet", revision], cwd=resolved)

    head = run_git_command(["rev-parse", "HEAD"], cwd=resolved)
    logger.info("Reference tree at %s", head)
    return resolved


def run_setup_commands(root: Path, commands: Sequence[Sequence[str]]) -> None:
    """Run setup commands (for example dependency installation) inside the reference tree."""
    for command in commands:
        argv = list(command)
        logger.info("Running setup command: %s", " ".join(argv))
        try:
            subprocess.run(argv, cwd=root, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise ReferencePreparationError(f"Setup command not found: {argv[0]}") from exc
        except subprocess.CalledProcessError as exc:
            raise ReferencePreparationError(
                f"Setup command failed in {root}: {' '.join(argv)}\n{exc.stderr.strip()}"
            ) from exc


def apply_overrides(root: Path, overrides: Sequence[ReferenceOverride]) -> list[str]:
    """Apply regex overrides to reference files.

    Each pattern must match in its file; a missing file or pattern means the
    reference is not the tree the overrides were written for.

    Returns:
        Paths that were rewritten, in application order
    """
    rewritten: list[str] = []
    for override in overrides:
        target = root / override.path
        if not target.is_file():
            raise ReferencePreparationError(f"Override target not found: {target}")

        content = target.read_text(encoding="utf-8")
        regex = re.compile(override.pattern)
        if not regex.search(content):
            raise ReferencePreparationError(
                f"Override pattern not found in {override.path}: {override.pattern}"
            )

        replacement = override.replacement
        target.write_text(regex.sub(lambda _match: replacement, content, count=1), encoding="utf-8")
        logger.info("Applied override to %s", override.path)
        rewritten.append(override.path)
    return rewritten
