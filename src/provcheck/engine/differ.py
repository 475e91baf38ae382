"""Unified diff rendering for human review of raw source differences."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher

CONTEXT_LINES = 4
INDEX_SEPARATOR = "=" * 67
NO_NEWLINE_MARKER = "\\ No newline at end of file"

_LINE = re.compile(r"[^\n]*\n|[^\n]+\Z")


@dataclass(frozen=True)
class UnifiedDiff:
    """Rendered unified diff between a reference file and a candidate file."""

    label: str
    text: str = ""
    hunks: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.hunks

    @property
    def lines(self) -> list[str]:
        return self.text.splitlines()


def _split_lines(text: str) -> list[str]:
    """Split on newlines only, keeping the terminator on each line."""
    return _LINE.findall(text)


def _format_range(start: int, length: int) -> str:
    beginning = start + 1
    if not length:
        beginning -= 1
    return f"{beginning},{length}"


def _emit(prefix: str, raw_lines: list[str], out: list[str]) -> None:
    for raw in raw_lines:
        out.append(prefix + raw.rstrip("\n"))
        if not raw.endswith("\n"):
            out.append(NO_NEWLINE_MARKER)


def diff(reference_text: str, candidate_text: str, label: str) -> UnifiedDiff:
    """Compute a unified diff from reference_text to candidate_text.

    The output carries no timestamps, so identical arguments always render
    identical text. Identical inputs yield an empty diff.

    Args:
        reference_text: Raw reference file content (old side)
        candidate_text: Raw candidate file content (new side)
        label: Logical path named in the diff header

    Returns:
        UnifiedDiff with rendered text and hunk headers
    """
    if reference_text == candidate_text:
        return UnifiedDiff(label=label)

    old = _split_lines(reference_text)
    new = _split_lines(candidate_text)
    matcher = SequenceMatcher(a=old, b=new, autojunk=False)

    out = [
        f"Index: {label}",
        INDEX_SEPARATOR,
        f"--- {label}",
        f"+++ {label}",
    ]
    hunks: list[str] = []

    for group in matcher.get_grouped_opcodes(CONTEXT_LINES):
        first, last = group[0], group[-1]
        old_range = _format_range(first[1], last[2] - first[1])
        new_range = _format_range(first[3], last[4] - first[3])
        header = f"@@ -{old_range} +{new_range} @@"
        hunks.append(header)
        out.append(header)

        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                _emit(" ", old[i1:i2], out)
                continue
            if tag in ("replace", "delete"):
                _emit("-", old[i1:i2], out)
            if tag in ("replace", "insert"):
                _emit("+", new[j1:j2], out)

    return UnifiedDiff(label=label, text="\n".join(out) + "\n", hunks=tuple(hunks))
