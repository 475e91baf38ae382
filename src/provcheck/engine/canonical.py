"""Canonical source form used for equality testing.

The canonical form drops comments, whitespace variance and build metadata
(SPDX license identifiers, compiler-version pragmas). It is never shown to
humans; diffs are always computed on the raw text.

String literals are matched before comments and metadata and are kept
verbatim, so a ``//`` or ``/*`` inside a literal never hides the code that
follows it.
"""

from __future__ import annotations

import re

_STRING_LITERAL = r'"(?:\\.|[^"\\])*"' r"|'(?:\\.|[^'\\])*'"

# Unterminated block comments run to end of text.
_COMMENT = re.compile(
    _STRING_LITERAL + r"|//[^\n]*" + r"|/\*.*?(?:\*/|\Z)",
    re.DOTALL,
)
_METADATA = re.compile(
    _STRING_LITERAL
    + r"|SPDX-License-Identifier:\s*[^\s;\"']*(?:\s+(?:AND|OR|WITH)\s+[^\s;\"']+)*"
    + r"|pragma\s+solidity\b[^;\"']*;",
    re.DOTALL,
)
_LINE_ENDING = re.compile(r"\r\n?")
_WHITESPACE = re.compile(r"\s+")

_QUOTES = ("\"", "'")


def _outside_literals(replacement: str):
    def _sub(match: re.Match[str]) -> str:
        token = match.group(0)
        return token if token.startswith(_QUOTES) else replacement

    return _sub


def _strip_metadata(text: str) -> str:
    # Repeat until stable: a removal can expose a new match.
    replace = _outside_literals(" ")
    while True:
        stripped = _METADATA.sub(replace, text)
        if stripped == text:
            return text
        text = stripped


def canonicalize(text: str) -> str:
    """Reduce source text to its canonical comparison form.

    Args:
        text: Raw source text

    Returns:
        Canonical string; equal canonical strings mean behaviorally equivalent sources
    """
    text = _LINE_ENDING.sub("\n", text)
    text = _COMMENT.sub(_outside_literals(""), text)
    text = _WHITESPACE.sub(" ", text)
    text = _strip_metadata(text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def equivalent(reference_text: str, candidate_text: str) -> bool:
    """Return True when both texts share a canonical form."""
    return canonicalize(reference_text) == canonicalize(candidate_text)
