"""Decode explorer SourceCode payloads into source bundles.

Explorers publish multi-file sources in two historical envelopes: a bare
JSON object with a ``sources`` key, and the same object wrapped in an
extra pair of braces. Both decode to the same path -> content mapping.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from provcheck.engine.types import SourceBundle


@dataclass(frozen=True)
class DecodedBundle:
    """Successful decode."""

    bundle: SourceBundle
    envelope: str


@dataclass(frozen=True)
class DecodeError:
    """Failed decode with a human-readable reason."""

    reason: str


class _EnvelopeMismatch(Exception):
    """The payload does not have this envelope's outer shape."""


def _double_brace(source_code: str) -> Any:
    if not (source_code.startswith("{{") and source_code.endswith("}}")):
        raise _EnvelopeMismatch
    return json.loads(source_code[1:-1])


def _bare_object(source_code: str) -> Any:
    if not (source_code.startswith("{") and source_code.endswith("}")):
        raise _EnvelopeMismatch
    return json.loads(source_code)


# Fixed priority: a double-brace payload also has single-brace ends.
ENVELOPES: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("double_brace", _double_brace),
    ("bare_object", _bare_object),
)


def _extract_sources(parsed: Any) -> dict[str, str]:
    if not isinstance(parsed, dict):
        raise ValueError("decoded envelope is not a JSON object")
    sources = parsed.get("sources")
    if sources is None:
        raise ValueError("unable to find 'sources' key in SourceCode")
    if not isinstance(sources, dict):
        raise ValueError("'sources' is not a mapping of path to file entry")

    files: dict[str, str] = {}
    for path, entry in sources.items():
        if isinstance(entry, dict):
            content = entry.get("content")
        else:
            content = entry
        if not isinstance(content, str):
            raise ValueError(f"source entry {path!r} has no string 'content'")
        files[str(path)] = content
    return files


def decode_bundle(artifact_id: str, name: str, source_code: str) -> DecodedBundle | DecodeError:
    """Decode a raw SourceCode string, trying each known envelope in priority order.

    Args:
        artifact_id: Artifact the payload belongs to
        name: Contract name reported by the explorer
        source_code: Raw SourceCode field

    Returns:
        DecodedBundle on success, DecodeError otherwise
    """
    text = source_code.strip()
    if not text:
        return DecodeError(reason="SourceCode is empty")

    for envelope, parse in ENVELOPES:
        try:
            parsed = parse(text)
        except _EnvelopeMismatch:
            continue
        except json.JSONDecodeError as exc:
            return DecodeError(reason=f"malformed JSON in {envelope} envelope: {exc}")

        try:
            files = _extract_sources(parsed)
        except ValueError as exc:
            return DecodeError(reason=f"{envelope} envelope: {exc}")

        return DecodedBundle(
            bundle=SourceBundle(artifact_id=artifact_id, name=name, files=files),
            envelope=envelope,
        )

    return DecodeError(reason="SourceCode format not recognized")
