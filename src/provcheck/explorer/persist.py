"""Persist fetched bundles to disk for human inspection."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath

from provcheck.engine.types import SourceBundle

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def bundle_dir_name(bundle: SourceBundle) -> str:
    """Directory name for a bundle: ``<name>_<artifact_id>``."""
    name = _UNSAFE_NAME_CHARS.sub("_", bundle.name) or "unknown"
    artifact = _UNSAFE_NAME_CHARS.sub("_", bundle.artifact_id)
    return f"{name}_{artifact}"


def save_bundle(bundle: SourceBundle, root: Path) -> Path:
    """Write every bundled file under ``root/<name>_<artifact_id>/``.

    Paths that would escape the bundle directory are refused.

    Returns:
        The bundle directory
    """
    out_dir = (root / bundle_dir_name(bundle)).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    for path, content in sorted(bundle.files.items()):
        relative = PurePosixPath(path.replace("\\", "/"))
        target = out_dir.joinpath(*relative.parts).resolve()
        if relative.is_absolute() or not target.is_relative_to(out_dir):
            raise ValueError(f"Refusing to write bundle path outside {out_dir}: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    logger.info("Remote source files saved to %s", out_dir)
    return out_dir
