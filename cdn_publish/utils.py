"""Utility helpers for path normalization and file handling."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path, PurePath
from typing import Iterable, List

FILTER_OUT_DIRS = {".idea", ".vscode", ".gitignore", "node_modules"}


def normalize(location: str) -> str:
    """Normalize a filesystem path and join its parts with forward slashes."""
    return PurePath(os.path.normpath(location)).as_posix()


def extension(location: str) -> str:
    """Return the lowercase extension of a path without the leading dot."""
    return PurePath(location).suffix.lower().lstrip(".")


def read_text(location: str) -> str:
    return Path(location).read_text(encoding="utf-8")


def write_text(location: str, content: str) -> None:
    """Write content, creating parent directories as needed."""
    destination = Path(location)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(content, encoding="utf-8")


def file_digest(location: str) -> str:
    """MD5 hex digest of a file's bytes."""
    hasher = hashlib.md5()
    with open(location, "rb") as handle:
        for block in iter(lambda: handle.read(65536), b""):
            hasher.update(block)
    return hasher.hexdigest()


def gather_files(root: str, types: Iterable[str]) -> List[str]:
    """Recursively collect files under root whose extension is in types."""
    wanted = {t.lstrip(".").lower() for t in types}
    found: List[str] = []
    for entry in sorted(Path(root).iterdir()):
        if entry.name in FILTER_OUT_DIRS:
            continue
        if entry.is_dir():
            found.extend(gather_files(str(entry), wanted))
        elif entry.is_file() and extension(entry.name) in wanted:
            found.append(normalize(str(entry.resolve())))
    return found


def map_src_to_dist(location: str, src_root: str, dist_root: str) -> str:
    """Mirror a path under src_root to the same relative place under dist_root."""
    source = Path(location)
    try:
        relative = source.resolve().relative_to(Path(src_root).resolve())
    except ValueError:
        return location
    return normalize(str(Path(dist_root) / relative))
