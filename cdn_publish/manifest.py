"""Reading build manifests and scanning static directories."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from .classifier import FONT_TYPES, IMAGE_TYPES, SCRIPT_TYPES, STYLESHEET_TYPES
from .config import DEFAULT_CHUNK_FILENAME
from .errors import ManifestError
from .models import BuildChunk, BuildManifest
from .utils import gather_files, normalize

logger = logging.getLogger("cdn_publish")


def _parse_chunk(raw: Mapping[str, Any]) -> BuildChunk:
    if "id" not in raw:
        raise ManifestError(f"Chunk entry without id: {raw!r}")
    name = raw.get("name")
    if name is None and raw.get("names"):
        name = raw["names"][0]
    return BuildChunk(
        id=raw["id"],
        name=name,
        rendered_hash=raw.get("renderedHash") or raw.get("hash") or "",
        content_hash=raw.get("contentHash"),
    )


def _parse_assets(raw: Any, output_path: str | None) -> Dict[str, str]:
    assets: Dict[str, str] = {}
    if isinstance(raw, Mapping):
        for name, info in raw.items():
            location = info.get("existsAt") if isinstance(info, Mapping) else None
            if not location:
                if not output_path:
                    raise ManifestError(f"Asset {name!r} has no existsAt and no outputPath is set")
                location = str(Path(output_path) / name)
            assets[name] = normalize(location)
    elif isinstance(raw, list):
        if not output_path:
            raise ManifestError("A list of asset names requires outputPath")
        for item in raw:
            name = item.get("name") if isinstance(item, Mapping) else item
            assets[name] = normalize(str(Path(output_path) / name))
    elif raw is not None:
        raise ManifestError(f"Unsupported assets section: {type(raw).__name__}")
    return assets


def parse_manifest(data: Mapping[str, Any]) -> BuildManifest:
    """Build a BuildManifest from decoded compiler output."""
    options = data.get("options") or {}
    output = options.get("output") or {}
    output_path = data.get("outputPath") or output.get("path")
    try:
        chunks = [_parse_chunk(chunk) for chunk in data.get("chunks") or []]
    except AttributeError as exc:
        raise ManifestError(f"Malformed chunk list: {exc}") from exc
    return BuildManifest(
        chunks=chunks,
        assets=_parse_assets(data.get("assets"), output_path),
        chunk_filename=output.get("chunkFilename") or DEFAULT_CHUNK_FILENAME,
        public_path=output.get("publicPath") or "",
        mode=options.get("mode"),
        output_path=output_path,
    )


def load_manifest(path: Path) -> BuildManifest:
    """Read a JSON build manifest from disk."""
    path = Path(path)
    if not path.exists():
        raise ManifestError(f"Manifest not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Failed to parse manifest {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ManifestError(f"Manifest {path} must contain a JSON object")
    return parse_manifest(data)


def scan_static_dirs(dirs: Iterable[str], template_types: Iterable[str]) -> Dict[str, str]:
    """Collect every publishable file under the given directories."""
    types: List[str] = [
        *IMAGE_TYPES,
        *FONT_TYPES,
        *STYLESHEET_TYPES,
        *SCRIPT_TYPES,
        *template_types,
    ]
    assets: Dict[str, str] = {}
    for directory in dirs:
        for location in gather_files(directory, types):
            assets[location] = location
    logger.debug("Found %d file(s) in static directories", len(assets))
    return assets
