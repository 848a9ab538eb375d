"""Data models used throughout the publish pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Union

logger = logging.getLogger("cdn_publish")

ChunkId = Union[str, int]


class AssetRole(Enum):
    """Role of a build output, decided by its extension."""

    IMAGE = "image"
    FONT = "font"
    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    TEMPLATE = "template"
    OTHER = "other"


class ScriptRole(Enum):
    """How a script takes part in runtime chunk loading."""

    ENTRY = "entry"
    CHUNK = "chunk"
    PLAIN = "plain"


@dataclass(frozen=True)
class Asset:
    """A single build output located on disk."""

    local_path: str
    role: AssetRole
    script_role: Optional[ScriptRole] = None


@dataclass(frozen=True)
class BuildChunk:
    """Chunk metadata as reported by the compiler."""

    id: ChunkId
    name: Optional[str] = None
    rendered_hash: str = ""
    content_hash: Union[str, Mapping[str, str], None] = None


@dataclass(frozen=True)
class ChunkDescriptor:
    """A chunk id paired with the filename the bundler rendered for it."""

    id: ChunkId
    rendered_name: str


@dataclass
class BuildManifest:
    """Everything the pipeline needs to know about a finished build."""

    chunks: List[BuildChunk] = field(default_factory=list)
    assets: Dict[str, str] = field(default_factory=dict)
    chunk_filename: str = "[id].js"
    public_path: str = ""
    mode: Optional[str] = None
    output_path: Optional[str] = None


@dataclass(frozen=True)
class ClassifiedAssets:
    """Build outputs bucketed by role."""

    images: List[Asset] = field(default_factory=list)
    fonts: List[Asset] = field(default_factory=list)
    stylesheets: List[Asset] = field(default_factory=list)
    scripts: List[Asset] = field(default_factory=list)
    templates: List[Asset] = field(default_factory=list)

    def paths(self, role: AssetRole) -> List[str]:
        if role is AssetRole.IMAGE:
            return [asset.local_path for asset in self.images]
        if role is AssetRole.FONT:
            return [asset.local_path for asset in self.fonts]
        if role is AssetRole.STYLESHEET:
            return [asset.local_path for asset in self.stylesheets]
        if role is AssetRole.SCRIPT:
            return [asset.local_path for asset in self.scripts]
        if role is AssetRole.TEMPLATE:
            return [asset.local_path for asset in self.templates]
        return []

    def script_paths(self, script_role: ScriptRole) -> List[str]:
        return [
            asset.local_path
            for asset in self.scripts
            if asset.script_role is script_role
        ]


@dataclass(frozen=True)
class RunContext:
    """State accumulated by one publish run.

    Every phase receives the context produced by the previous phase and returns
    a new one; maps already present are never mutated.
    """

    manifest: BuildManifest
    assets: ClassifiedAssets
    chunk_map: Mapping[str, str]
    img_font_map: Mapping[str, str] = field(default_factory=dict)
    chunk_cdn_map: Mapping[str, str] = field(default_factory=dict)
    css_map: Mapping[str, str] = field(default_factory=dict)
    common_map: Mapping[str, str] = field(default_factory=dict)
    js_map: Mapping[str, str] = field(default_factory=dict)

    def merged_url_map(self) -> Dict[str, str]:
        """Combine every uploaded map, earlier sources taking precedence.

        Common/entry results win over the later js batch because entry files
        may be re-uploaded under dirty checking.
        """
        merged: Dict[str, str] = {}
        for source in (self.common_map, self.img_font_map, self.css_map, self.js_map):
            for local_path, remote_url in source.items():
                existing = merged.get(local_path)
                if existing is None:
                    merged[local_path] = remote_url
                elif existing != remote_url:
                    logger.warning(
                        "Local path %s resolved to more than one remote URL (%s, %s); keeping %s",
                        local_path,
                        existing,
                        remote_url,
                        existing,
                    )
        return merged
