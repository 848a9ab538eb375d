"""Reconstruct the bundler's chunk id to filename map."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import ConfigurationError
from .models import BuildChunk, ChunkDescriptor
from .utils import normalize

BUILD_HASH_RE = re.compile(r"\[hash(:\d+)?\]")
NAME_RE = re.compile(r"\[name\]")
ID_RE = re.compile(r"\[id\]")
CHUNKHASH_RE = re.compile(r"\[chunkhash(:\d+)?\]")
CONTENTHASH_RE = re.compile(r"\[contenthash(:\d+)?\]")


def _truncate(source: str):
    def handle(match: re.Match) -> str:
        length = match.group(1)
        if length:
            return source[: int(length[1:])]
        return source

    return handle


def _content_hash(chunk: BuildChunk) -> str:
    content_hash = chunk.content_hash
    if isinstance(content_hash, Mapping):
        return content_hash.get("javascript") or chunk.rendered_hash
    return content_hash or chunk.rendered_hash


def render_chunk_filename(chunk: BuildChunk, template: str) -> str:
    """Fill the filename template for one chunk."""
    chunk_id = str(chunk.id)
    rendered = NAME_RE.sub(lambda _: chunk.name or chunk_id, template)
    rendered = ID_RE.sub(lambda _: chunk_id, rendered)
    rendered = CHUNKHASH_RE.sub(_truncate(chunk.rendered_hash), rendered)
    return CONTENTHASH_RE.sub(_truncate(_content_hash(chunk)), rendered)


def build_chunk_map(chunks: Iterable[BuildChunk], template: str) -> Dict[str, str]:
    """Map every chunk id to its rendered filename.

    Raises ConfigurationError when the template uses the build-wide [hash].
    """
    if BUILD_HASH_RE.search(template):
        raise ConfigurationError(
            "Do NOT use [hash] as output filename! Use [chunkhash] or [contenthash] instead"
        )
    return {str(chunk.id): render_chunk_filename(chunk, template) for chunk in chunks}


def describe_chunks(chunk_map: Mapping[str, str]) -> List[ChunkDescriptor]:
    return [ChunkDescriptor(id=chunk_id, rendered_name=name) for chunk_id, name in chunk_map.items()]


def names_file(location: str, rendered_name: str) -> bool:
    """Whether location is the rendered file, matched on a path-segment boundary."""
    location = normalize(location)
    return location == rendered_name or location.endswith("/" + rendered_name)


def chunk_id_for(location: str, chunk_map: Mapping[str, str]) -> Optional[str]:
    """Id of the chunk whose rendered filename ends location."""
    for chunk_id, rendered_name in chunk_map.items():
        if names_file(location, rendered_name):
            return chunk_id
    return None
