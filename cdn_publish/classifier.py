"""Bucket build outputs into asset roles."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .chunks import describe_chunks, names_file
from .models import Asset, AssetRole, ClassifiedAssets, ScriptRole
from .patterns import has_chunk_loader
from .utils import extension, read_text

logger = logging.getLogger("cdn_publish")

IMAGE_TYPES = ("jpg", "jpeg", "png", "gif", "webp", "ico")
FONT_TYPES = ("woff", "woff2", "ttf", "otf", "svg", "eot")
STYLESHEET_TYPES = ("css",)
SCRIPT_TYPES = ("js",)


def role_for(location: str, template_types: Sequence[str]) -> AssetRole:
    """Role implied by a file's extension."""
    ext = extension(location)
    if ext in IMAGE_TYPES:
        return AssetRole.IMAGE
    if ext in STYLESHEET_TYPES:
        return AssetRole.STYLESHEET
    if ext in SCRIPT_TYPES:
        return AssetRole.SCRIPT
    if ext in FONT_TYPES:
        return AssetRole.FONT
    if ext in {t.lstrip(".").lower() for t in template_types}:
        return AssetRole.TEMPLATE
    return AssetRole.OTHER


def is_entry_script(location: str) -> bool:
    """Whether the script carries the runtime chunk loader."""
    return has_chunk_loader(read_text(location))


def script_role_for(location: str, rendered_names: Iterable[str]) -> ScriptRole:
    if is_entry_script(location):
        return ScriptRole.ENTRY
    if any(names_file(location, name) for name in rendered_names):
        return ScriptRole.CHUNK
    return ScriptRole.PLAIN


def classify(
    entries: Iterable[str],
    template_types: Sequence[str],
    chunk_map: Optional[Dict[str, str]] = None,
) -> ClassifiedAssets:
    """Split absolute asset locations into images, fonts, stylesheets, scripts and templates."""
    rendered_names = [d.rendered_name for d in describe_chunks(chunk_map or {})]
    buckets: Dict[AssetRole, List[Asset]] = {role: [] for role in AssetRole}
    for location in entries:
        role = role_for(location, template_types)
        if role is AssetRole.SCRIPT:
            script_role = script_role_for(location, rendered_names)
            buckets[role].append(Asset(location, role, script_role))
            logger.debug("Classified %s as %s script", location, script_role.value)
        elif role is AssetRole.OTHER:
            logger.debug("Ignoring %s", location)
        else:
            buckets[role].append(Asset(location, role))

    return ClassifiedAssets(
        images=buckets[AssetRole.IMAGE],
        fonts=buckets[AssetRole.FONT],
        stylesheets=buckets[AssetRole.STYLESHEET],
        scripts=buckets[AssetRole.SCRIPT],
        templates=buckets[AssetRole.TEMPLATE],
    )
