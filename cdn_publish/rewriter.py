"""Textual substitution of local asset references with remote URLs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ExpressionError, TransformError
from .expressions import evaluate, evaluate_assignment
from .patterns import (
    CSS_CHUNKS_RE,
    CSS_HREF_RE,
    SCRIPT_LOOKUP_RE,
    PathPattern,
    loader_namespaces,
    public_path_assignment,
    public_path_pattern,
)
from .utils import extension, normalize, read_text, write_text

logger = logging.getLogger("cdn_publish")

Pair = Tuple[str, Any]
Transform = Callable[[str, str], str]


def report_transform_error(hook: str, value: Any, location: Optional[str] = None) -> str:
    """Log a non-string hook result and coerce it so the run can go on."""
    logger.error("%s", TransformError(hook, value, location))
    return str(value)


def apply_url_callback(
    mapping: Mapping[str, str],
    url_cb: Callable[[str, str], Any],
) -> List[Pair]:
    """Run url_cb over each (local, remote) pair."""
    if not callable(url_cb):
        logger.error("urlCb is not function")
        return list(mapping.items())
    pairs: List[Pair] = []
    for local_path, remote_url in mapping.items():
        value = url_cb(remote_url, local_path)
        if not isinstance(value, str):
            report_transform_error("urlCb", value, local_path)
        pairs.append((local_path, value))
    return pairs


def strip_public_path(public_path: str) -> Callable[[str], str]:
    """Remove the public-path prefix from references, keeping the token before it."""
    pattern = public_path_pattern(public_path or "")

    def remove(content: str) -> str:
        if pattern is None:
            return content
        return pattern.sub(lambda match: match.group(1), content)

    return remove


def make_transform(
    public_path: str,
    replace_fn: Callable[[str, str], Any],
    strip_types: Iterable[str],
) -> Transform:
    """Build the pre-pass applied to every rewritten file.

    Public-path stripping only runs for strip_types (stylesheets and
    templates); replace_fn runs for every file.
    """
    remove = strip_public_path(public_path)
    types = {t.lstrip(".").lower() for t in strip_types}

    def transform(content: str, location: str) -> str:
        if extension(location) in types:
            content = remove(content)
        result = replace_fn(content, location)
        if not isinstance(result, str):
            return report_transform_error("replaceFn", result, location)
        return result

    return transform


def rewrite(content: str, pairs: Sequence[Pair]) -> str:
    """Replace every reference to each local path, in the given order."""
    for local_path, new_value in pairs:
        value = new_value if isinstance(new_value, str) else str(new_value)
        content = PathPattern.build(normalize(local_path)).find_and_replace(content, value)
    return content


def apply(
    file_path: str,
    output_path: Optional[str],
    pairs: Sequence[Pair],
    transform: Optional[Transform] = None,
    force_write: bool = True,
) -> bool:
    """Rewrite file_path into output_path; returns whether a write happened.

    Without force_write an existing destination is only rewritten when the
    content actually changed.
    """
    destination = output_path or file_path
    source = read_text(file_path)
    content = transform(source, file_path) if transform else source
    content = rewrite(content, pairs)
    if Path(destination).exists() and not force_write and content == source:
        logger.debug("Skipping untouched %s", destination)
        return False
    write_text(destination, content)
    logger.debug("Wrote %s", destination)
    return True


def patch_chunk_table(content: str, chunk_cdn_map: Mapping[str, str]) -> str:
    """Point the runtime's chunk lookup at remote URLs and blank its public path."""
    if not chunk_cdn_map:
        return content
    namespaces = loader_namespaces(content)
    if not namespaces:
        return content
    table = json.dumps(dict(chunk_cdn_map), separators=(",", ":"))
    content = SCRIPT_LOOKUP_RE.sub(lambda match: f"({table})[{match.group('id')}];", content)
    for namespace in namespaces:
        content = public_path_assignment(namespace).sub(
            lambda _match, ns=namespace: f'{ns}.p = "";', content
        )
    return content


def update_script_src(files: Iterable[str], chunk_cdn_map: Mapping[str, str]) -> None:
    """Rewrite the chunk-id table inside each script, in place."""
    # nothing uploaded yet: keep the local lookup working
    if not chunk_cdn_map:
        return
    for location in files:
        content = read_text(location)
        patched = patch_chunk_table(content, chunk_cdn_map)
        if patched != content:
            write_text(location, patched)
            logger.debug("Patched chunk table in %s", location)


def _css_href_map(css_chunks: Dict[str, Any], statement: str, css_pairs: Sequence[Pair]) -> Optional[Dict[str, str]]:
    resolved: Dict[str, str] = {}
    for chunk_id in css_chunks:
        _, href = evaluate_assignment(statement, {"chunkId": chunk_id, "map": css_chunks})
        href = str(href)
        if href.startswith("."):
            href = href[1:]
        remote = next(
            (remote for local, remote in css_pairs if href and href in normalize(local)),
            None,
        )
        if remote is None:
            logger.debug("No uploaded stylesheet matches %s (chunk %s)", href, chunk_id)
            return None
        resolved[chunk_id] = remote if isinstance(remote, str) else str(remote)
    return resolved or None


def patch_css_loader(content: str, css_pairs: Sequence[Pair]) -> str:
    """Make the async stylesheet loader resolve hrefs from a literal id->URL table."""
    chunks_match = CSS_CHUNKS_RE.search(content)
    if not chunks_match:
        return content
    try:
        css_chunks = evaluate(chunks_match.group(1))
    except ExpressionError as exc:
        logger.debug("Unable to read cssChunks map: %s", exc)
        return content
    if not isinstance(css_chunks, dict):
        return content

    def replace(match) -> str:
        statement = match.group(0)
        try:
            href_map = _css_href_map(css_chunks, statement, css_pairs)
        except ExpressionError as exc:
            logger.debug("Unable to evaluate %s: %s", statement, exc)
            return statement
        if href_map is None:
            return statement
        return f"var href = {json.dumps(href_map, separators=(',', ':'))}[chunkId];"

    return CSS_HREF_RE.sub(replace, content)


def update_css_load(files: Iterable[str], css_pairs: Sequence[Pair]) -> None:
    """Patch the inline stylesheet href map of each entry script, in place."""
    for location in files:
        content = read_text(location)
        patched = patch_css_loader(content, css_pairs)
        if patched != content:
            write_text(location, patched)
            logger.debug("Patched stylesheet loader in %s", location)
