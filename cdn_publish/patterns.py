"""Regular expressions for locating asset references in generated text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

SEPARATOR = "/"

# src="..", url(..), a = "..", "prefix" + "..": the capture is kept on replace.
REFERENCE_PREFIX = r"""([(=+]\s*['"]?)"""

_NAMESPACE = r"[A-Za-z_$][\w$]*"

# <ns>.p + <lookup>[<idExpr>] ... '.js'
SCRIPT_LOOKUP_RE = re.compile(
    r"(?P<ns>" + _NAMESPACE + r")\.p\s?\+[^\[]+\[(?P<id>\S+)\][^\n]+?\.js['\"];?"
)
CSS_CHUNKS_RE = re.compile(r"var\scssChunks\s*=\s*([^;\n]+);")
CSS_HREF_RE = re.compile(r"var\shref\s*=[^\n]+?chunkId[^\n;]+;")


def public_path_assignment(namespace: str) -> re.Pattern:
    """Match `<namespace>.p = <expr>;` for one loader namespace."""
    return re.compile(re.escape(namespace) + r"\.p\s?=(?!=)\s?([^;]+);")


def has_chunk_loader(content: str) -> bool:
    """Whether a script resolves chunk ids to URLs at runtime."""
    return SCRIPT_LOOKUP_RE.search(content) is not None


def loader_namespaces(content: str) -> List[str]:
    """Namespaces of every chunk dispatch expression found in a script."""
    seen: List[str] = []
    for match in SCRIPT_LOOKUP_RE.finditer(content):
        if match.group("ns") not in seen:
            seen.append(match.group("ns"))
    return seen


def _local_path_source(local_path: str) -> str:
    parts = local_path.split(SEPARATOR)
    last = len(parts) - 1
    pieces = []
    for index, part in enumerate(parts):
        if index == last:
            pieces.append(re.escape(part) + r"(?![\w.-])")
        else:
            pieces.append(r"\.?(" + re.escape(part) + r")?")
    return (SEPARATOR + "?").join(pieces)


@dataclass(frozen=True)
class PathPattern:
    """Tolerant matcher for references to one local asset path.

    Every directory segment is optional so `./img/a.png`, `img/a.png` and
    `a.png` all match `/dist/img/a.png`; the filename must match verbatim.
    """

    local_path: str
    regex: re.Pattern

    @classmethod
    def build(cls, local_path: str) -> "PathPattern":
        source = REFERENCE_PREFIX + _local_path_source(local_path)
        return cls(local_path=local_path, regex=re.compile(source))

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None

    def find_and_replace(self, text: str, replacement: str) -> str:
        """Replace every reference while keeping the quote/paren/operator before it."""
        return self.regex.sub(lambda match: match.group(1) + replacement, text)


def public_path_pattern(public_path: str) -> re.Pattern | None:
    """Pattern matching a public-path prefix right after an assignment or attribute.

    Returns None when the public path has no non-empty segment.
    """
    trimmed = public_path.strip().strip(SEPARATOR)
    if not trimmed:
        return None
    segments = [part for part in trimmed.split(SEPARATOR) if part]
    if "://" in trimmed:
        body = re.escape(trimmed)
    else:
        body = SEPARATOR.join(re.escape(part) for part in segments)
    return re.compile(r"""([(=]\s*['"]?)(?:\.?/)?""" + body + SEPARATOR)
