"""
Shared fixtures for the publish pipeline tests.

Provides a recording in-memory publisher and a small compiled site on disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from cdn_publish.models import BuildChunk, BuildManifest

CDN = "https://cdn.example.com"

ENTRY_JS = """\
var logo = "img/logo.png";
__webpack_require__.p = "/static/";
script.src = __webpack_require__.p + "js/" + ({}[chunkId]||chunkId) + "." + {"1":"abc12345"}[chunkId] + ".js";
"""

CHUNK_JS = 'console.log("chunk one");\n'

APP_CSS = ".logo{background:url(../img/logo.png)}\n"

INDEX_HTML = """\
<html>
<head><link rel="stylesheet" href="/static/css/app.css"></head>
<body>
<img src="/static/img/logo.png">
<script src="/static/js/main.js"></script>
</body>
</html>
"""


class FakePublisher:
    """Records every batch and what each text file looked like when uploaded."""

    def __init__(self, fail_on_call: int | None = None) -> None:
        self.batches: List[List[str]] = []
        self.snapshots: Dict[str, str] = {}
        self.fail_on_call = fail_on_call

    async def upload(self, paths: Sequence[str], options=None) -> Dict[str, str]:
        self.batches.append(list(paths))
        if self.fail_on_call is not None and len(self.batches) == self.fail_on_call:
            raise RuntimeError("bucket unavailable")
        result = {}
        for location in paths:
            path = Path(location)
            if path.suffix in (".js", ".css", ".html"):
                self.snapshots[location] = path.read_text(encoding="utf-8")
            result[location] = f"{CDN}/{path.name}"
        return result


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def site(tmp_path):
    """A compiled build: one entry, one chunk, one stylesheet, one image, one template."""
    dist = tmp_path / "dist"
    for relative, content in {
        "js/main.js": ENTRY_JS,
        "js/1.abc12345.js": CHUNK_JS,
        "css/app.css": APP_CSS,
        "index.html": INDEX_HTML,
    }.items():
        target = dist / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    logo = dist / "img" / "logo.png"
    logo.parent.mkdir(parents=True, exist_ok=True)
    logo.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\0" * 32)
    return dist


@pytest.fixture
def manifest(site):
    names = ["js/main.js", "js/1.abc12345.js", "css/app.css", "img/logo.png", "index.html"]
    return BuildManifest(
        chunks=[BuildChunk(id=1, name=None, rendered_hash="abc12345ffff")],
        assets={name: (site / name).as_posix() for name in names},
        chunk_filename="js/[id].[chunkhash:8].js",
        public_path="/static/",
    )
