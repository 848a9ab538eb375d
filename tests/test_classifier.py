"""Tests for asset role classification."""

from __future__ import annotations

from cdn_publish.classifier import classify, is_entry_script, role_for
from cdn_publish.models import AssetRole, ScriptRole


def _write(root, name, content=""):
    target = root / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target.as_posix()


def test_role_for_extensions():
    assert role_for("/a/b.PNG", ["html"]) is AssetRole.IMAGE
    assert role_for("/a/b.svg", ["html"]) is AssetRole.FONT
    assert role_for("/a/b.woff2", ["html"]) is AssetRole.FONT
    assert role_for("/a/b.css", ["html"]) is AssetRole.STYLESHEET
    assert role_for("/a/b.js", ["html"]) is AssetRole.SCRIPT
    assert role_for("/a/b.html", ["html"]) is AssetRole.TEMPLATE
    assert role_for("/a/b.ejs", [".ejs"]) is AssetRole.TEMPLATE
    assert role_for("/a/b.html", ["ejs"]) is AssetRole.OTHER
    assert role_for("/a/b.map", ["html"]) is AssetRole.OTHER


def test_classify_buckets_and_script_roles(tmp_path):
    entry = _write(tmp_path, "main.js", 's.src = __webpack_require__.p + m[chunkId] + ".js";')
    chunk = _write(tmp_path, "1.abc.js", "console.log(1);")
    plain = _write(tmp_path, "vendor.js", "console.log(2);")
    image = _write(tmp_path, "a.png")
    font = _write(tmp_path, "f.woff")
    css = _write(tmp_path, "s.css")
    html = _write(tmp_path, "index.html")
    other = _write(tmp_path, "notes.txt")

    assets = classify(
        [entry, chunk, plain, image, font, css, html, other],
        ["html"],
        {"1": "1.abc.js"},
    )

    assert assets.paths(AssetRole.IMAGE) == [image]
    assert assets.paths(AssetRole.FONT) == [font]
    assert assets.paths(AssetRole.STYLESHEET) == [css]
    assert assets.paths(AssetRole.TEMPLATE) == [html]
    assert assets.paths(AssetRole.SCRIPT) == [entry, chunk, plain]
    assert assets.script_paths(ScriptRole.ENTRY) == [entry]
    assert assets.script_paths(ScriptRole.CHUNK) == [chunk]
    assert assets.script_paths(ScriptRole.PLAIN) == [plain]
    assert assets.paths(AssetRole.OTHER) == []


def test_entry_wins_over_chunk_name(tmp_path):
    entry = _write(tmp_path, "0.main.js", 'x = __webpack_require__.p + m[id] + ".js"')
    assets = classify([entry], ["html"], {"0": "0.main.js"})
    assert assets.script_paths(ScriptRole.ENTRY) == [entry]
    assert assets.script_paths(ScriptRole.CHUNK) == []


def test_is_entry_script(tmp_path):
    assert is_entry_script(_write(tmp_path, "e.js", 'a = __loader__.p + t[i] + ".js";'))
    assert not is_entry_script(_write(tmp_path, "c.js", "var p = 1;"))


def test_chunk_names_match_whole_filenames(tmp_path):
    chunk = _write(tmp_path, "1.js", "console.log(1);")
    other = _write(tmp_path, "app1.js", "console.log(2);")
    assets = classify([chunk, other], ["html"], {"1": "1.js"})
    assert assets.script_paths(ScriptRole.CHUNK) == [chunk]
    assert assets.script_paths(ScriptRole.PLAIN) == [other]
