"""Tests for chunk filename reconstruction."""

from __future__ import annotations

import pytest

from cdn_publish.chunks import build_chunk_map, chunk_id_for, render_chunk_filename
from cdn_publish.errors import ConfigurationError
from cdn_publish.models import BuildChunk


def test_name_and_truncated_chunkhash():
    chunk = BuildChunk(id=1, name="app", rendered_hash="abcdef1234")
    assert build_chunk_map([chunk], "app.[name].[chunkhash:8].js") == {"1": "app.app.abcdef12.js"}


def test_name_falls_back_to_id():
    chunk = BuildChunk(id=7, rendered_hash="ffff")
    assert render_chunk_filename(chunk, "[name].[id].js") == "7.7.js"


def test_full_hash_without_length():
    chunk = BuildChunk(id="vendor", name="vendor", rendered_hash="0123456789abcdef")
    assert render_chunk_filename(chunk, "[name].[chunkhash].js") == "vendor.0123456789abcdef.js"


def test_chunkhash_truncates_to_exact_length():
    chunk = BuildChunk(id=2, rendered_hash="0123456789")
    rendered = render_chunk_filename(chunk, "[chunkhash:6]")
    assert rendered == "012345"
    assert len(rendered) == 6


def test_contenthash_mapping_uses_javascript_entry():
    chunk = BuildChunk(id=3, rendered_hash="aaaaaaaa", content_hash={"javascript": "bbbbbbbb"})
    assert render_chunk_filename(chunk, "[id].[contenthash:4].js") == "3.bbbb.js"


def test_contenthash_string_and_missing():
    with_hash = BuildChunk(id=4, rendered_hash="aaaaaaaa", content_hash="cccccccc")
    without = BuildChunk(id=5, rendered_hash="dddddddd")
    assert render_chunk_filename(with_hash, "[contenthash].js") == "cccccccc.js"
    assert render_chunk_filename(without, "[contenthash:3].js") == "ddd.js"


@pytest.mark.parametrize("template", ["[name].[hash].js", "[id].[hash:8].js"])
def test_build_hash_is_rejected(template):
    with pytest.raises(ConfigurationError):
        build_chunk_map([BuildChunk(id=1, rendered_hash="x")], template)


def test_build_is_deterministic():
    chunks = [
        BuildChunk(id=1, name="a", rendered_hash="1111aaaa"),
        BuildChunk(id=2, name=None, rendered_hash="2222bbbb"),
    ]
    template = "js/[name].[chunkhash:4].js"
    assert build_chunk_map(chunks, template) == build_chunk_map(chunks, template)
    assert build_chunk_map(chunks, template) == {"1": "js/a.1111.js", "2": "js/2.2222.js"}


def test_chunk_id_for_matches_by_containment():
    chunk_map = {"1": "js/a.1111.js", "2": "js/2.2222.js"}
    assert chunk_id_for("/srv/dist/js/2.2222.js", chunk_map) == "2"
    assert chunk_id_for("/srv/dist/js/main.js", chunk_map) is None


def test_chunk_id_for_respects_segment_boundary():
    chunk_map = {"1": "1.js", "11": "11.js"}
    assert chunk_id_for("/srv/dist/11.js", chunk_map) == "11"
    assert chunk_id_for("/srv/dist/1.js", chunk_map) == "1"
    assert chunk_id_for("/srv/dist/app1.js", chunk_map) is None
    assert chunk_id_for("1.js", chunk_map) == "1"
