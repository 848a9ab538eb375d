"""Tests for publisher collaborators and wrappers."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from pathlib import Path
from unittest.mock import MagicMock

from cdn_publish.config import PublishConfig
from cdn_publish.publisher import (
    CachedPublisher,
    HookedPublisher,
    HttpPublisher,
    SlicedPublisher,
    build_publisher,
    guess_content_type,
    remote_key,
)

from conftest import CDN, FakePublisher


def _files(root: Path, count: int):
    paths = []
    for index in range(count):
        target = root / f"f{index}.css"
        target.write_text(f"a{{z-index:{index}}}", encoding="utf-8")
        paths.append(target.as_posix())
    return paths


def test_sliced_publisher_splits_batches(tmp_path):
    inner = FakePublisher()
    paths = _files(tmp_path, 5)
    result = asyncio.run(SlicedPublisher(inner, slice_limit=2).upload(paths))
    assert [len(batch) for batch in inner.batches] == [2, 2, 1]
    assert result == {p: f"{CDN}/{Path(p).name}" for p in paths}


def test_cached_publisher_skips_unchanged(tmp_path):
    cache_file = tmp_path / "cache" / "uploads.json"
    paths = _files(tmp_path, 2)

    first = FakePublisher()
    asyncio.run(CachedPublisher(first, str(cache_file)).upload(paths))
    assert first.batches == [paths]
    assert cache_file.exists()

    second = FakePublisher()
    result = asyncio.run(CachedPublisher(second, str(cache_file)).upload(paths))
    assert second.batches == []
    assert set(result) == set(paths)

    Path(paths[0]).write_text("changed", encoding="utf-8")
    third = FakePublisher()
    asyncio.run(CachedPublisher(third, str(cache_file)).upload(paths))
    assert third.batches == [[paths[0]]]


def test_hooked_publisher_uploads_transformed_copy(tmp_path):
    inner = FakePublisher()
    paths = _files(tmp_path, 1)
    hooked = HookedPublisher(inner, lambda content, location: "/* banner */" + content)

    result = asyncio.run(hooked.upload(paths))

    uploaded = inner.batches[0][0]
    assert uploaded != paths[0]
    assert Path(uploaded).name == Path(paths[0]).name
    assert inner.snapshots[uploaded].startswith("/* banner */")
    assert list(result) == paths
    assert Path(paths[0]).read_text(encoding="utf-8") == "a{z-index:0}"


def test_hooked_publisher_without_change_uses_original(tmp_path):
    inner = FakePublisher()
    paths = _files(tmp_path, 1)
    asyncio.run(HookedPublisher(inner, lambda content, location: content).upload(paths))
    assert inner.batches == [paths]


def test_http_publisher_puts_content_addressed_keys(tmp_path):
    target = tmp_path / "app.css"
    target.write_text("body{}", encoding="utf-8")
    digest = hashlib.md5(b"body{}").hexdigest()
    session = MagicMock()
    publisher = HttpPublisher("https://upload.example.com/bucket/", "https://cdn.example.com", session=session)

    result = asyncio.run(publisher.upload([target.as_posix()]))

    key = f"app.{digest[:8]}.css"
    assert result == {target.as_posix(): f"https://cdn.example.com/{key}"}
    args, kwargs = session.put.call_args
    assert args[0] == f"https://upload.example.com/bucket/{key}"
    assert kwargs["headers"]["Content-Type"] == "text/css"
    session.put.return_value.raise_for_status.assert_called_once()


def test_remote_key_and_content_type():
    assert remote_key("/x/logo.png", "0123456789abcdef") == "logo.01234567.png"
    assert guess_content_type("/x/logo.bin", b"\x89PNG\r\n\x1a\n" + b"\0" * 32) == "image/png"
    assert guess_content_type("/x/unknown.zzz", b"plain") == "application/octet-stream"


def test_build_publisher_warns_on_cache_location_without_cache(caplog):
    with caplog.at_level(logging.WARNING, logger="cdn_publish"):
        publisher = build_publisher(FakePublisher(), PublishConfig(cache_location="x.json"))
    assert isinstance(publisher, HookedPublisher)
    assert "enable_cache" in caplog.text


def test_cache_hits_with_before_upload_hook(tmp_path):
    cache_file = tmp_path / "uploads.json"
    paths = _files(tmp_path, 2)
    config = PublishConfig(
        enable_cache=True,
        cache_location=str(cache_file),
        before_upload=lambda content, location: "/* banner */" + content,
    )

    first = FakePublisher()
    result = asyncio.run(build_publisher(first, config).upload(paths))
    assert set(result) == set(paths)
    assert len(first.batches) == 1

    second = FakePublisher()
    again = asyncio.run(build_publisher(second, config).upload(paths))
    assert second.batches == []
    assert again == result
    assert set(json.loads(cache_file.read_text(encoding="utf-8"))) == set(paths)
