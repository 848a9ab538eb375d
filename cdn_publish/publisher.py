"""Publisher collaborators that turn local files into remote URLs."""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import requests
from filetype import guess

from .config import DEFAULT_CACHE_LOCATION, DEFAULT_SLICE_LIMIT, PublishConfig
from .utils import file_digest, read_text

logger = logging.getLogger("cdn_publish")


class Publisher(Protocol):
    """Anything that can upload a batch of files and report their URLs."""

    async def upload(self, paths: Sequence[str], options: Any = None) -> Dict[str, str]:
        ...


def guess_content_type(location: str, data: bytes) -> str:
    """Content type from the file signature, falling back to the extension."""
    kind = guess(data)
    if kind:
        return kind.mime
    mime, _ = mimetypes.guess_type(location)
    return mime or "application/octet-stream"


def remote_key(location: str, digest: str) -> str:
    """Content-addressed object key: <stem>.<md5[:8]><suffix>."""
    path = Path(location)
    return f"{path.stem}.{digest[:8]}{path.suffix}"


class HttpPublisher:
    """Upload files with HTTP PUT to an object store endpoint."""

    def __init__(
        self,
        endpoint: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.base_url = (base_url or endpoint).rstrip("/")
        self.timeout = timeout
        self.headers = dict(headers or {})
        self.session = session or requests.Session()

    def _put(self, location: str) -> str:
        data = Path(location).read_bytes()
        key = remote_key(location, file_digest(location))
        headers = {**self.headers, "Content-Type": guess_content_type(location, data)}
        resp = self.session.put(
            f"{self.endpoint}/{key}",
            data=data,
            headers=headers,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        url = f"{self.base_url}/{key}"
        logger.debug("Uploaded %s -> %s", location, url)
        return url

    def _upload_all(self, paths: Sequence[str], options: Any) -> Dict[str, str]:
        return {location: self._put(location) for location in paths}

    async def upload(self, paths: Sequence[str], options: Any = None) -> Dict[str, str]:
        return await asyncio.to_thread(self._upload_all, list(paths), options)


class PassThroughPublisher:
    """Forward a fixed options object with every upload."""

    def __init__(self, inner: Publisher, options: Any = None) -> None:
        self.inner = inner
        self.options = options

    async def upload(self, paths: Sequence[str], options: Any = None) -> Dict[str, str]:
        return await self.inner.upload(list(paths), self.options)


class SlicedPublisher:
    """Split a batch into slices and upload them concurrently."""

    def __init__(self, inner: Publisher, slice_limit: Optional[int] = None) -> None:
        self.inner = inner
        self.slice_limit = max(1, slice_limit or DEFAULT_SLICE_LIMIT)

    async def upload(self, paths: Sequence[str], options: Any = None) -> Dict[str, str]:
        paths = list(paths)
        slices = [
            paths[i : i + self.slice_limit]
            for i in range(0, len(paths), self.slice_limit)
        ]
        logger.debug("Uploading %d file(s) in %d slice(s)", len(paths), len(slices))
        results = await asyncio.gather(
            *(self.inner.upload(part, options) for part in slices)
        )
        merged: Dict[str, str] = {}
        for result in results:
            merged.update(result)
        return merged


class CachedPublisher:
    """Skip uploads of files whose content was already published.

    The cache is a JSON file mapping local path to content digest and URL.
    """

    def __init__(self, inner: Publisher, cache_location: Optional[str] = None) -> None:
        self.inner = inner
        self.cache_location = Path(cache_location or DEFAULT_CACHE_LOCATION)
        self._cache: Optional[Dict[str, Dict[str, str]]] = None

    def _load(self) -> Dict[str, Dict[str, str]]:
        if self._cache is None:
            if self.cache_location.exists():
                self._cache = json.loads(self.cache_location.read_text(encoding="utf-8"))
            else:
                self._cache = {}
        return self._cache

    def _save(self) -> None:
        self.cache_location.parent.mkdir(parents=True, exist_ok=True)
        self.cache_location.write_text(
            json.dumps(self._load(), indent=2, sort_keys=True), encoding="utf-8"
        )

    async def upload(self, paths: Sequence[str], options: Any = None) -> Dict[str, str]:
        cache = self._load()
        result: Dict[str, str] = {}
        pending: List[str] = []
        digests: Dict[str, str] = {}
        for location in paths:
            digest = file_digest(location)
            digests[location] = digest
            entry = cache.get(location)
            if entry and entry.get("hash") == digest:
                result[location] = entry["url"]
            else:
                pending.append(location)
        logger.debug("Cache hit for %d file(s), uploading %d", len(result), len(pending))
        if pending:
            uploaded = await self.inner.upload(pending, options)
            for location, url in uploaded.items():
                cache[location] = {"hash": digests.get(location, ""), "url": url}
                result[location] = url
            self._save()
        return result


class HookedPublisher:
    """Upload a transformed copy of each file produced by before_upload."""

    def __init__(self, inner: Publisher, before_upload: Optional[Callable[[str, str], str]] = None) -> None:
        self.inner = inner
        self.before_upload = before_upload

    async def upload(self, paths: Sequence[str], options: Any = None) -> Dict[str, str]:
        if self.before_upload is None:
            return await self.inner.upload(paths, options)
        with tempfile.TemporaryDirectory(prefix="cdn-publish-") as tmp_dir:
            staged: Dict[str, str] = {}
            for index, location in enumerate(paths):
                try:
                    content = read_text(location)
                except UnicodeDecodeError:
                    staged[location] = location
                    continue
                processed = self.before_upload(content, location)
                if not isinstance(processed, str) or processed == content:
                    staged[location] = location
                    continue
                # same basename as the original, one directory per file
                target = Path(tmp_dir) / str(index) / os.path.basename(location)
                target.parent.mkdir(parents=True)
                target.write_text(processed, encoding="utf-8")
                staged[str(target)] = location
            uploaded = await self.inner.upload(list(staged), options)
        return {staged[path]: url for path, url in uploaded.items()}


def build_publisher(raw: Publisher, config: PublishConfig) -> Publisher:
    """Wrap a raw publisher the way the pipeline expects to call it."""
    if not config.enable_cache and config.cache_location:
        logger.warning("'cache_location' provided while 'enable_cache' is not set; cache stays off")
    publisher: Publisher = PassThroughPublisher(raw, config.pass_to_cdn)
    publisher = SlicedPublisher(publisher, config.slice_limit)
    publisher = HookedPublisher(publisher, config.before_upload)
    # outermost, so entries are keyed by the real local paths
    if config.enable_cache:
        publisher = CachedPublisher(publisher, config.cache_location)
    return publisher
