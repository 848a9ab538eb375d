"""Configuration objects and constants for the publish pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Union

DEFAULT_SLICE_LIMIT = 10
DEFAULT_CACHE_LOCATION = ".cdn-publish-cache.json"
DEFAULT_TEMPLATE_TYPES = ("html",)
DEFAULT_CHUNK_FILENAME = "[id].js"

UrlCallback = Callable[[str, str], Any]
ReplaceCallback = Callable[[str, str], Any]


def _identity_url(remote_url: str, local_path: str) -> str:
    return remote_url


def _identity_content(content: str, location: str) -> str:
    return content


def _noop(*_args: Any) -> None:
    return None


async def _ready() -> bool:
    return True


@dataclass
class PublishConfig:
    """Options recognized by the publish pipeline."""

    src: str = ""
    dist: Optional[str] = None
    resolve: List[str] = field(default_factory=lambda: list(DEFAULT_TEMPLATE_TYPES))
    url_cb: UrlCallback = _identity_url
    on_finish: Callable[[], Any] = _noop
    on_error: Callable[[BaseException], Any] = _noop
    replace_fn: ReplaceCallback = _identity_content
    before_upload: Optional[Callable[[str, str], str]] = None
    static_dir: Union[str, List[str], None] = None
    wait_for: Callable[[], Awaitable[Any]] = _ready
    dirty_check: bool = False
    log_local_files: bool = False
    pass_to_cdn: Any = None
    enable_cache: bool = False
    cache_location: Optional[str] = None
    slice_limit: int = DEFAULT_SLICE_LIMIT
    force_copy_template: bool = True
    async_css: bool = False

    @property
    def src_root(self) -> Path:
        return Path(self.src).resolve()

    @property
    def dist_root(self) -> Path:
        return Path(self.dist if self.dist is not None else self.src).resolve()

    @property
    def static_dirs(self) -> List[str]:
        if not self.static_dir:
            return []
        if isinstance(self.static_dir, str):
            return [self.static_dir]
        return list(self.static_dir)

    @property
    def template_types(self) -> List[str]:
        return [ext.lstrip(".") for ext in self.resolve]
