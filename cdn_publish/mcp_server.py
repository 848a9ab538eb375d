"""MCP server exposing the publish pipeline as a tool."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .config import PublishConfig
from .manifest import load_manifest
from .orchestrator import PublishOrchestrator
from .publisher import HttpPublisher

logger = logging.getLogger("cdn_publish.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="cdn-publish")


@mcp.tool()
async def publish(
    manifest: str,
    endpoint: str,
    base_url: Optional[str] = None,
    src: str = "",
    dist: Optional[str] = None,
    resolve: Optional[List[str]] = None,
) -> str:
    """Upload a build's assets and rewrite references; returns the local->remote map as JSON."""
    manifest_path = Path(manifest).expanduser()
    build = load_manifest(manifest_path)

    errors: List[BaseException] = []
    config = PublishConfig(src=src, dist=dist, on_error=errors.append)
    if resolve:
        config.resolve = list(resolve)
    orchestrator = PublishOrchestrator(HttpPublisher(endpoint, base_url), config)
    ctx = await orchestrator.run(build)
    if ctx is None:
        raise RuntimeError(f"Failed to publish {manifest_path}: {errors[0] if errors else 'unknown error'}")
    return json.dumps(ctx.merged_url_map(), indent=2, sort_keys=True)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
