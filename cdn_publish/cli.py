"""Command-line entry point for publishing a finished build."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .config import DEFAULT_CACHE_LOCATION, DEFAULT_SLICE_LIMIT, DEFAULT_TEMPLATE_TYPES, PublishConfig
from .errors import ManifestError
from .manifest import load_manifest
from .orchestrator import PublishOrchestrator
from .publisher import HttpPublisher

logger = logging.getLogger("cdn_publish.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Upload build assets to a content host and rewrite every local reference "
            "in scripts, stylesheets and templates to the remote URLs."
        ),
    )
    parser.add_argument("manifest", type=Path, help="JSON build manifest describing chunks and assets")
    parser.add_argument("--endpoint", required=True, help="Object store URL files are PUT to")
    parser.add_argument(
        "--base-url",
        default=None,
        help="Public URL prefix of uploaded files (defaults to the endpoint)",
    )
    parser.add_argument("--src", default="", help="Directory holding the source templates")
    parser.add_argument(
        "--dist",
        default=None,
        help="Directory rewritten templates are written to (defaults to --src)",
    )
    parser.add_argument(
        "--resolve",
        nargs="+",
        default=list(DEFAULT_TEMPLATE_TYPES),
        help="Template extensions to rewrite",
    )
    parser.add_argument(
        "--static-dir",
        action="append",
        default=None,
        help="Scan this directory for assets instead of the manifest (repeatable)",
    )
    parser.add_argument(
        "--dirty-check",
        action="store_true",
        help="Re-patch the chunk table of entry scripts in the final js pass",
    )
    parser.add_argument(
        "--async-css",
        action="store_true",
        help="Rewrite the async stylesheet href map inside entry scripts",
    )
    parser.add_argument(
        "--enable-cache",
        action="store_true",
        help="Skip uploads of files whose content was already published",
    )
    parser.add_argument(
        "--cache-location",
        default=None,
        help=f"Cache file used with --enable-cache (default: {DEFAULT_CACHE_LOCATION})",
    )
    parser.add_argument(
        "--slice-limit",
        type=int,
        default=DEFAULT_SLICE_LIMIT,
        help="Number of files per concurrent upload slice",
    )
    parser.add_argument(
        "--no-force-copy-template",
        action="store_true",
        help="Leave existing template outputs alone when nothing changed",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="HTTP timeout per upload in seconds",
    )
    parser.add_argument(
        "--log-local-files",
        action="store_true",
        help="Log every local file before it is uploaded",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PublishConfig:
    return PublishConfig(
        src=args.src,
        dist=args.dist,
        resolve=list(args.resolve),
        static_dir=args.static_dir,
        dirty_check=args.dirty_check,
        log_local_files=args.log_local_files,
        enable_cache=args.enable_cache,
        cache_location=args.cache_location,
        slice_limit=args.slice_limit,
        force_copy_template=not args.no_force_copy_template,
        async_css=args.async_css,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    try:
        manifest = load_manifest(args.manifest)
    except ManifestError as exc:
        logger.error("%s", exc)
        return 1

    publisher = HttpPublisher(args.endpoint, args.base_url, timeout=args.timeout)
    orchestrator = PublishOrchestrator(publisher, build_config(args))

    overall_start = time.perf_counter()
    ctx = asyncio.run(orchestrator.run(manifest))
    total_elapsed = time.perf_counter() - overall_start
    if ctx is None:
        logger.error("Publish failed after %.2fs", total_elapsed)
        return 1

    logger.info(
        "Finished in %.2fs (%d file(s) published)",
        total_elapsed,
        len(ctx.merged_url_map()),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
