"""High-level orchestration of the phased upload and rewrite run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from .chunks import build_chunk_map, chunk_id_for
from .classifier import STYLESHEET_TYPES, classify
from .config import PublishConfig
from .errors import UploadError
from .manifest import scan_static_dirs
from .models import AssetRole, BuildManifest, RunContext, ScriptRole
from .publisher import Publisher, build_publisher
from .rewriter import (
    Pair,
    Transform,
    apply,
    apply_url_callback,
    make_transform,
    update_css_load,
    update_script_src,
)
from .utils import gather_files, map_src_to_dist

logger = logging.getLogger("cdn_publish")


@dataclass(frozen=True)
class PhaseEnv:
    """Collaborators shared by every phase of a run."""

    publisher: Publisher
    config: PublishConfig
    transform: Transform


Phase = Callable[[RunContext, PhaseEnv], Awaitable[RunContext]]


async def upload_batch(env: PhaseEnv, paths: Sequence[str], label: str) -> Dict[str, str]:
    """Upload one batch and check every path came back with a URL."""
    if not paths:
        logger.debug("No %s to upload", label)
        return {}
    logger.info("Uploading %s...", label)
    if env.config.log_local_files:
        logger.info("Local %s: %s", label, list(paths))
    try:
        result = await env.publisher.upload(list(paths))
    except Exception as exc:
        raise UploadError(f"Failed to upload {label}: {exc}") from exc
    missing = [location for location in paths if location not in result]
    if missing:
        raise UploadError(f"Publisher returned no URL for {len(missing)} {label}: {missing}")
    return dict(result)


def chunk_cdn_map_from(
    pairs: Sequence[Pair],
    chunk_map: Mapping[str, str],
    start: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Resolve uploaded chunk files back to their chunk ids."""
    result: Dict[str, str] = dict(start or {})
    for local_path, remote_url in pairs:
        chunk_id = chunk_id_for(local_path, chunk_map)
        if chunk_id is None:
            logger.debug("%s does not belong to any known chunk", local_path)
            continue
        result[chunk_id] = remote_url if isinstance(remote_url, str) else str(remote_url)
    return result


def prepare(manifest: BuildManifest, config: PublishConfig) -> RunContext:
    """Classify build outputs and rebuild the chunk filename map."""
    if manifest.mode and manifest.mode != "none":
        logger.warning("Set the build mode to 'none' to make rewriting reliable (got %r)", manifest.mode)
    if manifest.public_path:
        logger.warning(
            "publicPath is %r; it will be stripped from references, but clearing it in the build is preferred",
            manifest.public_path,
        )
    chunk_map = build_chunk_map(manifest.chunks, manifest.chunk_filename)

    static_dirs = config.static_dirs
    if static_dirs:
        locations = scan_static_dirs(static_dirs, config.template_types)
    else:
        locations = manifest.assets
    assets = classify(list(locations.values()), config.template_types, chunk_map)

    if static_dirs and not assets.templates and not config.src:
        logger.warning(
            "static_dir is set but no template files were found there; use src to include templates"
        )
    return RunContext(manifest=manifest, assets=assets, chunk_map=chunk_map)


async def upload_images_and_fonts(ctx: RunContext, env: PhaseEnv) -> RunContext:
    paths = ctx.assets.paths(AssetRole.IMAGE) + ctx.assets.paths(AssetRole.FONT)
    return replace(ctx, img_font_map=await upload_batch(env, paths, "images and fonts"))


async def rewrite_static_references(ctx: RunContext, env: PhaseEnv) -> RunContext:
    """Point scripts and stylesheets at the uploaded images and fonts."""
    logger.info("Updating css/js files with new image and font URLs...")
    pairs = apply_url_callback(ctx.img_font_map, env.config.url_cb)
    targets = ctx.assets.paths(AssetRole.SCRIPT) + ctx.assets.paths(AssetRole.STYLESHEET)
    for location in targets:
        apply(location, location, pairs, env.transform)
    return ctx


async def upload_chunks(ctx: RunContext, env: PhaseEnv) -> RunContext:
    chunk_urls = await upload_batch(env, ctx.assets.script_paths(ScriptRole.CHUNK), "chunks")
    pairs = apply_url_callback(chunk_urls, env.config.url_cb)
    return replace(ctx, chunk_cdn_map=chunk_cdn_map_from(pairs, ctx.chunk_map))


async def upload_stylesheets(ctx: RunContext, env: PhaseEnv) -> RunContext:
    css_map = await upload_batch(env, ctx.assets.paths(AssetRole.STYLESHEET), "css")
    if env.config.async_css:
        # entry scripts still hold their local content at this point
        update_css_load(
            ctx.assets.script_paths(ScriptRole.ENTRY),
            apply_url_callback(css_map, env.config.url_cb),
        )
    return replace(ctx, css_map=css_map)


async def upload_entries(ctx: RunContext, env: PhaseEnv) -> RunContext:
    """Patch and upload scripts carrying the chunk loader."""
    entries = ctx.assets.script_paths(ScriptRole.ENTRY)
    if not entries:
        return ctx
    update_script_src(entries, ctx.chunk_cdn_map)
    common_map = await upload_batch(env, entries, "common/entry chunks")
    chunk_cdn_map = chunk_cdn_map_from(
        apply_url_callback(common_map, env.config.url_cb),
        ctx.chunk_map,
        ctx.chunk_cdn_map,
    )
    return replace(ctx, common_map=common_map, chunk_cdn_map=chunk_cdn_map)


async def upload_scripts(ctx: RunContext, env: PhaseEnv) -> RunContext:
    """Patch every remaining script with the full chunk table and upload it."""
    scripts = ctx.assets.paths(AssetRole.SCRIPT)
    if env.config.dirty_check:
        targets = scripts
    else:
        entries = set(ctx.assets.script_paths(ScriptRole.ENTRY))
        targets = [location for location in scripts if location not in entries]
    update_script_src(targets, ctx.chunk_cdn_map)
    return replace(ctx, js_map=await upload_batch(env, targets, "js"))


def template_files(ctx: RunContext, config: PublishConfig) -> List[str]:
    """Templates come from src when given, otherwise from the build output."""
    if not config.src:
        return ctx.assets.paths(AssetRole.TEMPLATE)
    return gather_files(config.src, config.template_types)


async def rewrite_templates(ctx: RunContext, env: PhaseEnv) -> RunContext:
    config = env.config
    pairs = apply_url_callback(ctx.merged_url_map(), config.url_cb)
    src_root = str(config.src_root)
    dist_root = str(config.dist_root)
    for location in template_files(ctx, config):
        destination = map_src_to_dist(location, src_root, dist_root)
        apply(location, destination, pairs, env.transform, config.force_copy_template)
        logger.debug("Rewrote template %s -> %s", location, destination)
    return ctx


PHASES: List[Phase] = [
    upload_images_and_fonts,
    rewrite_static_references,
    upload_chunks,
    upload_stylesheets,
    upload_entries,
    upload_scripts,
    rewrite_templates,
]


class PublishOrchestrator:
    """Run the publish phases for one finished build."""

    def __init__(self, publisher: Publisher, config: Optional[PublishConfig] = None) -> None:
        self.config = config or PublishConfig()
        self.publisher = build_publisher(publisher, self.config)

    def _env(self, manifest: BuildManifest) -> PhaseEnv:
        strip_types = [*STYLESHEET_TYPES, *self.config.template_types]
        transform = make_transform(manifest.public_path, self.config.replace_fn, strip_types)
        return PhaseEnv(publisher=self.publisher, config=self.config, transform=transform)

    async def run(self, manifest: BuildManifest) -> Optional[RunContext]:
        """Execute every phase; returns the final context, or None if the run aborted."""
        try:
            await self.config.wait_for()
            ctx = prepare(manifest, self.config)
            env = self._env(manifest)
            for phase in PHASES:
                ctx = await phase(ctx, env)
            self.config.on_finish()
            logger.info("All done")
            return ctx
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Publish run aborted")
            self.config.on_error(exc)
            return None


async def publish(
    manifest: BuildManifest,
    publisher: Publisher,
    config: Optional[PublishConfig] = None,
) -> Optional[RunContext]:
    """Convenience wrapper running a single publish for manifest."""
    return await PublishOrchestrator(publisher, config).run(manifest)
