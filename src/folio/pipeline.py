"""The post pipeline: Loader → Renderer → Assembler.

One pass, no retries. The first fatal error stops the run, and every
stage before ``SiteAssembler.write`` works in memory, so header, slug,
link and layout errors leave the destination untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path

from folio.assembler import SiteAssembler
from folio.config import FolioConfig, load_config
from folio.loader import PostLoader
from folio.models import BuildReport, DraftPolicy, Post
from folio.renderer import Renderer

logger = logging.getLogger(__name__)


def posts_to_render(posts: list[Post], config: FolioConfig) -> list[Post]:
    """Published posts always; drafts only under the preview policy."""
    if config.build.drafts == DraftPolicy.PREVIEW:
        return list(posts)
    return [p for p in posts if not p.is_draft]


def build_site(source: Path, destination: Path, config: FolioConfig | None = None) -> BuildReport:
    """Build the site under ``source`` into ``destination``.

    Args:
        source: Site source directory (``_posts/``, ``_drafts/``, ...).
        destination: Output directory; created if missing.
        config: Settings; loaded from ``source/folio.toml`` when omitted.

    Returns:
        Counts of what was written.

    Raises:
        SiteError: Any fatal error from loading, rendering or writing.
    """
    if config is None:
        config = load_config(source)
    workers = config.build.workers

    logger.info("Loading posts from %s", source)
    posts = PostLoader(config.content).load(source, workers=workers)

    renderer = Renderer(config, source / config.content.layouts_dir)
    selected = posts_to_render(posts, config)
    logger.info("Rendering %d post(s)", len(selected))
    rendered = renderer.render_all(selected, workers=workers)

    assembler = SiteAssembler(config, renderer)
    files = assembler.plan(rendered)
    return assembler.write(files, source, destination)
