"""Renderer: Markdown body plus named layout to an HTML document."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from markupsafe import Markup

from folio.config import FolioConfig
from folio.layouts import build_environment, get_layout
from folio.markup import check_references, to_html
from folio.models import Post, RenderedPost

logger = logging.getLogger(__name__)


class Renderer:
    """Renders posts and listing pages with the site's layouts."""

    def __init__(self, config: FolioConfig | None = None, layouts_dir: Path | None = None) -> None:
        self.config = config or FolioConfig()
        self.env = build_environment(layouts_dir)

    def _context(self, root: str, **kwargs: Any) -> dict[str, Any]:
        return {
            "site": self.config.site,
            "root": root,
            "has_feed": self.config.publishes_feeds and self.config.build.feed,
            "tag_pages": self.config.build.tag_pages,
            "category_pages": self.config.build.category_pages,
            **kwargs,
        }

    def render(self, post: Post) -> RenderedPost:
        """Render one post.

        Raises:
            UnresolvedLinkReferenceError: A reference link has no definition.
            LayoutNotFoundError: The post's layout does not exist.
        """
        check_references(post.body, post.source_path)
        content = to_html(post.body)
        template = get_layout(self.env, post.layout, post.source_path)
        document = template.render(
            self._context(
                "../",
                post=post,
                content=Markup(content),
                page_title=post.title,
            )
        )
        logger.debug("Rendered %s with layout %r", post.slug, post.layout)
        return RenderedPost(post=post, content=content, document=document)

    def render_all(self, posts: list[Post], workers: int = 1) -> list[RenderedPost]:
        """Render posts in input order, optionally on a thread pool."""
        if workers > 1 and len(posts) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                return list(pool.map(self.render, posts))
        return [self.render(post) for post in posts]

    def render_index(self, posts: list[Post]) -> str:
        """The chronological front page."""
        template = get_layout(self.env, "index")
        return template.render(self._context("", posts=posts, page_title=None))

    def render_listing(self, title: str, posts: list[Post]) -> str:
        """A per-tag or per-category page one directory below the root."""
        template = get_layout(self.env, "listing")
        return template.render(self._context("../", posts=posts, page_title=title))
