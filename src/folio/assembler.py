"""Site assembler: orders rendered posts and writes the output tree.

Assembly happens in two steps. ``plan`` builds every output document in
memory as ``relative path -> bytes``; ``write`` puts them on disk and
copies static assets. A build that fails while planning leaves the
destination untouched.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path

from folio import feeds
from folio.config import FolioConfig
from folio.errors import OutputWriteError
from folio.loader import slugify
from folio.models import BuildReport, DraftPolicy, Post, RenderedPost
from folio.renderer import Renderer

logger = logging.getLogger(__name__)


def _sort_key(post: Post) -> datetime:
    return post.publish_date or datetime.min.replace(tzinfo=UTC)


def published(posts: list[Post]) -> list[Post]:
    """Published posts, newest first, ties broken by slug."""
    live = sorted((p for p in posts if not p.is_draft), key=lambda p: p.slug)
    return sorted(live, key=_sort_key, reverse=True)


def _group(posts: list[Post], names_of) -> dict[str, tuple[str, list[Post]]]:
    groups: dict[str, tuple[str, list[Post]]] = {}
    for post in posts:
        for name in names_of(post):
            key = slugify(name)
            if not key:
                logger.warning("Skipping %r on %s: name has no usable slug", name, post.slug)
                continue
            groups.setdefault(key, (name, []))[1].append(post)
    return dict(sorted(groups.items()))


def group_by_tag(posts: list[Post]) -> dict[str, tuple[str, list[Post]]]:
    """Map tag slug to ``(display name, posts)``, keeping the input order of posts."""
    return _group(posts, lambda p: p.tags)


def group_by_category(posts: list[Post]) -> dict[str, tuple[str, list[Post]]]:
    """Map category slug to ``(display name, posts)``, keeping the input order of posts."""
    return _group(posts, lambda p: [p.category] if p.category else [])


class SiteAssembler:
    """Lays out index, listing, post and feed files for a site."""

    def __init__(self, config: FolioConfig, renderer: Renderer) -> None:
        self.config = config
        self.renderer = renderer

    def plan(self, rendered: list[RenderedPost]) -> dict[str, bytes]:
        """Build every output document in memory, keyed by relative path."""
        by_slug = {r.post.slug: r for r in rendered}
        live = [by_slug[p.slug] for p in published([r.post for r in rendered])]
        posts = [r.post for r in live]
        build = self.config.build

        files: dict[str, bytes] = {}
        sitemap_pages: list[tuple[str, datetime | None]] = []
        newest = posts[0].publish_date if posts else None

        files["index.html"] = self.renderer.render_index(posts).encode("utf-8")
        sitemap_pages.append(("index.html", newest))

        for r in live:
            path = str(r.post.output_path)
            files[path] = r.document.encode("utf-8")
            sitemap_pages.append((path, r.post.publish_date))

        listings: list[tuple[str, str, dict[str, tuple[str, list[Post]]]]] = []
        if build.tag_pages:
            listings.append(("tags", "Posts tagged {}", group_by_tag(posts)))
        if build.category_pages:
            listings.append(("categories", "Category: {}", group_by_category(posts)))

        for folder, heading, groups in listings:
            for key, (name, group) in groups.items():
                path = f"{folder}/{key}.html"
                files[path] = self.renderer.render_listing(heading.format(name), group).encode("utf-8")
                sitemap_pages.append((path, group[0].publish_date))

        if build.drafts == DraftPolicy.PREVIEW:
            for r in sorted((r for r in rendered if r.post.is_draft), key=lambda r: r.post.slug):
                files[str(r.post.output_path)] = r.document.encode("utf-8")

        if self.config.publishes_feeds:
            if build.feed:
                files["feed.xml"] = feeds.rss_feed(self.config.site, live[: build.feed_limit])
            if build.sitemap:
                files["sitemap.xml"] = feeds.sitemap(self.config.site, sitemap_pages)
        else:
            logger.info("site.url is not set, skipping feed and sitemap")

        return files

    def write(self, files: dict[str, bytes], source: Path, destination: Path) -> BuildReport:
        """Write planned files, then copy static assets.

        Raises:
            OutputWriteError: Any file or directory could not be written.
        """
        if self.config.build.clean:
            clean_destination(source, destination)

        report = BuildReport()
        for relative, data in files.items():
            _write_file(destination / relative, data)
            report.files.append(relative)
            if relative.startswith("posts/"):
                report.posts += 1
            elif relative.startswith("drafts/"):
                report.drafts += 1
            elif relative.endswith(".html"):
                report.pages += 1

        for relative in self.copy_assets(source, destination, skip=set(files)):
            report.assets += 1
            report.files.append(relative)

        logger.info(
            "Wrote %d post(s), %d page(s), %d draft(s), %d asset(s) to %s",
            report.posts, report.pages, report.drafts, report.assets, destination,
        )
        return report

    def copy_assets(self, source: Path, destination: Path, skip: set[str] | None = None) -> list[str]:
        """Copy static files verbatim and return their relative paths.

        Files under ``_``- or ``.``-prefixed directories, files matching
        ``content.exclude``, and anything inside the destination are skipped.
        """
        skip = skip or set()
        destination = destination.resolve()
        copied: list[str] = []

        for path in sorted(source.rglob("*")):
            if not path.is_file():
                continue
            rel = path.relative_to(source)
            if any(part.startswith(("_", ".")) for part in rel.parts):
                continue
            if path.resolve().is_relative_to(destination):
                continue
            relative = rel.as_posix()
            if self._excluded(relative):
                continue
            if relative in skip:
                logger.warning("Static file %s clashes with a generated page, skipping", relative)
                continue

            target = destination / rel
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(path, target)
            except OSError as exc:
                raise OutputWriteError(f"cannot copy asset: {exc.strerror or exc}", target) from exc
            logger.debug("Copied %s", relative)
            copied.append(relative)

        return copied

    def _excluded(self, relative: str) -> bool:
        name = relative.rsplit("/", 1)[-1]
        return any(
            fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(name, pattern)
            for pattern in self.config.content.exclude
        )


def _write_file(target: Path, data: bytes) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        raise OutputWriteError(f"cannot write file: {exc.strerror or exc}", target) from exc


def clean_destination(source: Path, destination: Path) -> None:
    """Remove everything inside ``destination``.

    Raises:
        OutputWriteError: The destination is, or contains, the source tree,
            or something could not be removed.
    """
    if not destination.exists():
        return
    src = source.resolve()
    dest = destination.resolve()
    if src == dest or src.is_relative_to(dest):
        raise OutputWriteError("refusing to clean a destination that contains the source", destination)
    if not dest.is_dir():
        raise OutputWriteError("destination is not a directory", destination)

    for child in sorted(dest.iterdir()):
        try:
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        except OSError as exc:
            raise OutputWriteError(f"cannot remove: {exc.strerror or exc}", child) from exc
    logger.info("Cleaned %s", destination)
