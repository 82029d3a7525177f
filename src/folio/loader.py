"""Post loader: discovers source files and parses their metadata headers.

A source file starts with a metadata header followed by a Markdown body.
Two header shapes are accepted:

Jekyll front matter::

    ---
    layout: post
    title: "Hello"
    date: 2020-01-01
    tags: [scala, types]
    ---

    Body...

or a bare block of ``key: value`` lines that ends at the first blank line.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, datetime, time
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from folio.config import ContentSection
from folio.errors import DuplicateSlugError, MalformedHeaderError
from folio.models import Post

logger = logging.getLogger(__name__)

FENCE = "---"
MARKDOWN_SUFFIXES = (".md", ".markdown")

_DATE_PREFIX_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})-(.+)$")
_HEADER_KEY_RE = re.compile(r"^[A-Za-z_][\w-]*\s*:")
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
)


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------


def split_header(text: str, path: Path | None = None) -> tuple[dict[str, Any], str]:
    """Split a source file into its metadata mapping and Markdown body.

    Raises:
        MalformedHeaderError: No header, invalid YAML, or not a mapping.
    """
    text = text.removeprefix("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines:
        raise MalformedHeaderError("file is empty, expected a metadata header", path)

    if lines[0].strip() == FENCE:
        for i in range(1, len(lines)):
            if lines[i].strip() in (FENCE, "..."):
                raw_header = "".join(lines[1:i])
                body = "".join(lines[i + 1 :])
                break
        else:
            raise MalformedHeaderError("front matter has no closing '---' line", path)
    elif _HEADER_KEY_RE.match(lines[0]):
        end = len(lines)
        for i, line in enumerate(lines):
            if not line.strip():
                end = i
                break
        raw_header = "".join(lines[:end])
        body = "".join(lines[end + 1 :])
    else:
        raise MalformedHeaderError("missing metadata header", path)

    try:
        meta = yaml.safe_load(raw_header)
    except yaml.YAMLError as exc:
        raise MalformedHeaderError(f"header is not valid YAML: {exc}", path) from exc

    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise MalformedHeaderError(
            f"header must be a mapping of keys to values, got {type(meta).__name__}", path
        )

    return {str(k): v for k, v in meta.items()}, body.lstrip("\r\n")


def parse_date(value: Any) -> datetime:
    """Coerce a header date into an aware datetime (naive values become UTC).

    Raises:
        ValueError: The value is not a recognizable date.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        raw = value.strip()
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            for fmt in _DATE_FORMATS:
                try:
                    parsed = datetime.strptime(raw, fmt)
                    break
                except ValueError:
                    continue
            else:
                raise ValueError(f"unrecognized date {value!r}") from None
    else:
        raise ValueError(f"unrecognized date {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------


def slugify(text: str) -> str:
    """Lower-case ``text`` and collapse everything but ``[a-z0-9]`` into dashes."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")


def slug_from_filename(path: Path) -> tuple[str, date | None]:
    """Derive the slug (and the optional date prefix) from a file name.

    ``2020-01-01-type-safety.md`` gives ``("type-safety", date(2020, 1, 1))``.
    """
    stem = path.stem
    prefix_date: date | None = None
    match = _DATE_PREFIX_RE.match(stem)
    if match:
        try:
            prefix_date = date.fromisoformat(match.group(1))
            stem = match.group(2)
        except ValueError:
            prefix_date = None
    return slugify(stem), prefix_date


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


def parse_post(path: Path, is_draft: bool = False) -> Post:
    """Read one source file into a Post.

    Raises:
        MalformedHeaderError: The header is missing required fields or invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedHeaderError("file is not valid UTF-8", path) from exc

    meta, body = split_header(text, path)

    for required in ("title", "layout"):
        value = meta.get(required)
        if value is None or not str(value).strip():
            raise MalformedHeaderError(f"missing required field {required!r}", path)

    slug, prefix_date = slug_from_filename(path)
    if not slug:
        raise MalformedHeaderError("file name does not produce a usable slug", path)

    raw_date = meta.pop("date", None)
    publish_date: datetime | None = None
    try:
        if raw_date is not None:
            publish_date = parse_date(raw_date)
        elif prefix_date is not None:
            publish_date = parse_date(prefix_date)
    except ValueError as exc:
        raise MalformedHeaderError(f"invalid 'date': {exc}", path) from exc

    title = str(meta.pop("title"))
    layout = str(meta.pop("layout"))
    tags = meta.pop("tags", None)
    category = meta.pop("category", None)

    try:
        post = Post(
            slug=slug,
            title=title,
            layout=layout,
            body=body,
            publish_date=publish_date,
            tags=tags,
            category=category,
            is_draft=is_draft,
            source_path=path,
            extra=meta,
        )
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(part) for part in first["loc"]) or "header"
        raise MalformedHeaderError(f"{where}: {first['msg']}", path) from exc

    logger.debug("Loaded %s as %r", path, post.slug)
    return post


class PostLoader:
    """Discovers and reads posts and drafts under a site source directory."""

    def __init__(self, content: ContentSection | None = None) -> None:
        self.content = content or ContentSection()

    def discover(self, source: Path) -> list[tuple[Path, bool]]:
        """List ``(path, is_draft)`` for every source file, posts first."""
        found: list[tuple[Path, bool]] = []
        for dirname, is_draft in (
            (self.content.posts_dir, False),
            (self.content.drafts_dir, True),
        ):
            directory = source / dirname
            if not directory.is_dir():
                logger.debug("No %s directory at %s", "drafts" if is_draft else "posts", directory)
                continue
            files = sorted(
                p for p in directory.rglob("*") if p.is_file() and p.suffix.lower() in MARKDOWN_SUFFIXES
            )
            found.extend((p, is_draft) for p in files)
        return found

    def load(self, source: Path, workers: int = 1) -> list[Post]:
        """Load every post and draft, then enforce slug uniqueness.

        Args:
            source: Site source directory.
            workers: Parse files on a thread pool when greater than one.

        Returns:
            Posts in discovery order.

        Raises:
            MalformedHeaderError: A file has a bad header.
            DuplicateSlugError: Two files map to the same slug.
        """
        discovered = self.discover(source)
        paths = [p for p, _ in discovered]
        flags = [d for _, d in discovered]

        if workers > 1 and len(discovered) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                posts = list(pool.map(parse_post, paths, flags))
        else:
            posts = [parse_post(p, d) for p, d in discovered]

        check_unique_slugs(posts)
        logger.info(
            "Loaded %d post(s) and %d draft(s) from %s",
            sum(1 for p in posts if not p.is_draft),
            sum(1 for p in posts if p.is_draft),
            source,
        )
        return posts


def check_unique_slugs(posts: list[Post]) -> None:
    """Raise DuplicateSlugError on the first slug produced by two files."""
    seen: dict[str, Path] = {}
    for post in posts:
        if post.slug in seen:
            raise DuplicateSlugError(post.slug, seen[post.slug], post.source_path)
        seen[post.slug] = post.source_path
