"""Pure data models for the post pipeline.

No I/O here. The loader builds ``Post`` records, the renderer turns them
into ``RenderedPost`` records, and the assembler consumes those.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DraftPolicy(StrEnum):
    """What happens to files under the drafts directory."""

    EXCLUDE = "exclude"
    PREVIEW = "preview"


class Post(BaseModel):
    """A single authored article: metadata header plus Markdown body."""

    model_config = ConfigDict(frozen=True)

    slug: str
    title: str
    layout: str
    body: str = ""
    publish_date: datetime | None = None
    tags: tuple[str, ...] = ()
    category: str | None = None
    is_draft: bool = False
    source_path: Path = Path(".")
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", "layout", "slug")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split()
        elif not isinstance(value, list | tuple | set | frozenset):
            raise ValueError("tags must be a list of strings")
        return tuple(sorted({str(tag).strip() for tag in value if str(tag).strip()}))

    @field_validator("category", mode="before")
    @classmethod
    def _blank_category(cls, value: Any) -> str | None:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @model_validator(mode="after")
    def _published_needs_date(self) -> Post:
        if not self.is_draft and self.publish_date is None:
            raise ValueError("published posts need a date (header or YYYY-MM-DD- filename prefix)")
        return self

    @property
    def output_path(self) -> PurePosixPath:
        """Site-relative path of the rendered document."""
        folder = "drafts" if self.is_draft else "posts"
        return PurePosixPath(folder) / f"{self.slug}.html"

    @property
    def date_label(self) -> str:
        if self.publish_date is None:
            return "draft"
        return self.publish_date.strftime("%Y-%m-%d")


class RenderedPost(BaseModel):
    """A post after Markdown conversion and layout application."""

    model_config = ConfigDict(frozen=True)

    post: Post
    content: str
    document: str


class BuildReport(BaseModel):
    """Counts gathered while writing a site."""

    posts: int = 0
    drafts: int = 0
    pages: int = 0
    assets: int = 0
    files: list[str] = Field(default_factory=list)
