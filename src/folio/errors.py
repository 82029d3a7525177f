"""Fatal build errors.

Every error stops the run. The CLI prints ``<ErrorName>: <message>`` to
stderr and exits non-zero; nothing is retried.
"""

from __future__ import annotations

from pathlib import Path


class SiteError(Exception):
    """Base class for errors that halt a build."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class MalformedHeaderError(SiteError):
    """Metadata header is missing, unparsable, or lacks required fields."""


class DuplicateSlugError(SiteError):
    """Two source files map to the same slug."""

    def __init__(self, slug: str, first: Path, second: Path) -> None:
        self.slug = slug
        self.paths = (first, second)
        super().__init__(f"slug {slug!r} is produced by both {first} and {second}")


class UnresolvedLinkReferenceError(SiteError):
    """A reference-style link has no matching ``[label]: url`` definition."""

    def __init__(self, missing: list[tuple[str, int]], path: Path | None = None) -> None:
        self.missing = missing
        labels = ", ".join(f"[{label}] (line {line})" for label, line in missing)
        super().__init__(f"undefined link reference(s): {labels}", path)


class LayoutNotFoundError(SiteError):
    """A post names a layout that no template provides."""


class OutputWriteError(SiteError):
    """The destination could not be written."""


class ConfigError(SiteError):
    """A config file, env var, or CLI flag holds an invalid value."""
