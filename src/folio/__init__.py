"""folio - build a static blog from Markdown posts and drafts."""

__version__ = "0.3.0"
