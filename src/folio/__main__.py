"""Allow running as ``python -m folio``."""

from folio.cli import app

app()
