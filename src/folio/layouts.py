"""Jinja2 layout lookup.

A post's ``layout`` header names a template ``<layout>.html``. The site's
own ``_layouts/`` directory is searched first, then the templates bundled
with folio (``default``, ``post``, ``index``, ``listing``).
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    Template,
    TemplateNotFound,
    select_autoescape,
)

from folio.errors import LayoutNotFoundError
from folio.loader import slugify

BUILTIN_LAYOUTS = ("default", "post", "index", "listing")


def build_environment(layouts_dir: Path | None = None) -> Environment:
    """Create the template environment, site layouts taking precedence."""
    loaders: list[BaseLoader] = []
    if layouts_dir is not None and layouts_dir.is_dir():
        loaders.append(FileSystemLoader(layouts_dir))
    loaders.append(PackageLoader("folio", "templates"))

    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "xml"]),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["slugify"] = slugify
    return env


def template_name(layout: str) -> str:
    return layout if layout.endswith(".html") else f"{layout}.html"


def get_layout(env: Environment, layout: str, path: Path | None = None) -> Template:
    """Resolve a layout name to a template.

    Raises:
        LayoutNotFoundError: No template provides the layout.
    """
    name = template_name(layout)
    try:
        return env.get_template(name)
    except TemplateNotFound as exc:
        raise LayoutNotFoundError(f"layout {layout!r} not found (looked for {name})", path) from exc
