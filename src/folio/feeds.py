"""RSS feed and XML sitemap.

Both only make sense with absolute URLs, so they are produced only when
``site.url`` is configured. Timestamps come from post dates, never from
the clock, so rebuilding unchanged input gives identical bytes.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime
from email.utils import format_datetime

from folio.config import SiteSection
from folio.models import RenderedPost

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def absolute_url(site: SiteSection, path: str) -> str:
    return f"{site.url}/{path}"


def _serialize(root: ET.Element) -> bytes:
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"


def rss_feed(site: SiteSection, posts: list[RenderedPost]) -> bytes:
    """RSS 2.0 channel for ``posts``, which must already be newest first."""
    rss = ET.Element("rss", version="2.0")
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = site.title
    ET.SubElement(channel, "link").text = absolute_url(site, "index.html")
    ET.SubElement(channel, "description").text = site.description or site.title
    ET.SubElement(channel, "language").text = site.language

    dated = [r for r in posts if r.post.publish_date is not None]
    if dated:
        ET.SubElement(channel, "lastBuildDate").text = format_datetime(dated[0].post.publish_date)

    for rendered in dated:
        post = rendered.post
        link = absolute_url(site, str(post.output_path))
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = post.title
        ET.SubElement(item, "link").text = link
        ET.SubElement(item, "guid", isPermaLink="true").text = link
        ET.SubElement(item, "pubDate").text = format_datetime(post.publish_date)
        if post.category:
            ET.SubElement(item, "category").text = post.category
        for tag in post.tags:
            ET.SubElement(item, "category").text = tag
        ET.SubElement(item, "description").text = rendered.content

    return _serialize(rss)


def sitemap(site: SiteSection, pages: list[tuple[str, datetime | None]]) -> bytes:
    """Sitemap listing ``(relative_path, last_modified)`` pairs in order."""
    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    for path, modified in pages:
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = absolute_url(site, path)
        if modified is not None:
            ET.SubElement(url, "lastmod").text = modified.date().isoformat()
    return _serialize(urlset)
