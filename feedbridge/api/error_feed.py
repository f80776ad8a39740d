"""
Error Feed Generator
====================

Builds a minimal RSS 2.0 document carrying a failure message, so feed
readers show a readable item instead of a broken fetch.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import List, Optional
from xml.sax.saxutils import escape

from ..processing.response_rewriter import ATOM_NAMESPACE, escape_attribute


ERROR_ITEM_TITLE = "Unable to fetch RSS feed"


@dataclass
class FeedItem:
    """A single ``<item>`` of a synthesized feed."""
    title: str
    link: str
    description: str
    pub_date: str
    guid: str


def cdata(text: str) -> str:
    """Wrap text in CDATA, splitting any embedded terminator."""
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def generate_rss_xml(
    title: str,
    description: str,
    link: str,
    feed_url: str,
    items: List[FeedItem],
    now: Optional[datetime] = None,
    ttl_minutes: Optional[int] = None,
) -> str:
    """Render a small RSS 2.0 channel."""
    now = now or datetime.now(timezone.utc)
    ttl = f"<ttl>{ttl_minutes}</ttl>" if ttl_minutes is not None else ""

    items_xml = "".join(
        f"""
    <item>
      <title>{cdata(item.title)}</title>
      <link>{escape(item.link)}</link>
      <description>{cdata(item.description)}</description>
      <pubDate>{item.pub_date}</pubDate>
      <guid isPermaLink="false">{escape(item.guid)}</guid>
    </item>"""
        for item in items
    )

    return f"""<?xml version="1.0" encoding="UTF-8" ?>
<rss version="2.0" xmlns:atom="{ATOM_NAMESPACE}">
  <channel>
    <title>{cdata(title)}</title>
    <description>{cdata(description)}</description>
    <link>{escape(link)}</link>
    <atom:link href="{escape_attribute(feed_url)}" rel="self" type="application/rss+xml" />
    <lastBuildDate>{format_datetime(now, usegmt=True)}</lastBuildDate>
    <language>en</language>{ttl}{items_xml}
  </channel>
</rss>"""


def generate_error_feed(
    request,
    feed_url: str,
    message: str,
    now: Optional[datetime] = None,
    ttl_minutes: Optional[int] = None,
) -> str:
    """Build the single-item feed served when every mirror failed.

    Args:
        request: Validated FeedRequest variant (supplies channel metadata)
        feed_url: Canonical URL of the requested feed on this proxy
        message: Aggregate failure reason
        now: Timestamp override, mainly for tests
        ttl_minutes: Refresh interval advertised to feed readers (omitted when None)

    Returns:
        RSS 2.0 document as text
    """
    now = now or datetime.now(timezone.utc)
    title, description, link = request.describe()

    item = FeedItem(
        title=ERROR_ITEM_TITLE,
        link=link,
        description=message,
        pub_date=format_datetime(now, usegmt=True),
        guid=f"error-{int(now.timestamp() * 1000)}",
    )
    return generate_rss_xml(
        title, description, link, feed_url, [item], now=now, ttl_minutes=ttl_minutes
    )
