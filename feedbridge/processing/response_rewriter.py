"""
Response Rewriter
=================

Textual rewrites that keep a proxied feed consistent with the proxy's own
public URL. Both rewrites are idempotent and never touch CDATA payloads.
"""

import re
from typing import Optional
from xml.sax.saxutils import escape

from ..models import FeedDocument
from ..utils.logging import get_logger_for_component
from .xml_sanitizer import join_segments, split_segments


ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"

SELF_LINK_PATTERN = re.compile(
    r"""<(?:[\w.-]+:)?link\b[^<>]*?\brel\s*=\s*["']self["'][^<>]*?/?>"""
)
HREF_PATTERN = re.compile(r"""\bhref\s*=\s*(?:"[^"]*"|'[^']*')""")
LINK_TAG_NAME_PATTERN = re.compile(r"<(?:[\w.-]+:)?link\b")

CHANNEL_OPEN_PATTERN = re.compile(r"<channel\b[^<>]*>")
RSS_OPEN_PATTERN = re.compile(r"<rss\b[^<>]*>")
LANGUAGE_CLOSE_PATTERN = re.compile(r"</language\s*>")
TTL_PATTERN = re.compile(r"<ttl\b[^<>]*>\s*(\d+)?\s*</ttl>|<ttl\b")


def escape_attribute(value: str) -> str:
    """Escape a value for a double-quoted XML attribute."""
    return escape(value, {'"': "&quot;"})


def extract_ttl(xml: str) -> Optional[int]:
    """Return the channel refresh interval in minutes, if present outside CDATA."""
    for segment in split_segments(xml):
        if segment.is_cdata:
            continue
        match = TTL_PATTERN.search(segment.text)
        if match and match.group(1):
            return int(match.group(1))
    return None


class ResponseRewriter:
    """Rewrites the self-link and guarantees a ``<ttl>`` element."""

    def __init__(self, ttl_minutes: int = 10):
        self.ttl_minutes = ttl_minutes
        self.logger = get_logger_for_component("response_rewriter")

    def rewrite(self, xml: str, canonical_url: str) -> str:
        """Apply both rewrites.

        Args:
            xml: Sanitized feed document
            canonical_url: Public URL of this feed on the proxy

        Returns:
            Feed whose self-link points at ``canonical_url`` and which has a ttl
        """
        xml = self.rewrite_self_link(xml, canonical_url)
        return self.ensure_ttl(xml)

    def rewrite_document(self, document: FeedDocument, canonical_url: str) -> FeedDocument:
        """Rewrite a document in place."""
        document.xml = self.rewrite(document.xml, canonical_url)
        document.segments = split_segments(document.xml)
        return document

    def rewrite_self_link(self, xml: str, canonical_url: str) -> str:
        """Point every self-link at ``canonical_url``; add one when the feed has none."""
        href = f'href="{escape_attribute(canonical_url)}"'
        segments = split_segments(xml)
        replaced = 0

        def _replace(match: re.Match) -> str:
            nonlocal replaced
            replaced += 1
            tag = match.group(0)
            if HREF_PATTERN.search(tag):
                return HREF_PATTERN.sub(lambda _: href, tag, count=1)
            return LINK_TAG_NAME_PATTERN.sub(lambda m: f"{m.group(0)} {href}", tag, count=1)

        for segment in segments:
            if not segment.is_cdata:
                segment.text = SELF_LINK_PATTERN.sub(_replace, segment.text)

        if replaced:
            return join_segments(segments)

        return self._insert_self_link(join_segments(segments), href)

    def _insert_self_link(self, xml: str, href: str) -> str:
        segments = split_segments(xml)
        for segment in segments:
            if segment.is_cdata:
                continue
            channel = CHANNEL_OPEN_PATTERN.search(segment.text)
            if not channel:
                continue

            link = f'<atom:link {href} rel="self" type="application/rss+xml" />'
            text = segment.text
            segment.text = text[:channel.end()] + link + text[channel.end():]
            self._declare_atom_namespace(segments)
            self.logger.debug("Inserted missing self-link")
            return join_segments(segments)

        self.logger.debug("No <channel> element found, self-link not inserted")
        return xml

    @staticmethod
    def _declare_atom_namespace(segments) -> None:
        for segment in segments:
            if segment.is_cdata:
                continue
            rss = RSS_OPEN_PATTERN.search(segment.text)
            if not rss:
                continue
            tag = rss.group(0)
            if "xmlns:atom=" in tag:
                return
            closing = len(tag) - 2 if tag.endswith("/>") else len(tag) - 1
            new_tag = f'{tag[:closing]} xmlns:atom="{ATOM_NAMESPACE}"{tag[closing:]}'
            segment.text = segment.text[:rss.start()] + new_tag + segment.text[rss.end():]
            return

    def ensure_ttl(self, xml: str) -> str:
        """Insert ``<ttl>`` right after ``</language>`` unless one exists."""
        segments = split_segments(xml)
        markup = [segment for segment in segments if not segment.is_cdata]

        if any(TTL_PATTERN.search(segment.text) for segment in markup):
            return xml

        ttl = f"<ttl>{self.ttl_minutes}</ttl>"
        for pattern in (LANGUAGE_CLOSE_PATTERN, CHANNEL_OPEN_PATTERN):
            for segment in markup:
                match = pattern.search(segment.text)
                if match:
                    segment.text = segment.text[:match.end()] + ttl + segment.text[match.end():]
                    return join_segments(segments)

        self.logger.debug("No <language> or <channel> element found, ttl not inserted")
        return xml
