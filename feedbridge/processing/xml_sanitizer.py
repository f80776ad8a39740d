"""
XML Sanitizer
=============

Best-effort repair of malformed XML commonly returned by feed mirrors.

Repairs (applied to markup only, never inside CDATA sections):
- Unescaped ampersands
- Duplicate attributes within one opening tag
- Author fields carrying a bare display name instead of an email address
"""

import re
from typing import List

from ..models import FeedDocument, Segment
from ..utils.logging import get_logger_for_component


# Unterminated CDATA runs to the end of the document
CDATA_PATTERN = re.compile(r"<!\[CDATA\[.*?(?:\]\]>|\Z)", re.DOTALL)


def split_segments(xml: str) -> List[Segment]:
    """Split a document into alternating markup and CDATA segments."""
    segments = []
    last_index = 0

    for match in CDATA_PATTERN.finditer(xml):
        if match.start() > last_index:
            segments.append(Segment(xml[last_index:match.start()]))
        segments.append(Segment(match.group(0), is_cdata=True))
        last_index = match.end()

    if last_index < len(xml):
        segments.append(Segment(xml[last_index:]))

    return segments


def join_segments(segments: List[Segment]) -> str:
    return "".join(segment.text for segment in segments)


class XmlSanitizer:
    """Regex-driven XML repair that leaves CDATA payloads byte-identical."""

    BARE_AMPERSAND_PATTERN = re.compile(
        r"&(?!(?:amp|lt|gt|quot|apos|#\d+|#x[0-9a-fA-F]+|[a-zA-Z][a-zA-Z0-9]{1,31});)"
    )

    OPENING_TAG_PATTERN = re.compile(r"<([A-Za-z][\w:.-]*)((?:\s[^<>]*?)?)(/?)>")
    ATTRIBUTE_PATTERN = re.compile(
        r"""([A-Za-z_][\w:.-]*)\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'<>/=]+)"""
    )

    AUTHOR_PATTERN = re.compile(r"<author>([^<@]+)</author>", re.IGNORECASE)

    def __init__(self, placeholder_email: str = "noreply@feedbridge.invalid"):
        """Initialize sanitizer.

        Args:
            placeholder_email: Address used to turn a display name into a
                valid ``email (Name)`` author field
        """
        self.placeholder_email = placeholder_email
        self.logger = get_logger_for_component("xml_sanitizer")

    def escape_ampersands(self, markup: str) -> str:
        """Escape every ``&`` that does not start an entity or character reference."""
        return self.BARE_AMPERSAND_PATTERN.sub("&amp;", markup)

    def remove_duplicate_attributes(self, markup: str) -> str:
        """Keep only the first occurrence of each attribute name per opening tag."""
        return self.OPENING_TAG_PATTERN.sub(self._dedupe_tag, markup)

    def _dedupe_tag(self, match: re.Match) -> str:
        tag_name, attributes, self_closing = match.groups()
        if not attributes.strip():
            return match.group(0)

        seen = set()
        kept = []
        duplicates = False
        for attr in self.ATTRIBUTE_PATTERN.finditer(attributes):
            name = attr.group(1)
            if name in seen:
                duplicates = True
                continue
            seen.add(name)
            kept.append(attr.group(0))

        if not duplicates:
            return match.group(0)

        return f"<{tag_name} {' '.join(kept)}{self_closing}>"

    def fix_author_tags(self, markup: str) -> str:
        """Rewrite ``<author>Name</author>`` into ``<author>email (Name)</author>``."""

        def _replace(match: re.Match) -> str:
            name = match.group(1).strip()
            if not name:
                return match.group(0)
            return f"<author>{self.placeholder_email} ({name})</author>"

        return self.AUTHOR_PATTERN.sub(_replace, markup)

    def repair_markup(self, markup: str) -> str:
        """Apply all repairs to a markup-only fragment."""
        fixed = self.escape_ampersands(markup)
        fixed = self.remove_duplicate_attributes(fixed)
        return self.fix_author_tags(fixed)

    def sanitize(self, xml: str) -> str:
        """Repair a document; never raises, returns the input on failure."""
        try:
            segments = split_segments(xml)
            for segment in segments:
                if not segment.is_cdata:
                    segment.text = self.repair_markup(segment.text)
            return join_segments(segments)
        except Exception as e:
            self.logger.warning(f"Sanitization failed, passing document through: {e}")
            return xml

    def sanitize_document(self, document: FeedDocument) -> FeedDocument:
        """Sanitize a fetched document in place and refresh its segments."""
        original_length = len(document.xml)
        document.xml = self.sanitize(document.xml)
        document.segments = split_segments(document.xml)

        if len(document.xml) != original_length:
            self.logger.debug(
                f"Sanitized feed from {document.instance}: "
                f"{original_length} -> {len(document.xml)} chars"
            )
        return document
