"""
Response Classifier
===================

Decides whether a mirror response is a genuine RSS document or a disguised
failure such as an HTML error page, a block page, or a wrong content type.
"""

from dataclasses import dataclass
from typing import Optional


BYTE_ORDER_MARK = "\ufeff"


@dataclass(frozen=True)
class Classification:
    """Verdict for one mirror response."""

    valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


VALID = Classification(valid=True)


class ResponseClassifier:
    """Ordered checks: status, structure, then declared content type."""

    XML_CONTENT_MARKERS = ("xml", "rss")
    REJECTED_CONTENT_TYPES = ("text/html", "text/plain")

    def classify(self, status: int, content_type: Optional[str], body: str) -> Classification:
        """Classify a raw HTTP response.

        Args:
            status: HTTP status code
            content_type: Value of the Content-Type header (may be empty)
            body: Decoded response body

        Returns:
            Classification; falsy with a reason when the response is not a feed
        """
        if not 200 <= status < 300:
            return Classification(False, f"http status {status}")

        trimmed = (body or "").lstrip(BYTE_ORDER_MARK).strip()
        lowered = trimmed[:64].lower()

        if not (trimmed.startswith("<?xml") or trimmed.startswith("<rss")):
            if lowered.startswith("<!doctype html") or lowered.startswith("<html"):
                return Classification(False, "returned an HTML page instead of RSS")
            return Classification(False, "response is not an XML/RSS document")

        if "<rss" not in trimmed or "</rss>" not in trimmed:
            return Classification(False, "response has no complete <rss> element")

        content_type = (content_type or "").lower()
        if any(rejected in content_type for rejected in self.REJECTED_CONTENT_TYPES) or not any(
            marker in content_type for marker in self.XML_CONTENT_MARKERS
        ):
            return Classification(
                False,
                f"content-type mismatch (Content-Type: {content_type or 'missing'})",
            )

        return VALID

