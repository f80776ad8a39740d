"""
Feed Proxy Pipeline
===================

Orchestrates fetch-with-fallback, sanitization and rewriting for one
validated feed request.
"""

from dataclasses import dataclass
from typing import Optional

import aiohttp

from ..config.settings import FeedBridgeSettings, get_settings
from ..models import FeedDocument, MirrorFamily
from ..utils.logging import get_logger_for_component
from .feed_fetcher import FallbackFetcher, strategy_for
from .response_rewriter import ResponseRewriter, extract_ttl
from .xml_sanitizer import XmlSanitizer


@dataclass
class PipelineResult:
    """Final feed plus the metadata the HTTP layer needs."""
    document: FeedDocument
    ttl_minutes: int

    @property
    def xml(self) -> str:
        return self.document.xml

    @property
    def family(self) -> MirrorFamily:
        return self.document.family


class FeedPipeline:
    """Validated request in, proxy-ready feed out."""

    def __init__(
        self,
        fetcher: FallbackFetcher,
        sanitizer: Optional[XmlSanitizer] = None,
        rewriter: Optional[ResponseRewriter] = None,
    ):
        self.fetcher = fetcher
        self.sanitizer = sanitizer or XmlSanitizer()
        self.rewriter = rewriter or ResponseRewriter()
        self.logger = get_logger_for_component("pipeline")

    @classmethod
    def from_settings(
        cls,
        settings: Optional[FeedBridgeSettings] = None,
        family: Optional[MirrorFamily] = None,
    ) -> "FeedPipeline":
        """Wire a pipeline for one mirror family from configuration."""
        settings = settings or get_settings()
        family = MirrorFamily(family or settings.server.upstream_family)

        fetcher = FallbackFetcher(
            mirrors=settings.get_mirror_config(family),
            strategy=strategy_for(family, settings.get_timeout(family)),
            user_agent=settings.http.user_agent,
        )
        return cls(
            fetcher=fetcher,
            sanitizer=XmlSanitizer(settings.feed.author_placeholder_email),
            rewriter=ResponseRewriter(settings.feed.ttl_minutes),
        )

    @property
    def family(self) -> MirrorFamily:
        return self.fetcher.family

    async def run(
        self,
        request,
        canonical_url: str,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> PipelineResult:
        """Fetch, sanitize and rewrite one feed.

        Args:
            request: Validated FeedRequest variant
            canonical_url: Public URL of this feed on the proxy
            session: Shared aiohttp session (optional)

        Returns:
            PipelineResult with the final document

        Raises:
            AllInstancesFailedError: If no mirror produced a feed
        """
        document = await self.fetcher.fetch(request, session)
        self.sanitizer.sanitize_document(document)
        self.rewriter.rewrite_document(document, canonical_url)

        ttl = extract_ttl(document.xml)
        if ttl is None:
            ttl = self.rewriter.ttl_minutes
        self.logger.debug(f"Prepared {document} with ttl {ttl}")
        return PipelineResult(document=document, ttl_minutes=ttl)
