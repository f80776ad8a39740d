"""
Fallback Feed Fetcher
=====================

Fetches a feed from an ordered list of mirror instances, one attempt per
instance, returning the first response that classifies as a real feed.
"""

import asyncio
import aiohttp
import ssl
import certifi
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models import FeedDocument, FetchAttempt, MirrorConfig, MirrorFamily
from ..utils.exceptions import (
    AllInstancesFailedError,
    ClassificationError,
    ErrorCode,
    TransportError,
    UpstreamError,
)
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .classifier import BYTE_ORDER_MARK, ResponseClassifier
from .url_builder import RouteConvention, get_route_convention


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; RSSFeedGenerator/1.0; +https://github.com)"

NITTER_TIMEOUT = 10.0
RSSHUB_TIMEOUT = 15.0


@dataclass(frozen=True)
class MirrorStrategy:
    """Per-family capabilities plugged into the generic fetch loop."""

    family: MirrorFamily
    routes: RouteConvention
    classifier: ResponseClassifier
    timeout: float
    bypass_cache: bool = False

    def build_url(self, base: str, request) -> str:
        return self.routes.build_url(base, request)

    def request_headers(self, user_agent: str) -> Dict[str, str]:
        headers = {
            "User-Agent": user_agent,
            "Accept": "application/rss+xml, application/xml, text/xml, */*",
        }
        if self.bypass_cache:
            headers["Cache-Control"] = "no-cache"
            headers["Pragma"] = "no-cache"
        return headers


def nitter_strategy(timeout: float = NITTER_TIMEOUT) -> MirrorStrategy:
    """Nitter mirrors: profile-RSS routes, 10s timeout."""
    return MirrorStrategy(
        family=MirrorFamily.NITTER,
        routes=get_route_convention(MirrorFamily.NITTER),
        classifier=ResponseClassifier(),
        timeout=timeout,
    )


def rsshub_strategy(timeout: float = RSSHUB_TIMEOUT) -> MirrorStrategy:
    """RSSHub mirrors: topic routes, 15s timeout, caches bypassed."""
    return MirrorStrategy(
        family=MirrorFamily.RSSHUB,
        routes=get_route_convention(MirrorFamily.RSSHUB),
        classifier=ResponseClassifier(),
        timeout=timeout,
        bypass_cache=True,
    )


def strategy_for(family: MirrorFamily, timeout: Optional[float] = None) -> MirrorStrategy:
    """Default strategy for a mirror family."""
    if MirrorFamily(family) == MirrorFamily.NITTER:
        return nitter_strategy(timeout or NITTER_TIMEOUT)
    return rsshub_strategy(timeout or RSSHUB_TIMEOUT)


class FallbackFetcher:
    """Sequential fetch-with-fallback over one mirror family."""

    def __init__(
        self,
        mirrors: MirrorConfig,
        strategy: Optional[MirrorStrategy] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """Initialize fetcher.

        Args:
            mirrors: Ordered mirror instances; all must belong to one family
            strategy: Family capabilities (default derived from ``mirrors.family``)
            user_agent: User-Agent sent with every upstream request
        """
        self.mirrors = mirrors
        self.strategy = strategy or strategy_for(mirrors.family)
        if self.strategy.family != mirrors.family:
            raise ValueError(
                f"Strategy for {self.strategy.family.value} cannot drive "
                f"{mirrors.family.value} mirrors"
            )
        self.user_agent = user_agent
        self.logger = get_logger_for_component("feed_fetcher")

        # SSL context for secure requests
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @property
    def family(self) -> MirrorFamily:
        return self.mirrors.family

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit_per_host=5,
            enable_cleanup_closed=True,
        )

        async with aiohttp.ClientSession(connector=connector) as session:
            yield session

    async def fetch(
        self, request, session: Optional[aiohttp.ClientSession] = None
    ) -> FeedDocument:
        """Fetch a feed, trying each mirror once in configured order.

        Args:
            request: Validated FeedRequest variant
            session: Shared aiohttp session; a private one is opened when omitted

        Returns:
            FeedDocument holding the first valid response body

        Raises:
            AllInstancesFailedError: If every mirror failed
        """
        if session is None:
            async with self.get_session() as own_session:
                return await self.fetch(request, own_session)

        attempts: List[FetchAttempt] = []

        for instance in self.mirrors:
            attempt = await self.attempt(instance, request, session)
            attempts.append(attempt)

            if attempt.success:
                self.logger.info(
                    f"Fetched {request.kind.value} feed from {instance} "
                    f"after {len(attempts)} attempt(s)"
                )
                return FeedDocument(
                    xml=attempt.body,
                    instance=instance,
                    url=attempt.url,
                    family=self.family,
                )

            self.logger.warning(f"Failed to fetch from {instance}: {attempt.reason}")

        raise AllInstancesFailedError(
            self.family.value,
            [(attempt.instance, attempt.reason) for attempt in attempts],
        )

    async def attempt(
        self, instance: str, request, session: aiohttp.ClientSession
    ) -> FetchAttempt:
        """Make exactly one request against one mirror and record the outcome."""
        url = self.strategy.build_url(instance, request)
        attempt = FetchAttempt(instance=instance, url=url)

        perf = PerformanceLogger(self.logger, f"fetch from {instance}", url=url)
        try:
            with perf:
                attempt.body = await self._get(instance, url, session)
        except UpstreamError as e:
            attempt.reason = e.reason
        attempt.duration = perf.duration

        return attempt

    async def _get(self, instance: str, url: str, session: aiohttp.ClientSession) -> str:
        timeout = aiohttp.ClientTimeout(total=self.strategy.timeout)
        headers = self.strategy.request_headers(self.user_agent)

        try:
            async with session.get(url, headers=headers, timeout=timeout) as response:
                body = await response.text(errors="replace")
                content_type = response.headers.get("Content-Type", "")
                verdict = self.strategy.classifier.classify(response.status, content_type, body)

        except asyncio.TimeoutError:
            raise TransportError(
                f"request timed out after {self.strategy.timeout:g}s",
                instance=instance,
                error_code=ErrorCode.UPSTREAM_TIMEOUT,
            )
        except aiohttp.ClientError as e:
            raise TransportError(
                f"network error: {e.__class__.__name__}: {e}",
                instance=instance,
                error_code=ErrorCode.UPSTREAM_NETWORK_ERROR,
            )

        if not verdict:
            code = (
                ErrorCode.UPSTREAM_HTTP_STATUS
                if verdict.reason.startswith("http status")
                else ErrorCode.UPSTREAM_INVALID_CONTENT
            )
            raise ClassificationError(verdict.reason, instance=instance, error_code=code)

        # Served documents never start with a BOM
        return body.lstrip(BYTE_ORDER_MARK)
