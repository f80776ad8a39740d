"""
Mirror URL Builder
==================

Maps a validated feed request onto the route convention of a mirror family.
All functions are pure; user-supplied values are percent-encoded exactly once.
"""

from urllib.parse import quote

from ..models import (
    FeedKind,
    HashtagRequest,
    ListRequest,
    MirrorFamily,
    SearchRequest,
    UserTimelineRequest,
)
from ..utils.exceptions import ValidationError, ErrorCode


def encode_component(value: str) -> str:
    """Percent-encode a single path segment or query value."""
    return quote(value, safe="")


class RouteConvention:
    """Base class for per-family route conventions."""

    family: MirrorFamily = None

    def build_url(self, base: str, request) -> str:
        """Build the upstream URL for a request against one mirror base.

        Args:
            base: Mirror base URL (a trailing slash is ignored)
            request: Validated FeedRequest variant

        Returns:
            Absolute URL on the mirror

        Raises:
            ValidationError: If the request kind is not routable
        """
        base = base.rstrip("/")
        if isinstance(request, UserTimelineRequest):
            return self.user_url(base, request)
        if isinstance(request, SearchRequest):
            return self.search_url(base, request.search_terms)
        if isinstance(request, HashtagRequest):
            return self.search_url(base, f"#{request.hashtag}")
        if isinstance(request, ListRequest):
            return self.list_url(base, request)

        raise ValidationError(
            f"Unsupported feed type: {getattr(request, 'kind', request)!r}",
            field_name="type",
            error_code=ErrorCode.VALIDATION_UNSUPPORTED_TYPE,
        )

    def user_url(self, base: str, request: UserTimelineRequest) -> str:
        raise NotImplementedError

    def search_url(self, base: str, terms: str) -> str:
        raise NotImplementedError

    def list_url(self, base: str, request: ListRequest) -> str:
        raise NotImplementedError


class NitterRoutes(RouteConvention):
    """Nitter profile-RSS routes (``/{user}/rss``, ``/search/rss?q=``)."""

    family = MirrorFamily.NITTER

    def user_url(self, base: str, request: UserTimelineRequest) -> str:
        username = encode_component(request.username)
        if request.include_replies:
            return f"{base}/{username}/with_replies/rss"
        return f"{base}/{username}/rss"

    def search_url(self, base: str, terms: str) -> str:
        return f"{base}/search/rss?q={encode_component(terms)}"

    def list_url(self, base: str, request: ListRequest) -> str:
        username = encode_component(request.username)
        return f"{base}/{username}/lists/{encode_component(request.list_slug)}/rss"


class RssHubRoutes(RouteConvention):
    """RSSHub topic routes (``/twitter/user/:id``, ``/twitter/keyword/:kw``)."""

    family = MirrorFamily.RSSHUB

    def user_url(self, base: str, request: UserTimelineRequest) -> str:
        url = f"{base}/twitter/user/{encode_component(request.username)}"
        if not request.include_replies:
            url += "/excludeReplies"
        if not request.include_retweets:
            url += "/excludeRetweets"
        return url

    def search_url(self, base: str, terms: str) -> str:
        return f"{base}/twitter/keyword/{encode_component(terms)}"

    def list_url(self, base: str, request: ListRequest) -> str:
        # RSSHub addresses lists by id; the slug is passed through as-is
        return f"{base}/twitter/list/{encode_component(request.list_slug)}"


ROUTE_CONVENTIONS = {
    MirrorFamily.NITTER: NitterRoutes(),
    MirrorFamily.RSSHUB: RssHubRoutes(),
}


def get_route_convention(family: MirrorFamily) -> RouteConvention:
    """Route convention for a mirror family."""
    return ROUTE_CONVENTIONS[MirrorFamily(family)]


def build_mirror_url(base: str, request, family: MirrorFamily = MirrorFamily.RSSHUB) -> str:
    """Shorthand for ``get_route_convention(family).build_url(base, request)``."""
    return get_route_convention(family).build_url(base, request)


def build_proxy_url(request, base_url: str = "", api_path: str = "/api/rss") -> str:
    """Build this service's own URL for a request, as the web form does.

    Args:
        request: Validated FeedRequest variant
        base_url: Public origin (may be empty for a relative URL)
        api_path: Path of the RSS endpoint

    Returns:
        URL such as ``https://host/api/rss?type=user&username=jack&exclude_replies=true``
    """
    params = []
    if request.kind == FeedKind.USER:
        params.append(("type", "user"))
        params.append(("username", request.username))
        if not request.include_replies:
            params.append(("exclude_replies", "true"))
        if not request.include_retweets:
            params.append(("exclude_retweets", "true"))
    elif request.kind == FeedKind.SEARCH:
        params.append(("type", "search"))
        params.append(("q", request.query))
        if request.language:
            params.append(("lang", request.language))
    elif request.kind == FeedKind.HASHTAG:
        params.append(("type", "hashtag"))
        params.append(("hashtag", request.hashtag))
    else:
        params.append(("type", "list"))
        params.append(("username", request.username))
        params.append(("list", request.list_slug))

    query = "&".join(f"{name}={quote(value, safe='')}" for name, value in params)
    return f"{base_url.rstrip('/')}{api_path}?{query}"
