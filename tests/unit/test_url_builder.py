"""
Mirror URL Builder Tests
========================
"""

import pytest

from feedbridge.models import (
    HashtagRequest,
    ListRequest,
    MirrorFamily,
    SearchRequest,
    UserTimelineRequest,
)
from feedbridge.processing.url_builder import (
    NitterRoutes,
    RssHubRoutes,
    build_mirror_url,
    build_proxy_url,
    get_route_convention,
)


RSSHUB = "https://rsshub.example"
NITTER = "https://nitter.example/"


class TestRssHubRoutes:
    """Test hub-style topic routes."""

    def setup_method(self):
        self.routes = RssHubRoutes()

    def test_user_default_excludes_replies(self):
        url = self.routes.build_url(RSSHUB, UserTimelineRequest(username="jack"))
        assert url == "https://rsshub.example/twitter/user/jack/excludeReplies"

    def test_user_with_replies_and_without_retweets(self):
        request = UserTimelineRequest(username="jack", include_replies=True, include_retweets=False)
        url = self.routes.build_url(RSSHUB, request)
        assert url == "https://rsshub.example/twitter/user/jack/excludeRetweets"

    def test_user_excluding_both(self):
        request = UserTimelineRequest(username="jack", include_retweets=False)
        url = self.routes.build_url(RSSHUB, request)
        assert url.endswith("/twitter/user/jack/excludeReplies/excludeRetweets")

    def test_search_is_encoded_once(self):
        url = self.routes.build_url(RSSHUB, SearchRequest(query="a&b c/d%20"))
        assert url == "https://rsshub.example/twitter/keyword/a%26b%20c%2Fd%2520"

    def test_search_language(self):
        url = self.routes.build_url(RSSHUB, SearchRequest(query="python", language="en"))
        assert url == "https://rsshub.example/twitter/keyword/python%20lang%3Aen"

    def test_hashtag_is_search_with_hash(self):
        url = self.routes.build_url(RSSHUB, HashtagRequest(hashtag="python"))
        assert url == "https://rsshub.example/twitter/keyword/%23python"

    def test_list(self):
        url = self.routes.build_url(RSSHUB, ListRequest(username="jack", list_slug="1234567"))
        assert url == "https://rsshub.example/twitter/list/1234567"


class TestNitterRoutes:
    """Test profile-RSS routes."""

    def setup_method(self):
        self.routes = NitterRoutes()

    def test_user(self):
        url = self.routes.build_url(NITTER, UserTimelineRequest(username="jack"))
        assert url == "https://nitter.example/jack/rss"

    def test_user_with_replies(self):
        url = self.routes.build_url(NITTER, UserTimelineRequest(username="jack", include_replies=True))
        assert url == "https://nitter.example/jack/with_replies/rss"

    def test_search(self):
        url = self.routes.build_url(NITTER, SearchRequest(query="open source"))
        assert url == "https://nitter.example/search/rss?q=open%20source"

    def test_hashtag(self):
        url = self.routes.build_url(NITTER, HashtagRequest(hashtag="python"))
        assert url == "https://nitter.example/search/rss?q=%23python"

    def test_list(self):
        url = self.routes.build_url(NITTER, ListRequest(username="jack", list_slug="tech-news"))
        assert url == "https://nitter.example/jack/lists/tech-news/rss"


class TestConventionLookup:

    def test_by_family(self):
        assert isinstance(get_route_convention(MirrorFamily.NITTER), NitterRoutes)
        assert isinstance(get_route_convention("rsshub"), RssHubRoutes)

    def test_build_mirror_url(self):
        url = build_mirror_url(NITTER, HashtagRequest(hashtag="rust"), MirrorFamily.NITTER)
        assert url == "https://nitter.example/search/rss?q=%23rust"

    def test_identifier_appears_exactly_once(self):
        request = SearchRequest(query="100% free")
        for family in MirrorFamily:
            url = build_mirror_url(RSSHUB, request, family)
            assert url.count("100%25%20free") == 1
            assert "%2525" not in url


class TestProxyUrl:
    """Test the proxy's own feed URLs."""

    def test_user_defaults(self):
        url = build_proxy_url(UserTimelineRequest(username="jack"), "https://proxy.example/")
        assert url == "https://proxy.example/api/rss?type=user&username=jack&exclude_replies=true"

    def test_user_all_flags(self):
        request = UserTimelineRequest(username="jack", include_replies=True, include_retweets=False)
        assert build_proxy_url(request) == "/api/rss?type=user&username=jack&exclude_retweets=true"

    def test_search_with_language(self):
        url = build_proxy_url(SearchRequest(query="a b", language="en"), "https://p.example")
        assert url == "https://p.example/api/rss?type=search&q=a%20b&lang=en"

    def test_hashtag(self):
        assert build_proxy_url(HashtagRequest(hashtag="python")) == "/api/rss?type=hashtag&hashtag=python"

    def test_list(self):
        url = build_proxy_url(ListRequest(username="jack", list_slug="news"))
        assert url == "/api/rss?type=list&username=jack&list=news"

    @pytest.mark.parametrize("api_path", ["/feeds", "/v2/rss"])
    def test_custom_path(self, api_path):
        url = build_proxy_url(HashtagRequest(hashtag="x"), "https://p.example", api_path=api_path)
        assert url.startswith(f"https://p.example{api_path}?")
