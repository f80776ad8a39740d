"""
Request Validator Tests
=======================

Untrusted query parameters must become exactly one well-formed feed request
variant, or fail with a field-level ValidationError.
"""

import pytest

from feedbridge.models import (
    FeedKind,
    HashtagRequest,
    ListRequest,
    SearchRequest,
    UserTimelineRequest,
)
from feedbridge.utils.exceptions import ErrorCode, ValidationError
from feedbridge.utils.validators import RequestValidator, validate_instance_url


class TestUserTimeline:
    """Test user timeline validation."""

    def test_defaults(self):
        request = RequestValidator.validate({"type": "user", "username": "jack"})

        assert isinstance(request, UserTimelineRequest)
        assert request.kind == FeedKind.USER
        assert request.username == "jack"
        assert request.include_replies is False
        assert request.include_retweets is True

    def test_leading_at_is_stripped(self):
        request = RequestValidator.validate({"type": "user", "username": "@jack"})
        assert request.username == "jack"

    def test_exclude_flags(self):
        request = RequestValidator.validate({
            "type": "user",
            "username": "jack",
            "exclude_replies": "false",
            "exclude_retweets": "true",
        })

        assert request.include_replies is True
        assert request.include_retweets is False

    @pytest.mark.parametrize("value", ["1", "yes", "ON", "True"])
    def test_truthy_flag_spellings(self, value):
        request = RequestValidator.validate({"type": "user", "username": "jack", "exclude_retweets": value})
        assert request.include_retweets is False

    def test_invalid_flag_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "user", "username": "jack", "exclude_replies": "maybe"})

        assert exc_info.value.field_name == "exclude_replies"

    def test_missing_username(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "user"})

        error = exc_info.value
        assert error.field_name == "username"
        assert error.reason == "Username is required"
        assert error.error_code == ErrorCode.VALIDATION_REQUIRED_FIELD

    @pytest.mark.parametrize("username", ["jack dorsey", "jack/../admin", "ja-ck", "jäck"])
    def test_username_format(self, username):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "user", "username": username})

        assert exc_info.value.reason == "Invalid username format"

    def test_type_alias(self):
        request = RequestValidator.validate({"type": "user_timeline", "username": "jack"})
        assert isinstance(request, UserTimelineRequest)


class TestOtherVariants:
    """Test search, hashtag and list validation."""

    def test_search_with_language(self):
        request = RequestValidator.validate({"type": "search", "q": " rust async ", "lang": "pt-BR"})

        assert isinstance(request, SearchRequest)
        assert request.query == "rust async"
        assert request.language == "pt-BR"
        assert request.search_terms == "rust async lang:pt-BR"

    def test_search_requires_query(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "search", "q": "   "})

        assert exc_info.value.field_name == "q"
        assert exc_info.value.reason == "Search query is required"

    def test_search_rejects_bad_language(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "search", "q": "python", "lang": "english!"})

        assert exc_info.value.field_name == "lang"

    def test_search_query_length_limit(self):
        with pytest.raises(ValidationError):
            RequestValidator.validate({"type": "search", "q": "x" * 501})

    def test_hashtag_strips_sigil(self):
        request = RequestValidator.validate({"type": "hashtag", "hashtag": "#python"})

        assert isinstance(request, HashtagRequest)
        assert request.hashtag == "python"

    def test_hashtag_format(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "hashtag", "hashtag": "c++"})

        assert exc_info.value.field_name == "hashtag"

    def test_list(self):
        request = RequestValidator.validate({"type": "list", "username": "jack", "list": "tech-news_2"})

        assert isinstance(request, ListRequest)
        assert request.list_slug == "tech-news_2"
        assert request.identifier == "tech-news_2"

    def test_list_requires_slug(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "list", "username": "jack"})

        assert exc_info.value.field_name == "list"

    def test_list_slug_format(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "list", "username": "jack", "list": "tech news"})

        assert exc_info.value.reason == "Invalid list slug format"


class TestFeedType:
    """Test the feed type discriminator."""

    def test_missing_type(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"username": "jack"})

        assert exc_info.value.field_name == "type"
        assert exc_info.value.reason == "Feed type is required"

    def test_unknown_type(self):
        with pytest.raises(ValidationError) as exc_info:
            RequestValidator.validate({"type": "likes", "username": "jack"})

        assert exc_info.value.reason == "Invalid feed type"
        assert exc_info.value.error_code == ErrorCode.VALIDATION_UNSUPPORTED_TYPE

    def test_explicit_discriminator_overrides_params(self):
        request = RequestValidator.validate({"type": "user", "hashtag": "python"}, feed_type="hashtag")
        assert isinstance(request, HashtagRequest)

    def test_requests_are_immutable(self):
        request = RequestValidator.validate({"type": "user", "username": "jack"})

        with pytest.raises(Exception):
            request.username = "other"


class TestInstanceUrl:
    """Test mirror base URL validation."""

    def test_strips_trailing_slash(self):
        assert validate_instance_url("https://rsshub.app/") == "https://rsshub.app"

    @pytest.mark.parametrize("url", ["", "rsshub.app", "ftp://rsshub.app", "https://"])
    def test_rejects_non_http(self, url):
        with pytest.raises(ValidationError) as exc_info:
            validate_instance_url(url)

        assert exc_info.value.field_name == "instance"
