"""
FeedBridge Input Validators
===========================

Validation of untrusted query parameters into well-formed feed requests,
plus URL checks for configured mirrors.
"""

import re
from typing import Mapping, Optional
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from ..models import (
    FeedKind,
    HashtagRequest,
    ListRequest,
    SearchRequest,
    UserTimelineRequest,
)
from .exceptions import ValidationError, ErrorCode


class RequestValidator:
    """Turns raw query parameters into a FeedRequest variant."""

    IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z0-9_]+$')
    LIST_SLUG_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
    LANGUAGE_PATTERN = re.compile(r'^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})?$')

    MAX_QUERY_LENGTH = 500

    TYPE_ALIASES = {
        "user": FeedKind.USER,
        "user_timeline": FeedKind.USER,
        "search": FeedKind.SEARCH,
        "hashtag": FeedKind.HASHTAG,
        "list": FeedKind.LIST,
    }

    TRUE_VALUES = {"true", "1", "yes", "on"}
    FALSE_VALUES = {"false", "0", "no", "off"}

    @classmethod
    def validate(cls, params: Mapping[str, str], feed_type: Optional[str] = None):
        """Validate query parameters.

        Args:
            params: Query parameters as received (type, username, q, hashtag,
                list, exclude_replies, exclude_retweets, lang)
            feed_type: Feed type discriminator; read from params['type'] when omitted

        Returns:
            One of UserTimelineRequest, SearchRequest, HashtagRequest, ListRequest

        Raises:
            ValidationError: If a required field is missing or malformed
        """
        if feed_type is None:
            feed_type = params.get("type")

        kind = cls.validate_feed_type(feed_type)

        try:
            if kind == FeedKind.USER:
                exclude_replies = cls.parse_flag(params.get("exclude_replies"), "exclude_replies")
                exclude_retweets = cls.parse_flag(params.get("exclude_retweets"), "exclude_retweets")
                return UserTimelineRequest(
                    username=cls.validate_identifier(params.get("username"), "username", prefix="@"),
                    include_replies=not exclude_replies if exclude_replies is not None else False,
                    include_retweets=not exclude_retweets if exclude_retweets is not None else True,
                )

            if kind == FeedKind.SEARCH:
                return SearchRequest(
                    query=cls.validate_query(params.get("q")),
                    language=cls.validate_language(params.get("lang")),
                )

            if kind == FeedKind.HASHTAG:
                return HashtagRequest(
                    hashtag=cls.validate_identifier(params.get("hashtag"), "hashtag", prefix="#"),
                )

            return ListRequest(
                username=cls.validate_identifier(params.get("username"), "username", prefix="@"),
                list_slug=cls.validate_list_slug(params.get("list")),
            )

        except PydanticValidationError as e:
            # Field checks above should make this unreachable
            first = e.errors()[0]
            field_name = str(first["loc"][0]) if first.get("loc") else None
            raise ValidationError(
                first.get("msg", "Invalid value"),
                field_name=field_name,
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )

    @classmethod
    def validate_feed_type(cls, feed_type: Optional[str]) -> FeedKind:
        """Resolve the feed type discriminator."""
        if not feed_type or not feed_type.strip():
            raise ValidationError(
                "Feed type is required",
                field_name="type",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
            )

        kind = cls.TYPE_ALIASES.get(feed_type.strip().lower())
        if kind is None:
            raise ValidationError(
                "Invalid feed type",
                field_name="type",
                error_code=ErrorCode.VALIDATION_UNSUPPORTED_TYPE,
            )
        return kind

    @classmethod
    def validate_identifier(cls, value: Optional[str], field_name: str, prefix: str = "") -> str:
        """Validate a username or hashtag, tolerating a leading sigil."""
        value = (value or "").strip()
        if prefix and value.startswith(prefix):
            value = value[len(prefix):]

        if not value:
            raise ValidationError(
                f"{field_name.capitalize()} is required",
                field_name=field_name,
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
            )

        if not cls.IDENTIFIER_PATTERN.match(value):
            raise ValidationError(
                f"Invalid {field_name} format",
                field_name=field_name,
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )
        return value

    @classmethod
    def validate_list_slug(cls, value: Optional[str]) -> str:
        """Validate a list slug or numeric list id."""
        value = (value or "").strip()
        if not value:
            raise ValidationError(
                "List slug is required",
                field_name="list",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
            )

        if not cls.LIST_SLUG_PATTERN.match(value):
            raise ValidationError(
                "Invalid list slug format",
                field_name="list",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )
        return value

    @classmethod
    def validate_query(cls, value: Optional[str]) -> str:
        """Validate a free-text search query."""
        value = (value or "").strip()
        if not value:
            raise ValidationError(
                "Search query is required",
                field_name="q",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
            )

        if len(value) > cls.MAX_QUERY_LENGTH:
            raise ValidationError(
                f"Search query cannot exceed {cls.MAX_QUERY_LENGTH} characters",
                field_name="q",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )
        return value

    @classmethod
    def validate_language(cls, value: Optional[str]) -> Optional[str]:
        """Validate an optional language code such as 'en' or 'pt-BR'."""
        value = (value or "").strip()
        if not value:
            return None

        if not cls.LANGUAGE_PATTERN.match(value):
            raise ValidationError(
                "Invalid language code",
                field_name="lang",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )
        return value

    @classmethod
    def parse_flag(cls, value: Optional[str], field_name: str) -> Optional[bool]:
        """Parse a boolean query flag; None when absent."""
        if value is None or not value.strip():
            return None

        normalized = value.strip().lower()
        if normalized in cls.TRUE_VALUES:
            return True
        if normalized in cls.FALSE_VALUES:
            return False

        raise ValidationError(
            f"Invalid boolean value for {field_name}",
            field_name=field_name,
            error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
        )


def validate_instance_url(url: str) -> str:
    """Validate a mirror base URL and strip any trailing slash.

    Raises:
        ValidationError: If the URL is not absolute http(s)
    """
    if not url or not isinstance(url, str):
        raise ValidationError(
            "Instance URL is required",
            field_name="instance",
            error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
        )

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        raise ValidationError(
            f"Instance URL must be absolute http(s): {url}",
            field_name="instance",
            error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
        )

    return url.rstrip('/')
