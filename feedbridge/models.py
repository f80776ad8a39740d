"""
FeedBridge Data Models
======================

Pydantic models for validated feed requests plus the lightweight records the
fetch pipeline passes between its stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union
from urllib.parse import quote

from pydantic import BaseModel, Field


class FeedKind(str, Enum):
    """Supported feed request kinds."""
    USER = "user"
    SEARCH = "search"
    HASHTAG = "hashtag"
    LIST = "list"


class MirrorFamily(str, Enum):
    """Upstream mirror families with distinct route conventions."""
    NITTER = "nitter"
    RSSHUB = "rsshub"


class _FeedRequestBase(BaseModel):
    """Common behaviour for all feed request variants."""

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def identifier(self) -> str:
        """The user-supplied value that identifies the feed."""
        raise NotImplementedError

    def describe(self) -> Tuple[str, str, str]:
        """Return (title, description, link) for a channel describing this request."""
        raise NotImplementedError


class UserTimelineRequest(_FeedRequestBase):
    """Tweets posted by a single account."""
    kind: Literal[FeedKind.USER] = FeedKind.USER
    username: str = Field(..., pattern=r"^[A-Za-z0-9_]+$")
    include_replies: bool = False
    include_retweets: bool = True

    @property
    def identifier(self) -> str:
        return self.username

    def describe(self) -> Tuple[str, str, str]:
        description = f"RSS feed for @{self.username}'s tweets"
        if not self.include_replies:
            description += " (excluding replies)"
        if not self.include_retweets:
            description += " (excluding retweets)"
        return f"Twitter: @{self.username}", description, f"https://x.com/{self.username}"


class SearchRequest(_FeedRequestBase):
    """Free-text search, optionally restricted to one language."""
    kind: Literal[FeedKind.SEARCH] = FeedKind.SEARCH
    query: str = Field(..., min_length=1)
    language: Optional[str] = None

    @property
    def identifier(self) -> str:
        return self.query

    @property
    def search_terms(self) -> str:
        """Query as sent upstream, with the language operator appended."""
        if self.language:
            return f"{self.query} lang:{self.language}"
        return self.query

    def describe(self) -> Tuple[str, str, str]:
        description = f"RSS feed for Twitter search: {self.query}"
        if self.language:
            description += f" (language: {self.language})"
        link = f"https://x.com/search?q={quote(self.query, safe='')}"
        return f"Twitter Search: {self.query}", description, link


class HashtagRequest(_FeedRequestBase):
    """Tweets carrying one hashtag."""
    kind: Literal[FeedKind.HASHTAG] = FeedKind.HASHTAG
    hashtag: str = Field(..., pattern=r"^[A-Za-z0-9_]+$")

    @property
    def identifier(self) -> str:
        return self.hashtag

    def describe(self) -> Tuple[str, str, str]:
        return (
            f"Twitter: #{self.hashtag}",
            f"RSS feed for #{self.hashtag} tweets",
            f"https://x.com/hashtag/{self.hashtag}",
        )


class ListRequest(_FeedRequestBase):
    """Timeline of a list owned by an account."""
    kind: Literal[FeedKind.LIST] = FeedKind.LIST
    username: str = Field(..., pattern=r"^[A-Za-z0-9_]+$")
    list_slug: str = Field(..., pattern=r"^[A-Za-z0-9_-]+$")

    @property
    def identifier(self) -> str:
        return self.list_slug

    def describe(self) -> Tuple[str, str, str]:
        return (
            f"Twitter List: {self.list_slug} by @{self.username}",
            f"RSS feed for Twitter list: {self.list_slug}",
            f"https://x.com/i/lists/{self.list_slug}",
        )


FeedRequest = Annotated[
    Union[UserTimelineRequest, SearchRequest, HashtagRequest, ListRequest],
    Field(discriminator="kind"),
]


@dataclass(frozen=True)
class MirrorConfig:
    """Ordered mirror base URLs for one family."""

    family: MirrorFamily
    instances: Tuple[str, ...]

    def __post_init__(self):
        if not self.instances:
            raise ValueError(f"No mirror instances configured for {self.family.value}")

    def __iter__(self):
        return iter(self.instances)

    def __len__(self) -> int:
        return len(self.instances)


@dataclass
class FetchAttempt:
    """Outcome of one request against one mirror."""

    instance: str
    url: str
    body: Optional[str] = None
    reason: Optional[str] = None
    duration: Optional[float] = None

    @property
    def success(self) -> bool:
        return self.body is not None and self.reason is None


@dataclass
class Segment:
    """A span of the document; CDATA spans are literal text and never rewritten."""

    text: str
    is_cdata: bool = False


@dataclass
class FeedDocument:
    """Feed XML moving through the sanitize/rewrite stages."""

    xml: str
    instance: str
    url: str
    family: MirrorFamily
    segments: List[Segment] = field(default_factory=list)

    def __str__(self) -> str:
        return f"FeedDocument({self.family.value}:{self.instance}, {len(self.xml)} chars)"
