"""
FeedBridge Configuration System
===============================

Configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

from typing import List, Optional
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..models import MirrorConfig, MirrorFamily
from ..utils.exceptions import ConfigurationError, ErrorCode, ValidationError
from ..utils.validators import validate_instance_url


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Public Nitter instances, most reliable first
DEFAULT_NITTER_INSTANCES = [
    "https://nitter.net",
    "https://nitter.poast.org",
    "https://nitter.privacydev.net",
    "https://nitter.42l.fr",
    "https://nitter.it",
]

# Public RSSHub instances, see https://docs.rsshub.app/guide/instances
DEFAULT_RSSHUB_INSTANCES = [
    "https://rsshub.pseudoyu.com",
    "https://rsshub.rssforever.com",
    "https://hub.slarker.me",
    "https://rsshub.app",
    "https://rsshub.rss.tips",
    "https://rsshub.ktachibana.party",
    "https://rsshub.woodland.cafe",
    "https://rss.owo.nz",
    "https://rss.wudifeixue.com",
    "https://yangzhi.app",
    "https://rss.littlebaby.lol/rsshub",
    "https://rsshub.henry.wang",
    "https://rss.peachyjoy.top",
    "https://rsshub.speednet.icu",
    "https://hub.rss.direct",
    "https://rsshub.umzzz.com",
]


class ServerSettings(BaseModel):
    """HTTP endpoint configuration."""
    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=8080, ge=1, le=65535, description="Port to listen on")
    public_base_url: Optional[str] = Field(
        default=None,
        description="Public origin used for self links (defaults to the request's own URL)"
    )
    upstream_family: MirrorFamily = Field(
        default=MirrorFamily.RSSHUB, description="Mirror family the endpoint proxies"
    )

    @field_validator('public_base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize the public origin."""
        if v:
            return v.rstrip('/')
        return v


class MirrorSettings(BaseModel):
    """Built-in mirror lists; only the first entry of each is overridable."""
    nitter_instances: List[str] = Field(default_factory=lambda: list(DEFAULT_NITTER_INSTANCES))
    rsshub_instances: List[str] = Field(default_factory=lambda: list(DEFAULT_RSSHUB_INSTANCES))


class HttpSettings(BaseModel):
    """Upstream request configuration."""
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; RSSFeedGenerator/1.0; +https://github.com)",
        description="User-Agent sent to every mirror"
    )
    nitter_timeout: float = Field(default=10.0, gt=0, le=120, description="Per-attempt timeout for Nitter mirrors")
    rsshub_timeout: float = Field(default=15.0, gt=0, le=120, description="Per-attempt timeout for RSSHub mirrors")


class FeedSettings(BaseModel):
    """Served feed configuration."""
    ttl_minutes: int = Field(default=10, ge=1, le=1440, description="Refresh interval inserted when missing")
    error_max_age: int = Field(default=60, ge=0, le=3600, description="Cache max-age for error feeds (seconds)")
    author_placeholder_email: str = Field(
        default="noreply@feedbridge.invalid",
        description="Email used when an author field only carries a display name"
    )

    @field_validator('author_placeholder_email')
    @classmethod
    def validate_placeholder(cls, v):
        """Placeholder must look like an address."""
        if '@' not in v or '<' in v or v.strip() != v:
            raise ValueError("author_placeholder_email must be a bare email address")
        return v


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FeedBridgeSettings(BaseSettings):
    """Main application settings."""

    server: ServerSettings = Field(default_factory=ServerSettings)
    mirrors: MirrorSettings = Field(default_factory=MirrorSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Primary mirror overrides
    nitter_instance: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FEEDBRIDGE_NITTER_INSTANCE", "NITTER_INSTANCE", "nitter_instance"),
    )
    rsshub_instance: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FEEDBRIDGE_RSSHUB_INSTANCE", "RSSHUB_INSTANCE", "rsshub_instance"),
    )

    app_name: str = Field(default="FeedBridge", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDBRIDGE_",
        "extra": "ignore",
    }

    def get_mirror_config(self, family: MirrorFamily) -> MirrorConfig:
        """Build the ordered mirror list for a family, applying the primary override."""
        family = MirrorFamily(family)
        if family == MirrorFamily.NITTER:
            instances = list(self.mirrors.nitter_instances)
            override = self.nitter_instance
        else:
            instances = list(self.mirrors.rsshub_instances)
            override = self.rsshub_instance

        if override:
            override = override.rstrip('/')
            if instances:
                instances[0] = override
            else:
                instances = [override]

        return MirrorConfig(family=family, instances=tuple(i.rstrip('/') for i in instances))

    def get_timeout(self, family: MirrorFamily) -> float:
        """Per-attempt timeout for a family."""
        if MirrorFamily(family) == MirrorFamily.NITTER:
            return self.http.nitter_timeout
        return self.http.rsshub_timeout

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        for family in MirrorFamily:
            try:
                mirrors = self.get_mirror_config(family)
            except ValueError as e:
                errors.append(str(e))
                continue
            for instance in mirrors:
                try:
                    validate_instance_url(instance)
                except ValidationError as e:
                    errors.append(f"{family.value}: {e.reason}")

        if self.server.public_base_url:
            try:
                validate_instance_url(self.server.public_base_url)
            except ValidationError as e:
                errors.append(f"public_base_url: {e.reason}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> FeedBridgeSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = FeedBridgeSettings()
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        )


# Global settings instance
_settings: Optional[FeedBridgeSettings] = None


def get_settings(reload: bool = False) -> FeedBridgeSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
