"""
Foundation Tests for FeedBridge
===============================

Test suite for configuration, logging and the exception hierarchy.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest

from feedbridge.config.settings import (
    DEFAULT_NITTER_INSTANCES,
    DEFAULT_RSSHUB_INSTANCES,
    FeedBridgeSettings,
    LogLevel,
    load_settings,
)
from feedbridge.models import MirrorConfig, MirrorFamily
from feedbridge.utils.exceptions import (
    AllInstancesFailedError,
    ClassificationError,
    ConfigurationError,
    ErrorCode,
    FeedBridgeError,
    TransportError,
    UpstreamError,
    ValidationError,
    get_user_friendly_message,
    handle_exception,
)
from feedbridge.utils.logging import (
    PerformanceLogger,
    StructuredFormatter,
    get_logger_for_component,
    setup_logger,
)


class TestSettings:
    """Test configuration loading."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("FEEDBRIDGE_DEBUG", raising=False)
        settings = FeedBridgeSettings(_env_file=None)

        assert settings.server.port == 8080
        assert settings.server.upstream_family == MirrorFamily.RSSHUB
        assert settings.http.nitter_timeout == 10.0
        assert settings.http.rsshub_timeout == 15.0
        assert settings.feed.ttl_minutes == 10
        assert settings.logging.level == LogLevel.INFO
        assert settings.debug is False

    def test_mirror_config_preserves_order(self, test_settings):
        config = test_settings.get_mirror_config(MirrorFamily.RSSHUB)

        assert isinstance(config, MirrorConfig)
        assert config.family == MirrorFamily.RSSHUB
        assert list(config) == DEFAULT_RSSHUB_INSTANCES
        assert len(test_settings.get_mirror_config("nitter")) == len(DEFAULT_NITTER_INSTANCES)

    def test_primary_override_from_unprefixed_env(self, monkeypatch):
        monkeypatch.setenv("RSSHUB_INSTANCE", "https://my-hub.example/")
        settings = FeedBridgeSettings(_env_file=None)

        config = settings.get_mirror_config(MirrorFamily.RSSHUB)
        assert config.instances[0] == "https://my-hub.example"
        assert config.instances[1:] == tuple(DEFAULT_RSSHUB_INSTANCES[1:])

    def test_primary_override_from_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("FEEDBRIDGE_NITTER_INSTANCE", "https://my-nitter.example")
        settings = FeedBridgeSettings(_env_file=None)

        assert settings.get_mirror_config(MirrorFamily.NITTER).instances[0] == "https://my-nitter.example"

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("FEEDBRIDGE_SERVER__PORT", "9090")
        monkeypatch.setenv("FEEDBRIDGE_FEED__TTL_MINUTES", "30")
        settings = FeedBridgeSettings(_env_file=None)

        assert settings.server.port == 9090
        assert settings.feed.ttl_minutes == 30

    def test_timeouts_by_family(self, test_settings):
        assert test_settings.get_timeout(MirrorFamily.NITTER) == 10.0
        assert test_settings.get_timeout("rsshub") == 15.0

    def test_invalid_override_fails_validation(self, monkeypatch):
        monkeypatch.setenv("RSSHUB_INSTANCE", "not-a-url")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID
        assert "not-a-url" in str(exc_info.value)

    def test_empty_mirror_list_fails_validation(self):
        settings = FeedBridgeSettings(_env_file=None, mirrors={"nitter_instances": []})

        with pytest.raises(ConfigurationError):
            settings.validate_configuration()

    def test_public_base_url_trailing_slash(self):
        settings = FeedBridgeSettings(_env_file=None, server={"public_base_url": "https://p.example/"})
        assert settings.server.public_base_url == "https://p.example"

    def test_placeholder_email_validated(self):
        with pytest.raises(Exception):
            FeedBridgeSettings(_env_file=None, feed={"author_placeholder_email": "nobody"})

    def test_debug_forces_debug_level(self):
        settings = FeedBridgeSettings(_env_file=None, debug=True)
        assert settings.get_effective_log_level() == "DEBUG"


class TestMirrorConfig:

    def test_empty_is_rejected(self):
        with pytest.raises(ValueError):
            MirrorConfig(family=MirrorFamily.NITTER, instances=())

    def test_immutable(self):
        config = MirrorConfig(family=MirrorFamily.NITTER, instances=("https://a.example",))
        with pytest.raises(Exception):
            config.instances = ()


class TestExceptions:
    """Test the exception hierarchy."""

    def test_error_code_in_str(self):
        error = FeedBridgeError("boom", error_code=ErrorCode.SYSTEM_UNEXPECTED)
        assert str(error) == "[S001] boom"
        assert error.message == "boom"

    def test_to_dict(self):
        error = ValidationError("Username is required", field_name="username")
        data = error.to_dict()

        assert data["error_type"] == "ValidationError"
        assert data["error_code"] == "V002"
        assert data["context"]["field_name"] == "username"
        assert data["recoverable"] is False

    def test_upstream_hierarchy(self):
        transport = TransportError("request timed out after 10s", instance="https://a.example")
        classification = ClassificationError("http status 503", instance="https://b.example")

        assert isinstance(transport, UpstreamError)
        assert isinstance(classification, UpstreamError)
        assert classification.error_code == ErrorCode.UPSTREAM_INVALID_CONTENT
        assert transport.reason == "request timed out after 10s"
        assert transport.instance == "https://a.example"
        assert transport.recoverable is True

    def test_aggregate_message_lists_every_attempt(self):
        error = AllInstancesFailedError("rsshub", [
            ("https://a.example", "http status 503"),
            ("https://b.example", "request timed out after 15s"),
        ])

        assert error.message == (
            "All rsshub instances failed:\n"
            "https://a.example: http status 503\n"
            "https://b.example: request timed out after 15s"
        )
        assert error.family == "rsshub"
        assert len(error.per_instance_reasons) == 2
        assert error.context["attempt_count"] == 2

    def test_handle_exception_wraps_timeouts(self):
        logger = MagicMock()
        error = handle_exception(TimeoutError("slow"), logger, "fetch")

        assert isinstance(error, TransportError)
        assert error.error_code == ErrorCode.UPSTREAM_TIMEOUT
        assert error.context["operation"] == "fetch"
        logger.error.assert_called_once()

    def test_handle_exception_passes_through_own_errors(self):
        original = ValidationError("bad", field_name="q")
        assert handle_exception(original, MagicMock(), "validate") is original

    def test_handle_exception_unexpected(self):
        error = handle_exception(KeyError("x"), MagicMock(), "proxy")

        assert error.error_code == ErrorCode.SYSTEM_UNEXPECTED
        assert get_user_friendly_message(error) == "An unexpected error occurred"

    def test_user_friendly_message_for_foreign_exception(self):
        assert "unexpected" in get_user_friendly_message(RuntimeError("x"))


class TestLogging:
    """Test logging helpers."""

    def test_component_logger_context(self):
        adapter = get_logger_for_component("feed_fetcher", instance="https://a.example", feed_kind="user")

        assert adapter.logger.name == "feedbridge.feed_fetcher"
        assert adapter.extra["component"] == "feed_fetcher"
        assert adapter.extra["instance"] == "https://a.example"
        assert adapter.extra["feed_kind"] == "user"

    def test_structured_formatter_emits_json(self):
        record = logging.LogRecord("feedbridge.test", logging.INFO, __file__, 1, "hello", None, None)
        record.component = "api"

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"

    def test_setup_logger_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "feedbridge.log"
        logger = setup_logger("feedbridge.test_file", level="INFO", log_file=str(log_file), console=False)

        logger.info("written")
        for handler in logger.handlers:
            handler.flush()

        assert "written" in log_file.read_text()

    def test_performance_logger_success(self):
        logger = MagicMock()

        with PerformanceLogger(logger, "fetch from https://a.example") as perf:
            pass

        assert perf.duration is not None and perf.duration >= 0
        logger.info.assert_called_once()

    def test_performance_logger_failure_propagates(self):
        logger = MagicMock()
        perf = PerformanceLogger(logger, "fetch")

        with pytest.raises(RuntimeError):
            with perf:
                raise RuntimeError("down")

        assert perf.duration is not None
        logger.warning.assert_called_once()
