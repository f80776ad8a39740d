"""
FeedBridge Custom Exceptions
============================

Custom exception hierarchy for FeedBridge with error codes, context
information, and user-friendly error messages.
"""

from typing import Optional, Dict, Any, List, Tuple
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_UNSUPPORTED_TYPE = "V003"

    # Upstream mirror errors (U001-U099)
    UPSTREAM_NETWORK_ERROR = "U001"
    UPSTREAM_TIMEOUT = "U002"
    UPSTREAM_HTTP_STATUS = "U003"
    UPSTREAM_INVALID_CONTENT = "U004"
    UPSTREAM_ALL_FAILED = "U005"

    # System errors (S001-S099)
    SYSTEM_UNEXPECTED = "S001"


class FeedBridgeError(Exception):
    """Base exception for all FeedBridge errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedBridge error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(FeedBridgeError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for FeedBridgeError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message"]
            },
        )


class ValidationError(FeedBridgeError):
    """Feed request validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        """Initialize validation error.

        Args:
            message: Reason the field was rejected
            field_name: Query parameter that failed validation
            **kwargs: Additional arguments for FeedBridgeError
        """
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        self.field_name = field_name
        self.reason = message

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get("user_message", message),
            recoverable=kwargs.get("recoverable", False),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message", "recoverable"]
            },
        )


class UpstreamError(FeedBridgeError):
    """A single mirror instance failed to produce a feed."""

    def __init__(self, message: str, instance: Optional[str] = None, **kwargs):
        """Initialize upstream error.

        Args:
            message: Failure reason as reported in the aggregate error
            instance: Mirror base URL that failed
            **kwargs: Additional arguments for FeedBridgeError
        """
        context = kwargs.get("context", {})
        if instance:
            context["instance"] = instance

        self.instance = instance
        self.reason = message

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.UPSTREAM_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get("user_message", f"Mirror failed: {message}"),
            recoverable=kwargs.get("recoverable", True),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message", "recoverable"]
            },
        )


class TransportError(UpstreamError):
    """Network failure or timeout while talking to a mirror."""

    pass


class ClassificationError(UpstreamError):
    """Mirror answered, but not with a feed document."""

    def __init__(self, message: str, instance: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.UPSTREAM_INVALID_CONTENT)
        super().__init__(message, instance=instance, **kwargs)


class AllInstancesFailedError(FeedBridgeError):
    """Every mirror of a family failed for one request."""

    def __init__(self, family: str, attempts: List[Tuple[str, str]], **kwargs):
        """Initialize aggregate failure.

        Args:
            family: Mirror family name (e.g. 'rsshub')
            attempts: Ordered (instance, reason) pairs, one per mirror tried
            **kwargs: Additional arguments for FeedBridgeError
        """
        self.family = family
        self.per_instance_reasons = list(attempts)

        lines = [f"{instance}: {reason}" for instance, reason in self.per_instance_reasons]
        message = f"All {family} instances failed:\n" + "\n".join(lines)

        context = kwargs.get("context", {})
        context["family"] = family
        context["attempt_count"] = len(self.per_instance_reasons)

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.UPSTREAM_ALL_FAILED),
            context=context,
            user_message=kwargs.get("user_message", message),
            recoverable=kwargs.get("recoverable", True),
        )


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedBridgeError:
    """Convert generic exceptions to FeedBridge exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        FeedBridge exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, FeedBridgeError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, TimeoutError):
        error = TransportError(
            f"Timeout during {operation}: {exception}",
            error_code=ErrorCode.UPSTREAM_TIMEOUT,
            context=context,
        )

    elif isinstance(exception, ConnectionError):
        error = TransportError(
            f"Network error during {operation}: {exception}",
            error_code=ErrorCode.UPSTREAM_NETWORK_ERROR,
            context=context,
        )

    else:
        error = FeedBridgeError(
            message=f"Unexpected error during {operation}: {exception}",
            error_code=ErrorCode.SYSTEM_UNEXPECTED,
            context=context,
            user_message="An unexpected error occurred",
            recoverable=False,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, FeedBridgeError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
