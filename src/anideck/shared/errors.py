"""AniDeck Error Handling Module

This module defines the error handling system for AniDeck, providing
structured error classes with context information and user-friendly messages.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]

# Default keys to mask in safe_dict for PII protection
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ("user_id",)


class ErrorCode(str, Enum):
    """Error codes for AniDeck.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Network and API Errors
    NETWORK_ERROR = "NETWORK_ERROR"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_REQUEST_FAILED = "API_REQUEST_FAILED"
    API_TIMEOUT = "API_TIMEOUT"
    API_SERVER_ERROR = "API_SERVER_ERROR"
    API_INVALID_RESPONSE = "API_INVALID_RESPONSE"
    API_MEDIA_NOT_FOUND = "API_MEDIA_NOT_FOUND"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"

    # Library Store Errors
    LIBRARY_READ_FAILED = "LIBRARY_READ_FAILED"
    LIBRARY_WRITE_FAILED = "LIBRARY_WRITE_FAILED"
    LIBRARY_ENTRY_NOT_FOUND = "LIBRARY_ENTRY_NOT_FOUND"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_METADATA = "INVALID_METADATA"

    # Parsing Errors
    PARSING_ERROR = "PARSING_ERROR"

    # Configuration Errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CONFIG_MISSING = "CONFIG_MISSING"

    # Application Errors
    APPLICATION_ERROR = "APPLICATION_ERROR"
    OPERATION_CANCELLED = "OPERATION_CANCELLED"

    # CLI Errors
    CLI_COMMAND_FAILED = "CLI_COMMAND_FAILED"
    CLI_INVALID_ARGUMENTS = "CLI_INVALID_ARGUMENTS"

    # Rate Limiting and Concurrency Errors
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    QUEUE_OPERATION_ERROR = "QUEUE_OPERATION_ERROR"


# Error codes the retry policy is allowed to replay
RETRYABLE_ERROR_CODES: frozenset[ErrorCode] = frozenset(
    {
        ErrorCode.NETWORK_ERROR,
        ErrorCode.API_RATE_LIMIT,
        ErrorCode.API_TIMEOUT,
        ErrorCode.API_SERVER_ERROR,
    },
)


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        elif val is None:
            continue
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContextModel:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data to ensure safe serialization. ``None`` values are
    dropped during coercion.

    Attributes:
        operation: Optional operation name that caused the error
        user_id: Optional user ID (masked in logs)
        additional_data: Optional dict with primitive values only
    """

    operation: str | None = None
    user_id: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Post-initialization validation and coercion."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Export context as dict with PII masking.

        Args:
            mask_keys: Fields to exclude from output. Defaults to SAFE_DICT_MASK_KEYS.

        Returns:
            Dictionary with masked sensitive fields and guaranteed additional_data key.

        Example:
            >>> context = ErrorContextModel(user_id="12345", operation="fetch")
            >>> context.safe_dict()
            {'operation': 'fetch', 'additional_data': {}}
        """
        if mask_keys is None:
            mask_keys = SAFE_DICT_MASK_KEYS

        data: dict[str, Any] = {}
        if self.operation is not None and "operation" not in mask_keys:
            data["operation"] = self.operation
        if self.user_id is not None and "user_id" not in mask_keys:
            data["user_id"] = self.user_id

        if self.additional_data is not None and "additional_data" not in mask_keys:
            data["additional_data"] = self.additional_data
        else:
            data["additional_data"] = {}

        return data


ErrorContext = ErrorContextModel


class AniDeckError(Exception):
    """Base exception class for all AniDeck errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize AniDeckError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error

        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging with PII masking.

        Returns:
            Dictionary representation of the error with code, message,
            masked context, and original_error (if present)
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(AniDeckError):
    """Domain-specific errors.

    These errors occur when business rules are violated, e.g. a library
    entry that does not exist or a malformed catalog item.
    """


class InfrastructureError(AniDeckError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems like the
    catalog API or the SQLite library database.
    """


class AniDeckNetworkError(InfrastructureError):
    """Network-related errors.

    Examples:
    - Connection errors
    - Request timeouts
    - API server errors
    """


class RateLimitExceededError(AniDeckNetworkError):
    """Upstream answered HTTP 429.

    Carries the ``Retry-After`` hint (seconds) when the server sent one.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.API_RATE_LIMIT,
            message=message,
            context=context,
            original_error=original_error,
        )
        self.retry_after = retry_after


class AniDeckParsingError(DomainError):
    """Data parsing errors (malformed JSON, unexpected payload shape)."""


class ApplicationError(AniDeckError):
    """Application-level errors.

    These errors occur at the application layer, typically related to
    configuration, invalid arguments, or misuse of the public API.
    """


def is_retryable(error: BaseException) -> bool:
    """Return True if the retry policy may replay the failed call."""
    return isinstance(error, AniDeckNetworkError) and error.code in RETRYABLE_ERROR_CODES


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
) -> ApplicationError:
    """Create a validation error for invalid caller-supplied parameters."""
    context = ErrorContext(
        operation=operation,
        additional_data={"field": field} if field else None,
    )
    return ApplicationError(ErrorCode.VALIDATION_ERROR, message, context)


def create_api_error(
    code: ErrorCode,
    message: str,
    endpoint: str,
    original_error: Exception | None = None,
) -> AniDeckNetworkError:
    """Create a network error for a failed catalog API call."""
    context = ErrorContext(
        operation="api_request",
        additional_data={"endpoint": endpoint},
    )
    return AniDeckNetworkError(code, message, context, original_error)


def create_config_error(
    message: str,
    config_path: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Create a configuration error."""
    context = ErrorContext(
        operation="load_config",
        additional_data={"config_path": config_path} if config_path else None,
    )
    return ApplicationError(ErrorCode.CONFIGURATION_ERROR, message, context, original_error)
