"""
Custom exceptions for Plugstore.

The hierarchy mirrors how failures are handled by the cache and fetch layers:

- ValidationError is raised synchronously for malformed input.
- NetworkError (and its ParseError subclass) is surfaced to callers when no
  usable cache exists.
- CacheIOError reports file system failures; cache reads downgrade it to a
  miss, cache clears surface it.
"""


class PlugstoreError(Exception):
    """
    Base exception for all Plugstore errors.

    All custom exceptions in Plugstore inherit from this class so callers can
    catch every application-specific error at once.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PlugstoreError):
    """
    Exception raised when configuration is invalid.

    This includes:
    - Configuration file parsing errors
    - Values of the wrong type
    - Unknown plugin managers in the catalogue URL mapping
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(PlugstoreError):
    """
    Exception raised when an argument to a cache or fetch call is malformed.

    Attributes:
        field: The name of the field that failed validation.
        value: The offending value.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: object = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


# =============================================================================
# Network Errors
# =============================================================================


class NetworkError(PlugstoreError):
    """
    Exception raised when a remote resource cannot be retrieved.

    This includes non-2xx responses, timeouts and connection failures.

    Attributes:
        url: The URL that was requested.
        status_code: HTTP status code, when a response was received.
        body: Response body (possibly truncated), when one was received.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code
        self.body = body


class ParseError(NetworkError):
    """Exception raised when a remote or cached payload is not valid JSON."""

    pass


# =============================================================================
# File System Errors
# =============================================================================


class CacheIOError(PlugstoreError):
    """
    Exception raised for cache directory or lock file I/O failures.

    Attributes:
        path: The file or directory that caused the error.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
