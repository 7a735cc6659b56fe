"""
Custom exceptions for tfrget.

This module defines the error taxonomy raised while resolving and fetching
modules from a module registry. Every error carries a primary message and
optional details so callers can log them uniformly.
"""


class TfrGetError(Exception):
    """
    Base exception for all tfrget errors.

    All custom exceptions in tfrget inherit from this class to allow for
    easy catching of all application-specific errors.
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


class ConfigurationError(TfrGetError):
    """
    Exception raised when configuration is invalid or cannot be read.

    This includes:
    - Unreadable configuration files
    - YAML parsing errors
    - Documents that are not a mapping
    """

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when a configuration value is not acceptable."""

    pass


class CredentialsError(ConfigurationError):
    """Exception raised when the credentials file cannot be read or parsed."""

    pass


# =============================================================================
# Registry Protocol Errors
# =============================================================================


class MalformedRegistryURLError(TfrGetError):
    """
    Exception raised when a registry source URL cannot be used.

    Raised before any network access for a missing or duplicated version
    query. This is an input defect and is never retried.
    """

    def __init__(self, reason: str) -> None:
        super().__init__("tfr getter URL is malformed", details=reason)
        self.reason = reason


class ServiceDiscoveryError(TfrGetError):
    """Exception raised when the service discovery document is unusable."""

    def __init__(self, reason: str) -> None:
        super().__init__("Error finding the module registry base path", details=reason)
        self.reason = reason


class RegistryAPIError(TfrGetError):
    """
    Exception raised for non-2xx responses from the registry.

    Attributes:
        url: The URL that was requested.
        status_code: The HTTP status code returned by the server.
    """

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(
            f"Failed to fetch url {url}",
            details=f"status code {status_code}",
        )
        self.url = url
        self.status_code = status_code


class ModuleDownloadError(TfrGetError):
    """
    Exception raised when a module cannot be located or staged.

    Attributes:
        source_url: The URL that was being resolved or downloaded.
    """

    def __init__(self, source_url: str, details: str) -> None:
        super().__init__(f"Error downloading module from {source_url}", details)
        self.source_url = source_url


class TransportError(TfrGetError):
    """
    Exception raised for network-related failures.

    This includes:
    - Connection timeouts
    - DNS resolution failures
    - Connection refused errors
    - SSL/TLS errors
    """

    def __init__(self, url: str, details: str | None = None) -> None:
        super().__init__(f"Error requesting {url}", details)
        self.url = url


class UnsupportedOperationError(TfrGetError):
    """Exception raised for capabilities the registry protocol does not offer."""

    pass


# =============================================================================
# Fetch Engine Errors
# =============================================================================


class FetchEngineError(TfrGetError):
    """
    Exception raised by the content-fetch engine.

    This includes:
    - Unsupported source schemes
    - Archive download or extraction failures
    - Subdirectory globs matching nothing or more than one path
    """

    def __init__(self, source_url: str, details: str | None = None) -> None:
        super().__init__(f"Error fetching {source_url}", details)
        self.source_url = source_url
