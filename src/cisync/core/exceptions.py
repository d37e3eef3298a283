"""
Custom exceptions for cisync.

This module defines the exception hierarchy shared by the provider client,
the cached client, the stores and the sync orchestrator.

Exception Hierarchy:
    CisyncError (base)
    ├── ProviderError (CI provider failures)
    │   ├── AuthenticationError (invalid or expired credential)
    │   ├── ProviderAPIError (non-success response, carries status code)
    │   └── NotFoundError (missing run or artifact)
    ├── ReportParseError (malformed test report)
    └── StoreError (persisted-store failures)

Example:
    >>> from cisync.core.exceptions import ProviderAPIError
    >>> try:
    ...     raise ProviderAPIError("github", "Rate limited", status_code=403)
    ... except ProviderAPIError as e:
    ...     print(f"{e} ({e.status_code})")
    [github] Rate limited (403)
"""


class CisyncError(Exception):
    """
    Base exception for all cisync errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        """
        Initialize an error with message and context.

        Args:
            message: Human-readable error message
            **context: Additional context as keyword arguments
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class ProviderError(CisyncError):
    """
    Base exception for CI provider errors.

    Attributes:
        provider: Name of the provider that failed (e.g., "github")
        status_code: HTTP status code, if the failure came from a response
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        **context: object,
    ) -> None:
        super().__init__(message, provider=provider, status_code=status_code, **context)
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        """Return string representation with provider name."""
        return f"[{self.provider}] {self.message}"


class AuthenticationError(ProviderError):
    """
    Raised when the provider rejects the configured credential.

    Callers should abort and ask the user to re-enter the token.
    """

    def __init__(self, provider: str, message: str = "Invalid or expired access token") -> None:
        super().__init__(provider, message, status_code=401)


class ProviderAPIError(ProviderError):
    """
    Raised on a non-success provider response.

    Retry policy is the caller's responsibility.
    """


class NotFoundError(ProviderError):
    """
    Raised when a run or artifact no longer exists.

    The GitHub client maps ``410 Gone`` on artifact download to ``None``
    instead of raising this.
    """


class ReportParseError(CisyncError):
    """
    No usable test report in a file.

    The parser entry points never raise this; they return ``None`` or an
    empty list. Callers that need a report raise it themselves, as
    ``cisync report`` does for a file with no usable document.
    """


class StoreError(CisyncError):
    """Raised when reading or writing the persisted store fails."""


__all__ = [
    "CisyncError",
    "ProviderError",
    "AuthenticationError",
    "ProviderAPIError",
    "NotFoundError",
    "ReportParseError",
    "StoreError",
]
