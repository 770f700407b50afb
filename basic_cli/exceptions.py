"""Exceptions raised by the Basic CLI."""

from __future__ import annotations

from typing import Optional


class BasicCliError(Exception):
    """Base exception for all Basic CLI errors.

    Args:
        message: Human-readable error message
        suggestions: Optional list of follow-up hints shown to the user
    """

    code = "UNKNOWN_ERROR"

    def __init__(self, message: str, suggestions: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])


class BasicConfigError(BasicCliError):
    """Raised when local configuration cannot be read or updated."""

    code = "CONFIG_ERROR"


class BasicAuthenticationError(BasicCliError):
    """Raised when authentication fails or no valid token is available."""

    code = "AUTH_ERROR"


class BasicAPIError(BasicCliError):
    """Raised when the backend answers with a non-2xx status."""

    code = "API_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        suggestions: Optional[list[str]] = None,
    ):
        super().__init__(message, suggestions)
        self.status_code = status_code


class BasicNotFoundError(BasicAPIError):
    """Raised when a resource does not exist (404)."""


class BasicPermissionError(BasicAPIError):
    """Raised when access to a resource is forbidden (403)."""


class BasicInvalidResponseError(BasicAPIError):
    """Raised when the backend returns a body that is not valid JSON or has the wrong shape."""


class BasicNetworkError(BasicCliError):
    """Raised when the backend cannot be reached."""

    code = "NETWORK_ERROR"

    def __init__(self, message: str = "Network connection failed"):
        super().__init__(
            message,
            ["Check your internet connection", "Try again in a moment"],
        )


class BasicSchemaError(BasicCliError):
    """Raised when a schema is missing required fields or cannot be parsed."""

    code = "SCHEMA_ERROR"


def handle_error(error: BaseException) -> BasicCliError:
    """Convert an arbitrary exception into a BasicCliError.

    Known CLI errors pass through unchanged. Other exceptions are classified
    by their message text.

    Args:
        error: The exception to convert

    Returns:
        A BasicCliError (or subclass) describing the failure
    """
    if isinstance(error, BasicCliError):
        return error

    message = str(error)
    lowered = message.lower()

    if "enotfound" in lowered or "network" in lowered:
        return BasicNetworkError()

    if "unauthorized" in lowered or "401" in lowered:
        return BasicAuthenticationError(
            "Authentication failed",
            [
                "Try logging in again with 'basic login'",
                "Check if your token has expired",
            ],
        )

    if "invalid character" in lowered:
        return BasicSchemaError(
            "Invalid schema format",
            [
                "Check for trailing commas in your schema",
                "Ensure valid JSON syntax",
            ],
        )

    return BasicCliError(message or "An unknown error occurred")


def format_error(error: BasicCliError) -> str:
    """Render an error and its suggestions for the terminal."""
    output = f"Error: {error.message}"
    if error.suggestions:
        output += "\n\nSuggestions:"
        for suggestion in error.suggestions:
            output += f"\n  - {suggestion}"
    return output
