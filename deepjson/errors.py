"""Exception classes raised by the SDK.

Every HTTP failure is normalised into one of :class:`APIError`,
:class:`NetworkError` or :class:`RequestError`; all three share the
:class:`DeepJSONError` base so callers can catch a single type and
inspect it to tell the kinds apart.
"""

from __future__ import annotations

from typing import Any, Optional


class DeepJSONError(Exception):
    """Base exception for all SDK errors."""

    def __init__(self, message: str, *, status: Optional[int] = None,
                 details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details


class APIError(DeepJSONError):
    """The server answered with a non-success status.

    ``status`` holds the HTTP status code and ``details`` the decoded
    response body (JSON when the server sent JSON, text otherwise).
    """


class NetworkError(DeepJSONError):
    """The request was sent but no response came back."""


class RequestError(DeepJSONError):
    """The request could not be built or sent."""


class ChannelError(DeepJSONError):
    """The realtime transport failed before a session was established."""


class SessionTimeoutError(ChannelError):
    """Session establishment did not complete in time."""


class ConfigError(DeepJSONError):
    """Invalid or missing configuration."""
