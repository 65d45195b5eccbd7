"""
Top-level package for the DeepJSON Python SDK.

This package provides a client for a DeepJSON key-value server over
HTTP, plus an optional realtime session layer on Socket.IO sharing the
same credentials.

High-level imports (recommended):

    from deepjson import DeepJSONClient, SessionChannel

Per-call transmission options:

    from deepjson import GetOptions, PostOptions

Errors:

    from deepjson import DeepJSONError, APIError, NetworkError, ChannelError
"""

from .client import Connector, DeepJSONClient, DeepJSONConnector  # noqa: F401
from .config import ConnectionConfig  # noqa: F401
from .errors import (  # noqa: F401
    APIError,
    ChannelError,
    ConfigError,
    DeepJSONError,
    NetworkError,
    RequestError,
    SessionTimeoutError,
)
from .events import Envelope, LifecycleEvent  # noqa: F401
from .request import (  # noqa: F401
    GetOptions,
    PostOptions,
    RequestDescriptor,
    TransmissionFlags,
)
from .session import SessionChannel  # noqa: F401

__version__ = "1.0.0"

__all__ = [
    "DeepJSONClient",
    "SessionChannel",
    "ConnectionConfig",
    # options
    "GetOptions",
    "PostOptions",
    "TransmissionFlags",
    "RequestDescriptor",
    # realtime
    "Envelope",
    "LifecycleEvent",
    # errors
    "DeepJSONError",
    "APIError",
    "NetworkError",
    "RequestError",
    "ChannelError",
    "SessionTimeoutError",
    "ConfigError",
    # legacy names
    "Connector",
    "DeepJSONConnector",
]
