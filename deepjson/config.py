"""Connection settings shared by the HTTP client and realtime sessions."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_STORAGE = "memory"
DEFAULT_USER_AGENT = "DeepJSONConnector/1.0"


@dataclass
class ConnectionConfig:
    """Where and how to reach a DeepJSON server.

    Only ``token`` is expected to change after construction; it is
    replaced when :meth:`~deepjson.client.DeepJSONClient.login` succeeds.
    ``storage`` is an informational tag and is never sent to the server.
    """

    base_url: str
    token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    storage: str = DEFAULT_STORAGE
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        self.base_url = self.base_url.rstrip("/")
        self.token = self.token or None
        self.timeout = float(self.timeout)

    @classmethod
    def from_env(cls, prefix: str = "DEEPJSON_",
                 environ: Optional[Mapping[str, str]] = None,
                 **overrides: Any) -> "ConnectionConfig":
        """Build a config from ``<prefix>BASE_URL``, ``<prefix>TOKEN``,
        ``<prefix>TIMEOUT`` and ``<prefix>STORAGE``.

        Keyword overrides take precedence over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        base_url = env.get(prefix + "BASE_URL")
        if base_url:
            values["base_url"] = base_url
        token = env.get(prefix + "TOKEN")
        if token:
            values["token"] = token
        storage = env.get(prefix + "STORAGE")
        if storage:
            values["storage"] = storage
        timeout = env.get(prefix + "TIMEOUT")
        if timeout:
            try:
                values["timeout"] = float(timeout)
            except ValueError as exc:
                raise ConfigError(f"invalid {prefix}TIMEOUT: {timeout!r}") from exc

        values.update({k: v for k, v in overrides.items() if v is not None})
        if not values.get("base_url"):
            raise ConfigError(f"{prefix}BASE_URL is not set")

        logger.debug("Loaded connection config for %s", values["base_url"])
        return cls(**values)
