"""HTTP client for a DeepJSON key-value server.

This module defines the :class:`DeepJSONClient` class which wraps the
REST endpoints exposed by a DeepJSON server: authentication, the
``/keys/{key}`` CRUD surface, moving keys and listing them.  Request
shaping lives in :mod:`deepjson.request`; this class adds the bearer
token, talks to httpx and normalises failures into
:mod:`deepjson.errors`.

Usage example::

    from deepjson import DeepJSONClient, GetOptions

    client = DeepJSONClient("https://deepjson.example.com")
    client.login("alice", "secret")
    client.post("settings/theme", "dark")
    client.get("settings/theme")
    client.get("blobs/logo", options=GetOptions(binary=True))

Realtime sessions are created with :meth:`DeepJSONClient.session`, which
returns a :class:`~deepjson.session.SessionChannel` sharing this
client's credentials.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import httpx

from . import endpoints
from . import request as rq
from .config import DEFAULT_STORAGE, DEFAULT_TIMEOUT, ConnectionConfig
from .errors import APIError, NetworkError, RequestError

if TYPE_CHECKING:
    from .session import SessionChannel

logger = logging.getLogger(__name__)

TokenListener = Callable[[Optional[str]], None]


class DeepJSONClient:
    """Client for the DeepJSON HTTP API.

    Auth:
      - Once a token is known (passed in, or obtained with :meth:`login`)
        every request carries ``Authorization: Bearer <token>``.
      - Binary GETs additionally put the token in the query string.

    Transmission flags:
      - Prefer the per-call ``options`` arguments.  The fluent setters
        (:meth:`set_binary`, :meth:`set_overwrite_key`,
        :meth:`set_get_body`) are kept for code written against the
        older connector; they apply to the next CRUD call only and are
        cleared before that request goes out, whatever its outcome.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        storage: str = DEFAULT_STORAGE,
        *,
        config: Optional[ConnectionConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if config is None:
            if not base_url:
                raise ValueError("base_url must be provided")
            config = ConnectionConfig(base_url=base_url, token=token,
                                      timeout=timeout, storage=storage)
        self.config = config
        self.flags = rq.TransmissionFlags()
        self._token_listeners: List[TokenListener] = []

        headers = {
            "Accept": "application/json",
            "User-Agent": config.user_agent,
        }
        self._http = httpx.Client(base_url=config.base_url, headers=headers,
                                  timeout=config.timeout, transport=transport)
        logger.debug("DeepJSONClient initialized with base_url=%s", config.base_url)

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def timeout(self) -> float:
        return self.config.timeout

    @property
    def storage(self) -> str:
        return self.config.storage

    @property
    def token(self) -> Optional[str]:
        return self.config.token

    def get_token(self) -> Optional[str]:
        return self.config.token

    # ----------------------------------------------------------------------
    # Authentication
    #
    def login(self, username: str, password: str) -> Any:
        """Exchange credentials for a token.

        The new token is stored on the client and pushed to every token
        listener, which is how attached sessions learn about it.
        """
        logger.info("Logging in as %s", username)
        descriptor = rq.RequestDescriptor(
            "POST", endpoints.LOGIN,
            headers={"Content-Type": "application/json"},
        )
        response = self._send(descriptor, json_body={"username": username,
                                                      "password": password})
        data = self._decode(response)
        token = data.get("token") if isinstance(data, dict) else None
        self._set_token(token)
        return data

    def _set_token(self, token: Optional[str]) -> None:
        self.config.token = token or None
        for listener in list(self._token_listeners):
            listener(self.config.token)

    def add_token_listener(self, listener: TokenListener) -> None:
        self._token_listeners.append(listener)

    def remove_token_listener(self, listener: TokenListener) -> None:
        for i, existing in enumerate(self._token_listeners):
            if existing == listener:
                del self._token_listeners[i]
                return

    # ----------------------------------------------------------------------
    # Legacy fluent transmission flags
    #
    def is_binary(self) -> bool:
        return self.flags.binary

    def set_binary(self, value: bool = True) -> "DeepJSONClient":
        self.flags.binary = bool(value)
        return self

    def is_overwrite_key(self) -> bool:
        return self.flags.overwrite_key

    def set_overwrite_key(self, value: bool = True) -> "DeepJSONClient":
        self.flags.overwrite_key = bool(value)
        return self

    def has_get_body(self) -> bool:
        return self.flags.get_body

    def set_get_body(self, value: bool = True) -> "DeepJSONClient":
        self.flags.get_body = bool(value)
        return self

    # ----------------------------------------------------------------------
    # Key-value operations
    #
    def get(self, key: str, value: Any = "", *,
            options: Optional[rq.GetOptions] = None,
            script: Optional[str] = None) -> Any:
        pending = self.flags.consume()
        options = options or rq.GetOptions()
        options = rq.GetOptions(binary=options.binary or pending.binary,
                                get_body=options.get_body or pending.get_body)
        descriptor = rq.build_get(key, value, options, self.token, script=script)
        return self._request(descriptor, binary=options.binary)

    def post(self, key: str, value: Any, *,
             options: Optional[rq.PostOptions] = None,
             script: Optional[str] = None) -> Any:
        pending = self.flags.consume()
        overwrite = pending.overwrite_key or bool(options and options.overwrite_key)
        descriptor = rq.build_post(key, value, rq.PostOptions(overwrite_key=overwrite),
                                   script=script)
        return self._request(descriptor)

    def put(self, key: str, value: Any, *, script: Optional[str] = None) -> Any:
        self.flags.reset()
        return self._request(rq.build_put(key, value, script=script))

    def delete(self, key: str) -> Any:
        self.flags.reset()
        return self._request(rq.build_delete(key))

    def move(self, key: str, key_to: str) -> Any:
        """Rename ``key`` to ``key_to`` on the server."""
        self.flags.reset()
        return self._request(rq.build_move(key, key_to))

    def upload_file(self, key: str, file: rq.FileInput, *,
                    overwrite: bool = False) -> Any:
        """Upload a file (path or binary file object) as the value of ``key``."""
        self.flags.reset()
        return self._request(rq.build_upload_file(key, file, overwrite=overwrite))

    def list_keys(self, key_filter: rq.KeyFilter = None) -> Any:
        """List keys, optionally narrowed by a string or compiled pattern."""
        self.flags.reset()
        return self._request(rq.build_list_keys(key_filter))

    # ----------------------------------------------------------------------
    # Realtime
    #
    def session(self, **kwargs: Any) -> "SessionChannel":
        """Return a :class:`~deepjson.session.SessionChannel` bound to this client."""
        from .session import SessionChannel

        return SessionChannel(self, **kwargs)

    # ----------------------------------------------------------------------
    # Internals
    #
    def _request(self, descriptor: rq.RequestDescriptor, binary: bool = False) -> Any:
        response = self._send(rq.finalize(descriptor, self.token))
        if binary:
            return response.content
        return self._decode(response)

    def _send(self, descriptor: rq.RequestDescriptor,
              json_body: Any = None) -> httpx.Response:
        """Issue ``descriptor`` and map httpx failures onto SDK errors."""
        url = descriptor.path.lstrip("/")
        kwargs: Dict[str, Any] = {
            "params": descriptor.params or None,
            "headers": descriptor.headers,
        }
        if json_body is not None:
            kwargs["json"] = json_body
        elif descriptor.files is not None:
            kwargs["files"] = descriptor.files
        elif descriptor.content is not None:
            kwargs["content"] = descriptor.content

        logger.debug("%s %s params=%s", descriptor.method, descriptor.path,
                     descriptor.params)
        try:
            response = self._http.request(descriptor.method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            logger.error("HTTP error: %s", exc)
            resp = exc.response
            raise APIError(
                f"API Error: {resp.status_code} {resp.reason_phrase}",
                status=resp.status_code,
                details=self._decode(resp),
            ) from exc
        except (httpx.UnsupportedProtocol, httpx.LocalProtocolError) as exc:
            logger.error("Request failed: %s", exc)
            raise RequestError(f"Request Error: {exc}") from exc
        except httpx.TransportError as exc:
            logger.error("Request failed: %s", exc)
            raise NetworkError(
                "Network Error: No response from server", details=str(exc)
            ) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            logger.error("Request failed: %s", exc)
            raise RequestError(f"Request Error: {exc}") from exc

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return response.json()
            except ValueError:
                logger.warning("Response claims JSON but does not parse; returning text")
        return response.text

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "DeepJSONClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# Names the original connector was exported under.
Connector = DeepJSONClient
DeepJSONConnector = DeepJSONClient
