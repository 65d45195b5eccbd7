"""Realtime session channel and event router.

The :class:`SessionChannel` manages one realtime session over a
Socket.IO connection: creating a session, joining an existing one by
channel id, sending typed messages and routing inbound messages to
registered handlers.

You normally obtain a channel from
:meth:`~deepjson.client.DeepJSONClient.session`.  The channel borrows
the client's token and listens for token changes; after a successful
:meth:`~deepjson.client.DeepJSONClient.login` an attached channel
updates its connection parameters and rejoins its channel.

Example::

    channel = client.session()
    channel.on("chat", lambda data: print("chat:", data))
    channel_id = channel.create_session(timeout=5)
    channel.send("chat", {"text": "hello"})
    channel.disconnect()

Handlers are called from the Socket.IO client's event thread, so avoid
blocking inside them.  Instances of this class are not thread safe.
"""

from __future__ import annotations

import logging
import time
from concurrent import futures
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import socketio

from . import endpoints
from .errors import ChannelError, DeepJSONError, SessionTimeoutError
from .events import Envelope, LifecycleEvent, event_name

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
SocketFactory = Callable[[], Any]

# Events the channel itself listens to on the transport.  User handlers
# for these names are reached through the channel's own forwarding.
_RESERVED_EVENTS = frozenset({
    endpoints.SESSION_CREATED_EVENT,
    endpoints.SESSION_JOINED_EVENT,
    endpoints.ERROR_EVENT,
    endpoints.CONNECT_ERROR_EVENT,
    endpoints.MESSAGE_EVENT,
}) | LifecycleEvent.names()


def default_socket_factory() -> socketio.Client:
    # Transport-level reconnection would replay the original handshake
    # (possibly ``action=create``); rejoining is done by reconnect().
    return socketio.Client(
        reconnection=False,
        logger=False,
        engineio_logger=False,
    )


class SessionChannel:
    """A single realtime session.

    Parameters
    ----------
    client: DeepJSONClient
        Supplies the base URL, the token and the default timeout.
    socket_factory: callable, optional
        Returns a fresh Socket.IO client each time a connection is
        opened.  Defaults to :func:`default_socket_factory`.
    transports: list of str, optional
        Passed to ``socketio.Client.connect``.
    """

    def __init__(self, client: Any,
                 socket_factory: Optional[SocketFactory] = None,
                 transports: Optional[List[str]] = None) -> None:
        self.client = client
        self._socket_factory = socket_factory or default_socket_factory
        self._transports = transports
        self._socket: Optional[Any] = None
        self._channel_id: Optional[str] = None
        self._query: Dict[str, str] = {}
        self._pending: Optional[futures.Future] = None
        self._handlers: Dict[str, List[Handler]] = {}
        self._relayed: set = set()

        self._token_listener = self._on_token_refreshed
        client.add_token_listener(self._token_listener)

    # ----------------------------------------------------------------------
    # State
    #
    @property
    def channel_id(self) -> Optional[str]:
        return self._channel_id

    @property
    def socket(self) -> Optional[Any]:
        return self._socket

    @property
    def connected(self) -> bool:
        return self._socket is not None and bool(getattr(self._socket, "connected", False))

    @property
    def connection_params(self) -> Dict[str, str]:
        """Query parameters of the current (or last) connection."""
        return dict(self._query)

    # ----------------------------------------------------------------------
    # Session management
    #
    def create_session(self, timeout: Optional[float] = None) -> str:
        """Open a new session and return its channel id.

        Raises :class:`~deepjson.errors.ChannelError` if the server
        reports an error first, and
        :class:`~deepjson.errors.SessionTimeoutError` if nothing arrives
        within ``timeout`` seconds (the client timeout by default).
        """
        query = {"action": endpoints.ACTION_CREATE}
        logger.info("Creating realtime session at %s", self.client.base_url)
        return self._establish(query, endpoints.SESSION_CREATED_EVENT, timeout)

    def join_session(self, channel_id: Optional[str],
                     timeout: Optional[float] = None) -> Any:
        """Join the session ``channel_id`` and return the server's session data."""
        if not channel_id:
            raise ValueError("channel_id must be provided")
        query = {"action": endpoints.ACTION_CONNECT, "channelId": channel_id}
        logger.info("Joining realtime session %s", channel_id)
        return self._establish(query, endpoints.SESSION_JOINED_EVENT, timeout,
                               channel_id=channel_id)

    def disconnect(self) -> None:
        """Drop the transport and forget the channel id.

        A session that is still being established fails with
        :class:`~deepjson.errors.ChannelError`.  Registered handlers are
        kept.
        """
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.set_exception(ChannelError(
                "Channel Error: disconnected before session was established"))

        sock, self._socket = self._socket, None
        self._channel_id = None
        if sock is None:
            return
        logger.info("Disconnecting realtime session")
        try:
            sock.disconnect()
        except socketio.exceptions.SocketIOError as exc:
            logger.warning("Error disconnecting session: %s", exc)

    def reconnect(self, timeout: Optional[float] = None) -> Any:
        """Rejoin the stored channel; does nothing when there is none.

        Handlers registered for ``reconnecting`` and ``reconnect`` are
        called with the channel id as their only argument, before and
        after the rejoin.  ``reconnect`` handlers are skipped when the
        rejoin fails.
        """
        channel_id = self._channel_id
        if not channel_id:
            return None
        self._dispatch(LifecycleEvent.RECONNECTING.value, channel_id)
        result = self.join_session(channel_id, timeout=timeout)
        self._dispatch(LifecycleEvent.RECONNECT.value, channel_id)
        return result

    def close(self) -> None:
        """Disconnect and stop following the client's token."""
        self.disconnect()
        self.client.remove_token_listener(self._token_listener)

    # ----------------------------------------------------------------------
    # Messaging
    #
    def on(self, event: Any, handler: Handler) -> None:
        """Register ``handler`` for a message type or lifecycle event.

        Handlers run in registration order; registering the same
        handler twice makes it run twice.
        """
        name = event_name(event)
        self._handlers.setdefault(name, []).append(handler)
        if self._socket is not None:
            self._relay(name)

    def off(self, event: Any, handler: Handler) -> None:
        """Remove the first registration of ``handler`` for ``event``."""
        handlers = self._handlers.get(event_name(event))
        if not handlers:
            return
        for i, existing in enumerate(handlers):
            if existing is handler:
                del handlers[i]
                return

    def send(self, msg_type: str, data: Any = None) -> None:
        if self._socket is None or not getattr(self._socket, "connected", False):
            raise ChannelError("Not connected to a session")
        envelope = Envelope(type=msg_type, data=data)
        logger.debug("Sending message type=%s", msg_type)
        self._socket.emit(endpoints.MESSAGE_EVENT, envelope.to_payload())

    # ----------------------------------------------------------------------
    # Internals
    #
    def _establish(self, query: Dict[str, str], success_event: str,
                   timeout: Optional[float],
                   channel_id: Optional[str] = None) -> Any:
        if self._socket is not None:
            self.disconnect()

        self._query = {"token": self.client.token or "", **query}
        sock = self._socket_factory()
        self._socket = sock
        self._relayed = set()
        pending: futures.Future = futures.Future()
        self._pending = pending

        def _on_success(data: Any = None) -> None:
            if pending.done() or self._socket is not sock:
                return
            if success_event == endpoints.SESSION_CREATED_EVENT:
                new_id = data.get("channelId") if isinstance(data, dict) else data
                if not new_id:
                    pending.set_exception(ChannelError(
                        "Channel Error: session-created without channelId", details=data))
                    return
                self._channel_id = new_id
                result = new_id
            else:
                self._channel_id = channel_id
                result = data
            self._attach_listeners(sock)
            pending.set_result(result)

        def _on_error(data: Any = None) -> None:
            if pending.done() or self._socket is not sock:
                return
            logger.error("Realtime session failed: %s", data)
            pending.set_exception(ChannelError(f"Channel Error: {data}", details=data))

        sock.on(success_event, _on_success)
        sock.on(endpoints.ERROR_EVENT, _on_error)
        sock.on(endpoints.CONNECT_ERROR_EVENT, _on_error)

        if timeout is None:
            timeout = self.client.timeout
        deadline = time.monotonic() + timeout
        url = f"{self.client.base_url}?{urlencode(self._query)}"
        connect_kwargs: Dict[str, Any] = {"wait_timeout": timeout}
        if self._transports:
            connect_kwargs["transports"] = self._transports

        try:
            sock.connect(url, **connect_kwargs)
        except socketio.exceptions.ConnectionError as exc:
            self._abandon(sock)
            raise ChannelError(f"Channel Error: {exc}") from exc

        try:
            # connect() may already have used part of the budget
            return pending.result(timeout=max(0.0, deadline - time.monotonic()))
        except futures.TimeoutError as exc:
            self._abandon(sock)
            raise SessionTimeoutError(
                f"Channel Error: no {success_event} within {timeout}s") from exc
        except ChannelError:
            self._abandon(sock)
            raise
        finally:
            if self._pending is pending:
                self._pending = None

    def _abandon(self, sock: Any) -> None:
        if self._socket is sock:
            self.disconnect()

    def _attach_listeners(self, sock: Any) -> None:
        """Forward lifecycle events and envelopes to registered handlers."""
        for lifecycle in (LifecycleEvent.CONNECT, LifecycleEvent.DISCONNECT):
            sock.on(lifecycle.value, self._lifecycle_forwarder(lifecycle.value))
        sock.on(endpoints.MESSAGE_EVENT, self._on_message)
        for name in list(self._handlers):
            self._relay(name)

    def _lifecycle_forwarder(self, name: str) -> Handler:
        def _forward(*args: Any) -> None:
            logger.debug("Realtime lifecycle event %s", name)
            self._dispatch(name, *args)
        return _forward

    def _relay(self, name: str) -> None:
        """Deliver native transport events called ``name`` to the registry."""
        if name in _RESERVED_EVENTS or name in self._relayed or self._socket is None:
            return
        self._relayed.add(name)

        def _native(*args: Any) -> None:
            self._dispatch(name, *args)

        self._socket.on(name, _native)

    def _on_message(self, payload: Any) -> None:
        try:
            envelope = Envelope.from_payload(payload)
        except ValueError as exc:
            logger.warning("Dropping malformed message: %s", exc)
            return
        logger.debug("Received message type=%s", envelope.type)
        self._dispatch(envelope.type, envelope.data)

    def _dispatch(self, name: str, *args: Any) -> None:
        for handler in list(self._handlers.get(name, ())):
            try:
                handler(*args)
            except Exception as exc:
                logger.exception("Error in %s handler: %s", name, exc)

    def _on_token_refreshed(self, token: Optional[str]) -> None:
        if self._socket is None:
            return
        self._query["token"] = token or ""
        logger.info("Token refreshed; rejoining channel %s", self._channel_id)
        try:
            self.reconnect()
        except DeepJSONError as exc:
            logger.error("Rejoin after token refresh failed: %s", exc)
