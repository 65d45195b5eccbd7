"""API endpoint definitions.

This module defines the HTTP endpoint paths, header names and realtime
event names used by the SDK.  Paths are relative to the base URL given
to :class:`~deepjson.client.DeepJSONClient`.  Keeping these values in
one place makes it easy to audit and update the API surface when the
server changes.
"""

LOGIN = "/auth/login"
"""POST ``{username, password}``; the server answers with ``{token, ...}``."""

KEY = "/keys/{key}"
"""GET/POST/PUT/DELETE a single value.  Replace ``{key}`` with the resource key."""

MOVE = "/cmd/move"
"""POST ``{from, to}`` as JSON to rename a key."""

LIST_KEYS = "/cmd/keys"
"""GET the key listing.  The optional filter goes in the ``keys`` query parameter."""

# Headers understood by the server.

METHOD_OVERRIDE_HEADER = "X-Method-Override"
OVERRIDE_EXISTING_HEADER = "X-Override-Existing"

DEFAULT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# Script payloads are wrapped in these literal markers.  The server looks
# for them byte for byte, so do not touch the whitespace.

SCRIPT_PREFIX = "javascript:\n"
SCRIPT_SUFFIX = "\n\njavascript!\n\n"

# Realtime (Socket.IO) events.

SESSION_CREATED_EVENT = "session-created"
"""Server emits ``{channelId}`` once a newly created session is ready."""

SESSION_JOINED_EVENT = "session-joined"
"""Server emits the session data once the client joined an existing session."""

ERROR_EVENT = "error"
"""Server emits this when it refuses to create or join a session."""

CONNECT_ERROR_EVENT = "connect_error"
"""Emitted by the Socket.IO client when the handshake is rejected."""

MESSAGE_EVENT = "message"
"""Both sides exchange application envelopes ``{type, data}`` on this event."""

ACTION_CREATE = "create"
ACTION_CONNECT = "connect"
