import json
import time
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from deepjson import DeepJSONClient


BASE_URL = "https://deepjson.test"


class Recorder:
    """httpx.MockTransport handler that remembers every request."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, method, path, status=200, json_body=None, text=None,
              content=None, headers=None, exc=None):
        self.routes[(method, path)] = (status, json_body, text, content, headers, exc)

    def __call__(self, request):
        request.read()
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(200, json={"ok": True})
        status, json_body, text, content, headers, exc = route
        if exc is not None:
            raise exc(request)
        if json_body is not None:
            return httpx.Response(status, json=json_body, headers=headers)
        if text is not None:
            return httpx.Response(status, text=text, headers=headers)
        return httpx.Response(status, content=content or b"", headers=headers)

    @property
    def last(self):
        return self.requests[-1]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def client(recorder):
    c = DeepJSONClient(BASE_URL, token="tok", transport=httpx.MockTransport(recorder))
    yield c
    c.close()


class FakeSocket:
    """Stand-in for socketio.Client.

    ``script`` is a list of ``(event, payload)`` pairs the fake server
    sends as soon as the connection is up.
    """

    def __init__(self, script=None, connect_exc=None, connect_delay=0):
        self.script = list(script or [])
        self.connect_exc = connect_exc
        self.connect_delay = connect_delay
        self.handlers = {}
        self.emitted = []
        self.connected = False
        self.disconnect_calls = 0
        self.url = None
        self.connect_kwargs = None

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    def connect(self, url, **kwargs):
        self.url = url
        self.connect_kwargs = kwargs
        if self.connect_delay:
            time.sleep(self.connect_delay)
        if self.connect_exc is not None:
            raise self.connect_exc
        self.connected = True
        for event, payload in self.script:
            self.trigger(event, payload)

    def trigger(self, event, *args):
        handler = self.handlers.get(event)
        if handler is not None:
            handler(*args)

    def emit(self, event, data=None, namespace=None):
        self.emitted.append((event, data))

    def disconnect(self):
        self.connected = False
        self.disconnect_calls += 1

    @property
    def query(self):
        return {k: v[0] for k, v in parse_qs(urlsplit(self.url).query).items()}


class SocketFactory:

    def __init__(self, *scripts, connect_exc=None, connect_delay=0):
        self.scripts = list(scripts)
        self.connect_exc = connect_exc
        self.connect_delay = connect_delay
        self.sockets = []

    def __call__(self):
        script = self.scripts.pop(0) if self.scripts else []
        sock = FakeSocket(script, connect_exc=self.connect_exc,
                          connect_delay=self.connect_delay)
        self.sockets.append(sock)
        return sock

    @property
    def last(self):
        return self.sockets[-1]


def created(channel_id="abc"):
    return [("session-created", {"channelId": channel_id})]


def joined(data=None):
    return [("session-joined", data if data is not None else {"members": 1})]


def body_json(request):
    return json.loads(request.content.decode("utf-8"))
