"""Translate logical key-value operations into HTTP request descriptors.

Nothing in this module talks to the network.  Each ``build_*`` function
returns a :class:`RequestDescriptor` which
:class:`~deepjson.client.DeepJSONClient` finalises (auth and content
type) and hands to httpx.

Per-call behaviour is selected with :class:`GetOptions` and
:class:`PostOptions`.  :class:`TransmissionFlags` holds the legacy
"pending" flags set through the client's fluent setters; they are
consumed by exactly one request.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, replace
from typing import IO, Any, Dict, Optional, Tuple, Union

from . import endpoints
from .errors import RequestError

FileInput = Union[str, "os.PathLike[str]", IO[bytes]]
KeyFilter = Union[None, str, "re.Pattern[str]"]


@dataclass
class TransmissionFlags:
    """Toggles that apply to the next request only."""

    binary: bool = False
    overwrite_key: bool = False
    get_body: bool = False

    def reset(self) -> None:
        self.binary = False
        self.overwrite_key = False
        self.get_body = False

    def consume(self) -> "TransmissionFlags":
        """Return a snapshot of the flags and reset them."""
        snapshot = replace(self)
        self.reset()
        return snapshot


@dataclass(frozen=True)
class GetOptions:
    """Options for :meth:`~deepjson.client.DeepJSONClient.get`.

    ``binary`` asks for binary transport and puts the token in the query
    string.  ``get_body`` sends the GET as a POST carrying
    ``X-Method-Override: GET`` so a body can travel with it.
    """

    binary: bool = False
    get_body: bool = False


@dataclass(frozen=True)
class PostOptions:
    """Options for :meth:`~deepjson.client.DeepJSONClient.post`."""

    overwrite_key: bool = False


@dataclass
class RequestDescriptor:
    """Everything needed to issue one HTTP request."""

    method: str
    path: str
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None
    files: Optional[Dict[str, Tuple[str, bytes]]] = None

    @property
    def is_multipart(self) -> bool:
        return self.files is not None

    @property
    def content_type(self) -> Optional[str]:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return None


def key_path(key: str) -> str:
    return endpoints.KEY.format(key=key)


def wrap_script(script: str, data: Any = "") -> str:
    """Wrap ``script`` in the server's sentinel markers, followed by ``data``."""
    if data is None:
        data = ""
    elif not isinstance(data, str):
        data = _encode_body(data).decode("utf-8")
    return endpoints.SCRIPT_PREFIX + script + endpoints.SCRIPT_SUFFIX + data


def _encode_body(value: Any) -> Optional[bytes]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    return json.dumps(value).encode("utf-8")


def _body(value: Any, script: Optional[str]) -> Optional[bytes]:
    if script is not None:
        return wrap_script(script, value).encode("utf-8")
    return _encode_body(value)


def build_get(key: str, value: Any = "", options: Optional[GetOptions] = None,
              token: Optional[str] = None,
              script: Optional[str] = None) -> RequestDescriptor:
    options = options or GetOptions()
    method = "GET"
    headers: Dict[str, str] = {}
    params: Dict[str, str] = {}
    if options.get_body:
        method = "POST"
        headers[endpoints.METHOD_OVERRIDE_HEADER] = "GET"
    if options.binary:
        params["binary"] = "true"
        if token:
            params["token"] = token
    return RequestDescriptor(method, key_path(key), params=params,
                             headers=headers, content=_body(value, script))


def build_post(key: str, value: Any, options: Optional[PostOptions] = None,
               script: Optional[str] = None) -> RequestDescriptor:
    options = options or PostOptions()
    headers: Dict[str, str] = {}
    if options.overwrite_key:
        headers[endpoints.OVERRIDE_EXISTING_HEADER] = "true"
    return RequestDescriptor("POST", key_path(key), headers=headers,
                             content=_body(value, script))


def build_put(key: str, value: Any,
              script: Optional[str] = None) -> RequestDescriptor:
    return RequestDescriptor("PUT", key_path(key), content=_body(value, script))


def build_delete(key: str) -> RequestDescriptor:
    return RequestDescriptor("DELETE", key_path(key))


def build_move(key_from: str, key_to: str) -> RequestDescriptor:
    body = json.dumps({"from": key_from, "to": key_to})
    return RequestDescriptor(
        "POST", endpoints.MOVE,
        headers={"Content-Type": endpoints.JSON_CONTENT_TYPE},
        content=body.encode("utf-8"),
    )


def _read_file(file: FileInput) -> Tuple[str, bytes]:
    try:
        if isinstance(file, (str, os.PathLike)):
            with open(file, "rb") as fh:
                return os.path.basename(os.fspath(file)), fh.read()
        name = getattr(file, "name", None) or "file"
        data = file.read()
    except OSError as exc:
        raise RequestError(f"Request Error: cannot read upload file: {exc}") from exc
    if isinstance(data, str):
        data = data.encode("utf-8")
    return os.path.basename(str(name)), data


def build_upload_file(key: str, file: FileInput,
                      overwrite: bool = False) -> RequestDescriptor:
    """Multipart upload of ``file`` (a path or a binary file object).

    Unlike :func:`build_post`, the overwrite header is always present.
    """
    filename, data = _read_file(file)
    headers = {endpoints.OVERRIDE_EXISTING_HEADER: "true" if overwrite else "false"}
    return RequestDescriptor("POST", key_path(key), headers=headers,
                             files={"file": (filename, data)})


def filter_source(key_filter: KeyFilter) -> Optional[str]:
    """Textual form of a key filter for the ``keys`` query parameter.

    A compiled pattern contributes its source.  Python keeps the source
    without the ``/.../`` delimiters a regex literal has, so there is
    nothing left to strip.
    """
    if key_filter is None:
        return None
    if isinstance(key_filter, re.Pattern):
        return key_filter.pattern
    return str(key_filter)


def build_list_keys(key_filter: KeyFilter = None) -> RequestDescriptor:
    params: Dict[str, str] = {}
    source = filter_source(key_filter)
    if source is not None:
        params["keys"] = source
    return RequestDescriptor("GET", endpoints.LIST_KEYS, params=params)


def finalize(descriptor: RequestDescriptor,
             token: Optional[str] = None) -> RequestDescriptor:
    """Add the bearer token and the default content type.

    Multipart requests never carry a content type here; httpx sets it
    together with the boundary.
    """
    headers = dict(descriptor.headers)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if descriptor.is_multipart:
        headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}
    elif descriptor.content_type is None:
        headers["Content-Type"] = endpoints.DEFAULT_CONTENT_TYPE
    return replace(descriptor, headers=headers, params=dict(descriptor.params))
