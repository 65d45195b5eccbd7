import io
import json
import re

import pytest

from deepjson import request as rq
from deepjson.errors import RequestError


def test_get_plain():
    d = rq.build_get("a/b")
    assert d.method == "GET"
    assert d.path == "/keys/a/b"
    assert d.params == {}
    assert "X-Method-Override" not in d.headers


def test_get_with_body_becomes_post_with_override():
    d = rq.build_get("a", "{}", rq.GetOptions(get_body=True))
    assert d.method == "POST"
    assert d.headers["X-Method-Override"] == "GET"
    assert d.content == b"{}"


def test_get_binary_puts_token_in_query():
    d = rq.build_get("img", options=rq.GetOptions(binary=True), token="secret")
    assert d.params == {"binary": "true", "token": "secret"}


def test_script_wrapping_is_exact():
    d = rq.build_get("k", "payload", script="return 1;")
    assert d.content == b"javascript:\nreturn 1;\n\njavascript!\n\npayload"


def test_post_overwrite_header_only_when_set():
    assert "X-Override-Existing" not in rq.build_post("k", "v").headers
    d = rq.build_post("k", "v", rq.PostOptions(overwrite_key=True))
    assert d.headers["X-Override-Existing"] == "true"


def test_put_and_delete():
    put = rq.build_put("k", "v")
    assert (put.method, put.path, put.content, put.headers) == ("PUT", "/keys/k", b"v", {})
    delete = rq.build_delete("k")
    assert delete.method == "DELETE"
    assert delete.content is None


def test_non_string_values_are_json_encoded():
    d = rq.build_post("k", {"a": [1, 2]})
    assert json.loads(d.content) == {"a": [1, 2]}


def test_move():
    d = rq.build_move("a", "b")
    assert d.method == "POST"
    assert d.path == "/cmd/move"
    assert json.loads(d.content) == {"from": "a", "to": "b"}
    assert d.content_type == "application/json; charset=utf-8"


@pytest.mark.parametrize("overwrite,expected", [(True, "true"), (False, "false")])
def test_upload_always_sends_overwrite_header(overwrite, expected):
    fh = io.BytesIO(b"\x00\x01data")
    fh.name = "/tmp/some/logo.png"
    d = rq.build_upload_file("files/logo", fh, overwrite=overwrite)
    assert d.headers["X-Override-Existing"] == expected
    assert d.files == {"file": ("logo.png", b"\x00\x01data")}
    assert d.is_multipart


def test_upload_from_path(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello")
    d = rq.build_upload_file("n", path)
    assert d.files == {"file": ("notes.txt", b"hello")}


def test_upload_missing_file(tmp_path):
    with pytest.raises(RequestError):
        rq.build_upload_file("n", tmp_path / "missing.bin")


def test_list_keys_filters():
    assert rq.build_list_keys().params == {}
    assert rq.build_list_keys("user*").params == {"keys": "user*"}
    d = rq.build_list_keys(re.compile(r"^user/\d+$"))
    assert d.method == "GET"
    assert d.path == "/cmd/keys"
    assert d.params == {"keys": r"^user/\d+$"}


def test_finalize_adds_auth_and_default_content_type():
    d = rq.finalize(rq.build_put("k", "v"), token="tok")
    assert d.headers["Authorization"] == "Bearer tok"
    assert d.headers["Content-Type"] == "text/plain; charset=utf-8"


def test_finalize_without_token_has_no_auth():
    d = rq.finalize(rq.build_delete("k"))
    assert "Authorization" not in d.headers


def test_finalize_keeps_explicit_content_type():
    d = rq.finalize(rq.build_move("a", "b"), token="tok")
    assert d.headers["Content-Type"] == "application/json; charset=utf-8"


def test_finalize_leaves_multipart_content_type_unset():
    fh = io.BytesIO(b"x")
    fh.name = "x.bin"
    d = rq.build_upload_file("k", fh)
    d.headers["Content-Type"] = "text/plain"
    final = rq.finalize(d, token="tok")
    assert "Content-Type" not in final.headers
    assert final.headers["Authorization"] == "Bearer tok"


def test_flags_consume_resets():
    flags = rq.TransmissionFlags(binary=True, overwrite_key=True, get_body=True)
    snapshot = flags.consume()
    assert snapshot == rq.TransmissionFlags(True, True, True)
    assert flags == rq.TransmissionFlags()
