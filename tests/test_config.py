import pytest

from deepjson import ConfigError, ConnectionConfig, Envelope
from deepjson.events import LifecycleEvent, event_name


def test_defaults():
    config = ConnectionConfig("https://example.test/")
    assert config.base_url == "https://example.test"
    assert config.token is None
    assert config.timeout == 10.0
    assert config.storage == "memory"


def test_empty_base_url():
    with pytest.raises(ValueError):
        ConnectionConfig("")


def test_from_env():
    env = {
        "DEEPJSON_BASE_URL": "https://env.test",
        "DEEPJSON_TOKEN": "abc",
        "DEEPJSON_TIMEOUT": "2.5",
        "DEEPJSON_STORAGE": "disk",
    }
    config = ConnectionConfig.from_env(environ=env)
    assert config == ConnectionConfig("https://env.test", "abc", 2.5, "disk")


def test_from_env_overrides_win():
    env = {"DEEPJSON_BASE_URL": "https://env.test", "DEEPJSON_TOKEN": "abc"}
    config = ConnectionConfig.from_env(environ=env, token="override")
    assert config.token == "override"


def test_from_env_missing_base_url():
    with pytest.raises(ConfigError):
        ConnectionConfig.from_env(environ={})


def test_from_env_bad_timeout():
    with pytest.raises(ConfigError):
        ConnectionConfig.from_env(environ={"DEEPJSON_BASE_URL": "https://x",
                                           "DEEPJSON_TIMEOUT": "soon"})


def test_envelope_payloads():
    env = Envelope.from_payload({"type": "chat", "data": [1]})
    assert env.to_payload() == {"type": "chat", "data": [1]}
    with pytest.raises(ValueError):
        Envelope.from_payload({"data": 1})


def test_event_name():
    assert event_name(LifecycleEvent.RECONNECTING) == "reconnecting"
    assert event_name("chat") == "chat"
