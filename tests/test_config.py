import os

import pytest

from streamhop.config import DEFAULT_EMBED_BASE, load_settings
from streamhop.providers.base import DecodeRule
from streamhop.providers.sinks import DirectoryScriptSink

ENV_VARS = [
    "STREAMHOP_EMBED_BASE", "STREAMHOP_TIMEOUT", "STREAMHOP_PRIMARY_DECODE",
    "STREAMHOP_DECODE_KEY", "STREAMHOP_SCRIPT_DIR", "STREAMHOP_VERIFY_SSL", "STREAMHOP_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # load_dotenv writes into os.environ; give each test its own copy
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for name in ENV_VARS:
        os.environ.pop(name, None)
    monkeypatch.chdir(tmp_path)   # keep a developer's .env out of the way


def test_defaults():
    settings = load_settings()
    assert settings.embed_base == DEFAULT_EMBED_BASE
    assert settings.timeout == 10
    assert settings.primary_decode is DecodeRule.REVERSE_STRIDE_BASE64
    assert settings.fallback_decode is DecodeRule.REVERSE_HEX_XOR
    assert settings.decode_key is None
    assert settings.script_dir is None
    assert settings.verify_ssl is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STREAMHOP_EMBED_BASE", "https://vidsrc.net/")
    monkeypatch.setenv("STREAMHOP_TIMEOUT", "4.5")
    monkeypatch.setenv("STREAMHOP_PRIMARY_DECODE", "b")
    monkeypatch.setenv("STREAMHOP_DECODE_KEY", "k")
    monkeypatch.setenv("STREAMHOP_VERIFY_SSL", "false")
    monkeypatch.setenv("STREAMHOP_LOG_LEVEL", "debug")

    settings = load_settings()
    assert settings.embed_base == "https://vidsrc.net"
    assert settings.timeout == 4.5
    assert settings.primary_decode is DecodeRule.REVERSE_HEX_XOR
    assert settings.fallback_decode is DecodeRule.REVERSE_STRIDE_BASE64
    assert settings.decode_key == "k"
    assert settings.verify_ssl is False
    assert settings.log_level == "DEBUG"


def test_env_file(tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("STREAMHOP_SCRIPT_DIR=/tmp/streamhop-scripts\n")
    assert load_settings(str(env_file)).script_dir == "/tmp/streamhop-scripts"


def test_unknown_decode_rule(monkeypatch):
    monkeypatch.setenv("STREAMHOP_PRIMARY_DECODE", "C")
    with pytest.raises(ValueError):
        load_settings()


def test_decode_rule_by_name():
    assert DecodeRule.parse("reverse_hex_xor") is DecodeRule.REVERSE_HEX_XOR


def test_directory_sink_creates_directory(tmp_path):
    sink = DirectoryScriptSink(tmp_path / "a" / "b")
    sink.save("https://relay.example/x.js", b"js")
    assert (tmp_path / "a" / "b" / "prorcp.js").read_bytes() == b"js"


def test_unknown_log_level(monkeypatch):
    monkeypatch.setenv("STREAMHOP_LOG_LEVEL", "chatty")
    with pytest.raises(ValueError):
        load_settings()
