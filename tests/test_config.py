import logging

import pytest

from quickcap.utils.config import Config, config_to_dict, load_config, parse_color, parse_opacity
from quickcap.utils.errors import ConfigParseError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("COLOR", "BORDER", "OPACITY", "INTERVAL", "BACKEND"):
        monkeypatch.delenv(f"QUICKCAP_{name}", raising=False)


def test_defaults():
    config = load_config()
    assert config == Config()
    assert config_to_dict(config) == {
        "color": "#0000FF",
        "border": "#000000",
        "opacity": 0.3,
        "poll_interval_ms": 40,
        "backend": "auto",
    }


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("QUICKCAP_COLOR", "#FF0000")
    monkeypatch.setenv("QUICKCAP_OPACITY", "0.75")
    monkeypatch.setenv("QUICKCAP_INTERVAL", "10")
    monkeypatch.setenv("QUICKCAP_BACKEND", "QT")

    config = load_config()

    assert config.color == "#FF0000"
    assert config.opacity == 0.75
    assert config.poll_interval_ms == 10
    assert config.backend == "qt"


def test_cli_overrides_beat_environment(monkeypatch):
    monkeypatch.setenv("QUICKCAP_BORDER", "#00FF00")
    config = load_config({"border": "white", "opacity": None})

    assert config.border == "white"
    assert config.opacity == 0.3


@pytest.mark.parametrize("key,value", [
    ("color", "not-a-color"),
    ("color", ""),
    ("border", "#12"),
    ("opacity", "0,5"),
    ("opacity", "1.5"),
    ("opacity", "-0.1"),
    ("poll_interval_ms", "fast"),
    ("poll_interval_ms", "0"),
    ("backend", "wayland"),
])
def test_malformed_values_fall_back_to_default(key, value, caplog):
    with caplog.at_level(logging.WARNING, logger="quickcap.utils.config"):
        config = load_config({key: value})

    assert getattr(config, key) == getattr(Config(), key)
    assert f"Invalid value for {key}" in caplog.text


def test_malformed_value_does_not_affect_others():
    config = load_config({"color": "bogus", "opacity": "1.0"})
    assert config.color == "#0000FF"
    assert config.opacity == 1.0


def test_parsers_raise_config_parse_error():
    with pytest.raises(ConfigParseError) as excinfo:
        parse_opacity("opacity", "abc")
    assert excinfo.value.key == "opacity"
    assert excinfo.value.value == "abc"

    with pytest.raises(ConfigParseError):
        parse_color("color", "nope")
