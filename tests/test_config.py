import dataclasses
import socket

import pytest

from http_service.config import (
    ConfigError,
    Settings,
    load_settings,
    parse_duration,
    parse_port,
)


def test_defaults():
    settings = load_settings([], environ={})
    assert settings.service_name == "http-service"
    assert settings.service_port == 8080
    assert settings.host == "0.0.0.0"
    assert settings.hostname == socket.gethostname()
    assert settings.graceful_timeout == 15.0
    assert settings.read_timeout == 15.0
    assert settings.write_timeout == 15.0
    assert settings.idle_timeout == 60.0
    assert settings.log_level == "INFO"


def test_environment_overrides():
    settings = load_settings(
        [], environ={"SERVICE_NAME": "billing", "SERVICE_PORT": "9090", "LOG_LEVEL": "debug"}
    )
    assert settings.service_name == "billing"
    assert settings.service_port == 9090
    assert settings.log_level == "DEBUG"


def test_empty_service_name_is_still_an_override():
    assert load_settings([], environ={"SERVICE_NAME": ""}).service_name == ""


@pytest.mark.parametrize("flag", ["-graceful-timeout", "--graceful-timeout"])
def test_graceful_timeout_flag(flag):
    assert load_settings([flag, "1m"], environ={}).graceful_timeout == 60.0


def test_graceful_timeout_flag_with_equals():
    assert load_settings(["-graceful-timeout=250ms"], environ={}).graceful_timeout == 0.25


def test_invalid_graceful_timeout_is_a_usage_error():
    with pytest.raises(SystemExit) as exc:
        load_settings(["-graceful-timeout", "15"], environ={})
    assert exc.value.code == 2


@pytest.mark.parametrize("port", ["http", "70000", "-1"])
def test_invalid_port_is_a_usage_error(port):
    with pytest.raises(SystemExit) as exc:
        load_settings([], environ={"SERVICE_PORT": port})
    assert exc.value.code == 2


def test_unknown_log_level_is_a_usage_error():
    with pytest.raises(SystemExit):
        load_settings([], environ={"LOG_LEVEL": "chatty"})


def test_settings_are_immutable():
    settings = Settings()
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.service_name = "other"


@pytest.mark.parametrize(
    "text, seconds",
    [
        ("0", 0.0),
        ("15s", 15.0),
        ("1m", 60.0),
        ("1m30s", 90.0),
        ("1.5h", 5400.0),
        ("250ms", 0.25),
        ("+2s", 2.0),
        ("1h2m3s", 3723.0),
    ],
)
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


def test_parse_duration_small_units():
    assert parse_duration("1500us") == pytest.approx(0.0015)
    assert parse_duration("10ns") == pytest.approx(1e-8)


@pytest.mark.parametrize("text", ["", "15", "s", "1d", "-1s", "1m x", "1.2.3s"])
def test_parse_duration_rejects(text):
    with pytest.raises(ConfigError):
        parse_duration(text)


def test_parse_port():
    assert parse_port("0") == 0
    assert parse_port("65535") == 65535
    with pytest.raises(ConfigError):
        parse_port("65536")
