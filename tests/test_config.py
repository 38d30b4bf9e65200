"""
Tests for environment-driven settings.
"""

import pytest
import pytz

from iperf3_statuspage.core.config import Settings, format_ts, interval_seconds, load_settings
from iperf3_statuspage.core.errors import ConfigError
from iperf3_statuspage.runners.base import Target


def test_defaults():
    settings = load_settings({})

    assert settings.iperf3_host == ""
    assert settings.iperf3_port == 5201
    assert settings.interval_s == 600
    assert settings.bind_address == "127.0.0.1"
    assert settings.bind_port == 8080
    assert settings.stale_after_s == 1800.0
    assert settings.display_tz == "UTC"
    assert settings.log_level == "INFO"


def test_full_environment():
    settings = load_settings({
        "IPERF3_SERVER_IP": " 10.0.0.1 ",
        "IPERF3_SERVER_PORT": "5202",
        "INTERVAL_MINUTES": "5",
        "IPERF3_BIN": "/usr/local/bin/iperf3",
        "IPERF3_TIMEOUT_SECONDS": "30",
        "STALE_AFTER_INTERVALS": "0",
        "BIND_ADDRESS": "0.0.0.0",
        "BIND_PORT": "9000",
        "DISPLAY_TZ": "Europe/London",
        "LOG_LEVEL": "debug",
    })

    assert settings.target == Target("10.0.0.1", 5202)
    assert settings.interval_s == 300
    assert settings.iperf3_bin == "/usr/local/bin/iperf3"
    assert settings.iperf3_timeout_s == 30.0
    assert settings.stale_after_s is None
    assert settings.bind_port == 9000
    assert settings.tz.zone == "Europe/London"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("raw, expected", [
    (None, 600),
    ("", 600),
    ("ten", 600),
    ("1.5", 600),
    ("0", 60),
    ("-4", 60),
    ("1", 60),
    (" 15 ", 900),
])
def test_interval_parsing(raw, expected):
    assert interval_seconds(raw) == expected


@pytest.mark.parametrize("port", ["http", "0", "70000"])
def test_bad_bind_port_is_fatal(port):
    with pytest.raises(ConfigError, match="BIND_PORT"):
        load_settings({"BIND_PORT": port})


def test_bad_optional_values_fall_back():
    settings = load_settings({
        "IPERF3_TIMEOUT_SECONDS": "-1",
        "STALE_AFTER_INTERVALS": "many",
        "DISPLAY_TZ": "Mars/Olympus_Mons",
        "LOG_LEVEL": "chatty",
    })

    assert settings.iperf3_timeout_s == 120.0
    assert settings.stale_after_intervals == 3
    assert settings.display_tz == "UTC"
    assert settings.log_level == "INFO"


def test_require_target():
    with pytest.raises(ConfigError, match="IPERF3_SERVER_IP"):
        Settings().require_target()

    assert Settings(iperf3_host="10.0.0.1").require_target() == Target("10.0.0.1", 5201)


def test_format_ts():
    assert format_ts(None) is None
    assert format_ts(0) == "1970-01-01T00:00:00+00:00"
    assert format_ts(0, pytz.timezone("Asia/Kolkata")) == "1970-01-01T05:30:00+05:30"


def test_extra_args_are_shell_split():
    assert load_settings({}).iperf3_extra_args == ()
    settings = load_settings({"IPERF3_EXTRA_ARGS": '-t 5 -R --title "lab uplink"'})
    assert settings.iperf3_extra_args == ("-t", "5", "-R", "--title", "lab uplink")

    with pytest.raises(ConfigError, match="IPERF3_EXTRA_ARGS"):
        load_settings({"IPERF3_EXTRA_ARGS": '-T "unterminated'})
