"""
iperf3_statuspage/core/config.py
═══════════════════════════════════════════════════════════════════════════════
Environment-driven settings. A `.env` file in the working directory (or at
$ENV_FILE) is loaded first; real environment variables win.

  IPERF3_SERVER_IP        iperf3 server to test against   (required to start)
  IPERF3_SERVER_PORT      its port                          default 5201
  INTERVAL_MINUTES        minutes between runs              default 10, min 1
  IPERF3_BIN              iperf3 executable                 default iperf3
  IPERF3_TIMEOUT_SECONDS  kill a run after this long        default 120
  IPERF3_EXTRA_ARGS       extra iperf3 flags, shell-split   e.g. "-t 5 -R"
  STALE_AFTER_INTERVALS   mark result stale after N missed  default 3, 0 = off
  BIND_ADDRESS            HTTP bind address                 default 127.0.0.1
  BIND_PORT               HTTP port                         default 8080
  DISPLAY_TZ              zone for rendered timestamps      default UTC
  LOG_LEVEL               logging level                     default INFO
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import os
import shlex
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

import pytz
from dotenv import load_dotenv

from iperf3_statuspage.core.errors import ConfigError
from iperf3_statuspage.runners.base import Target

log = logging.getLogger("config")

DEFAULT_INTERVAL_MIN = 10
MIN_INTERVAL_MIN     = 1
DEFAULT_IPERF3_PORT  = 5201
DEFAULT_TIMEOUT_S    = 120.0
DEFAULT_STALE_AFTER  = 3


@dataclass(frozen=True)
class Settings:
    iperf3_host:           str = ""
    iperf3_port:           int = DEFAULT_IPERF3_PORT
    interval_s:            int = DEFAULT_INTERVAL_MIN * 60
    iperf3_bin:            str = "iperf3"
    iperf3_timeout_s:      float = DEFAULT_TIMEOUT_S
    iperf3_extra_args:     tuple[str, ...] = ()
    stale_after_intervals: int = DEFAULT_STALE_AFTER
    bind_address:          str = "127.0.0.1"
    bind_port:             int = 8080
    display_tz:            str = "UTC"
    log_level:             str = "INFO"

    @property
    def target(self) -> Target:
        return Target(self.iperf3_host, self.iperf3_port)

    @property
    def stale_after_s(self) -> Optional[float]:
        if self.stale_after_intervals <= 0:
            return None
        return float(self.stale_after_intervals * self.interval_s)

    @property
    def tz(self):
        return pytz.timezone(self.display_tz)

    def require_target(self) -> Target:
        if not self.iperf3_host:
            raise ConfigError("IPERF3_SERVER_IP must be set")
        return self.target


# ── Parsers ───────────────────────────────────────────────────────────────────

def interval_seconds(raw: Optional[str]) -> int:
    """INTERVAL_MINUTES → seconds. Missing/garbage → default, < 1 → 1 minute."""
    try:
        minutes = int(str(raw).strip())
    except (TypeError, ValueError):
        if raw not in (None, ""):
            log.warning(f"INTERVAL_MINUTES={raw!r} is not an integer — using {DEFAULT_INTERVAL_MIN}")
        minutes = DEFAULT_INTERVAL_MIN
    if minutes < MIN_INTERVAL_MIN:
        log.warning(f"INTERVAL_MINUTES={minutes} too small — clamped to {MIN_INTERVAL_MIN}")
        minutes = MIN_INTERVAL_MIN
    return minutes * 60


def _port(name: str, raw: Optional[str], default: int) -> int:
    if raw in (None, ""):
        return default
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a valid port number, got {raw!r}")
    if not 0 < port < 65536:
        raise ConfigError(f"{name} must be between 1 and 65535, got {port}")
    return port


def _number(name: str, raw: Optional[str], default, cast=float):
    if raw in (None, ""):
        return default
    try:
        return cast(raw)
    except ValueError:
        log.warning(f"{name}={raw!r} is not a number — using {default}")
        return default


def _zone(raw: Optional[str]) -> str:
    name = raw or "UTC"
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        log.warning(f"DISPLAY_TZ={name!r} is unknown — using UTC")
        return "UTC"
    return name


def _args(raw: Optional[str]) -> tuple[str, ...]:
    try:
        return tuple(shlex.split(raw or ""))
    except ValueError as ex:
        raise ConfigError(f"IPERF3_EXTRA_ARGS cannot be parsed: {ex}")


def _level(raw: Optional[str]) -> str:
    name = (raw or "INFO").strip().upper()
    if name not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        log.warning(f"LOG_LEVEL={raw!r} is unknown — using INFO")
        return "INFO"
    return name


# ── Loader ────────────────────────────────────────────────────────────────────

def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `environ` (default: os.environ after loading .env).
    Does not require the iperf3 target; call Settings.require_target() before
    starting the refresher.
    """
    if environ is None:
        load_dotenv(os.environ.get("ENV_FILE") or None)
        environ = os.environ

    timeout = _number("IPERF3_TIMEOUT_SECONDS", environ.get("IPERF3_TIMEOUT_SECONDS"), DEFAULT_TIMEOUT_S)
    if timeout <= 0:
        log.warning(f"IPERF3_TIMEOUT_SECONDS={timeout} must be positive — using {DEFAULT_TIMEOUT_S}")
        timeout = DEFAULT_TIMEOUT_S

    return Settings(
        iperf3_host=environ.get("IPERF3_SERVER_IP", "").strip(),
        iperf3_port=_port("IPERF3_SERVER_PORT", environ.get("IPERF3_SERVER_PORT"), DEFAULT_IPERF3_PORT),
        interval_s=interval_seconds(environ.get("INTERVAL_MINUTES")),
        iperf3_bin=environ.get("IPERF3_BIN") or "iperf3",
        iperf3_timeout_s=timeout,
        iperf3_extra_args=_args(environ.get("IPERF3_EXTRA_ARGS")),
        stale_after_intervals=_number(
            "STALE_AFTER_INTERVALS", environ.get("STALE_AFTER_INTERVALS"), DEFAULT_STALE_AFTER, int,
        ),
        bind_address=environ.get("BIND_ADDRESS") or "127.0.0.1",
        bind_port=_port("BIND_PORT", environ.get("BIND_PORT"), 8080),
        display_tz=_zone(environ.get("DISPLAY_TZ")),
        log_level=_level(environ.get("LOG_LEVEL")),
    )


def format_ts(epoch: Optional[float], tz=pytz.utc) -> Optional[str]:
    """Epoch seconds → ISO-8601 string in `tz`."""
    if epoch is None:
        return None
    return datetime.fromtimestamp(epoch, tz=pytz.utc).astimezone(tz).isoformat(timespec="seconds")
