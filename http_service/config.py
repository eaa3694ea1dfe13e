from __future__ import annotations

import argparse
import logging
import os
import re
import socket
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence


DEFAULT_SERVICE_NAME = "http-service"
DEFAULT_SERVICE_PORT = 8080
DEFAULT_GRACEFUL_TIMEOUT = 15.0
READ_TIMEOUT = 15.0
WRITE_TIMEOUT = 15.0
IDLE_TIMEOUT = 60.0

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
# "ms" must be tried before "m"
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    """Process configuration, resolved once at startup and read-only after."""

    service_name: str = DEFAULT_SERVICE_NAME
    service_port: int = DEFAULT_SERVICE_PORT
    hostname: str = field(default_factory=socket.gethostname)
    host: str = "0.0.0.0"
    graceful_timeout: float = DEFAULT_GRACEFUL_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    write_timeout: float = WRITE_TIMEOUT
    idle_timeout: float = IDLE_TIMEOUT
    log_level: str = "INFO"


def parse_duration(value: str) -> float:
    """Parse a duration such as ``15s``, ``1m30s`` or ``250ms`` into seconds.

    Every number needs a unit suffix; only a bare ``0`` may omit it.
    Negative durations are rejected.
    """
    text = value.strip()
    if text.startswith("-"):
        raise ConfigError(f"negative duration {value!r}")
    text = text.lstrip("+")
    if text == "0":
        return 0.0
    if not text:
        raise ConfigError(f"invalid duration {value!r}")
    total = 0.0
    pos = 0
    while pos < len(text):
        m = _DURATION_PART.match(text, pos)
        if m is None:
            raise ConfigError(f"invalid duration {value!r}")
        total += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()
    return total


def parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"invalid port {value!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"port out of range: {port}")
    return port


def _duration_arg(value: str) -> float:
    try:
        return parse_duration(value)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="http-service",
        description="Serve the static items API until interrupted.",
    )
    parser.add_argument(
        "-graceful-timeout",
        "--graceful-timeout",
        dest="graceful_timeout",
        type=_duration_arg,
        default=DEFAULT_GRACEFUL_TIMEOUT,
        metavar="DURATION",
        help="the duration for which the server gracefully waits for existing "
        "connections to finish - e.g. 15s or 1m",
    )
    return parser


def load_settings(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build the settings from environment variables and command-line flags.

    Invalid flags or an invalid ``SERVICE_PORT`` exit with a usage error.
    """
    env = os.environ if environ is None else environ
    parser = build_parser()
    args = parser.parse_args(argv)

    service_name = env.get("SERVICE_NAME", DEFAULT_SERVICE_NAME)
    port = DEFAULT_SERVICE_PORT
    if "SERVICE_PORT" in env:
        try:
            port = parse_port(env["SERVICE_PORT"])
        except ConfigError as exc:
            parser.error(f"SERVICE_PORT: {exc}")

    log_level = env.get("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        parser.error(f"LOG_LEVEL: unknown level {log_level!r}")

    return Settings(
        service_name=service_name,
        service_port=port,
        hostname=socket.gethostname(),
        graceful_timeout=args.graceful_timeout,
        log_level=log_level,
    )
