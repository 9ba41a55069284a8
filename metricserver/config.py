"""Application configuration: a YAML file with environment substitution."""

from __future__ import annotations

import argparse
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Sequence

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = os.path.join(".", "config", "config.yaml")

_UNITS_NS = {
    "ns": 1, "us": 1_000, "\u00b5s": 1_000, "\u03bcs": 1_000, "ms": 1_000_000,
    "s": 1_000_000_000, "m": 60_000_000_000, "h": 3_600_000_000_000,
}
_MAX_NS = 2**63 - 1
_SEGMENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_VARIABLE = re.compile(r"\$(?:\{([^}]*)\}|(\{)|([*#$@!?\-0-9])|([A-Za-z0-9_]+))")


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded or parsed."""


@dataclass(frozen=True)
class HTTPServerConfig:
    """Settings of the HTTP listener; timeouts are in seconds."""

    host: str = ""
    port: str = ""
    timeout: float = 0.0
    idle_timeout: float = 0.0


@dataclass(frozen=True)
class Config:
    """Complete application settings; the flush interval is in seconds."""

    http_server: HTTPServerConfig = field(default_factory=HTTPServerConfig)
    pg_dsn: str = ""
    flush_interval: float = 0.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Config":
        """Build a configuration from a parsed YAML document."""
        data = {} if data is None else data
        server = data.get("http-server") if isinstance(data, Mapping) else None
        server = {} if server is None else server
        if not isinstance(data, Mapping) or not isinstance(server, Mapping):
            raise ConfigError("configuration and 'http-server' must be mappings")
        return cls(
            http_server=HTTPServerConfig(
                host=_as_string(server.get("host"), "host"),
                port=_as_string(server.get("port"), "port"),
                timeout=_as_duration(server.get("timeout"), "timeout"),
                idle_timeout=_as_duration(server.get("idle_timeout"), "idle_timeout"),
            ),
            pg_dsn=_as_string(data.get("pg-dsn"), "pg-dsn"),
            flush_interval=_as_duration(data.get("flush-interval"), "flush-interval"),
        )


def _as_string(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (Mapping, list, tuple, set)):
        raise ConfigError(f"'{key}' must be a scalar value")
    return str(value)


def _as_duration(value: Any, key: str) -> float:
    if value is None:
        return 0.0
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a duration string such as \"10s\"")
    return parse_duration(value)


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"1h30m"`` or ``"300ms"`` into seconds."""
    if not isinstance(text, str):
        raise ConfigError(f"invalid duration {text!r}")
    negative = text[:1] == "-"
    s = text[1:] if text[:1] in ("+", "-") else text
    if s == "0":
        return 0.0
    if not s:
        raise ConfigError(f'invalid duration "{text}"')

    total, pos = 0, 0
    while pos < len(s):
        match = _SEGMENT.match(s, pos)
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise ConfigError(f'invalid duration "{text}"')
        if not unit:
            raise ConfigError(f'missing unit in duration "{text}"')
        if unit not in _UNITS_NS:
            raise ConfigError(f'unknown unit "{unit}" in duration "{text}"')
        total += int(Decimal(f"{whole or '0'}.{frac or '0'}") * _UNITS_NS[unit])
        if total > _MAX_NS + negative:
            raise ConfigError(f'invalid duration "{text}"')
        pos = match.end()
    return (-total if negative else total) / 1_000_000_000


def expand_env(text: str, environ: Mapping[str, str]) -> str:
    """Replace ``$name`` and ``${name}`` with values from ``environ``; unknown names become empty."""

    def replace(match: re.Match[str]) -> str:
        braced, open_brace, special, plain = match.groups()
        name = "" if open_brace is not None else (braced if braced is not None else special or plain)
        return environ.get(name, "") if name else ""

    return _VARIABLE.sub(replace, text)


def load_config(argv: Sequence[str] | None = None) -> Config:
    """Read flags, load the .env file and parse the YAML configuration."""
    parser = argparse.ArgumentParser(prog="metricserver")
    parser.add_argument("-env", "--env", dest="env", default=".env", help="Path to .env file")
    parser.add_argument("-config", "--config", dest="config", default="", help="Path to config file")
    args = parser.parse_args(argv)

    if os.path.isfile(args.env):
        load_dotenv(args.env, override=False)
    else:
        print(f".env file not found: {args.env}")

    try:
        with open(args.config or DEFAULT_CONFIG_PATH, encoding="utf-8") as handle:
            raw = handle.read()
    except OSError as exc:
        raise ConfigError(f"error loading config: {exc}") from exc

    try:
        return Config.from_mapping(yaml.safe_load(expand_env(raw, os.environ)))
    except (yaml.YAMLError, ConfigError) as exc:
        raise ConfigError(f"error parsing config: {exc}") from exc