from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar
import os

USAGE = "Usage: litehttpd <PORT> <ROOT_FOLDER>"

N = TypeVar("N", int, float)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Config:
    port: int
    root: Path
    bind: str = "0.0.0.0"
    log_level: str = "info"
    max_request_bytes: int = 8192
    read_timeout: float = 5.0
    script_timeout: float | None = None
    max_connections: int = 0

    @property
    def scripts_dir(self) -> Path:
        return (self.root / "scripts").resolve()


ENV_PREFIX = "LITEHTTPD_"


def _env(name: str) -> str | None:
    """Return ``LITEHTTPD_<name>`` stripped, or None when unset or blank."""
    value = os.environ.get(ENV_PREFIX + name, "").strip()
    return value or None


def _env_number(name: str, default: N, convert: Callable[[str], N]) -> N:
    value = _env(name)
    if value is None:
        return default
    try:
        return convert(value)
    except ValueError:
        return default


def parse_port(value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise ConfigError(f"Invalid port: {value!r}")
    port = int(value)
    if port > 65535:
        raise ConfigError(f"Port out of range: {value}")
    return port


def resolve_root(value: str) -> Path:
    try:
        root = Path(value).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise ConfigError(f"Cannot resolve root folder {value!r}: {exc}") from exc
    if not root.is_dir():
        raise ConfigError(f"Root folder is not a directory: {root}")
    return root


def load_config(argv: list[str]) -> Config:
    if len(argv) != 2:
        raise ConfigError(f"Expected 2 arguments, got {len(argv)}")
    port = parse_port(argv[0])
    root = resolve_root(argv[1])

    script_timeout = _env_number("SCRIPT_TIMEOUT", 0.0, float)
    return Config(
        port=port,
        root=root,
        bind=_env("BIND") or "0.0.0.0",
        log_level=(_env("LOG_LEVEL") or "info").lower(),
        max_request_bytes=max(1024, _env_number("MAX_REQUEST_BYTES", 8192, int)),
        read_timeout=max(0.1, _env_number("READ_TIMEOUT", 5.0, float)),
        script_timeout=script_timeout if script_timeout > 0 else None,
        max_connections=max(0, _env_number("MAX_CONNECTIONS", 0, int)),
    )
