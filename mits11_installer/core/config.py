from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import TargetValidationError


DEFAULT_BASE_URL = "https://arbin-com.github.io/mits11-release"
MANIFEST_PARSER_MODES = ("auto", "json", "pattern")
SENTINEL_POLL_INTERVAL_SEC = 1.0
ELEVATION_TIMEOUT_SEC = 4 * 60 * 60

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in _TRUTHY


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise TargetValidationError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise TargetValidationError(f"{name} must be positive, got {value}")
    return value


def default_cache_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    if os.name == "nt":
        base = env.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(base) / "MITS11" / "cache"
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Caches" / "MITS11"
    xdg = env.get("XDG_CACHE_HOME", "").strip()
    if xdg:
        return Path(xdg) / "mits11"
    return Path.home() / ".cache" / "mits11"


@dataclass(frozen=True)
class InstallerConfig:
    base_url: str = DEFAULT_BASE_URL
    cache_dir: Path = Path(".")
    keep_temp: bool = False
    manifest_parser: str = "auto"
    elevate: bool = True
    connect_timeout_seconds: int = 10
    read_timeout_seconds: int = 60
    sentinel_poll_interval_seconds: float = SENTINEL_POLL_INTERVAL_SEC
    elevation_timeout_seconds: float = ELEVATION_TIMEOUT_SEC

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "InstallerConfig":
        env = os.environ if env is None else env

        cache_override = env.get("MITS11_CACHE_DIR", "").strip()
        cache_dir = Path(cache_override).expanduser() if cache_override else default_cache_dir(env)

        parser_mode = env.get("MITS11_MANIFEST_PARSER", "").strip().lower() or "auto"
        if parser_mode not in MANIFEST_PARSER_MODES:
            raise TargetValidationError(
                f"MITS11_MANIFEST_PARSER must be one of {', '.join(MANIFEST_PARSER_MODES)}, got {parser_mode!r}"
            )

        return cls(
            base_url=(env.get("MITS11_BASE_URL", "").strip() or DEFAULT_BASE_URL).rstrip("/"),
            cache_dir=cache_dir,
            keep_temp=_flag(env, "MITS11_KEEP_TEMP"),
            manifest_parser=parser_mode,
            elevate=not _flag(env, "MITS11_NO_ELEVATE"),
            connect_timeout_seconds=_positive_int(env, "MITS11_CONNECT_TIMEOUT", 10),
            read_timeout_seconds=_positive_int(env, "MITS11_READ_TIMEOUT", 60),
        )

    @property
    def http_timeout(self) -> tuple[int, int]:
        return (self.connect_timeout_seconds, self.read_timeout_seconds)
