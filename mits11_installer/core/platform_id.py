"""Canonical ``{os}-{arch}`` identifiers for the running host."""

from __future__ import annotations

import platform
from dataclasses import dataclass
from typing import Optional

from .errors import UnsupportedPlatformError


_OS_TOKENS = {
    "linux": "linux",
    "darwin": "osx",
    "windows": "win",
}

_ARCH_TOKENS = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
}

_32BIT_MACHINES = {"i386", "i486", "i586", "i686", "x86", "armv6l", "armv7l", "arm"}


@dataclass(frozen=True)
class PlatformId:
    os_name: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os_name}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os_name == "win"


def _os_token(system: str) -> str:
    lowered = system.strip().lower()
    # MSYS/Cygwin shells report their own kernel name on a Windows host.
    if lowered.startswith(("mingw", "msys", "cygwin")):
        return "win"
    token = _OS_TOKENS.get(lowered)
    if token is None:
        raise UnsupportedPlatformError(f"Unsupported OS: {system or 'unknown'}")
    return token


def _arch_token(machine: str) -> str:
    lowered = machine.strip().lower()
    if lowered in _32BIT_MACHINES:
        raise UnsupportedPlatformError(f"Unsupported arch: {machine} (32-bit hosts are not supported)")
    token = _ARCH_TOKENS.get(lowered)
    if token is None:
        raise UnsupportedPlatformError(f"Unsupported arch: {machine or 'unknown'}")
    return token


def detect_platform(system: Optional[str] = None, machine: Optional[str] = None) -> PlatformId:
    system = platform.system() if system is None else system
    machine = platform.machine() if machine is None else machine
    return PlatformId(os_name=_os_token(system), arch=_arch_token(machine))
