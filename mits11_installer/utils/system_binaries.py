"""Locate external helpers (elevation tools, PowerShell) in system directories only.

PATH is not consulted: the helpers found here run with, or hand out,
administrator rights, so a user-writable directory must never supply them.
"""

import os
from pathlib import Path
from typing import Iterable, Optional

from ..core.errors import MissingToolError

_POSIX_TOOL_DIRS = ("/usr/bin", "/usr/sbin", "/bin", "/sbin", "/usr/local/bin", "/usr/local/sbin")


def trusted_binary_dirs() -> list[Path]:
    if os.name == "nt":
        windir = Path(os.environ.get("WINDIR", r"C:\Windows"))
        candidates = [
            windir / "System32",
            windir / "System32" / "WindowsPowerShell" / "v1.0",
        ]
    else:
        candidates = [Path(d) for d in _POSIX_TOOL_DIRS]

    resolved: list[Path] = []
    for directory in candidates:
        if directory.is_dir():
            real = directory.resolve()
            if real not in resolved:
                resolved.append(real)
    return resolved


def _executable_names(tool: str) -> list[str]:
    if os.name == "nt" and not tool.lower().endswith(".exe"):
        return [f"{tool}.exe", tool]
    return [tool]


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_trusted_binary(tool: str, search_dirs: Optional[Iterable[Path]] = None) -> Optional[str]:
    dirs = list(search_dirs) if search_dirs is not None else trusted_binary_dirs()
    for directory in dirs:
        for name in _executable_names(tool):
            candidate = directory / name
            if _is_executable(candidate):
                return str(candidate.resolve())
    return None


def resolve_trusted_binary(tool: str, search_dirs: Optional[Iterable[Path]] = None) -> str:
    found = find_trusted_binary(tool, search_dirs)
    if found is None:
        raise MissingToolError(f"Required tool '{tool}' not found in system directories")
    return found


def resolve_first_trusted_binary(tools: list[str], search_dirs: Optional[Iterable[Path]] = None) -> str:
    """Return the first of ``tools`` present, in preference order."""
    dirs = list(search_dirs) if search_dirs is not None else trusted_binary_dirs()
    for tool in tools:
        found = find_trusted_binary(tool, dirs)
        if found is not None:
            return found
    raise MissingToolError(f"None of the required tools is installed: {', '.join(tools)}")
