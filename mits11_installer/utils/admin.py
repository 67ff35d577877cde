import ctypes
import logging
import os
import shlex
import subprocess
import sys
from typing import Optional

from ..core.errors import ElevationError
from .system_binaries import resolve_first_trusted_binary, resolve_trusted_binary

logger = logging.getLogger(__name__)

# ShellExecuteW codes for "access denied" and "operation cancelled by the user".
_ELEVATION_DENIED_CODES = {5, 1223}


def has_privilege_separation() -> bool:
    return os.name == "nt" or hasattr(os, "geteuid")


def is_running_as_admin() -> bool:
    if os.name == "nt":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:
        return True
    return geteuid() == 0


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _launch_windows(command: list[str], working_dir: Optional[str]) -> None:
    params = subprocess.list2cmdline(command[1:])
    try:
        ret = ctypes.windll.shell32.ShellExecuteW(
            None, "runas", command[0], params, working_dir, 1
        )
    except (OSError, AttributeError) as e:
        raise ElevationError(f"Failed to request administrator privileges: {e}") from e
    if ret <= 32:
        if ret in _ELEVATION_DENIED_CODES:
            raise ElevationError("Administrator permission was denied.")
        raise ElevationError(f"Failed to elevate, error code {ret}")


def launch_elevated(command: list[str], working_dir: Optional[str] = None) -> Optional[subprocess.Popen]:
    """Start ``command`` in a new elevated process without waiting for it.

    Returns the local helper process on POSIX (``osascript``/``pkexec``/``sudo``),
    which exits once the elevated command has finished or was refused. Windows
    hands the command to the shell and returns None.
    """
    logger.info("Requesting elevation for: %s", subprocess.list2cmdline(command))
    if os.name == "nt":
        _launch_windows(command, working_dir)
        return None

    if sys.platform == "darwin":
        osascript = resolve_trusted_binary("osascript")
        script = (
            f"do shell script {_applescript_quote(shlex.join(command))} "
            "with administrator privileges"
        )
        argv = [osascript, "-e", script]
    else:
        helper = resolve_first_trusted_binary(["pkexec", "sudo"])
        argv = [helper, *command]

    try:
        return subprocess.Popen(argv, cwd=working_dir, close_fds=True)
    except OSError as e:
        raise ElevationError(f"Failed to request administrator privileges: {e}") from e
