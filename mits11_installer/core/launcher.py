"""Runs the nested installer, elevating through a sentinel-file handoff when needed.

States::

    CHECK_PRIVILEGE --(separation enforced, not admin)--> ELEVATION_REQUIRED
    CHECK_PRIVILEGE --(admin, or elevation disabled)----> DIRECT
    ELEVATION_REQUIRED --(recheck: now admin)-----------> DIRECT
    ELEVATION_REQUIRED --(elevated child started)-------> AWAITING_SENTINEL
    DIRECT --(recheck: privilege lost)------------------> ELEVATION_REQUIRED
    DIRECT / AWAITING_SENTINEL --> SUCCESS | FAILURE

The elevated child's exit code cannot be observed across the privilege
boundary, so the child writes it to a sentinel file that this process polls
at a fixed interval until a hard timeout.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..tools import elevated_runner
from ..utils.admin import has_privilege_separation, is_running_as_admin, launch_elevated
from ..utils.system_binaries import resolve_trusted_binary
from .config import InstallerConfig
from .errors import ElevationError, ElevationTimeoutError, InstallerFailedError
from .platform_id import PlatformId

logger = logging.getLogger(__name__)

SENTINEL_NAME = "installer.exitcode"
RUNNER_LOG_NAME = "elevated-runner.log"


class LaunchState(Enum):
    CHECK_PRIVILEGE = "check-privilege"
    ELEVATION_REQUIRED = "elevation-required"
    AWAITING_SENTINEL = "awaiting-sentinel"
    DIRECT = "direct"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class LaunchOutcome:
    exit_code: int
    elevated: bool


def parse_sentinel(text: str) -> int:
    value = text.strip()
    try:
        return int(value)
    except ValueError as e:
        raise InstallerFailedError(f"Unparsable installer exit status: {value!r}") from e


class InstallerLauncher:
    def __init__(
        self,
        config: InstallerConfig,
        platform: PlatformId,
        work_dir: Path,
        *,
        is_privileged: Callable[[], bool] = is_running_as_admin,
        privilege_separation: Callable[[], bool] = has_privilege_separation,
        spawn_elevated: Callable[..., Optional[subprocess.Popen]] = launch_elevated,
        run_process: Callable[..., int] = subprocess.call,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.platform = platform
        self.work_dir = work_dir
        self.is_privileged = is_privileged
        self.privilege_separation = privilege_separation
        self.spawn_elevated = spawn_elevated
        self.run_process = run_process
        self.sleep = sleep
        self.clock = clock
        self.state = LaunchState.CHECK_PRIVILEGE

    @property
    def sentinel_path(self) -> Path:
        return self.work_dir / SENTINEL_NAME

    def installer_command(self, installer: Path, silent: bool) -> list[str]:
        if installer.suffix.lower() == ".ps1":
            powershell = resolve_trusted_binary("powershell")
            command = [powershell, "-NoProfile", "-ExecutionPolicy", "Bypass", "-File", str(installer)]
            if silent:
                command.append("-Silent")
            return command
        command = [str(installer)]
        if silent:
            command.append("--silent")
        return command

    def runner_command(self, installer_command: list[str], cwd: Path) -> list[str]:
        return [
            sys.executable,
            str(Path(elevated_runner.__file__).resolve()),
            "--sentinel",
            str(self.sentinel_path),
            "--log",
            str(self.work_dir / RUNNER_LOG_NAME),
            "--cwd",
            str(cwd),
            "--",
            *installer_command,
        ]

    def _elevation_wanted(self) -> bool:
        return self.config.elevate and self.privilege_separation()

    def run(self, installer: Path, silent: bool) -> LaunchOutcome:
        command = self.installer_command(installer, silent)
        self.state = LaunchState.CHECK_PRIVILEGE
        if self._elevation_wanted() and not self.is_privileged():
            self.state = LaunchState.ELEVATION_REQUIRED
        else:
            self.state = LaunchState.DIRECT

        switched = False
        while True:
            if self.state is LaunchState.ELEVATION_REQUIRED:
                if not switched and self.is_privileged():
                    switched = True
                    logger.info("Privileges available on recheck; running installer directly")
                    self.state = LaunchState.DIRECT
                    continue
                exit_code = self._run_elevated(command, installer)
                return self._finish(exit_code, elevated=True)

            # DIRECT: the privilege check above may be stale by now.
            if not switched and self._elevation_wanted() and not self.is_privileged():
                switched = True
                logger.warning("Privileges lost before launch; switching to elevation")
                self.state = LaunchState.ELEVATION_REQUIRED
                continue
            exit_code = self._run_direct(command, installer, silent)
            return self._finish(exit_code, elevated=False)

    def _finish(self, exit_code: int, elevated: bool) -> LaunchOutcome:
        if exit_code != 0:
            self.state = LaunchState.FAILURE
            raise InstallerFailedError(f"Installer exited with code {exit_code}", exit_code=exit_code)
        self.state = LaunchState.SUCCESS
        return LaunchOutcome(exit_code=0, elevated=elevated)

    def _open_terminal(self, silent: bool):
        if silent or self.platform.is_windows:
            return None
        try:
            if sys.stdin is not None and sys.stdin.isatty():
                return None
        except ValueError:
            pass
        try:
            return open("/dev/tty", "rb")
        except OSError:
            return None

    def _run_direct(self, command: list[str], installer: Path, silent: bool) -> int:
        env = os.environ.copy()
        if silent:
            env["MITS11_SILENT"] = "1"
        tty = self._open_terminal(silent)
        logger.info("Running installer: %s", subprocess.list2cmdline(command))
        try:
            return int(self.run_process(command, cwd=str(installer.parent), stdin=tty, env=env))
        except OSError as e:
            raise InstallerFailedError(f"Could not start installer: {e}") from e
        finally:
            if tty is not None:
                tty.close()

    def _run_elevated(self, command: list[str], installer: Path) -> int:
        sentinel = self.sentinel_path
        for stale in (sentinel, sentinel.with_name(sentinel.name + ".tmp")):
            if stale.exists():
                stale.unlink()

        runner = self.runner_command(command, installer.parent)
        helper = self.spawn_elevated(runner, working_dir=str(self.work_dir))
        self.state = LaunchState.AWAITING_SENTINEL
        return self.wait_for_sentinel(helper)

    def wait_for_sentinel(self, helper: Optional[subprocess.Popen] = None) -> int:
        sentinel = self.sentinel_path
        timeout = self.config.elevation_timeout_seconds
        deadline = self.clock() + timeout
        logger.info("Waiting up to %ss for elevated installer (sentinel %s)", timeout, sentinel)
        while True:
            if sentinel.exists():
                return parse_sentinel(sentinel.read_text(encoding="utf-8"))
            if helper is not None and helper.poll() is not None:
                if sentinel.exists():
                    continue
                self.state = LaunchState.FAILURE
                raise ElevationError(
                    f"Elevated installer did not run (elevation helper exited with code {helper.returncode})"
                )
            if self.clock() >= deadline:
                self.state = LaunchState.FAILURE
                raise ElevationTimeoutError(
                    f"Timed out after {timeout:g}s waiting for the elevated installer to finish"
                )
            self.sleep(self.config.sentinel_poll_interval_seconds)
