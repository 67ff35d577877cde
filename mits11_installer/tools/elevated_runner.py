"""Elevated side of the installer handoff.

The bootstrapper starts this script in a new elevated process. It runs the
nested installer, then writes the installer's exit code as text to the
sentinel file the unprivileged parent is polling.

This module only uses the standard library and is executed by file path:
``sudo`` and ``pkexec`` reset the environment, so the package itself may not
be importable in the elevated process.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
import time
import traceback
from pathlib import Path
from typing import Optional


def _log(log_path: Optional[Path], message: str) -> None:
    if log_path is None:
        return
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    try:
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] {message}\n")
    except OSError:
        pass


def write_sentinel(sentinel: Path, exit_code: int) -> None:
    tmp = sentinel.with_name(sentinel.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(f"{int(exit_code)}\n")
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, sentinel)


def run_installer(command: list[str], cwd: Optional[str], log_path: Optional[Path]) -> int:
    try:
        return int(subprocess.call(command, cwd=cwd))
    except OSError as exc:
        _log(log_path, f"Could not start installer: {exc}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MITS11 elevated installer runner")
    parser.add_argument("--sentinel", required=True, help="File that receives the installer exit code")
    parser.add_argument("--log", default="", help="Append diagnostics to this file")
    parser.add_argument("--cwd", default="", help="Working directory for the installer")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Installer command, after '--'")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]

    sentinel = Path(args.sentinel)
    log_path = Path(args.log) if args.log else None

    exit_code = 1
    try:
        if not command:
            raise ValueError("No installer command given")
        _log(log_path, f"Running elevated installer: {subprocess.list2cmdline(command)}")
        exit_code = run_installer(command, args.cwd or None, log_path)
        _log(log_path, f"Installer exited with code {exit_code}")
    except Exception as exc:
        _log(log_path, f"FATAL: elevated runner failed: {exc}")
        _log(log_path, traceback.format_exc())
    finally:
        try:
            write_sentinel(sentinel, exit_code)
        except OSError as exc:
            _log(log_path, f"FATAL: could not write sentinel {sentinel}: {exc}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
