import os

import pytest

from mits11_installer.core.errors import MissingToolError
from mits11_installer.utils.system_binaries import find_trusted_binary, resolve_first_trusted_binary, resolve_trusted_binary

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX executable bits")


def _tool(directory, name, executable=True):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(0o755 if executable else 0o644)
    return path


def test_finds_executable_in_search_dirs(tmp_path):
    sudo = _tool(tmp_path / "sbin", "sudo")

    assert resolve_trusted_binary("sudo", [tmp_path / "bin", tmp_path / "sbin"]) == str(sudo.resolve())


def test_non_executable_file_is_ignored(tmp_path):
    _tool(tmp_path / "bin", "pkexec", executable=False)

    assert find_trusted_binary("pkexec", [tmp_path / "bin"]) is None
    with pytest.raises(MissingToolError, match="pkexec"):
        resolve_trusted_binary("pkexec", [tmp_path / "bin"])


def test_first_tool_wins_in_preference_order(tmp_path):
    bin_dir = tmp_path / "bin"
    _tool(bin_dir, "sudo")
    pkexec = _tool(bin_dir, "pkexec")

    assert resolve_first_trusted_binary(["pkexec", "sudo"], [bin_dir]) == str(pkexec.resolve())


def test_falls_back_to_later_tool(tmp_path):
    bin_dir = tmp_path / "bin"
    sudo = _tool(bin_dir, "sudo")

    assert resolve_first_trusted_binary(["pkexec", "sudo"], [bin_dir]) == str(sudo.resolve())


def test_no_tool_found_names_all_candidates(tmp_path):
    with pytest.raises(MissingToolError, match="pkexec, sudo"):
        resolve_first_trusted_binary(["pkexec", "sudo"], [tmp_path])


def test_path_is_not_consulted(tmp_path, monkeypatch):
    _tool(tmp_path / "evil", "sudo")
    monkeypatch.setenv("PATH", str(tmp_path / "evil"))

    assert find_trusted_binary("sudo", [tmp_path / "empty"]) is None
