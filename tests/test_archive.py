import stat
import zipfile

import pytest

from conftest import LINUX_X64, make_zip
from mits11_installer.core.errors import PackagingError
from mits11_installer.core.platform_id import PlatformId
from mits11_installer.release.archive import extract_archive, locate_installer, prepare_installer


def _write_zip(path, files):
    path.write_bytes(make_zip(files))
    return path


def test_prepare_installer_finds_nested_script(tmp_path):
    zip_path = _write_zip(tmp_path / "pkg.zip", {
        "mits11-5.0.1/script/install.sh": b"#!/bin/sh\nexit 0\n",
        "mits11-5.0.1/bin/app": b"binary",
    })
    work = tmp_path / "work"
    work.mkdir()

    installer = prepare_installer(zip_path, work, LINUX_X64)

    assert installer == work / "extract" / "mits11-5.0.1" / "script" / "install.sh"
    assert installer.stat().st_mode & stat.S_IXUSR


def test_windows_uses_powershell_installer(tmp_path):
    zip_path = _write_zip(tmp_path / "pkg.zip", {
        "pkg/script/install.sh": b"echo",
        "pkg/script/install.ps1": b"Write-Host ok",
    })

    installer = prepare_installer(zip_path, tmp_path, PlatformId(os_name="win", arch="x64"))

    assert installer.name == "install.ps1"


def test_missing_installer_is_fatal(tmp_path):
    zip_path = _write_zip(tmp_path / "pkg.zip", {"pkg/install.sh": b"not under script/"})

    with pytest.raises(PackagingError, match="Installer not found in package"):
        prepare_installer(zip_path, tmp_path, LINUX_X64)


def test_multiple_installers_are_rejected(tmp_path):
    extract_root = tmp_path / "extract"
    extract_archive(_write_zip(tmp_path / "pkg.zip", {
        "a/script/install.sh": b"one",
        "b/script/install.sh": b"two",
    }), extract_root)

    with pytest.raises(PackagingError, match="more than one installer"):
        locate_installer(extract_root, LINUX_X64)


def test_non_zip_package_is_rejected(tmp_path):
    bogus = tmp_path / "pkg.zip"
    bogus.write_bytes(b"this is not a zip")

    with pytest.raises(PackagingError, match="not a valid zip archive"):
        extract_archive(bogus, tmp_path / "out")


def test_extract_rejects_path_traversal(tmp_path):
    zip_path = _write_zip(tmp_path / "evil.zip", {"../escape.txt": b"owned"})

    with pytest.raises(PackagingError, match="Unsafe entry"):
        extract_archive(zip_path, tmp_path / "out")
    assert not (tmp_path / "escape.txt").exists()


def test_extract_rejects_windows_drive_letter(tmp_path):
    zip_path = _write_zip(tmp_path / "drive.zip", {"C:evil.txt": b"owned"})

    with pytest.raises(PackagingError):
        extract_archive(zip_path, tmp_path / "out_drive")


def test_extract_rejects_symlink_entry(tmp_path):
    zip_path = tmp_path / "symlink.zip"
    info = zipfile.ZipInfo("link")
    info.create_system = 3
    info.external_attr = (0o120777 << 16)
    with zipfile.ZipFile(zip_path, "w") as zf:
        zf.writestr(info, "target")

    with pytest.raises(PackagingError):
        extract_archive(zip_path, tmp_path / "out_symlink")


def _patch_headers(data, local_offset, central_offset, value):
    """Overwrite a 2-byte field in the first local and central zip headers."""
    patched = bytearray(data)
    local = patched.index(b"PK\x03\x04")
    central = patched.index(b"PK\x01\x02")
    patched[local + local_offset:local + local_offset + 2] = value.to_bytes(2, "little")
    patched[central + central_offset:central + central_offset + 2] = value.to_bytes(2, "little")
    return bytes(patched)


def test_unsupported_compression_method_is_packaging_error(tmp_path):
    data = make_zip({"mits11/script/install.sh": b"#!/bin/sh\n"})
    zip_path = tmp_path / "method99.zip"
    zip_path.write_bytes(_patch_headers(data, 8, 10, 99))

    with pytest.raises(PackagingError, match="Cannot unpack package"):
        extract_archive(zip_path, tmp_path / "out")


def test_encrypted_entry_is_packaging_error(tmp_path):
    data = make_zip({"mits11/script/install.sh": b"#!/bin/sh\n"})
    zip_path = tmp_path / "encrypted.zip"
    zip_path.write_bytes(_patch_headers(data, 6, 8, 0x1))

    with pytest.raises(PackagingError, match="Cannot unpack package"):
        extract_archive(zip_path, tmp_path / "out")


def test_write_failure_during_extraction_is_packaging_error(tmp_path, monkeypatch):
    zip_path = _write_zip(tmp_path / "pkg.zip", {"mits11/script/install.sh": b"#!/bin/sh\n"})

    def disk_full(src, dst, *args):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("mits11_installer.release.archive.shutil.copyfileobj", disk_full)

    with pytest.raises(PackagingError, match="No space left on device"):
        extract_archive(zip_path, tmp_path / "out")
