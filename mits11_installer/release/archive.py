from __future__ import annotations

import logging
import re
import shutil
import stat
import zipfile
import zlib
from pathlib import Path

from ..core.errors import PackagingError
from ..core.platform_id import PlatformId

logger = logging.getLogger(__name__)

POSIX_INSTALLER = ("script", "install.sh")
WINDOWS_INSTALLER = ("script", "install.ps1")


def installer_pattern(platform: PlatformId) -> tuple[str, str]:
    return WINDOWS_INSTALLER if platform.is_windows else POSIX_INSTALLER


def _check_member(member: zipfile.ZipInfo, base_path: Path) -> Path:
    normalized_name = member.filename.replace("\\", "/")
    member_path = Path(normalized_name)
    first_part = member_path.parts[0] if member_path.parts else ""
    if (
        member_path.is_absolute()
        or normalized_name.startswith("/")
        or ".." in member_path.parts
        or ":" in first_part
        or re.match(r"^[A-Za-z]:", first_part)
    ):
        raise PackagingError(f"Unsafe entry in package: {member.filename}")

    unix_mode = (member.external_attr >> 16) & 0o170000
    if unix_mode == stat.S_IFLNK:
        raise PackagingError(f"Unsafe entry in package: {member.filename}")

    resolved_path = (base_path / normalized_name).resolve()
    if not resolved_path.is_relative_to(base_path):
        raise PackagingError(f"Unsafe entry in package: {member.filename}")
    return resolved_path


def extract_archive(zip_path: Path, extract_root: Path) -> Path:
    try:
        extract_root.mkdir(parents=True, exist_ok=True)
        base_path = extract_root.resolve()
        with zipfile.ZipFile(zip_path, "r") as zip_ref:
            for member in zip_ref.infolist():
                resolved_path = _check_member(member, base_path)
                if member.is_dir():
                    resolved_path.mkdir(parents=True, exist_ok=True)
                    continue
                resolved_path.parent.mkdir(parents=True, exist_ok=True)
                with zip_ref.open(member, "r") as src, open(resolved_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)
    except zipfile.BadZipFile as e:
        raise PackagingError(f"Package is not a valid zip archive: {zip_path} ({e})") from e
    except (NotImplementedError, RuntimeError, EOFError, zlib.error) as e:
        # Unsupported compression, an encrypted entry, or corrupt entry data.
        raise PackagingError(f"Cannot unpack package {zip_path}: {e}") from e
    except OSError as e:
        raise PackagingError(f"Failed to extract package into {extract_root}: {e}") from e
    logger.info("Extracted %s into %s", zip_path, extract_root)
    return extract_root


def locate_installer(extract_root: Path, platform: PlatformId) -> Path:
    parent_name, file_name = installer_pattern(platform)
    matches = sorted(
        p for p in extract_root.rglob(file_name)
        if p.is_file() and p.parent.name == parent_name
    )
    if not matches:
        raise PackagingError("Installer not found in package")
    if len(matches) > 1:
        listed = ", ".join(str(p.relative_to(extract_root)) for p in matches)
        raise PackagingError(f"Package contains more than one installer: {listed}")

    installer = matches[0]
    if not platform.is_windows:
        installer.chmod(installer.stat().st_mode | 0o111)
    logger.info("Located installer %s", installer)
    return installer


def prepare_installer(zip_path: Path, work_dir: Path, platform: PlatformId) -> Path:
    extract_root = extract_archive(zip_path, work_dir / "extract")
    return locate_installer(extract_root, platform)
