"""Content-addressed artifact cache.

A cached archive is addressed by ``(version, platform)`` and is only ever
trusted when its SHA-256 matches the manifest-declared checksum.
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..core.errors import IntegrityError, PackagingError
from .http import ProgressCallback, ReleaseClient
from .manifest import PlatformEntry

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


def sha256_file(path: Path) -> str:
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            hasher.update(chunk)
    return hasher.hexdigest().lower()


def checksum_matches(path: Path, expected: str) -> bool:
    if not expected:
        return False
    return sha256_file(path) == expected.lower()


@dataclass(frozen=True)
class CachedArtifact:
    path: Path
    from_cache: bool


class ArtifactCache:
    def __init__(self, cache_dir: Path, client: ReleaseClient, report: Optional[Reporter] = None):
        self.cache_dir = cache_dir
        self.client = client
        self.report = report or (lambda _msg: None)

    def path_for(self, version: str, platform: str) -> Path:
        return self.cache_dir / f"mits11-{version}-{platform}.zip"

    def _partial_path(self, cache_path: Path) -> Path:
        return cache_path.with_name(f"{cache_path.name}.{os.getpid()}.part")

    def discard(self, path: Path) -> None:
        try:
            path.unlink()
            logger.info("Removed cached artifact %s", path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove cached artifact %s: %s", path, e)

    def lookup(self, entry: PlatformEntry, version: str, platform: str) -> Optional[Path]:
        cache_path = self.path_for(version, platform)
        if not cache_path.is_file():
            return None
        if checksum_matches(cache_path, entry.sha256):
            return cache_path
        logger.warning("Cached artifact %s failed checksum; discarding", cache_path)
        self.discard(cache_path)
        return None

    def fetch(
        self,
        entry: PlatformEntry,
        version: str,
        platform: str,
        progress: Optional[ProgressCallback] = None,
    ) -> CachedArtifact:
        cached = self.lookup(entry, version, platform)
        if cached is not None:
            self.report(f"Using cached package {cached}")
            return CachedArtifact(path=cached, from_cache=True)

        cache_path = self.path_for(version, platform)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PackagingError(f"Cannot create cache directory {self.cache_dir}: {e}") from e

        partial = self._partial_path(cache_path)
        self.report(f"Downloading MITS11 {version} ({platform})...")
        try:
            self.client.download(entry.url, partial, progress=progress)
            if not checksum_matches(partial, entry.sha256):
                raise IntegrityError(
                    f"Checksum verification failed for {entry.url} (MITS11 {version}, {platform})"
                )
            os.replace(partial, cache_path)
        finally:
            self.discard(partial)
        logger.info("Cached verified artifact at %s", cache_path)
        return CachedArtifact(path=cache_path, from_cache=False)

    def release_after_handoff(self, artifact: CachedArtifact, entry: PlatformEntry) -> bool:
        """Keep the artifact for future runs only if it still verifies."""
        if artifact.path.is_file() and checksum_matches(artifact.path, entry.sha256):
            return True
        self.discard(artifact.path)
        return False
