"""Shared fakes for the installer test suite."""

from __future__ import annotations

import hashlib
import io
import os
import sys
import tempfile
import zipfile
from pathlib import Path

import pytest

# Add repository root to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mits11_installer.core.config import InstallerConfig  # noqa: E402
from mits11_installer.core.errors import ResolutionError  # noqa: E402
from mits11_installer.core.platform_id import PlatformId  # noqa: E402

BASE_URL = "https://example.test/mits11"
LINUX_X64 = PlatformId(os_name="linux", arch="x64")


def make_zip(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def manifest_json(platform: str, url: str, sha256: str) -> str:
    return '{"platforms":{"%s":{"url":"%s","sha256":"%s"}}}' % (platform, url, sha256)


class FakeReleaseClient:
    """Serves canned pointer/manifest bodies and artifact bytes by URL."""

    def __init__(self, texts=None, blobs=None):
        self.texts = dict(texts or {})
        self.blobs = dict(blobs or {})
        self.requests: list[str] = []
        self.downloads: list[str] = []

    def get_text(self, url: str) -> str:
        self.requests.append(url)
        if url not in self.texts:
            raise ResolutionError(f"Failed to download {url}: HTTP 404")
        return self.texts[url]

    def download(self, url: str, dest: Path, progress=None) -> Path:
        self.requests.append(url)
        self.downloads.append(url)
        if url not in self.blobs:
            raise ResolutionError(f"Failed to download {url}: HTTP 404")
        Path(dest).write_bytes(self.blobs[url])
        return Path(dest)


@pytest.fixture
def config(tmp_path):
    return InstallerConfig(
        base_url=BASE_URL,
        cache_dir=tmp_path / "cache",
        elevate=False,
        sentinel_poll_interval_seconds=0.0,
        elevation_timeout_seconds=5.0,
    )


@pytest.fixture
def temp_root(tmp_path, monkeypatch):
    root = tmp_path / "tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root
