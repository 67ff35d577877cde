import pytest

from conftest import FakeReleaseClient, sha256_hex
from mits11_installer.core.errors import IntegrityError
from mits11_installer.release.cache import ArtifactCache, checksum_matches, sha256_file
from mits11_installer.release.manifest import PlatformEntry

URL = "https://example/mits11-5.0.1.zip"
PAYLOAD = b"verified archive bytes"


def _cache(tmp_path, client, messages=None):
    report = messages.append if messages is not None else None
    return ArtifactCache(tmp_path / "cache", client, report=report)


def test_sha256_file_and_case_insensitive_compare(tmp_path):
    path = tmp_path / "blob"
    path.write_bytes(PAYLOAD)

    assert sha256_file(path) == sha256_hex(PAYLOAD)
    assert checksum_matches(path, sha256_hex(PAYLOAD).upper())
    assert not checksum_matches(path, "")


def test_cache_path_is_deterministic(tmp_path):
    cache = _cache(tmp_path, FakeReleaseClient())

    assert cache.path_for("5.0.1", "linux-x64") == tmp_path / "cache" / "mits11-5.0.1-linux-x64.zip"


def test_miss_downloads_verifies_and_stores(tmp_path):
    client = FakeReleaseClient(blobs={URL: PAYLOAD})
    messages = []
    cache = _cache(tmp_path, client, messages)

    artifact = cache.fetch(PlatformEntry(URL, sha256_hex(PAYLOAD)), "5.0.1", "linux-x64")

    assert artifact.from_cache is False
    assert artifact.path.read_bytes() == PAYLOAD
    assert client.downloads == [URL]
    assert messages == ["Downloading MITS11 5.0.1 (linux-x64)..."]
    assert [p.name for p in (tmp_path / "cache").iterdir()] == ["mits11-5.0.1-linux-x64.zip"]


def test_second_fetch_is_a_cache_hit(tmp_path):
    client = FakeReleaseClient(blobs={URL: PAYLOAD})
    messages = []
    cache = _cache(tmp_path, client, messages)
    entry = PlatformEntry(URL, sha256_hex(PAYLOAD))

    cache.fetch(entry, "5.0.1", "linux-x64")
    artifact = cache.fetch(entry, "5.0.1", "linux-x64")

    assert artifact.from_cache is True
    assert client.downloads == [URL]
    assert messages[-1].startswith("Using cached package")


def test_stale_cache_file_is_replaced_once(tmp_path):
    client = FakeReleaseClient(blobs={URL: PAYLOAD})
    cache = _cache(tmp_path, client)
    stale = cache.path_for("5.0.1", "linux-x64")
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"corrupted")

    artifact = cache.fetch(PlatformEntry(URL, sha256_hex(PAYLOAD)), "5.0.1", "linux-x64")

    assert artifact.from_cache is False
    assert artifact.path.read_bytes() == PAYLOAD
    assert client.downloads == [URL]


def test_checksum_mismatch_deletes_download_and_fails(tmp_path):
    client = FakeReleaseClient(blobs={URL: b"tampered bytes"})
    cache = _cache(tmp_path, client)

    with pytest.raises(IntegrityError, match="Checksum verification failed"):
        cache.fetch(PlatformEntry(URL, sha256_hex(PAYLOAD)), "5.0.1", "linux-x64")

    assert client.downloads == [URL]
    assert list((tmp_path / "cache").iterdir()) == []


def test_mismatched_cache_and_bad_upstream_download_only_once(tmp_path):
    client = FakeReleaseClient(blobs={URL: b"still wrong"})
    cache = _cache(tmp_path, client)
    stale = cache.path_for("5.0.1", "linux-x64")
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"corrupted")

    with pytest.raises(IntegrityError):
        cache.fetch(PlatformEntry(URL, sha256_hex(PAYLOAD)), "5.0.1", "linux-x64")

    assert client.downloads == [URL]
    assert not stale.exists()


def test_release_after_handoff_keeps_only_valid_artifacts(tmp_path):
    client = FakeReleaseClient(blobs={URL: PAYLOAD})
    cache = _cache(tmp_path, client)
    entry = PlatformEntry(URL, sha256_hex(PAYLOAD))
    artifact = cache.fetch(entry, "5.0.1", "linux-x64")

    assert cache.release_after_handoff(artifact, entry) is True
    assert artifact.path.exists()

    artifact.path.write_bytes(b"modified while elevated")
    assert cache.release_after_handoff(artifact, entry) is False
    assert not artifact.path.exists()
