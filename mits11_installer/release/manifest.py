"""Per-version manifest retrieval and platform entry extraction.

Two interchangeable parser backends produce the same ``PlatformEntry``:

- ``JsonManifestParser`` decodes the document with the ``json`` module.
- ``PatternManifestParser`` strips line breaks and walks the object members
  itself with quote-aware bracket matching, reading only the direct keys of
  each level and decoding string escapes. It tolerates documents that are not
  strict JSON (trailing commas, stray text around the object).

Both apply the same field validation, so a document is accepted or rejected
identically regardless of the backend.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ..core.errors import ManifestError, ResolutionError
from .resolver import TextFetcher

logger = logging.getLogger(__name__)

SHA256_RE = re.compile(r"^[a-f0-9]{64}$")
MANIFEST_NAME = "manifest.json"


@dataclass(frozen=True)
class PlatformEntry:
    url: str
    sha256: str


class ManifestParser(Protocol):
    name: str

    def parse(self, text: str, platform: str, version: str) -> PlatformEntry: ...


def _not_found(platform: str, version: str) -> ManifestError:
    return ManifestError(f"Platform {platform} not found in manifest for version {version}")


def _build_entry(url: Optional[str], sha256: Optional[str], platform: str, version: str) -> PlatformEntry:
    if not url or not sha256:
        raise _not_found(platform, version)
    if not SHA256_RE.match(sha256):
        raise ManifestError(f"Invalid checksum in manifest for {platform} (version {version})")
    return PlatformEntry(url=url, sha256=sha256)


class JsonManifestParser:
    name = "json"

    def parse(self, text: str, platform: str, version: str) -> PlatformEntry:
        data: Any = json.loads(text)
        platforms = data.get("platforms") if isinstance(data, dict) else None
        entry = platforms.get(platform) if isinstance(platforms, dict) else None
        if not isinstance(entry, dict):
            raise _not_found(platform, version)
        url = entry.get("url")
        sha256 = entry.get("sha256")
        return _build_entry(
            url if isinstance(url, str) else None,
            sha256 if isinstance(sha256, str) else None,
            platform,
            version,
        )


def normalize_json_text(text: str) -> str:
    # Raw control whitespace is only legal between tokens, never inside strings.
    return re.sub(r"[\r\n\t]", "", text)


def _skip_space(text: str, idx: int) -> int:
    while idx < len(text) and text[idx].isspace():
        idx += 1
    return idx


def _string_end(text: str, start: int) -> int:
    """Index just past the string literal whose opening quote is ``text[start]``."""
    idx = start + 1
    while idx < len(text):
        ch = text[idx]
        if ch == "\\":
            idx += 2
            continue
        if ch == '"':
            return idx + 1
        idx += 1
    raise ValueError(f"Unterminated string at offset {start}")


def _value_end(text: str, start: int) -> int:
    """Index just past the value starting at ``text[start]``; containers are skipped whole."""
    if start >= len(text):
        raise ValueError("Manifest ends before a value")
    ch = text[start]
    if ch == '"':
        return _string_end(text, start)
    if ch not in "{[":
        idx = start
        while idx < len(text) and text[idx] not in ",}]":
            idx += 1
        return idx

    depth = 0
    idx = start
    while idx < len(text):
        ch = text[idx]
        if ch == '"':
            idx = _string_end(text, idx)
            continue
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return idx + 1
        idx += 1
    raise ValueError(f"Unbalanced brackets at offset {start}")


def balanced_object(text: str, start: int) -> Optional[str]:
    """Return the ``{...}`` block opening at ``text[start]``, or None if unbalanced."""
    if start < 0 or start >= len(text) or text[start] != "{":
        return None
    try:
        return text[start:_value_end(text, start)]
    except ValueError:
        return None


def decode_string(literal: str) -> str:
    """Decode a quoted JSON string literal, escapes included."""
    value = json.loads(literal)
    if not isinstance(value, str):
        raise ValueError(f"Not a string literal: {literal!r}")
    return value


def object_members(obj: str) -> dict[str, str]:
    """Map each direct key of the ``{...}`` text ``obj`` to its raw value text.

    Nested objects and arrays are kept as opaque text, so keys inside them
    never shadow the object's own keys. Trailing commas are tolerated. A
    repeated key keeps its last value.
    """
    members: dict[str, str] = {}
    idx = _skip_space(obj, 1)
    while idx < len(obj) and obj[idx] != "}":
        if obj[idx] == ",":
            idx = _skip_space(obj, idx + 1)
            continue
        if obj[idx] != '"':
            raise ValueError(f"Expected an object key at offset {idx}")
        key_end = _string_end(obj, idx)
        key = decode_string(obj[idx:key_end])
        idx = _skip_space(obj, key_end)
        if idx >= len(obj) or obj[idx] != ":":
            raise ValueError(f"Expected ':' after key {key!r}")
        idx = _skip_space(obj, idx + 1)
        value_end = _value_end(obj, idx)
        members[key] = obj[idx:value_end].strip()
        idx = _skip_space(obj, value_end)
    return members


def _object_member(obj: str, key: str) -> Optional[str]:
    value = object_members(obj).get(key)
    return value if value and value.startswith("{") else None


def _string_member(obj: str, key: str) -> Optional[str]:
    value = object_members(obj).get(key)
    if not value or not value.startswith('"'):
        return None
    return decode_string(value)


class PatternManifestParser:
    name = "pattern"

    def parse(self, text: str, platform: str, version: str) -> PlatformEntry:
        normalized = normalize_json_text(text)
        root = balanced_object(normalized, normalized.find("{"))
        if root is None:
            raise ValueError("No JSON object found in manifest")
        platforms = _object_member(root, "platforms")
        section = _object_member(platforms, platform) if platforms else None
        if section is None:
            raise _not_found(platform, version)
        return _build_entry(
            _string_member(section, "url"),
            _string_member(section, "sha256"),
            platform,
            version,
        )


class AutoManifestParser:
    """Structured parsing first; the pattern grammar covers non-strict documents."""

    name = "auto"

    def __init__(self):
        self.structured = JsonManifestParser()
        self.fallback = PatternManifestParser()

    def parse(self, text: str, platform: str, version: str) -> PlatformEntry:
        try:
            return self.structured.parse(text, platform, version)
        except ValueError as e:
            logger.warning("Manifest for %s is not strict JSON (%s); using pattern parser", version, e)
            return self.fallback.parse(text, platform, version)


def select_manifest_parser(mode: str) -> ManifestParser:
    if mode == "json":
        return JsonManifestParser()
    if mode == "pattern":
        return PatternManifestParser()
    return AutoManifestParser()


def manifest_url(base_url: str, version: str) -> str:
    return f"{base_url}/{version}/{MANIFEST_NAME}"


def fetch_platform_entry(
    client: TextFetcher,
    base_url: str,
    version: str,
    platform: str,
    parser: ManifestParser,
) -> PlatformEntry:
    url = manifest_url(base_url, version)
    logger.info("Fetching manifest %s (parser=%s)", url, parser.name)
    try:
        text = client.get_text(url)
    except ResolutionError as e:
        raise ResolutionError(f"Failed to fetch manifest for version {version} ({platform}): {e}") from e
    try:
        entry = parser.parse(text, platform, version)
    except ValueError as e:
        raise ManifestError(f"Malformed manifest for version {version} ({platform}): {e}") from e
    logger.info("Manifest entry for %s: %s sha256=%s", platform, entry.url, entry.sha256)
    return entry
