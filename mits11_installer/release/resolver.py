"""Target selector validation and channel-to-version resolution."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from ..core.errors import ResolutionError, TargetValidationError

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "stable"
# channel name -> pointer resource name
CHANNELS = {
    "stable": "stable",
    "latest": "stable",
    "alpha": "alpha",
    "nightly": "nightly",
}
VERSION_RE = re.compile(r"^[0-9]+\.[0-9]+\.[0-9]+([-+]\S+)?$")
_UNSAFE_VERSION_CHARS = re.compile(r"[/\\]|\.\.")


class TextFetcher(Protocol):
    def get_text(self, url: str) -> str: ...


@dataclass(frozen=True)
class Target:
    raw: str
    channel: Optional[str]

    @property
    def is_channel(self) -> bool:
        return self.channel is not None


def parse_target(value: Optional[str]) -> Target:
    raw = (value or "").strip()
    if not raw:
        return Target(raw=DEFAULT_CHANNEL, channel=CHANNELS[DEFAULT_CHANNEL])
    if raw in CHANNELS:
        return Target(raw=raw, channel=CHANNELS[raw])
    if VERSION_RE.match(raw):
        return Target(raw=raw, channel=None)
    raise TargetValidationError(f"Invalid target: {raw}")


def resolve_version(target: Target, base_url: str, client: TextFetcher) -> str:
    if not target.is_channel:
        return target.raw

    pointer_url = f"{base_url}/{target.channel}"
    logger.info("Resolving channel %s via %s", target.raw, pointer_url)
    try:
        body = client.get_text(pointer_url)
    except ResolutionError as e:
        raise ResolutionError(f"Failed to resolve version for target: {target.raw} ({e})") from e

    version = "".join(body.split())
    if not version:
        raise ResolutionError(f"Failed to resolve version for target: {target.raw}")
    if _UNSAFE_VERSION_CHARS.search(version):
        raise ResolutionError(f"Failed to resolve version for target: {target.raw} (got {version!r})")
    logger.info("Channel %s resolved to %s", target.raw, version)
    return version
