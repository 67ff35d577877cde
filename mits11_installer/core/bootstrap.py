"""End-to-end install run: resolve, fetch, verify, extract, launch, clean up."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..release.archive import prepare_installer
from ..release.cache import ArtifactCache
from ..release.http import ReleaseClient
from ..release.manifest import fetch_platform_entry, select_manifest_parser
from ..release.resolver import parse_target, resolve_version
from .cleanup import TempWorkspace
from .config import InstallerConfig
from .launcher import InstallerLauncher
from .platform_id import PlatformId, detect_platform

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]
LauncherFactory = Callable[[InstallerConfig, PlatformId, Path], InstallerLauncher]


@dataclass(frozen=True)
class InstallResult:
    version: str
    platform: str
    artifact_path: Path
    from_cache: bool
    elevated: bool
    artifact_retained: bool
    exit_code: int = 0


def run_install(
    target_value: Optional[str],
    silent: bool,
    config: InstallerConfig,
    *,
    report: Reporter = print,
    platform: Optional[PlatformId] = None,
    client: Optional[ReleaseClient] = None,
    launcher_factory: LauncherFactory = InstallerLauncher,
) -> InstallResult:
    target = parse_target(target_value)

    with TempWorkspace(keep=config.keep_temp, report=report) as work_dir:
        host = platform if platform is not None else detect_platform()
        platform_name = str(host)
        logger.info("Target %s on %s", target.raw, platform_name)

        client = client if client is not None else ReleaseClient(timeout=config.http_timeout)
        version = resolve_version(target, config.base_url, client)
        entry = fetch_platform_entry(
            client,
            config.base_url,
            version,
            platform_name,
            select_manifest_parser(config.manifest_parser),
        )

        cache = ArtifactCache(config.cache_dir, client, report=report)
        artifact = cache.fetch(entry, version, platform_name)

        installer = prepare_installer(artifact.path, work_dir, host)

        report("Running installer...")
        launcher = launcher_factory(config, host, work_dir)
        outcome = launcher.run(installer, silent=silent)

        retained = True
        if outcome.elevated:
            retained = cache.release_after_handoff(artifact, entry)

    report("Done.")
    return InstallResult(
        version=version,
        platform=platform_name,
        artifact_path=artifact.path,
        from_cache=artifact.from_cache,
        elevated=outcome.elevated,
        artifact_retained=retained,
        exit_code=outcome.exit_code,
    )
