from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import requests  # type: ignore[import-untyped]

from .. import __version__
from ..core.errors import PackagingError, ResolutionError

logger = logging.getLogger(__name__)

USER_AGENT = f"MITS11-Installer/{__version__}"
CHUNK_SIZE = 1024 * 1024

ProgressCallback = Callable[[int, int], None]


class ReleaseClient:
    """Thin GET-only wrapper over a requests session; failures are fatal."""

    def __init__(self, timeout: tuple[int, int] = (10, 60), session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def _get(self, url: str, *, stream: bool = False):
        logger.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout, stream=stream)
        except requests.RequestException as e:
            raise ResolutionError(f"Failed to download {url}: {e}") from e
        status = int(response.status_code)
        if status >= 400:
            response.close()
            raise ResolutionError(f"Failed to download {url}: HTTP {status}")
        return response

    def get_text(self, url: str) -> str:
        response = self._get(url)
        try:
            return response.text
        finally:
            response.close()

    def download(self, url: str, dest: Path, progress: Optional[ProgressCallback] = None) -> Path:
        response = self._get(url, stream=True)
        try:
            total = int(response.headers.get("content-length", 0) or 0)
            done = 0
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    done += len(chunk)
                    if progress:
                        progress(done, total)
        except requests.RequestException as e:
            raise ResolutionError(f"Failed to download {url}: {e}") from e
        except OSError as e:
            # RequestException is an OSError too; this branch is local file I/O only.
            raise PackagingError(f"Cannot write download to {dest}: {e}") from e
        finally:
            response.close()
        logger.info("Downloaded %s bytes from %s to %s", done, url, dest)
        return dest
