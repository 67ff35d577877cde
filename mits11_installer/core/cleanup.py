from __future__ import annotations

import logging
import shutil
import signal
import tempfile
import threading
from pathlib import Path
from typing import Callable, Optional

from .errors import InterruptedRunError

logger = logging.getLogger(__name__)

TEMP_PREFIX = "mits11-install-"


def _raise_interrupted(signum, _frame) -> None:
    raise InterruptedRunError(f"Interrupted by signal {signum}")


class TempWorkspace:
    """Process-private working directory removed on every exit path.

    SIGTERM (and SIGHUP where available) are turned into ``InterruptedRunError``
    while the workspace is active so that interruption unwinds through
    ``__exit__`` like any other fatal error. Set ``keep`` to leave the
    directory behind for post-mortem inspection.
    Entering yields the directory path.
    """

    def __init__(self, keep: bool = False, report: Optional[Callable[[str], None]] = None):
        self.keep = keep
        self.report = report or (lambda _msg: None)
        self.path: Optional[Path] = None
        self._previous_handlers: dict[int, object] = {}

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        for name in ("SIGTERM", "SIGHUP"):
            signum = getattr(signal, name, None)
            if signum is None:
                continue
            self._previous_handlers[signum] = signal.signal(signum, _raise_interrupted)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def __enter__(self) -> Path:
        path = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
        self.path = path
        logger.debug("Created temporary workspace %s", path)
        self._install_signal_handlers()
        return path

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._restore_signal_handlers()
        self.release()
        return False

    def release(self) -> None:
        path = self.path
        if path is None:
            return
        if self.keep:
            logger.warning("Keeping temporary workspace %s", path)
            self.report(f"Temporary files kept in {path}")
            return
        try:
            shutil.rmtree(path)
            logger.debug("Removed temporary workspace %s", path)
        except FileNotFoundError:
            pass
        except OSError as cleanup_error:
            logger.warning("Could not remove temporary workspace %s: %s", path, cleanup_error)
        self.path = None
