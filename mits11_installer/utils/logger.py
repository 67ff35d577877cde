import logging
import os
import platform
from pathlib import Path
from typing import Optional


LOG_FILE_NAME = "mits11-installer.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _default_log_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA") or str(Path.home())
        return Path(base) / "MITS11" / "logs"
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Logs" / "MITS11"
    return Path.home() / ".local" / "state" / "mits11" / "logs"


def log_file_path(log_dir: Optional[Path] = None) -> Path:
    return (log_dir or _default_log_dir()) / LOG_FILE_NAME


def _file_handler(log_file: Path, level: int, formatter: logging.Formatter) -> Optional[logging.Handler]:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        return None
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(debug: bool, log_dir: Optional[Path] = None) -> logging.Logger:
    """Route records to the per-user log file, and to stderr with ``debug``.

    The log file always receives INFO and above so a failed install can be
    diagnosed after the fact. An unwritable log location is not an error.
    """
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger()
    logger.handlers.clear()
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    if debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    file_handler = _file_handler(log_file_path(log_dir), level, formatter)
    if file_handler is not None:
        logger.addHandler(file_handler)
    elif not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
