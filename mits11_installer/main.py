import argparse
import logging
import sys
from typing import Optional

from .core.bootstrap import run_install
from .core.config import InstallerConfig
from .core.errors import InstallerError, InterruptedRunError
from .utils.logger import configure_logging, log_file_path

logger = logging.getLogger(__name__)

EPILOG = """\
examples:
  mits11-installer
  mits11-installer alpha
  mits11-installer 5.0.1 --silent

environment:
  MITS11_CACHE_DIR   directory for downloaded packages
  MITS11_KEEP_TEMP   set to 1 to keep temporary files for debugging
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mits11-installer",
        description="Download, verify and run the MITS11 installer",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "target",
        nargs="?",
        default="",
        help="stable (default), latest, alpha, nightly, or an explicit version such as 5.0.1",
    )
    parser.add_argument("-s", "--silent", action="store_true", help="Run the installer non-interactively")
    parser.add_argument("--debug", action="store_true", help="Verbose logging to the console")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    try:
        config = InstallerConfig.from_env()
        result = run_install(args.target, args.silent, config)
        logger.info("Installed MITS11 %s (%s)", result.version, result.platform)
        return result.exit_code
    except InstallerError as e:
        logger.error("Install failed: %s", e)
        print(str(e), file=sys.stderr)
        print(f"Details: {log_file_path()}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        logger.warning("Install interrupted by user")
        print("Interrupted", file=sys.stderr)
        return InterruptedRunError.exit_code


if __name__ == "__main__":
    sys.exit(main())
