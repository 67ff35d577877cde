class InstallerError(Exception):
    """Fatal condition that ends the run."""

    exit_code = 1


class TargetValidationError(InstallerError):
    """Malformed target selector or configuration value."""

    exit_code = 2


class UnsupportedPlatformError(InstallerError):
    """Host OS or CPU architecture outside the supported set."""

    exit_code = 3


class MissingToolError(InstallerError):
    """A required external executable is not available."""

    exit_code = 3


class ResolutionError(InstallerError):
    """Channel pointer or manifest could not be retrieved."""

    exit_code = 4


class ManifestError(ResolutionError):
    """Manifest lacks a usable entry for the platform."""


class IntegrityError(InstallerError):
    """Downloaded bytes do not match the manifest checksum."""

    exit_code = 5


class PackagingError(InstallerError):
    """Archive is unusable or does not contain exactly one installer."""

    exit_code = 6


class ElevationError(InstallerError):
    """Administrator/root privileges could not be obtained."""

    exit_code = 7


class ElevationTimeoutError(ElevationError):
    exit_code = 8


class InstallerFailedError(InstallerError):
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code if exit_code else 1


class InterruptedRunError(InstallerError):
    exit_code = 130
