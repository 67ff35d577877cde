"""Bootstrap installer for MITS11 releases."""

__version__ = "1.0.0"
