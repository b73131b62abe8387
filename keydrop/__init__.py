"""Storage-backed file sharing service."""

__version__ = "0.1.0"
