"""Public API routers exposed by the FastAPI application."""

from . import files, health, usage

__all__ = ["files", "health", "usage"]
