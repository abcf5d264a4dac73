"""FastAPI application wiring (factory, lifespan, exception handlers)."""

from .main import create_app

__all__ = ["create_app"]
