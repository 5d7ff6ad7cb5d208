"""HTTP surface for the pixel service."""

from .app import create_app

__all__ = ["create_app"]
