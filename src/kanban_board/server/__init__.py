"""HTTP surface for the board service."""

from .api import create_app

__all__ = ["create_app"]
