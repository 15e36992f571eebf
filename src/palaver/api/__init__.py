"""HTTP service for palaver bots."""

from .main import create_app

__all__ = ["create_app"]
