"""HTTP surface for the signal system."""
from .server import create_app

__all__ = ["create_app"]
