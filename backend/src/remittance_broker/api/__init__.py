"""HTTP adapter for the remittance broker."""

from .app import create_app

__all__ = ["create_app"]
