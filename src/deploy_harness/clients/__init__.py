"""Clients for external services."""

from .platform import PlatformClient

__all__ = ["PlatformClient"]
