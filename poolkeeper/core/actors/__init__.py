"""
Ray actor implementations that host the poolkeeper registry.
"""

from . import management  # noqa: F401

__all__ = ["management"]
