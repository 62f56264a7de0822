"""
Cloud collaborator contracts and bundled implementations.
"""

from .base import InventoryClient, PlacementGroupClient  # noqa: F401
from .memory import InMemoryCloudClient  # noqa: F401

__all__ = [
    "InventoryClient",
    "PlacementGroupClient",
    "InMemoryCloudClient",
]
