"""
Domain entities used throughout the poolkeeper core.
"""

from .node_group import NodeGroup, NodeGroupSpec, PlacementGroup  # noqa: F401
from .resource import ResourceLimiter, ResourceSpec  # noqa: F401
from .types import ClusterNode, GpuConfig, InventoryServer, ServerType  # noqa: F401

__all__ = [
    "NodeGroup",
    "NodeGroupSpec",
    "PlacementGroup",
    "ResourceLimiter",
    "ResourceSpec",
    "ClusterNode",
    "GpuConfig",
    "InventoryServer",
    "ServerType",
]
