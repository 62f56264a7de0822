"""
Actor implementations that manage long-lived node-group state in the cluster.
"""

from .autoscaler import AutoscalerActor  # noqa: F401
from .config import ActorConfig  # noqa: F401
from .node_group_manager import NodeGroupManagerActor  # noqa: F401

__all__ = [
    "ActorConfig",
    "AutoscalerActor",
    "NodeGroupManagerActor",
]
