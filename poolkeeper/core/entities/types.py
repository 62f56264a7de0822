"""
Read-only views of objects owned by the cluster API and the cloud provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class ClusterNode:
    """A node object as reported by the cluster API."""

    name: str
    provider_id: str = ""
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class InventoryServer:
    """A live instance as reported by the cloud provider."""

    id: str
    name: str = ""
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ServerType:
    name: str
    cores: int = 0
    memory: float = 0.0
    description: str = ""


@dataclass(frozen=True)
class GpuConfig:
    label: str
    type: Optional[str]
    extended_resource_name: str


def coerce_cluster_node(node: "ClusterNode | Dict[str, object]") -> ClusterNode:
    """Accept either a :class:`ClusterNode` or its ``{"name", "provider_id", "labels"}`` mapping."""
    if isinstance(node, ClusterNode):
        return node
    return ClusterNode(
        name=str(node.get("name", "")),
        provider_id=str(node.get("provider_id") or ""),
        labels=dict(node.get("labels") or {}),  # type: ignore[arg-type]
    )
