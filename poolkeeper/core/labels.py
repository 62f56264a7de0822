"""
Label keys and provider identifiers shared with the cluster and the cloud.
"""

from __future__ import annotations

from typing import Optional

LABEL_NAMESPACE = "poolkeeper"

# Carried by both cluster nodes and provider instances; value is the owning group's name.
NODE_GROUP_LABEL = f"{LABEL_NAMESPACE}/node-group"
# Marks GPU-bearing nodes.
GPU_LABEL = f"{LABEL_NAMESPACE}/gpu-node"

PROVIDER_NAME = "poolkeeper"
PROVIDER_ID_PREFIX = f"{PROVIDER_NAME}://"

GPU_RESOURCE_NAME = "nvidia.com/gpu"


def provider_id_for(instance_id: str | int) -> str:
    return f"{PROVIDER_ID_PREFIX}{instance_id}"


def instance_id_from_provider_id(provider_id: str) -> Optional[str]:
    """Strip the scheme prefix; ``None`` when the id belongs to another provider."""
    if not provider_id or not provider_id.startswith(PROVIDER_ID_PREFIX):
        return None
    instance_id = provider_id[len(PROVIDER_ID_PREFIX):]
    return instance_id or None


__all__ = [
    "LABEL_NAMESPACE",
    "NODE_GROUP_LABEL",
    "GPU_LABEL",
    "PROVIDER_NAME",
    "PROVIDER_ID_PREFIX",
    "GPU_RESOURCE_NAME",
    "provider_id_for",
    "instance_id_from_provider_id",
]
