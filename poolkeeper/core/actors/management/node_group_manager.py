"""
NodeGroupManager actor.

Hosts a bootstrapped :class:`~poolkeeper.core.controllers.provider.NodeGroupProvider`
so that a control loop running inside a Ray cluster can share one registry
(and one cluster update lock) across drivers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import ray

from .config import ActorConfig
from poolkeeper.core.clients.base import InventoryClient, PlacementGroupClient
from poolkeeper.core.config import load_provider_config
from poolkeeper.core.controllers.provider import NodeGroupProvider, build_provider
from poolkeeper.core.entities.types import ClusterNode, coerce_cluster_node
from poolkeeper.core.errors import BootstrapError, PoolkeeperError
from poolkeeper.core.utils import configure_runtime_logging

logger = logging.getLogger(__name__)


@ray.remote
class NodeGroupManagerActor:
    """Owns the node-group registry for one cluster."""

    def __init__(
        self,
        config: ActorConfig,
        inventory: InventoryClient,
        placement_groups: PlacementGroupClient,
        group_specs: Optional[List[str]] = None,
    ):
        configure_runtime_logging(component=config.name)
        self.config = config
        self._inventory = inventory
        self._placement_groups = placement_groups
        self._group_specs = group_specs
        self.provider: Optional[NodeGroupProvider] = None
        logger.debug("NodeGroupManagerActor[%s] initialised", config.name)

    def bootstrap(self) -> dict:
        if self.provider is not None:
            return {"success": True, "node_groups": len(self.provider.node_groups())}
        try:
            provider_config = load_provider_config(
                Path(self.config.config_path).expanduser() if self.config.config_path else None
            )
            self.provider = build_provider(
                self._group_specs,
                inventory=self._inventory,
                placement_groups=self._placement_groups,
                config=provider_config,
            )
        except BootstrapError as exc:
            return {"success": False, "error": str(exc), "kind": type(exc).__name__}
        logger.info("NodeGroupManagerActor[%s] bootstrapped", self.config.name)
        return {"success": True, "node_groups": len(self.provider.node_groups())}

    def _require_provider(self) -> NodeGroupProvider:
        if self.provider is None:
            raise RuntimeError(f"NodeGroupManagerActor[{self.config.name}] is not bootstrapped")
        return self.provider

    def list_node_groups(self) -> dict:
        provider = self._require_provider()
        return {"success": True, "node_groups": [group.to_dict() for group in provider.node_groups()]}

    def node_group_for_node(self, node: "ClusterNode | Dict[str, object]") -> dict:
        provider = self._require_provider()
        try:
            group = provider.node_group_for_node(coerce_cluster_node(node))
        except PoolkeeperError as exc:
            return {"success": False, "error": str(exc)}
        return {"success": True, "node_group": group.id if group else None}

    def _scale(self, group_id: str, delta: int, *, increase: bool) -> dict:
        group = self._require_provider().registry.get(group_id)
        if group is None:
            return {"success": False, "error": f"Node group '{group_id}' not found"}
        try:
            size = group.increase_size(delta) if increase else group.decrease_target_size(delta)
        except PoolkeeperError as exc:
            logger.warning("node group %s resize by %d rejected: %s", group_id, delta, exc)
            return {"success": False, "error": str(exc)}
        return {"success": True, "node_group": group_id, "target_size": size}

    def increase_size(self, group_id: str, delta: int) -> dict:
        return self._scale(group_id, delta, increase=True)

    def decrease_target_size(self, group_id: str, delta: int) -> dict:
        return self._scale(group_id, delta, increase=False)

    def refresh(self) -> dict:
        self._require_provider().refresh()
        return {"success": True}

    def target_sizes(self) -> dict:
        """Read every group's target size, re-reading inventory for refreshed groups."""
        sizes: Dict[str, int] = {}
        errors: Dict[str, str] = {}
        for group in self._require_provider().node_groups():
            try:
                sizes[group.id] = group.target_size()
            except PoolkeeperError as exc:
                errors[group.id] = str(exc)
        result: dict = {"success": not errors, "target_sizes": sizes}
        if errors:
            result["errors"] = errors
        return result
