"""
Client-facing façade over a NodeGroupManagerActor.

The façade proxies all operations to the underlying actor while exposing a
synchronous API to library consumers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import ray

from poolkeeper.core.actors.management import ActorConfig, AutoscalerActor, NodeGroupManagerActor
from poolkeeper.core.clients.base import InventoryClient, PlacementGroupClient
from poolkeeper.core.entities.types import ClusterNode
from poolkeeper.core.errors import BootstrapError


class RemoteNodeGroupProvider:
    """Thin wrapper around NodeGroupManagerActor and its AutoscalerActor."""

    def __init__(
        self,
        inventory: InventoryClient,
        placement_groups: PlacementGroupClient,
        group_specs: Optional[List[str]] = None,
        *,
        name: str = "poolkeeper-node-groups",
        namespace: str | None = None,
        config_path: str | None = None,
    ):
        """
        Create and bootstrap the manager actor.

        Args:
            inventory: Inventory collaborator, shipped to the actor.
            placement_groups: Placement group collaborator, shipped to the actor.
            group_specs: Declaration strings; ``None`` uses the configuration.
            name: Logical name for the manager actor.
            namespace: Ray namespace to place the actors in.
            config_path: YAML configuration file read inside the actor.

        Raises:
            BootstrapError: if the registry could not be built.
        """
        self.name = name
        actor_config = ActorConfig(name=name, config_path=config_path)
        actor_options: dict[str, Any] = {}
        if namespace is not None:
            actor_options["namespace"] = namespace
        self._manager = NodeGroupManagerActor.options(**actor_options).remote(
            actor_config, inventory, placement_groups, group_specs
        )
        result = ray.get(self._manager.bootstrap.remote())
        if not result.get("success"):
            ray.kill(self._manager, no_restart=True)
            self._manager = None
            raise BootstrapError(result.get("error", "node group bootstrap failed"))
        self._autoscaler = AutoscalerActor.options(**actor_options).remote(
            ActorConfig(name=f"{name}-autoscaler"), self._manager
        )

    def _ensure_manager(self) -> ray.actor.ActorHandle:
        if self._manager is None:
            raise RuntimeError("RemoteNodeGroupProvider has been shut down")
        return self._manager

    def list_node_groups(self) -> List[Dict[str, Any]]:
        return ray.get(self._ensure_manager().list_node_groups.remote())["node_groups"]

    def node_group_for_node(self, node: ClusterNode) -> Any:
        return ray.get(self._ensure_manager().node_group_for_node.remote(node))

    def increase_size(self, group_id: str, delta: int) -> Any:
        return ray.get(self._ensure_manager().increase_size.remote(group_id, delta))

    def decrease_target_size(self, group_id: str, delta: int) -> Any:
        return ray.get(self._ensure_manager().decrease_target_size.remote(group_id, delta))

    def refresh(self) -> None:
        ray.get(self._ensure_manager().refresh.remote())

    def reconcile(self) -> Any:
        self._ensure_manager()
        return ray.get(self._autoscaler.reconcile.remote())

    def shutdown(self) -> None:
        if self._manager is None:
            return
        ray.kill(self._autoscaler, no_restart=True)
        ray.kill(self._manager, no_restart=True)
        self._manager = None
