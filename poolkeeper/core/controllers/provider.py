"""
Provider façade consumed by the autoscaling control loop.

``build_provider`` is the single bootstrap entry point: it parses the
declarations, builds and validates the registry, and returns a ready
:class:`NodeGroupProvider`. Every start-up violation raises a
:class:`~poolkeeper.core.errors.BootstrapError`; whether that terminates the
process is the caller's decision.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from poolkeeper.core.clients.base import InventoryClient, PlacementGroupClient
from poolkeeper.core.config import ProviderConfig, get_provider_config
from poolkeeper.core.coordination import ScalingCoordinator
from poolkeeper.core.entities.node_group import NodeGroup, NodeGroupSpec
from poolkeeper.core.entities.resource import ResourceLimiter
from poolkeeper.core.entities.types import ClusterNode, GpuConfig
from poolkeeper.core.errors import BootstrapError, CapabilityNotImplemented
from poolkeeper.core.labels import GPU_LABEL, GPU_RESOURCE_NAME, PROVIDER_NAME
from poolkeeper.core.registry import NodeGroupRegistry
from poolkeeper.core.resolution import NodeResolver
from poolkeeper.core.resolution.strategy import StrategySpec
from poolkeeper.core.specs import parse_node_group_spec

logger = logging.getLogger(__name__)


class NodeGroupProvider:
    """Adapter surface composing the registry, the resolver and the coordinator."""

    def __init__(
        self,
        registry: NodeGroupRegistry,
        inventory: InventoryClient,
        *,
        resource_limiter: Optional[ResourceLimiter] = None,
        lookup_strategies: Optional[Sequence[StrategySpec]] = None,
    ):
        self.registry = registry
        self._inventory = inventory
        self._resource_limiter = resource_limiter or ResourceLimiter()
        self.resolver = NodeResolver(registry, inventory, lookup_strategies)

    @property
    def coordinator(self) -> ScalingCoordinator:
        return self.registry.coordinator

    def name(self) -> str:
        return PROVIDER_NAME

    def node_groups(self) -> List[NodeGroup]:
        """All node groups configured for this provider."""
        return self.registry.groups()

    def node_group_for_node(self, node: ClusterNode) -> Optional[NodeGroup]:
        """
        Return the group owning ``node``.

        ``None`` means the node should not be processed by the autoscaler.

        Raises:
            NodeResolutionError: the inventory lookup failed.
        """
        return self.resolver.resolve(node)

    def has_instance(self, node: ClusterNode) -> bool:
        raise CapabilityNotImplemented("has_instance")

    def pricing(self):
        raise CapabilityNotImplemented("pricing")

    def new_node_group(
        self,
        machine_type: str,
        labels: Dict[str, str],
        system_labels: Optional[Dict[str, str]] = None,
        taints: Optional[Iterable[object]] = None,
        extra_resources: Optional[Dict[str, float]] = None,
    ) -> NodeGroup:
        raise CapabilityNotImplemented("new_node_group")

    def get_available_machine_types(self) -> List[str]:
        return [server_type.name for server_type in self._inventory.list_server_types()]

    def get_resource_limiter(self) -> ResourceLimiter:
        return self._resource_limiter

    def gpu_label(self) -> str:
        return GPU_LABEL

    def get_available_gpu_types(self) -> Optional[Dict[str, object]]:
        return None

    def get_node_gpu_config(self, node: ClusterNode) -> Optional[GpuConfig]:
        if GPU_LABEL not in node.labels:
            return None
        return GpuConfig(
            label=GPU_LABEL,
            type=node.labels.get(GPU_LABEL) or None,
            extended_resource_name=GPU_RESOURCE_NAME,
        )

    def cleanup(self) -> None:
        return None

    def refresh(self) -> None:
        """Called before every control-loop iteration; never raises."""
        self.registry.refresh()


def build_provider(
    group_specs: Optional[Iterable[str]] = None,
    *,
    inventory: InventoryClient,
    placement_groups: PlacementGroupClient,
    config: Optional[ProviderConfig] = None,
    resource_limiter: Optional[ResourceLimiter] = None,
) -> NodeGroupProvider:
    """
    Bootstrap the provider.

    Args:
        group_specs: Declaration strings; defaults to ``cluster.node_group_specs``
            from the configuration.
        inventory: Live instance inventory collaborator.
        placement_groups: Placement group lookup collaborator.
        config: Provider configuration; loaded via :func:`get_provider_config`
            when omitted.
        resource_limiter: Overrides ``resource_limits`` from the configuration.

    Raises:
        BootstrapError: on any configuration, placement or capacity violation.
    """
    try:
        config = config or get_provider_config()
        raw_specs = list(group_specs) if group_specs is not None else list(config.node_group_specs)

        specs: List[NodeGroupSpec] = []
        for raw in raw_specs:
            try:
                specs.append(parse_node_group_spec(raw))
            except BootstrapError:
                logger.error("Failed to parse pool spec `%s`", raw)
                raise

        registry = NodeGroupRegistry.build(
            specs,
            inventory=inventory,
            placement_groups=placement_groups,
            cluster_config=config.cluster,
            threshold=config.placement.max_group_size,
            lookup_timeout=config.placement.lookup_timeout,
        )
    except BootstrapError as exc:
        logger.error("Failed to create node group provider: %s", exc)
        raise

    logger.info("node group provider ready with %d groups", len(registry))
    return NodeGroupProvider(
        registry,
        inventory,
        resource_limiter=resource_limiter or config.resource_limits,
        lookup_strategies=config.lookup_order(),
    )


__all__ = ["NodeGroupProvider", "build_provider"]
