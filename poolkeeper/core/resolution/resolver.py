"""
Resolution of cluster nodes to their owning node group.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from poolkeeper.core.clients.base import InventoryClient
from poolkeeper.core.entities.node_group import NodeGroup
from poolkeeper.core.entities.types import ClusterNode
from poolkeeper.core.resolution.strategy import LookupResult, StrategySpec, build_lookup_chain

if TYPE_CHECKING:
    from poolkeeper.core.registry import NodeGroupRegistry

logger = logging.getLogger(__name__)


class NodeResolver:
    """
    Walk the lookup chain until one strategy decides the node's group name.

    An unowned node is not an error: :meth:`resolve` returns ``None`` when the
    deciding strategy finds no group label, when the label names a group that
    is not managed, or when no strategy decides at all. Only a failing
    inventory lookup raises (:class:`~poolkeeper.core.errors.NodeResolutionError`).
    """

    def __init__(
        self,
        registry: "NodeGroupRegistry",
        inventory: InventoryClient,
        strategies: Optional[Sequence[StrategySpec]] = None,
    ):
        self._registry = registry
        self.strategies = build_lookup_chain(strategies, inventory)

    def decide(self, node: ClusterNode) -> Optional[LookupResult]:
        for strategy in self.strategies:
            result = strategy.lookup(node)
            if result is not None:
                return result
        return None

    def resolve(self, node: ClusterNode) -> Optional[NodeGroup]:
        result = self.decide(node)
        if result is None or not result.group_name:
            logger.debug("node %s has no node group label, skipping", node.name)
            return None

        group = self._registry.get(result.group_name)
        if group is None:
            logger.debug(
                "node %s belongs to unmanaged node group %s (from %s)", node.name, result.group_name, result.source
            )
        return group


__all__ = ["NodeResolver"]
