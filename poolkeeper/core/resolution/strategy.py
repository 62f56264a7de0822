"""
Ordered lookup strategies used to find the node group owning a cluster node.

The cloud inventory and the cluster API can disagree for a while (a server
is gone but its node object lingers, or the other way round). Each strategy
looks at one source and either decides the owning group name, or passes so
that the next strategy in the list is consulted.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Type, Union

from poolkeeper.core.clients.base import InventoryClient
from poolkeeper.core.entities.types import ClusterNode
from poolkeeper.core.errors import NodeResolutionError
from poolkeeper.core.labels import NODE_GROUP_LABEL

logger = logging.getLogger(__name__)

StrategyResolver = Callable[[Optional[InventoryClient]], "NodeLookupStrategy"]
StrategySpec = Union[str, "NodeLookupStrategy", Type["NodeLookupStrategy"]]

DEFAULT_LOOKUP_ORDER: tuple[str, ...] = ("inventory", "node_label")


@dataclass(frozen=True)
class LookupResult:
    """A decision taken by one strategy; ``group_name`` is ``None`` for unowned nodes."""

    group_name: Optional[str]
    source: str


class NodeLookupStrategy(ABC):
    """Base class for all node lookup strategies."""

    name = "base"

    @abstractmethod
    def lookup(self, node: ClusterNode) -> Optional[LookupResult]:
        """Return a decision, or ``None`` to defer to the next strategy."""


class InventoryLabelLookup(NodeLookupStrategy):
    """Read the group label of the live server behind the node's provider id."""

    name = "inventory"

    def __init__(self, inventory: InventoryClient):
        self._inventory = inventory

    def lookup(self, node: ClusterNode) -> Optional[LookupResult]:
        try:
            server = self._inventory.find_instance(node.provider_id)
        except Exception as exc:
            raise NodeResolutionError(
                f"failed to check if server {node.provider_id} exists error: {exc}"
            ) from exc

        if server is None:
            logger.debug("failed to find server for node %s", node.name)
            return None
        # A live server decides ownership on its own; a missing label means unowned.
        return LookupResult(group_name=server.labels.get(NODE_GROUP_LABEL), source=self.name)


class NodeLabelLookup(NodeLookupStrategy):
    """Fall back to the group label carried by the cluster node object."""

    name = "node_label"

    def lookup(self, node: ClusterNode) -> Optional[LookupResult]:
        return LookupResult(group_name=node.labels.get(NODE_GROUP_LABEL), source=self.name)


_STRATEGY_REGISTRY: dict[str, StrategyResolver] = {}


def register_lookup_strategy(name: str, factory: StrategyResolver, *, replace: bool = False) -> None:
    """
    Register a lookup strategy under ``name``.

    Args:
        name: Strategy name, normalised to lower case.
        factory: Callable receiving the inventory client and returning a strategy.
        replace: Allow overriding an existing registration.
    """
    key = name.strip().lower()
    if not key:
        raise ValueError("Strategy name must be a non-empty string.")
    if key in _STRATEGY_REGISTRY and not replace:
        raise ValueError(f"Lookup strategy '{key}' already registered.")
    _STRATEGY_REGISTRY[key] = factory


def unregister_lookup_strategy(name: str) -> None:
    _STRATEGY_REGISTRY.pop(name.strip().lower(), None)


def available_lookup_strategies() -> tuple[str, ...]:
    return tuple(sorted(_STRATEGY_REGISTRY))


def create_lookup_strategy(
    strategy: StrategySpec,
    *,
    inventory: Optional[InventoryClient] = None,
) -> NodeLookupStrategy:
    """
    Build a strategy from a registered name, a subclass or an instance.

    Subclasses are instantiated with the inventory client when their
    constructor takes one.
    """
    if isinstance(strategy, NodeLookupStrategy):
        return strategy

    if isinstance(strategy, str):
        key = strategy.strip().lower()
        try:
            factory = _STRATEGY_REGISTRY[key]
        except KeyError as exc:
            raise ValueError(
                f"Unknown lookup strategy '{strategy}'. "
                f"Available strategies: {', '.join(available_lookup_strategies()) or '<none>'}"
            ) from exc
        return factory(inventory)

    if isinstance(strategy, type) and issubclass(strategy, NodeLookupStrategy):
        if issubclass(strategy, InventoryLabelLookup):
            return strategy(inventory)  # type: ignore[arg-type]
        return strategy()

    raise TypeError("Lookup strategy must be a name, NodeLookupStrategy subclass or instance.")


def _require_inventory(inventory: Optional[InventoryClient]) -> InventoryClient:
    if inventory is None:
        raise ValueError("The 'inventory' lookup strategy needs an inventory client.")
    return inventory


def restore_default_strategies() -> None:
    """Reset the registry to the built-in strategies (intended for tests)."""
    _STRATEGY_REGISTRY.clear()
    register_lookup_strategy("inventory", lambda inventory: InventoryLabelLookup(_require_inventory(inventory)))
    register_lookup_strategy("node_label", lambda _inventory: NodeLabelLookup())


restore_default_strategies()


def build_lookup_chain(
    strategies: Optional[Sequence[StrategySpec]],
    inventory: Optional[InventoryClient],
) -> list[NodeLookupStrategy]:
    order = list(strategies) if strategies else list(DEFAULT_LOOKUP_ORDER)
    return [create_lookup_strategy(item, inventory=inventory) for item in order]


__all__ = [
    "DEFAULT_LOOKUP_ORDER",
    "LookupResult",
    "NodeLookupStrategy",
    "InventoryLabelLookup",
    "NodeLabelLookup",
    "available_lookup_strategies",
    "build_lookup_chain",
    "create_lookup_strategy",
    "register_lookup_strategy",
    "restore_default_strategies",
    "unregister_lookup_strategy",
]
