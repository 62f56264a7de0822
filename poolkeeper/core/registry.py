"""
Registry of managed node groups.

The registry is built once from the parsed declarations and the provider's
current inventory, validated as a whole, and only then handed out. A failure
anywhere during :meth:`NodeGroupRegistry.build` raises a
:class:`~poolkeeper.core.errors.BootstrapError`; no partial registry exists.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, Iterable, Iterator, List, Optional

from poolkeeper.core.clients.base import InventoryClient, PlacementGroupClient
from poolkeeper.core.config import DEFAULT_LOOKUP_TIMEOUT, ClusterConfig
from poolkeeper.core.coordination import ScalingCoordinator
from poolkeeper.core.entities.node_group import NodeGroup, NodeGroupSpec, PlacementGroup
from poolkeeper.core.errors import (
    BootstrapInventoryError,
    ConfigurationError,
    MissingNodeConfig,
    PlacementGroupLookupTimeout,
    PlacementGroupNotFound,
    PlacementGroupResolutionError,
)
from poolkeeper.core.placement import MAX_PLACEMENT_GROUP_SIZE, PlacementAggregator

logger = logging.getLogger(__name__)


def resolve_placement_group(
    client: PlacementGroupClient,
    ref: str,
    timeout: float = DEFAULT_LOOKUP_TIMEOUT,
) -> PlacementGroup:
    """
    Look up ``ref`` and wait at most ``timeout`` seconds for the answer.

    Raises:
        PlacementGroupLookupTimeout: the lookup did not finish in time.
        PlacementGroupResolutionError: the lookup itself failed.
        PlacementGroupNotFound: the provider reports no such placement group.
    """
    future: Future = Future()

    def _lookup() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(client.get_placement_group(ref, timeout))
        except Exception as exc:
            future.set_exception(exc)

    # Daemon thread: a hung lookup never blocks interpreter exit.
    threading.Thread(target=_lookup, name=f"placement-lookup-{ref}", daemon=True).start()
    try:
        placement_group = future.result(timeout=timeout)
    except (FutureTimeoutError, TimeoutError) as exc:
        raise PlacementGroupLookupTimeout(ref, timeout) from exc
    except Exception as exc:
        raise PlacementGroupResolutionError(
            ref, f"Failed to verify if placement group `{ref}` exists error: {exc}"
        ) from exc

    if placement_group is None:
        raise PlacementGroupNotFound(ref)
    return placement_group


class NodeGroupRegistry:
    """Owns the mapping from group id to live :class:`NodeGroup` state."""

    def __init__(
        self,
        groups: Dict[str, NodeGroup],
        coordinator: ScalingCoordinator,
        *,
        placement_totals: Optional[Dict[int, int]] = None,
    ):
        self._groups = dict(groups)
        self.coordinator = coordinator
        self.placement_totals: Dict[int, int] = dict(placement_totals or {})

    @classmethod
    def build(
        cls,
        specs: Iterable[NodeGroupSpec],
        *,
        inventory: InventoryClient,
        placement_groups: PlacementGroupClient,
        cluster_config: Optional[ClusterConfig] = None,
        coordinator: Optional[ScalingCoordinator] = None,
        threshold: int = MAX_PLACEMENT_GROUP_SIZE,
        lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT,
    ) -> "NodeGroupRegistry":
        """
        Build and validate the registry.

        Args:
            specs: Parsed node-group declarations.
            inventory: Live instance inventory, used to seed target sizes.
            placement_groups: Resolves placement groups named in node configs.
            cluster_config: Per-group settings; when ``explicit_node_configs``
                is set every declared group must have an entry.
            coordinator: Shared cluster update lock; a new one by default.
            threshold: Maximum combined ``max_size`` per placement group.
            lookup_timeout: Seconds to wait for each placement group lookup.
        """
        cluster_config = cluster_config or ClusterConfig()
        coordinator = coordinator or ScalingCoordinator()

        if cluster_config.explicit_node_configs and not cluster_config.node_configs:
            raise ConfigurationError("No cluster config present: 'node_configs' is empty")

        groups: Dict[str, NodeGroup] = {}
        for spec in specs:
            if spec.name in groups:
                raise ConfigurationError(f"node group `{spec.name}` is declared more than once")

            try:
                servers = inventory.list_instances(spec.name)
            except Exception as exc:
                raise BootstrapInventoryError(f"Failed to get servers for node pool {spec} error: {exc}") from exc

            placement_group: Optional[PlacementGroup] = None
            if cluster_config.explicit_node_configs:
                node_config = cluster_config.node_config(spec.name)
                if node_config is None:
                    raise MissingNodeConfig(spec.name)
                if node_config.placement_group:
                    logger.debug(
                        "checking placement group %s for node group %s", node_config.placement_group, spec.name
                    )
                    placement_group = resolve_placement_group(
                        placement_groups, node_config.placement_group, lookup_timeout
                    )

            groups[spec.name] = NodeGroup(
                spec.name,
                min_size=spec.min_size,
                max_size=spec.max_size,
                target_size=len(servers),
                instance_type=spec.instance_type,
                region=spec.region,
                inventory=inventory,
                coordinator=coordinator,
                placement_group=placement_group,
            )
            logger.info(
                "node group %s registered: min=%d max=%d live=%d placement_group=%s",
                spec.name,
                spec.min_size,
                spec.max_size,
                len(servers),
                placement_group.id if placement_group else "-",
            )

        totals = PlacementAggregator(threshold).validate(groups.values())
        return cls(groups, coordinator, placement_totals=totals)

    # ------------------------------------------------------------------
    # Lookup

    def get(self, group_id: str) -> Optional[NodeGroup]:
        return self._groups.get(group_id)

    def groups(self) -> List[NodeGroup]:
        return list(self._groups.values())

    def names(self) -> List[str]:
        return list(self._groups)

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._groups

    def __iter__(self) -> Iterator[NodeGroup]:
        return iter(list(self._groups.values()))

    def __len__(self) -> int:
        return len(self._groups)

    # ------------------------------------------------------------------
    # Refresh

    def refresh(self) -> None:
        """
        Zero every group's target size until its next inventory read.

        Never raises: inventory problems show up on the next
        :meth:`NodeGroup.target_size` call instead. Safe to call while the
        current thread already holds the coordinator.
        """
        if self.coordinator.held_by_current_thread:
            self._mark_all_stale()
        else:
            with self.coordinator.exclusive("refresh"):
                self._mark_all_stale()
        logger.info("refreshed %d node groups", len(self._groups))

    def _mark_all_stale(self) -> None:
        for group in self._groups.values():
            group.mark_stale_locked()

    def snapshot(self) -> List[Dict[str, object]]:
        return [group.to_dict() for group in self._groups.values()]


__all__ = ["NodeGroupRegistry", "resolve_placement_group"]
