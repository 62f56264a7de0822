"""
Node-group entity definitions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from poolkeeper.core.errors import InventoryError, ScalingError
from poolkeeper.core.labels import provider_id_for

if TYPE_CHECKING:
    from poolkeeper.core.clients.base import InventoryClient
    from poolkeeper.core.coordination import ScalingCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeGroupSpec:
    """A parsed ``<min>:<max>:<instance-type>:<region>:<name>`` declaration."""

    name: str
    min_size: int
    max_size: int
    instance_type: str
    region: str

    def __str__(self) -> str:
        return f"{self.min_size}:{self.max_size}:{self.instance_type}:{self.region}:{self.name}"


@dataclass
class PlacementGroup:
    """Provider-side physical grouping shared by possibly several node groups."""

    id: int
    name: str = ""
    max_combined_size: int = 0

    @property
    def constrained(self) -> bool:
        return self.id != 0

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "max_combined_size": self.max_combined_size}


class NodeGroup:
    """
    Live state of one managed node group.

    ``target_size`` is only written while holding the registry's
    :class:`~poolkeeper.core.coordination.ScalingCoordinator`; plain reads
    return an unsynchronized snapshot.
    """

    def __init__(
        self,
        id: str,
        *,
        min_size: int,
        max_size: int,
        target_size: int,
        instance_type: str,
        region: str,
        inventory: "InventoryClient",
        coordinator: "ScalingCoordinator",
        placement_group: Optional[PlacementGroup] = None,
    ):
        self.id = id
        self.min_size = min_size
        self.max_size = max_size
        self.instance_type = instance_type.lower()
        self.region = region.lower()
        self.placement_group = placement_group
        self._target_size = target_size
        self._stale = False
        self._inventory = inventory
        self._coordinator = coordinator

    def __repr__(self) -> str:
        return (
            f"NodeGroup(id={self.id!r}, min={self.min_size}, max={self.max_size}, "
            f"target={self._target_size}, type={self.instance_type!r}, region={self.region!r})"
        )

    @property
    def coordinator(self) -> "ScalingCoordinator":
        return self._coordinator

    @property
    def stale(self) -> bool:
        return self._stale

    # ------------------------------------------------------------------
    # Reads

    def target_size(self) -> int:
        """
        Return the desired size, re-reading the live inventory after a refresh.

        Raises:
            InventoryError: if the inventory read following a refresh fails.
        """
        if self._stale:
            with self._coordinator.exclusive(f"re-read {self.id}"):
                return self._current_locked()
        return self._target_size

    def snapshot_target_size(self) -> int:
        return self._target_size

    def nodes(self) -> List[str]:
        """Provider ids of every live instance in the group."""
        return [provider_id_for(server.id) for server in self._inventory.list_instances(self.id)]

    def exist(self) -> bool:
        return True

    def debug(self) -> str:
        return f"{self.id} (min:{self.min_size} max:{self.max_size} target:{self._target_size})"

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "target_size": self._target_size,
            "instance_type": self.instance_type,
            "region": self.region,
            "placement_group": self.placement_group.to_dict() if self.placement_group else None,
            "stale": self._stale,
        }

    # ------------------------------------------------------------------
    # Size changes (all under the cluster update lock)

    def _reseed_locked(self) -> None:
        try:
            live = len(self._inventory.list_instances(self.id))
        except InventoryError:
            raise
        except Exception as exc:
            raise InventoryError(f"failed to get servers for node group {self.id} error: {exc}") from exc
        if live != self._target_size or self._stale:
            logger.info("Set node group %s size from %d to %d", self.id, self._target_size, live)
        self._target_size = live
        self._stale = False

    def _current_locked(self) -> int:
        if self._stale:
            self._reseed_locked()
        return self._target_size

    def mark_stale_locked(self) -> None:
        """Zero the target size until the next inventory read. Caller holds the lock."""
        self._target_size = 0
        self._stale = True

    def increase_size(self, delta: int) -> int:
        if delta <= 0:
            raise ScalingError(f"size increase must be positive, got {delta}")
        with self._coordinator.exclusive(f"increase {self.id} by {delta}"):
            current = self._current_locked()
            desired = current + delta
            if desired > self.max_size:
                raise ScalingError(
                    f"size increase too large, desired: {desired} max: {self.max_size} for node group {self.id}"
                )
            logger.info("Scaling node group %s from %d to %d", self.id, current, desired)
            self._target_size = desired
            return desired

    def decrease_target_size(self, delta: int) -> int:
        """Lower the target without deleting running instances."""
        if delta >= 0:
            raise ScalingError(f"size decrease must be negative, got {delta}")
        with self._coordinator.exclusive(f"decrease {self.id} by {delta}"):
            current = self._current_locked()
            desired = current + delta
            live = len(self._inventory.list_instances(self.id))
            if desired < live:
                raise ScalingError(
                    f"attempt to delete existing nodes, target size: {current} delta: {delta} "
                    f"existing nodes: {live} for node group {self.id}"
                )
            logger.info("Decreasing target size of node group %s from %d to %d", self.id, current, desired)
            self._target_size = desired
            return desired

    def reset_target_size(self, expected_delta: int = 0) -> int:
        """
        Re-seed the target size from the live inventory.

        If the inventory cannot be read, ``expected_delta`` is subtracted from
        the current target instead and the failure is logged.
        """
        with self._coordinator.exclusive(f"reset {self.id}"):
            try:
                self._reseed_locked()
            except Exception as exc:
                logger.warning(
                    "failed to set node pool %s size, using delta %d error: %s", self.id, expected_delta, exc
                )
                self._target_size = max(self._target_size - expected_delta, 0)
            return self._target_size
