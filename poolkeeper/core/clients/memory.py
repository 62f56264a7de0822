"""
In-process cloud backend used by demos, tests and dry runs.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from poolkeeper.core.clients.base import InventoryClient, PlacementGroupClient
from poolkeeper.core.entities.node_group import PlacementGroup
from poolkeeper.core.entities.types import InventoryServer, ServerType
from poolkeeper.core.errors import InventoryError
from poolkeeper.core.labels import NODE_GROUP_LABEL, instance_id_from_provider_id

logger = logging.getLogger(__name__)


class InMemoryCloudClient(InventoryClient, PlacementGroupClient):
    """Keeps servers and placement groups in dictionaries."""

    def __init__(
        self,
        servers: Optional[Iterable[InventoryServer]] = None,
        placement_groups: Optional[Iterable[PlacementGroup]] = None,
        server_types: Optional[Iterable[ServerType]] = None,
    ):
        self._lock = threading.Lock()
        self.servers: Dict[str, InventoryServer] = {server.id: server for server in servers or ()}
        self.placement_groups: List[PlacementGroup] = list(placement_groups or ())
        self.server_types: List[ServerType] = list(server_types or ())
        self.fail_inventory = False

    def __getstate__(self) -> dict:
        state = self.__dict__.copy()
        state.pop("_lock", None)
        return state

    def __setstate__(self, state: dict) -> None:
        self.__dict__.update(state)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutation helpers

    def add_server(self, server_id: str, group: Optional[str] = None, **labels: str) -> InventoryServer:
        server_labels = dict(labels)
        if group is not None:
            server_labels[NODE_GROUP_LABEL] = group
        server = InventoryServer(id=server_id, name=server_id, labels=server_labels)
        with self._lock:
            self.servers[server_id] = server
        return server

    def remove_server(self, server_id: str) -> None:
        with self._lock:
            self.servers.pop(server_id, None)

    def _check_available(self) -> None:
        if self.fail_inventory:
            raise InventoryError("inventory backend unavailable")

    # ------------------------------------------------------------------
    # InventoryClient

    def list_instances(self, group_name: str) -> List[InventoryServer]:
        self._check_available()
        with self._lock:
            return [s for s in self.servers.values() if s.labels.get(NODE_GROUP_LABEL) == group_name]

    def find_instance(self, provider_id: str) -> Optional[InventoryServer]:
        self._check_available()
        instance_id = instance_id_from_provider_id(provider_id)
        if instance_id is None:
            return None
        with self._lock:
            return self.servers.get(instance_id)

    def list_server_types(self) -> List[ServerType]:
        self._check_available()
        return list(self.server_types)

    # ------------------------------------------------------------------
    # PlacementGroupClient

    def get_placement_group(self, ref: str, timeout: float) -> Optional[PlacementGroup]:
        for group in self.placement_groups:
            if ref == group.name or ref == str(group.id):
                return group
        logger.debug("placement group %s not found in memory backend", ref)
        return None
