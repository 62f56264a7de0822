"""
Contracts of the cloud collaborators consumed by the node-group core.

Concrete implementations own the transport (HTTP client, credentials,
request timeouts). Transport failures must be raised as
:class:`~poolkeeper.core.errors.InventoryError` or any other exception;
"not found" is always reported as ``None``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from poolkeeper.core.entities.node_group import PlacementGroup
from poolkeeper.core.entities.types import InventoryServer, ServerType


class InventoryClient(ABC):
    """Live instance inventory of the cloud provider."""

    @abstractmethod
    def list_instances(self, group_name: str) -> List[InventoryServer]:
        """Return every instance labelled as belonging to ``group_name``."""

    @abstractmethod
    def find_instance(self, provider_id: str) -> Optional[InventoryServer]:
        """Return the instance behind ``provider_id`` or ``None`` if it does not exist."""

    def list_server_types(self) -> List[ServerType]:
        """Machine types that can be requested from the provider."""
        return []


class PlacementGroupClient(ABC):
    """Provider-side placement group lookups."""

    @abstractmethod
    def get_placement_group(self, ref: str, timeout: float) -> Optional[PlacementGroup]:
        """
        Look up a placement group by id or name.

        Args:
            ref: Placement group id or name as written in the node config.
            timeout: Deadline in seconds the caller is willing to wait.

        Returns:
            The placement group, or ``None`` when the provider reports that it
            does not exist.
        """
