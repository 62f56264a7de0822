"""
Exception hierarchy for the poolkeeper node-group core.

Bootstrap failures derive from :class:`BootstrapError` so that callers can
refuse to start on a single ``except`` clause; everything raised after the
registry is published is a plain :class:`PoolkeeperError`.
"""

from __future__ import annotations

from typing import Sequence


class PoolkeeperError(Exception):
    """Base class for all poolkeeper errors."""


class BootstrapError(PoolkeeperError):
    """The registry could not be built; no provider is returned."""


class ConfigurationError(BootstrapError):
    """Declarations or per-group configuration are inconsistent."""


class SpecParseError(ConfigurationError, ValueError):
    """A node-group declaration string is malformed."""


class InvalidNodeGroupName(SpecParseError):
    def __init__(self, name: str):
        super().__init__(
            f"invalid node group name `{name}`: must be alphanumeric, may contain "
            "'-', '.' or '_' and must start and end with an alphanumeric character"
        )
        self.name = name


class MissingNodeConfig(ConfigurationError):
    def __init__(self, group: str):
        super().__init__(f"No node config present for node group id `{group}`")
        self.group = group


class PlacementGroupResolutionError(BootstrapError):
    """Looking up a referenced placement group failed."""

    def __init__(self, ref: str, message: str):
        super().__init__(message)
        self.ref = ref


class PlacementGroupLookupTimeout(PlacementGroupResolutionError):
    def __init__(self, ref: str, timeout: float):
        super().__init__(ref, f"Timed out after {timeout:g}s checking if placement group `{ref}` exists.")
        self.timeout = timeout


class PlacementGroupNotFound(PlacementGroupResolutionError):
    def __init__(self, ref: str):
        super().__init__(ref, f"The requested placement group `{ref}` does not appear to exist.")


class PlacementCapacityExceeded(BootstrapError):
    def __init__(self, placement_group_ids: Sequence[int], threshold: int):
        ids = ", ".join(str(pg_id) for pg_id in placement_group_ids)
        super().__init__(
            f"The following placement groups have a potential size over the allowed maximum of {threshold}: {ids}."
        )
        self.placement_group_ids = list(placement_group_ids)
        self.threshold = threshold


class InventoryError(PoolkeeperError):
    """Transport failure reported by the inventory collaborator."""


class BootstrapInventoryError(BootstrapError, InventoryError):
    """The inventory could not be listed while seeding the registry."""


class NodeResolutionError(PoolkeeperError):
    """The live inventory could not be consulted while resolving a node."""


class ScalingError(PoolkeeperError, ValueError):
    """A size change was rejected by the group's bounds."""


class CapabilityNotImplemented(PoolkeeperError, NotImplementedError):
    def __init__(self, capability: str):
        super().__init__(f"{capability} is not implemented by this provider")
        self.capability = capability


__all__ = [
    "PoolkeeperError",
    "BootstrapError",
    "ConfigurationError",
    "SpecParseError",
    "InvalidNodeGroupName",
    "MissingNodeConfig",
    "PlacementGroupResolutionError",
    "PlacementGroupLookupTimeout",
    "PlacementGroupNotFound",
    "PlacementCapacityExceeded",
    "InventoryError",
    "BootstrapInventoryError",
    "NodeResolutionError",
    "ScalingError",
    "CapabilityNotImplemented",
]
