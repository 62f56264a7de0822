"""
Capacity planning for placement groups shared across node groups.

The provider caps how many servers one placement group may hold but does not
stop several node groups from pointing at the same one. The aggregator adds up
the declared ``max_size`` of every group per placement group once, after the
registry is built, and reports the ones that could overflow.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from poolkeeper.core.entities.node_group import NodeGroup
from poolkeeper.core.errors import PlacementCapacityExceeded

logger = logging.getLogger(__name__)

MAX_PLACEMENT_GROUP_SIZE = 10


def placement_group_totals(groups: Iterable[NodeGroup]) -> Dict[int, int]:
    """Sum of ``max_size`` per referenced non-zero placement-group id."""
    totals: Dict[int, int] = defaultdict(int)
    for group in groups:
        if group.placement_group is None or not group.placement_group.constrained:
            continue
        totals[group.placement_group.id] += group.max_size
    return dict(totals)


def find_large_placement_groups(groups: Iterable[NodeGroup], threshold: int) -> List[int]:
    """Ids whose aggregated ``max_size`` is over ``threshold``, sorted ascending."""
    totals = placement_group_totals(groups)
    return sorted(pg_id for pg_id, total in totals.items() if total > threshold)


class PlacementAggregator:
    """Validates a complete set of node groups against a fixed threshold."""

    def __init__(self, threshold: int = MAX_PLACEMENT_GROUP_SIZE):
        if threshold < 0:
            raise ValueError(f"placement group threshold must be non-negative, got {threshold}")
        self.threshold = threshold

    def totals(self, groups: Iterable[NodeGroup]) -> Dict[int, int]:
        return placement_group_totals(groups)

    def overflowing(self, groups: Iterable[NodeGroup]) -> List[int]:
        return find_large_placement_groups(groups, self.threshold)

    def validate(self, groups: Iterable[NodeGroup]) -> Dict[int, int]:
        """
        Record each placement group's combined size and fail on overflow.

        Returns:
            Mapping of placement-group id to combined ``max_size``.

        Raises:
            PlacementCapacityExceeded: listing every offending id.
        """
        groups = list(groups)
        totals = self.totals(groups)
        for group in groups:
            if group.placement_group is not None and group.placement_group.constrained:
                group.placement_group.max_combined_size = totals[group.placement_group.id]

        large = sorted(pg_id for pg_id, total in totals.items() if total > self.threshold)
        if large:
            logger.error(
                "placement groups over the allowed maximum of %d: %s",
                self.threshold,
                ", ".join(str(pg_id) for pg_id in large),
            )
            raise PlacementCapacityExceeded(large, self.threshold)

        logger.debug("placement group totals within limit %d: %s", self.threshold, totals)
        return totals


__all__ = [
    "MAX_PLACEMENT_GROUP_SIZE",
    "PlacementAggregator",
    "find_large_placement_groups",
    "placement_group_totals",
]
