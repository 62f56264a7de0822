"""
Node-to-group resolution for the poolkeeper core.
"""

from __future__ import annotations

from .resolver import NodeResolver
from .strategy import (
    DEFAULT_LOOKUP_ORDER,
    InventoryLabelLookup,
    LookupResult,
    NodeLabelLookup,
    NodeLookupStrategy,
    available_lookup_strategies,
    create_lookup_strategy,
    register_lookup_strategy,
    restore_default_strategies,
    unregister_lookup_strategy,
)

__all__ = [
    "NodeResolver",
    "DEFAULT_LOOKUP_ORDER",
    "InventoryLabelLookup",
    "LookupResult",
    "NodeLabelLookup",
    "NodeLookupStrategy",
    "available_lookup_strategies",
    "create_lookup_strategy",
    "register_lookup_strategy",
    "restore_default_strategies",
    "unregister_lookup_strategy",
]
