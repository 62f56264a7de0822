"""Configuration helpers for poolkeeper.

This module loads YAML configuration describing the cluster's node groups,
per-group settings and node lookup order.  Configuration precedence:

1. Environment variable ``POOLKEEPER_CONFIG`` pointing to a YAML file.
2. ``poolkeeper.yaml`` in the current working directory.
3. Built-in defaults bundled with the package (``config/default.yaml``).
"""

from __future__ import annotations

import importlib
import inspect
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import yaml

from poolkeeper.core.clients.base import InventoryClient
from poolkeeper.core.entities.resource import ResourceLimiter
from poolkeeper.core.errors import ConfigurationError
from poolkeeper.core.placement import MAX_PLACEMENT_GROUP_SIZE
from poolkeeper.core.resolution.strategy import (
    DEFAULT_LOOKUP_ORDER,
    NodeLookupStrategy,
    available_lookup_strategies,
    register_lookup_strategy,
    unregister_lookup_strategy,
)

__all__ = [
    "ClusterConfig",
    "NodeConfig",
    "PlacementConfig",
    "ProviderConfig",
    "StrategyConfigEntry",
    "build_provider_config",
    "get_provider_config",
    "load_provider_config",
    "reset_provider_config",
]


_ENV_VAR = "POOLKEEPER_CONFIG"
DEFAULT_LOOKUP_TIMEOUT = 10.0


@dataclass
class NodeConfig:
    """Per-group settings that do not fit in the declaration string."""

    placement_group: str = ""
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class ClusterConfig:
    node_configs: Dict[str, NodeConfig] = field(default_factory=dict)
    # True when the ``node_configs`` section is present: every group must then have an entry.
    explicit_node_configs: bool = False

    def node_config(self, group: str) -> Optional[NodeConfig]:
        return self.node_configs.get(group)


@dataclass
class PlacementConfig:
    max_group_size: int = MAX_PLACEMENT_GROUP_SIZE
    lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT


@dataclass
class StrategyConfigEntry:
    name: str
    import_path: Optional[str] = None
    enabled: bool = True


@dataclass
class ProviderConfig:
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    node_group_specs: List[str] = field(default_factory=list)
    placement: PlacementConfig = field(default_factory=PlacementConfig)
    lookup_strategies: List[StrategyConfigEntry] = field(default_factory=list)
    resource_limits: ResourceLimiter = field(default_factory=ResourceLimiter)

    def lookup_order(self) -> List[str]:
        if not self.lookup_strategies:
            return list(DEFAULT_LOOKUP_ORDER)
        return [entry.name for entry in self.lookup_strategies if entry.enabled]


_provider_config: Optional[ProviderConfig] = None


def _resolve_config_path() -> Optional[Path]:
    env_path = os.environ.get(_ENV_VAR)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate.is_file():
            return candidate

    cwd_file = Path.cwd() / "poolkeeper.yaml"
    if cwd_file.is_file():
        return cwd_file
    return None


def _safe_load(fh, source: str) -> Dict[str, object]:
    try:
        data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"failed to parse config {source}: {exc}") from exc
    return data or {}


def _load_yaml_dict(path: Optional[Path] = None) -> Dict[str, object]:
    path = path or _resolve_config_path()
    if path is not None:
        with path.open("r", encoding="utf-8") as fh:
            return _safe_load(fh, str(path))

    # Fallback to bundled default configuration
    from importlib import resources

    with resources.files("poolkeeper.config").joinpath("default.yaml").open("r", encoding="utf-8") as fh:
        return _safe_load(fh, "default.yaml")


def _mapping(data: Dict[str, object], key: str) -> Dict[str, object]:
    node = data.get(key) or {}
    if not isinstance(node, dict):
        raise ConfigurationError(f"'{key}' section must be a mapping")
    return node


def _build_cluster_config(data: Dict[str, object]) -> ClusterConfig:
    cluster = _mapping(data, "cluster")
    if "node_configs" not in cluster:
        return ClusterConfig()

    raw_configs = cluster.get("node_configs") or {}
    if not isinstance(raw_configs, dict):
        raise ConfigurationError("'cluster.node_configs' must map node group names to settings")

    node_configs: Dict[str, NodeConfig] = {}
    for name, raw in raw_configs.items():
        raw = raw or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"node config for `{name}` must be a mapping")
        placement_group = raw.get("placement_group")
        node_configs[str(name)] = NodeConfig(
            placement_group="" if placement_group is None else str(placement_group).strip(),
            labels={str(k): str(v) for k, v in (raw.get("labels") or {}).items()},
        )
    return ClusterConfig(node_configs=node_configs, explicit_node_configs=True)


def _coerce_strategy_entry(raw: object) -> StrategyConfigEntry:
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict):
        raise ConfigurationError("Each lookup strategy must be a name or a mapping")
    name = str(raw.get("name", "")).strip().lower()
    if not name:
        raise ConfigurationError("Lookup strategy entry requires a non-empty 'name'")
    import_path = raw.get("import")
    if import_path is not None:
        import_path = str(import_path).strip()
    enabled = bool(raw.get("enabled", True))
    return StrategyConfigEntry(name=name, import_path=import_path, enabled=enabled)


def build_provider_config(data: Dict[str, object]) -> ProviderConfig:
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"configuration root must be a mapping, got {type(data).__name__}"
        )
    cluster = _build_cluster_config(data)

    raw_specs = _mapping(data, "cluster").get("node_group_specs") or []
    if not isinstance(raw_specs, list):
        raise ConfigurationError("'cluster.node_group_specs' must be a list of declarations")

    placement = _mapping(data, "placement")
    try:
        placement_config = PlacementConfig(
            max_group_size=int(placement.get("max_group_size", MAX_PLACEMENT_GROUP_SIZE)),
            lookup_timeout=float(placement.get("lookup_timeout", DEFAULT_LOOKUP_TIMEOUT)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid 'placement' section: {exc}") from exc
    if placement_config.lookup_timeout <= 0:
        raise ConfigurationError("'placement.lookup_timeout' must be positive")
    if placement_config.max_group_size < 0:
        raise ConfigurationError("'placement.max_group_size' must be non-negative")

    raw_entries = _mapping(data, "resolution").get("strategies") or []
    if not isinstance(raw_entries, list):
        raise ConfigurationError("'resolution.strategies' must be a list")
    entries = [_coerce_strategy_entry(item) for item in raw_entries]

    try:
        limits = ResourceLimiter.from_dict(_mapping(data, "resource_limits"))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    return ProviderConfig(
        cluster=cluster,
        node_group_specs=[str(spec).strip() for spec in raw_specs],
        placement=placement_config,
        lookup_strategies=entries,
        resource_limits=limits,
    )


def _coerce_strategy_factory(obj: object) -> Callable[[Optional[InventoryClient]], NodeLookupStrategy]:
    if inspect.isclass(obj) and issubclass(obj, NodeLookupStrategy):  # type: ignore[arg-type]
        if inspect.signature(obj).parameters:
            return lambda inventory: obj(inventory)  # type: ignore[misc]
        return lambda _inventory: obj()  # type: ignore[misc]

    if callable(obj):

        def _build(inventory: Optional[InventoryClient]) -> NodeLookupStrategy:
            instance = obj(inventory)  # type: ignore[operator]
            if not isinstance(instance, NodeLookupStrategy):
                raise TypeError("Lookup strategy factory must return a NodeLookupStrategy")
            return instance

        return _build

    raise ConfigurationError(f"Unsupported lookup strategy factory: {obj!r}")


def _apply_lookup_strategies(config: ProviderConfig) -> None:
    for entry in config.lookup_strategies:
        if not entry.enabled:
            unregister_lookup_strategy(entry.name)
            continue
        if entry.import_path:
            module_name, sep, attr = entry.import_path.partition(":")
            if not sep:
                raise ConfigurationError(
                    f"Invalid import path '{entry.import_path}'. Expected format 'module:attr'."
                )
            try:
                obj = getattr(importlib.import_module(module_name), attr)
            except (ImportError, AttributeError) as exc:
                raise ConfigurationError(
                    f"Failed to import lookup strategy '{entry.name}' from '{entry.import_path}': {exc}"
                ) from exc
            register_lookup_strategy(entry.name, _coerce_strategy_factory(obj), replace=True)

    missing = [name for name in config.lookup_order() if name not in available_lookup_strategies()]
    if missing:
        raise ConfigurationError(
            f"Lookup strategies {', '.join(missing)} are not registered. "
            f"Available: {', '.join(available_lookup_strategies())}"
        )


def load_provider_config(path: Optional[Path] = None) -> ProviderConfig:
    """Load and apply configuration from ``path`` or the default search order."""
    config = build_provider_config(_load_yaml_dict(path))
    _apply_lookup_strategies(config)
    return config


def get_provider_config() -> ProviderConfig:
    global _provider_config
    if _provider_config is None:
        _provider_config = load_provider_config()
    return _provider_config


def reset_provider_config() -> None:
    """Reset cached provider configuration (intended for tests)."""
    global _provider_config
    _provider_config = None
