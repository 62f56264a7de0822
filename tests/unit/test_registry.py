"""
Unit tests for NodeGroupRegistry construction and refresh.
"""

from __future__ import annotations

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from poolkeeper.core.clients import PlacementGroupClient
from poolkeeper.core.config import ClusterConfig, NodeConfig
from poolkeeper.core.coordination import ScalingCoordinator
from poolkeeper.core.entities import PlacementGroup
from poolkeeper.core.errors import (
    BootstrapError,
    BootstrapInventoryError,
    ConfigurationError,
    InventoryError,
    MissingNodeConfig,
    PlacementCapacityExceeded,
    PlacementGroupLookupTimeout,
    PlacementGroupNotFound,
    PlacementGroupResolutionError,
)
from poolkeeper.core.registry import NodeGroupRegistry, resolve_placement_group
from poolkeeper.core.specs import parse_node_group_spec


def _specs(*texts):
    return [parse_node_group_spec(text) for text in texts]


class BrokenPlacementClient(PlacementGroupClient):
    def get_placement_group(self, ref, timeout):
        raise ConnectionError("api unreachable")


class HangingPlacementClient(PlacementGroupClient):
    def __init__(self):
        self.release = threading.Event()
        self.seen_timeout = None

    def get_placement_group(self, ref, timeout):
        self.seen_timeout = timeout
        self.release.wait(5)
        return PlacementGroup(id=1, name=ref)


def test_target_size_is_seeded_from_inventory(cloud):
    registry = NodeGroupRegistry.build(
        _specs("1:5:CX22:FSN1:pool-a", "0:3:cx22:nbg1:pool-b", "0:3:cx22:nbg1:pool-c"),
        inventory=cloud,
        placement_groups=cloud,
    )

    assert len(registry) == 3
    assert registry.get("pool-a").target_size() == 2
    assert registry.get("pool-b").target_size() == 1
    assert registry.get("pool-c").target_size() == 0
    assert registry.get("missing") is None
    assert "pool-a" in registry
    assert {group.id for group in registry} == {"pool-a", "pool-b", "pool-c"}


def test_instance_type_and_region_are_lower_cased(cloud):
    registry = NodeGroupRegistry.build(_specs("1:5:CX22:FSN1:pool-a"), inventory=cloud, placement_groups=cloud)
    group = registry.get("pool-a")
    assert (group.instance_type, group.region) == ("cx22", "fsn1")


def test_all_groups_share_the_given_coordinator(cloud):
    coordinator = ScalingCoordinator()
    registry = NodeGroupRegistry.build(
        _specs("1:5:cx22:fsn1:pool-a", "0:3:cx22:nbg1:pool-b"),
        inventory=cloud,
        placement_groups=cloud,
        coordinator=coordinator,
    )
    assert registry.coordinator is coordinator
    assert all(group.coordinator is coordinator for group in registry)


def test_duplicate_names_are_rejected(cloud):
    with pytest.raises(ConfigurationError, match="more than once"):
        NodeGroupRegistry.build(
            _specs("1:5:cx22:fsn1:pool-a", "0:3:cx22:nbg1:pool-a"), inventory=cloud, placement_groups=cloud
        )


def test_inventory_failure_is_fatal(cloud):
    cloud.fail_inventory = True
    with pytest.raises(BootstrapInventoryError) as excinfo:
        NodeGroupRegistry.build(_specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud)
    assert isinstance(excinfo.value, BootstrapError)
    assert isinstance(excinfo.value, InventoryError)


def test_explicit_mode_requires_every_group(cloud, explicit_config):
    config = explicit_config(**{"pool-a": NodeConfig()})
    with pytest.raises(MissingNodeConfig) as excinfo:
        NodeGroupRegistry.build(
            _specs("1:5:cx22:fsn1:pool-a", "0:3:cx22:nbg1:pool-b"),
            inventory=cloud,
            placement_groups=cloud,
            cluster_config=config,
        )
    assert excinfo.value.group == "pool-b"
    assert "pool-b" in str(excinfo.value)


def test_explicit_mode_with_empty_node_configs_is_fatal(cloud):
    with pytest.raises(ConfigurationError, match="No cluster config"):
        NodeGroupRegistry.build(
            _specs("1:5:cx22:fsn1:pool-a"),
            inventory=cloud,
            placement_groups=cloud,
            cluster_config=ClusterConfig(explicit_node_configs=True),
        )


def test_node_configs_are_ignored_outside_explicit_mode(cloud):
    config = ClusterConfig(node_configs={"pool-a": NodeConfig(placement_group="unknown")})
    registry = NodeGroupRegistry.build(
        _specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud, cluster_config=config
    )
    assert registry.get("pool-a").placement_group is None


def test_placement_group_is_attached(cloud, explicit_config):
    config = explicit_config(
        **{"pool-a": NodeConfig(placement_group="spread-a"), "pool-b": NodeConfig(placement_group="42")}
    )
    registry = NodeGroupRegistry.build(
        _specs("1:5:cx22:fsn1:pool-a", "0:3:cx22:nbg1:pool-b"),
        inventory=cloud,
        placement_groups=cloud,
        cluster_config=config,
    )

    assert registry.get("pool-a").placement_group.id == 42
    assert registry.get("pool-b").placement_group.id == 42
    assert registry.placement_totals == {42: 8}
    assert registry.get("pool-a").placement_group.max_combined_size == 8


def test_group_without_placement_group_reference(cloud, explicit_config):
    config = explicit_config(**{"pool-a": NodeConfig()})
    registry = NodeGroupRegistry.build(
        _specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud, cluster_config=config
    )
    assert registry.get("pool-a").placement_group is None
    assert registry.placement_totals == {}


def test_missing_placement_group_is_fatal(cloud, explicit_config):
    config = explicit_config(**{"pool-a": NodeConfig(placement_group="nope")})
    with pytest.raises(PlacementGroupNotFound) as excinfo:
        NodeGroupRegistry.build(
            _specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud, cluster_config=config
        )
    assert excinfo.value.ref == "nope"
    assert "does not appear to exist" in str(excinfo.value)


def test_placement_lookup_failure_is_distinct_from_not_found(cloud, explicit_config):
    config = explicit_config(**{"pool-a": NodeConfig(placement_group="spread-a")})
    with pytest.raises(PlacementGroupResolutionError) as excinfo:
        NodeGroupRegistry.build(
            _specs("1:5:cx22:fsn1:pool-a"),
            inventory=cloud,
            placement_groups=BrokenPlacementClient(),
            cluster_config=config,
        )
    assert not isinstance(excinfo.value, (PlacementGroupNotFound, PlacementGroupLookupTimeout))
    assert "Failed to verify" in str(excinfo.value)
    assert "api unreachable" in str(excinfo.value)


def test_placement_lookup_timeout(cloud, explicit_config):
    client = HangingPlacementClient()
    config = explicit_config(**{"pool-a": NodeConfig(placement_group="spread-a")})
    try:
        with pytest.raises(PlacementGroupLookupTimeout) as excinfo:
            NodeGroupRegistry.build(
                _specs("1:5:cx22:fsn1:pool-a"),
                inventory=cloud,
                placement_groups=client,
                cluster_config=config,
                lookup_timeout=0.05,
            )
    finally:
        client.release.set()
    assert client.seen_timeout == 0.05
    assert "Timed out" in str(excinfo.value)


def test_default_lookup_timeout_is_ten_seconds(cloud):
    client = HangingPlacementClient()
    client.release.set()
    resolve_placement_group(client, "spread-a")
    assert client.seen_timeout == 10.0


def test_overflowing_placement_group_is_fatal(cloud, explicit_config):
    config = explicit_config(
        **{
            "pool-a": NodeConfig(placement_group="spread-a"),
            "pool-b": NodeConfig(placement_group="spread-a"),
            "pool-c": NodeConfig(placement_group="spread-b"),
            "pool-d": NodeConfig(placement_group="spread-b"),
        }
    )
    with pytest.raises(PlacementCapacityExceeded) as excinfo:
        NodeGroupRegistry.build(
            _specs("0:6:cx22:fsn1:pool-a", "0:6:cx22:fsn1:pool-b", "0:6:cx22:fsn1:pool-c", "0:6:cx22:fsn1:pool-d"),
            inventory=cloud,
            placement_groups=cloud,
            cluster_config=config,
        )
    assert excinfo.value.placement_group_ids == [7, 42]


def test_custom_threshold(cloud, explicit_config):
    config = explicit_config(**{"pool-a": NodeConfig(placement_group="spread-a")})
    with pytest.raises(PlacementCapacityExceeded):
        NodeGroupRegistry.build(
            _specs("0:6:cx22:fsn1:pool-a"),
            inventory=cloud,
            placement_groups=cloud,
            cluster_config=config,
            threshold=5,
        )


def test_refresh_resets_then_reread_restores_live_count(cloud):
    registry = NodeGroupRegistry.build(_specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud)
    group = registry.get("pool-a")
    group.increase_size(2)
    cloud.add_server("103", group="pool-a")

    registry.refresh()

    assert group.snapshot_target_size() == 0
    assert group.stale
    assert group.target_size() == 3
    assert not group.stale


def test_refresh_never_raises_and_errors_surface_on_read(cloud):
    registry = NodeGroupRegistry.build(_specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud)
    cloud.fail_inventory = True

    registry.refresh()

    with pytest.raises(InventoryError):
        registry.get("pool-a").target_size()


def test_group_nodes_and_views(cloud):
    registry = NodeGroupRegistry.build(_specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud)
    group = registry.get("pool-a")

    assert sorted(group.nodes()) == ["poolkeeper://101", "poolkeeper://102"]
    assert group.exist()
    assert group.debug() == "pool-a (min:1 max:5 target:2)"
    assert registry.snapshot() == [
        {
            "id": "pool-a",
            "min_size": 1,
            "max_size": 5,
            "target_size": 2,
            "instance_type": "cx22",
            "region": "fsn1",
            "placement_group": None,
            "stale": False,
        }
    ]


def test_hung_placement_lookup_does_not_block_process_exit():
    repo_root = Path(__file__).resolve().parents[2]
    script = textwrap.dedent(
        """
        import sys
        import time

        from poolkeeper.core.clients import PlacementGroupClient
        from poolkeeper.core.errors import PlacementGroupLookupTimeout
        from poolkeeper.core.registry import resolve_placement_group


        class Hang(PlacementGroupClient):
            def get_placement_group(self, ref, timeout):
                time.sleep(30)


        try:
            resolve_placement_group(Hang(), "spread-a", 0.1)
        except PlacementGroupLookupTimeout:
            sys.exit(3)
        sys.exit(0)
        """
    )
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(repo_root), env.get("PYTHONPATH")]))

    started = time.monotonic()
    completed = subprocess.run([sys.executable, "-c", script], env=env, timeout=20)
    elapsed = time.monotonic() - started

    assert completed.returncode == 3
    assert elapsed < 10


def test_transport_error_on_reread_is_reported_as_inventory_error(cloud, monkeypatch):
    registry = NodeGroupRegistry.build(_specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud)
    group = registry.get("pool-a")

    def _unreachable(group_name):
        raise ConnectionError("connection reset by peer")

    monkeypatch.setattr(cloud, "list_instances", _unreachable)
    registry.refresh()

    with pytest.raises(InventoryError, match="connection reset by peer") as excinfo:
        group.target_size()
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert group.stale
    assert not registry.coordinator.locked


def test_refresh_while_holding_the_coordinator(cloud):
    registry = NodeGroupRegistry.build(_specs("1:5:cx22:fsn1:pool-a"), inventory=cloud, placement_groups=cloud)

    with registry.coordinator.exclusive("outer"):
        assert registry.coordinator.held_by_current_thread
        registry.refresh()

    assert not registry.coordinator.held_by_current_thread
    assert registry.get("pool-a").snapshot_target_size() == 0
    assert registry.get("pool-a").target_size() == 2
