"""
Integration tests for the Ray-hosted node-group registry.
"""

from __future__ import annotations

import uuid

import pytest

pytest.importorskip("ray")

from poolkeeper.core.clients import InMemoryCloudClient
from poolkeeper.core.controllers import RemoteNodeGroupProvider
from poolkeeper.core.entities import ClusterNode, PlacementGroup
from poolkeeper.core.errors import BootstrapError
from poolkeeper.core.labels import NODE_GROUP_LABEL, provider_id_for


def _unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


@pytest.fixture
def remote_cloud():
    cloud = InMemoryCloudClient(placement_groups=[PlacementGroup(id=42, name="spread-a")])
    cloud.add_server("101", group="pool-a")
    cloud.add_server("102", group="pool-a")
    cloud.add_server("201", group="pool-b")
    return cloud


@pytest.fixture
def remote_provider(ray_runtime, remote_cloud, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    provider = RemoteNodeGroupProvider(
        remote_cloud,
        remote_cloud,
        ["1:5:cx22:fsn1:pool-a", "0:3:cx22:nbg1:pool-b"],
        name=_unique_name("node-groups"),
    )
    try:
        yield provider
    finally:
        provider.shutdown()


def test_list_and_resolve(remote_provider):
    groups = {group["id"]: group for group in remote_provider.list_node_groups()}
    assert set(groups) == {"pool-a", "pool-b"}
    assert groups["pool-a"]["target_size"] == 2

    result = remote_provider.node_group_for_node(ClusterNode("n1", provider_id_for("201")))
    assert result == {"success": True, "node_group": "pool-b"}

    fallback = remote_provider.node_group_for_node(
        {"name": "n2", "provider_id": provider_id_for("999"), "labels": {NODE_GROUP_LABEL: "pool-a"}}
    )
    assert fallback["node_group"] == "pool-a"

    unowned = remote_provider.node_group_for_node(ClusterNode("n3", provider_id_for("998")))
    assert unowned == {"success": True, "node_group": None}


def test_scaling_and_reconcile(remote_provider):
    result = remote_provider.increase_size("pool-a", 2)
    assert result == {"success": True, "node_group": "pool-a", "target_size": 4}

    rejected = remote_provider.increase_size("pool-a", 5)
    assert rejected["success"] is False
    assert "size increase too large" in rejected["error"]

    missing = remote_provider.decrease_target_size("pool-z", -1)
    assert missing["success"] is False

    reconciled = remote_provider.reconcile()
    assert reconciled["success"] is True
    assert reconciled["target_sizes"] == {"pool-a": 2, "pool-b": 1}


def test_bootstrap_failure_raises(ray_runtime, remote_cloud, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(BootstrapError, match="expected format"):
        RemoteNodeGroupProvider(remote_cloud, remote_cloud, ["1:5:cx22"], name=_unique_name("broken"))
