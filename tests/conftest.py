"""
Shared pytest fixtures.
"""

from __future__ import annotations

import logging

import pytest

from poolkeeper.core.clients import InMemoryCloudClient
from poolkeeper.core.config import ClusterConfig, NodeConfig, reset_provider_config
from poolkeeper.core.coordination import ScalingCoordinator
from poolkeeper.core.entities import NodeGroup, PlacementGroup
from poolkeeper.core.resolution import restore_default_strategies

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s", force=True)
logging.getLogger("poolkeeper").setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def clean_global_state(monkeypatch):
    """Config cache and lookup-strategy registry are process-wide."""
    monkeypatch.delenv("POOLKEEPER_CONFIG", raising=False)
    reset_provider_config()
    restore_default_strategies()
    yield
    reset_provider_config()
    restore_default_strategies()


@pytest.fixture
def cloud():
    """In-memory cloud with two placement groups and three servers."""
    client = InMemoryCloudClient(
        placement_groups=[
            PlacementGroup(id=42, name="spread-a"),
            PlacementGroup(id=7, name="spread-b"),
        ]
    )
    client.add_server("101", group="pool-a")
    client.add_server("102", group="pool-a")
    client.add_server("201", group="pool-b")
    return client


@pytest.fixture
def explicit_config():
    def _build(**node_configs: NodeConfig) -> ClusterConfig:
        return ClusterConfig(node_configs=dict(node_configs), explicit_node_configs=True)

    return _build


@pytest.fixture
def make_group(cloud):
    """Factory for standalone node groups sharing one coordinator."""
    coordinator = ScalingCoordinator()

    def _make(name: str, *, max_size: int = 5, min_size: int = 0, placement_group=None, target_size=None):
        return NodeGroup(
            name,
            min_size=min_size,
            max_size=max_size,
            target_size=len(cloud.list_instances(name)) if target_size is None else target_size,
            instance_type="CX22",
            region="FSN1",
            inventory=cloud,
            coordinator=coordinator,
            placement_group=placement_group,
        )

    return _make
