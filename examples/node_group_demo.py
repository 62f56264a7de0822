#!/usr/bin/env python3
"""
节点组注册表演示
================

该示例展示了：

1. 从声明串构建节点组注册表，并用实时库存初始化目标规模；
2. 放置组（placement group）容量超限时启动失败；
3. 节点归属解析（先查库存标签，再回退到节点标签）；
4. ``refresh`` 之后按需重新读取库存。

运行方式::

    python examples/node_group_demo.py
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# 确保可以直接导入 poolkeeper
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from poolkeeper.core import build_provider
from poolkeeper.core.clients import InMemoryCloudClient
from poolkeeper.core.config import ClusterConfig, NodeConfig, ProviderConfig
from poolkeeper.core.entities import ClusterNode, PlacementGroup
from poolkeeper.core.errors import BootstrapError
from poolkeeper.core.labels import NODE_GROUP_LABEL, provider_id_for
from poolkeeper.core.utils import install_stdout_logger


def main() -> int:
    install_stdout_logger(logging.INFO)

    cloud = InMemoryCloudClient(placement_groups=[PlacementGroup(id=42, name="spread-a")])
    cloud.add_server("101", group="pool-a")
    cloud.add_server("102", group="pool-a")
    cloud.add_server("201", group="pool-b")

    config = ProviderConfig(
        cluster=ClusterConfig(
            node_configs={
                "pool-a": NodeConfig(placement_group="spread-a"),
                "pool-b": NodeConfig(placement_group="spread-a"),
            },
            explicit_node_configs=True,
        )
    )

    print("\n[1] 放置组容量超限 (6 + 6 > 10)")
    try:
        build_provider(["0:6:cx22:fsn1:pool-a", "0:6:cx22:fsn1:pool-b"], inventory=cloud, placement_groups=cloud, config=config)
    except BootstrapError as exc:
        print(f"    启动失败: {exc}")

    print("\n[2] 合法配置 (5 + 3 <= 10)")
    provider = build_provider(
        ["1:5:cx22:fsn1:pool-a", "0:3:cx22:nbg1:pool-b"], inventory=cloud, placement_groups=cloud, config=config
    )
    for group in provider.node_groups():
        print(f"    {group.debug()}")

    print("\n[3] 节点归属解析")
    nodes = [
        ClusterNode("node-101", provider_id_for("101")),
        ClusterNode("node-gone", provider_id_for("999"), labels={NODE_GROUP_LABEL: "pool-b"}),
        ClusterNode("node-foreign", "other://1"),
    ]
    for node in nodes:
        group = provider.node_group_for_node(node)
        print(f"    {node.name:<14} -> {group.id if group else '<unowned>'}")

    print("\n[4] 扩容 + refresh")
    pool_a = provider.registry.get("pool-a")
    pool_a.increase_size(2)
    print(f"    扩容后 target={pool_a.target_size()}")
    provider.refresh()
    print(f"    refresh 后 snapshot={pool_a.snapshot_target_size()} 重新读取={pool_a.target_size()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
