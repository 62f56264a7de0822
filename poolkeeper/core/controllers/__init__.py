"""
Public facing controller facades for poolkeeper.

``RemoteNodeGroupProvider`` needs Ray and is imported on first access.
"""

from __future__ import annotations

from importlib import import_module

from .provider import NodeGroupProvider, build_provider  # noqa: F401

__all__ = ["NodeGroupProvider", "RemoteNodeGroupProvider", "build_provider"]


def __getattr__(name: str):
    if name == "RemoteNodeGroupProvider":
        value = getattr(import_module(".remote", __name__), name)
        globals()[name] = value
        return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
