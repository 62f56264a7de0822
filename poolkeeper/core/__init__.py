"""
Core package bootstrap for the poolkeeper node-group adapter.

Re-exports the bootstrap entry point and the façade so callers can simply do::

    from poolkeeper.core import build_provider
"""

from __future__ import annotations

from poolkeeper.core.controllers.provider import NodeGroupProvider, build_provider

__all__ = ["NodeGroupProvider", "build_provider"]
