"""
Autoscaler actor.

Drives one refresh cycle of the node-group registry per ``reconcile`` call.
"""

from __future__ import annotations

import logging

import ray

from poolkeeper.core.utils import configure_runtime_logging

from .config import ActorConfig

logger = logging.getLogger(__name__)


@ray.remote
class AutoscalerActor:
    """Runs refresh cycles against a NodeGroupManagerActor."""

    def __init__(self, config: ActorConfig, manager: ray.actor.ActorHandle):
        configure_runtime_logging(component=config.name)
        self.config = config
        self.manager = manager
        logger.debug("AutoscalerActor[%s] initialised", config.name)

    def reconcile(self) -> dict:
        """Refresh the registry and read back the live target sizes."""
        ray.get(self.manager.refresh.remote())
        result = ray.get(self.manager.target_sizes.remote())
        if result.get("success"):
            logger.debug("Autoscaler reconcile cycle executed: %s", result["target_sizes"])
        else:
            logger.warning("Autoscaler reconcile cycle incomplete: %s", result.get("errors"))
        return result
