"""
Logging setup for poolkeeper processes.

Several node-group managers may log into the same Ray driver output, so the
runtime handler stamps every record with the component that hosts it (the
actor name, or ``"local"`` for in-process use).
"""

from __future__ import annotations

import logging
import sys
from typing import Optional


_RUNTIME_HANDLER_FLAG = "_poolkeeper_runtime_handler"
_SCRIPT_HANDLER_FLAG = "_poolkeeper_script_handler"

RUNTIME_FORMAT = "[%(levelname)s] [%(component)s] %(name)s: %(message)s"


class ComponentFilter(logging.Filter):
    """Add a ``component`` attribute to records that do not carry one."""

    def __init__(self, component: str):
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = self.component
        return True


def _find_flagged(target: logging.Logger, flag: str) -> Optional[logging.Handler]:
    for handler in target.handlers:
        if getattr(handler, flag, False):
            return handler
    return None


def configure_runtime_logging(
    level: int = logging.INFO,
    formatter: Optional[logging.Formatter] = None,
    *,
    component: str = "local",
) -> logging.Handler:
    """
    Route runtime logs to stdout through a single root handler.

    Repeated calls (one per actor start-up) reuse the handler and only update
    its level, format and component tag.
    """
    root_logger = logging.getLogger()
    handler = _find_flagged(root_logger, _RUNTIME_HANDLER_FLAG)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        setattr(handler, _RUNTIME_HANDLER_FLAG, True)
        root_logger.addHandler(handler)

    for stale in [f for f in handler.filters if isinstance(f, ComponentFilter)]:
        handler.removeFilter(stale)
    handler.addFilter(ComponentFilter(component))
    handler.setFormatter(formatter or logging.Formatter(RUNTIME_FORMAT))
    handler.setLevel(level)

    if root_logger.level == logging.NOTSET or root_logger.level > level:
        root_logger.setLevel(level)
    return handler


def install_stdout_logger(
    level: int = logging.INFO,
    *,
    include_timestamp: bool = True,
    logger_name: str = "poolkeeper",
) -> logging.Logger:
    """Print the ``poolkeeper`` logger tree to stdout; for demos and dry runs."""
    fmt = "%(levelname)s %(name)s: %(message)s"
    if include_timestamp:
        fmt = "%(asctime)s " + fmt

    target = logging.getLogger(logger_name)
    previous = _find_flagged(target, _SCRIPT_HANDLER_FLAG)
    if previous is not None:
        target.removeHandler(previous)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))
    handler.setLevel(level)
    setattr(handler, _SCRIPT_HANDLER_FLAG, True)
    target.addHandler(handler)
    target.setLevel(level)
    return target
