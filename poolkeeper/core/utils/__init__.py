"""Utility helpers for poolkeeper."""

from .logging import configure_runtime_logging, install_stdout_logger  # noqa: F401

__all__ = [
    "configure_runtime_logging",
    "install_stdout_logger",
]
