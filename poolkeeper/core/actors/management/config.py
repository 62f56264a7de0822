"""
Shared configuration dataclasses for management actors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ActorConfig:
    """Naming and bootstrap settings for a management actor."""

    name: str
    config_path: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)
