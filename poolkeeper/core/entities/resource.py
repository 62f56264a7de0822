"""
Resource bundles and the limits handed to the autoscaling control loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class ResourceSpec:
    """Represents a bundle of compute resources."""

    cpu: float = 0.0
    memory: float = 0.0
    gpu: float = 0.0
    custom: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, float]:
        data: Dict[str, float] = {"cpu": self.cpu, "memory": self.memory, "gpu": self.gpu}
        if self.custom:
            data["custom"] = dict(self.custom)
        return data

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, float]]) -> "ResourceSpec":
        """
        Build a spec from a mapping such as ``{"cpu": 4, "memory": 8192}``.

        Keys other than ``cpu``/``memory``/``gpu``/``custom`` are treated as
        custom resources.

        Raises:
            ValueError: if a value is negative or not numeric.
        """
        values = values or {}
        try:
            cpu = float(values.get("cpu", 0.0))
            memory = float(values.get("memory", 0.0))
            gpu = float(values.get("gpu", 0.0))

            if cpu < 0 or memory < 0 or gpu < 0:
                raise ValueError(f"Resource values must be non-negative: cpu={cpu}, memory={memory}, gpu={gpu}")

            custom_values: Dict[str, float] = {}
            raw_custom = values.get("custom")
            if isinstance(raw_custom, dict):
                custom_values.update({key: float(val) for key, val in raw_custom.items()})

            for key, value in values.items():
                if key not in {"cpu", "memory", "gpu", "custom"}:
                    custom_values[key] = float(value)

            for key, value in custom_values.items():
                if value < 0:
                    raise ValueError(f"Custom resource '{key}' must be non-negative, got {value}")

            return cls(cpu=cpu, memory=memory, gpu=gpu, custom=custom_values)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid resource specification: {e}") from e


@dataclass
class ResourceLimiter:
    """Cluster-wide minimum and maximum resource totals."""

    min_limits: ResourceSpec = field(default_factory=ResourceSpec)
    max_limits: ResourceSpec = field(default_factory=ResourceSpec)

    @classmethod
    def from_dict(cls, payload: Optional[Dict[str, object]]) -> "ResourceLimiter":
        payload = payload or {}
        return cls(
            min_limits=ResourceSpec.from_dict(payload.get("min")),  # type: ignore[arg-type]
            max_limits=ResourceSpec.from_dict(payload.get("max")),  # type: ignore[arg-type]
        )

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {"min": self.min_limits.to_dict(), "max": self.max_limits.to_dict()}
