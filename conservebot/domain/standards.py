"""
Preservation standards per artifact type.

"safe" is the ideal range, "warn" an early-warning buffer around it; values
outside "warn" are danger. Vibration is a normalized 0..1 level.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Union

from .models import ArtifactType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Band:
    safe: tuple[float, float]
    warn: tuple[float, float]

    @property
    def midpoint(self) -> float:
        return (self.safe[0] + self.safe[1]) / 2

    def to_dict(self) -> dict[str, Any]:
        return {"safe": list(self.safe), "warn": list(self.warn)}


@dataclass(frozen=True)
class MaxLimit:
    safe_max: float
    warn_max: float

    def to_dict(self) -> dict[str, Any]:
        return {"safe_max": self.safe_max, "warn_max": self.warn_max}


@dataclass(frozen=True)
class StandardsEntry:
    label: str
    temperature_c: Band
    humidity_pct: Band
    moisture_pct: MaxLimit
    access: MaxLimit  # door opens per hour
    vibration: MaxLimit

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "temperature_c": self.temperature_c.to_dict(),
            "humidity_pct": self.humidity_pct.to_dict(),
            "moisture_pct": self.moisture_pct.to_dict(),
            "access": {
                "max_opens_per_hour_safe": self.access.safe_max,
                "max_opens_per_hour_warn": self.access.warn_max,
            },
            "vibration": self.vibration.to_dict(),
        }


STANDARDS_BY_TYPE: dict[ArtifactType, StandardsEntry] = {
    ArtifactType.FOSSILS: StandardsEntry(
        label="Fossils",
        temperature_c=Band(safe=(16, 22), warn=(15, 23)),
        humidity_pct=Band(safe=(40, 55), warn=(35, 60)),
        moisture_pct=MaxLimit(safe_max=5, warn_max=6),
        access=MaxLimit(safe_max=2, warn_max=4),
        vibration=MaxLimit(safe_max=0.25, warn_max=0.5),
    ),
    ArtifactType.ORGANIC: StandardsEntry(
        label="Organic (wood/bone/textile)",
        temperature_c=Band(safe=(16, 20), warn=(15, 22)),
        humidity_pct=Band(safe=(45, 55), warn=(40, 60)),
        moisture_pct=MaxLimit(safe_max=4, warn_max=5),
        access=MaxLimit(safe_max=1, warn_max=3),
        vibration=MaxLimit(safe_max=0.2, warn_max=0.4),
    ),
    ArtifactType.METALLIC: StandardsEntry(
        label="Metallic artifacts",
        temperature_c=Band(safe=(16, 22), warn=(15, 23)),
        # metals corrode, keep them drier
        humidity_pct=Band(safe=(35, 45), warn=(30, 50)),
        moisture_pct=MaxLimit(safe_max=3, warn_max=4),
        access=MaxLimit(safe_max=1, warn_max=3),
        vibration=MaxLimit(safe_max=0.25, warn_max=0.5),
    ),
    ArtifactType.STONE: StandardsEntry(
        label="Stone artifacts",
        temperature_c=Band(safe=(16, 24), warn=(15, 26)),
        humidity_pct=Band(safe=(40, 60), warn=(35, 65)),
        moisture_pct=MaxLimit(safe_max=6, warn_max=7),
        access=MaxLimit(safe_max=3, warn_max=6),
        vibration=MaxLimit(safe_max=0.3, warn_max=0.6),
    ),
}

DEFAULT_ARTIFACT_TYPE = ArtifactType.FOSSILS


def resolve_artifact_type(key: Union[ArtifactType, str]) -> ArtifactType:
    """Map a key to a known artifact type, falling back to the default."""
    try:
        return ArtifactType(key)
    except ValueError:
        logger.warning("Unknown artifact type %r, using %s", key, DEFAULT_ARTIFACT_TYPE.value)
        return DEFAULT_ARTIFACT_TYPE


def get_standards(key: Union[ArtifactType, str]) -> StandardsEntry:
    return STANDARDS_BY_TYPE[resolve_artifact_type(key)]
