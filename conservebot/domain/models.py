from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from .standards import StandardsEntry


class ArtifactType(str, Enum):
    FOSSILS = "FOSSILS"
    ORGANIC = "ORGANIC"
    METALLIC = "METALLIC"
    STONE = "STONE"


class DemoMode(str, Enum):
    NORMAL = "normal"
    AT_RISK = "atRisk"
    REMEDIATION = "remediation"


class DoorState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Metric(str, Enum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    MOISTURE = "moisture"
    ACCESS = "access"
    VIBRATION = "vibration"


class MetricStatus(str, Enum):
    SAFE = "safe"
    WARN = "warn"
    DANGER = "danger"

    @property
    def color(self) -> str:
        if self is MetricStatus.SAFE:
            return "green"
        if self is MetricStatus.WARN:
            return "yellow"
        return "red"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_score(cls, score: float) -> "RiskLevel":
        if score < 30:
            return cls.LOW
        if score < 60:
            return cls.MEDIUM
        if score < 80:
            return cls.HIGH
        return cls.CRITICAL


class ActionType(str, Enum):
    ADJUST_TEMP_DOWN = "ADJUST_TEMP_DOWN"
    ADJUST_TEMP_UP = "ADJUST_TEMP_UP"
    DEHUMIDIFY = "DEHUMIDIFY"
    HUMIDIFY = "HUMIDIFY"
    TRIGGER_AIRFLOW = "TRIGGER_AIRFLOW"
    LOCK_ACCESS_10_MIN = "LOCK_ACCESS_10_MIN"


class LogKind(str, Enum):
    AUTO_REMEDIATION = "AUTO_REMEDIATION"
    MANUAL_ACTION = "MANUAL_ACTION"
    CONFIG = "CONFIG"


@dataclass(frozen=True)
class Reading:
    ts_utc: datetime
    temperature_c: float
    humidity_pct: float
    moisture_pct: float
    door_state: DoorState
    opens_per_hour: int
    vibration: float
    access_locked: bool = False

    def key_fields(self) -> dict[str, Any]:
        """Fields copied into a log entry's context."""
        return {
            "temperature_c": self.temperature_c,
            "humidity_pct": self.humidity_pct,
            "moisture_pct": self.moisture_pct,
            "opens_per_hour": self.opens_per_hour,
            "vibration": self.vibration,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "ts_utc": self.ts_utc.isoformat(),
            "temperature_c": self.temperature_c,
            "humidity_pct": self.humidity_pct,
            "moisture_pct": self.moisture_pct,
            "door_state": self.door_state.value,
            "opens_per_hour": self.opens_per_hour,
            "vibration": self.vibration,
            "access_locked": self.access_locked,
        }


@dataclass(frozen=True)
class RemediationAction:
    action_type: ActionType
    label: str
    reason: str
    context: Optional[Mapping[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.action_type.value,
            "label": self.label,
            "reason": self.reason,
        }
        if self.context is not None:
            out["context"] = dict(self.context)
        return out


@dataclass(frozen=True)
class Assessment:
    statuses: Mapping[Metric, MetricStatus]
    risk_score: int
    risk_level: RiskLevel
    humidity_slope_per_min: float
    insights: Tuple[str, ...] = ()
    actions: Tuple[RemediationAction, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "statuses", MappingProxyType(dict(self.statuses)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "statuses": {
                m.value: {"status": s.value, "color": s.color}
                for m, s in self.statuses.items()
            },
            "trends": {"humidity_slope_per_min": self.humidity_slope_per_min},
            "insights": list(self.insights),
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass(frozen=True)
class LogEntry:
    id: str
    ts_utc: datetime
    kind: LogKind
    action_type: Optional[ActionType] = None
    label: Optional[str] = None
    reason: Optional[str] = None
    context: Optional[Mapping[str, Any]] = None
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "ts_utc": self.ts_utc.isoformat(),
            "kind": self.kind.value,
        }
        if self.action_type is not None:
            out["action_type"] = self.action_type.value
            out["label"] = self.label
            out["reason"] = self.reason
            out["context"] = dict(self.context or {})
        if self.message is not None:
            out["message"] = self.message
        return out


@dataclass
class MonitorConfig:
    artifact_type: ArtifactType = ArtifactType.FOSSILS
    demo_mode: DemoMode = DemoMode.NORMAL

    def to_dict(self) -> dict[str, str]:
        return {"artifact_type": self.artifact_type.value, "demo_mode": self.demo_mode.value}


@dataclass(frozen=True)
class TickSnapshot:
    ts_utc: datetime
    artifact_type: ArtifactType
    demo_mode: DemoMode
    reading: Reading
    standards: "StandardsEntry"
    assessment: Assessment

    def to_dict(self) -> dict[str, Any]:
        return {
            "ts_utc": self.ts_utc.isoformat(),
            "artifact_type": self.artifact_type.value,
            "demo_mode": self.demo_mode.value,
            "reading": self.reading.to_dict(),
            "standards": self.standards.to_dict(),
            "assessment": self.assessment.to_dict(),
        }
