"""Typed records describing tweaks, presets and their runtime state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class RegistryValueType(str, Enum):
    STRING = "String"
    EXPAND_STRING = "ExpandString"
    DWORD = "DWord"
    QWORD = "QWord"
    MULTI_STRING = "MultiString"
    BINARY = "Binary"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "RegistryValueType":
        if not raw:
            return cls.STRING
        for member in cls:
            if member.value.lower() == raw.strip().lower():
                return member
        raise ValueError(f"unknown registry value type {raw!r}")


class Removal(Enum):
    """Desired values that delete rather than write."""

    VALUE = "<RemoveEntry>"
    KEY = "<RemoveKey>"


REMOVE = Removal.VALUE
REMOVE_KEY = Removal.KEY


@dataclass(frozen=True)
class SetValue:
    text: str


DesiredValue = Union[SetValue, Removal]


def parse_desired_value(raw: str) -> DesiredValue:
    for marker in Removal:
        if raw == marker.value:
            return marker
    return SetValue(raw)


class StartupType(str, Enum):
    AUTOMATIC = "Automatic"
    AUTOMATIC_DELAYED = "AutomaticDelayedStart"
    MANUAL = "Manual"
    DISABLED = "Disabled"

    @classmethod
    def parse(cls, raw: str) -> "StartupType":
        for member in cls:
            if member.value.lower() == raw.strip().lower():
                return member
        raise ValueError(f"unknown service startup type {raw!r}")


@dataclass(frozen=True)
class RegistryOperation:
    path: str
    name: str
    value_type: RegistryValueType
    desired_value: DesiredValue
    original_value: Optional[DesiredValue] = None


@dataclass(frozen=True)
class ServiceOperation:
    service_name: str
    desired_startup_type: StartupType
    original_startup_type: Optional[StartupType] = None


@dataclass(frozen=True)
class TweakDefinition:
    id: str
    title: str
    description: str = ""
    category: str = ""
    registry_ops: Tuple[RegistryOperation, ...] = ()
    service_ops: Tuple[ServiceOperation, ...] = ()
    apply_script: Tuple[str, ...] = ()
    undo_script: Tuple[str, ...] = ()
    order: str = ""
    link: Optional[str] = None

    @property
    def risk_level(self) -> "RiskLevel":
        return risk_level(self.category)

    @property
    def is_verifiable(self) -> bool:
        return bool(self.registry_ops or self.service_ops)

    @property
    def has_incomplete_undo(self) -> bool:
        """True when undo would skip ops that have no recorded original."""
        return any(op.original_value is None for op in self.registry_ops) or any(
            op.original_startup_type is None for op in self.service_ops
        )


@dataclass(frozen=True)
class Preset:
    name: str
    tweak_ids: Tuple[str, ...] = ()


class TweakStatus(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    READY = "ready"
    APPLIED = "applied"


@dataclass
class TweakRuntimeState:
    status: TweakStatus = TweakStatus.UNKNOWN
    in_flight: bool = False


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


HIGH_RISK_MARKERS = ("caution", "danger", "advanced")
MEDIUM_RISK_MARKERS = ("privacy", "debloat", "performance")


def risk_level(category: Optional[str]) -> RiskLevel:
    label = (category or "").lower()
    if any(marker in label for marker in HIGH_RISK_MARKERS):
        return RiskLevel.HIGH
    if any(marker in label for marker in MEDIUM_RISK_MARKERS):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


@dataclass
class OperationResult:
    """Outcome of a finished apply, undo, check or preset run."""

    target: str
    status: TweakStatus
    output: str = ""
    partial: bool = False
    affected: Tuple[str, ...] = field(default_factory=tuple)
