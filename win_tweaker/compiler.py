"""Compile tweak definitions into PowerShell apply and undo scripts."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence

from .models import (
    REMOVE,
    REMOVE_KEY,
    DesiredValue,
    RegistryOperation,
    ServiceOperation,
    StartupType,
    TweakDefinition,
)


class Direction(str, Enum):
    APPLY = "apply"
    UNDO = "undo"


def ps_quote(text: str) -> str:
    """Render text as a single-quoted PowerShell literal."""
    return "'" + text.replace("'", "''") + "'"


def compile_script(tweak: TweakDefinition, direction: Direction) -> Optional[str]:
    """Build the script for one side of a tweak, or None when there is nothing to run."""
    raw_lines = tweak.apply_script if direction is Direction.APPLY else tweak.undo_script
    blocks = [
        _registry_block(tweak.registry_ops, direction),
        _service_block(tweak.service_ops, direction),
        "\n".join(raw_lines),
    ]
    script = "\n".join(block for block in blocks if block)
    return script or None


def skipped_on_undo(tweak: TweakDefinition) -> List[str]:
    """Describe the ops an undo leaves untouched because no original was recorded."""
    skipped: List[str] = []
    for op in tweak.registry_ops:
        if op.path and op.name and op.original_value is None:
            skipped.append(f"{op.path}\\{op.name}")
    for op in tweak.service_ops:
        if op.service_name and op.original_startup_type is None:
            skipped.append(f"service {op.service_name}")
    return skipped


def _registry_block(ops: Sequence[RegistryOperation], direction: Direction) -> str:
    lines: List[str] = []
    for op in ops:
        value = op.desired_value if direction is Direction.APPLY else op.original_value
        if not op.path or not op.name or value is None:
            continue
        lines.extend(_registry_statements(op, value))
    return "\n".join(lines)


def _registry_statements(op: RegistryOperation, value: DesiredValue) -> List[str]:
    path = ps_quote(op.path)
    if value is REMOVE:
        return [f"Remove-ItemProperty -Path {path} -Name {ps_quote(op.name)} -Force -ErrorAction SilentlyContinue"]
    if value is REMOVE_KEY:
        return [f"Remove-Item -Path {path} -Recurse -Force -ErrorAction SilentlyContinue"]
    return [
        f"if (-not (Test-Path {path})) {{ New-Item -Path {path} -Force | Out-Null }}",
        f"Set-ItemProperty -Path {path} -Name {ps_quote(op.name)} -Type {op.value_type.value} "
        f"-Value {ps_quote(value.text)} -Force",
    ]


def _service_block(ops: Sequence[ServiceOperation], direction: Direction) -> str:
    lines: List[str] = []
    for op in ops:
        startup: Optional[StartupType] = (
            op.desired_startup_type if direction is Direction.APPLY else op.original_startup_type
        )
        if not op.service_name or startup is None:
            continue
        lines.append(
            f"Set-Service -Name {ps_quote(op.service_name)} -StartupType {startup.value} "
            "-ErrorAction SilentlyContinue"
        )
    return "\n".join(lines)
