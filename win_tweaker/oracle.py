"""Read-only status checks that tell whether a tweak's desired state holds."""

from __future__ import annotations

from typing import List, Optional

from .compiler import ps_quote
from .models import REMOVE, REMOVE_KEY, RegistryOperation, ServiceOperation, TweakDefinition, TweakStatus

APPLIED_TOKEN = "APPLIED"
NOT_APPLIED_TOKEN = "NOT"


def build_status_check(tweak: TweakDefinition) -> Optional[str]:
    """Return a script printing APPLIED or NOT, or None for pure-script tweaks."""
    predicates: List[str] = []
    for op in tweak.registry_ops:
        predicates.extend(_registry_predicate(op))
    for op in tweak.service_ops:
        predicates.extend(_service_predicate(op))
    if not predicates:
        return None

    # $ok is only ever cleared, so the predicates may run in any order.
    lines = ["$ok = $true", *predicates]
    lines.append(f"if ($ok) {{ '{APPLIED_TOKEN}' }} else {{ '{NOT_APPLIED_TOKEN}' }}")
    return "\n".join(lines)


def interpret_status(output: Optional[str]) -> TweakStatus:
    normalized = (output or "").strip().lower()
    if normalized == APPLIED_TOKEN.lower():
        return TweakStatus.APPLIED
    return TweakStatus.READY


def _registry_predicate(op: RegistryOperation) -> List[str]:
    if not op.path or not op.name:
        return []
    path = ps_quote(op.path)
    name = ps_quote(op.name)
    if op.desired_value is REMOVE:
        return [f"if (Get-ItemProperty -Path {path} -Name {name} -ErrorAction SilentlyContinue) {{ $ok = $false }}"]
    if op.desired_value is REMOVE_KEY:
        return [f"if (Test-Path {path}) {{ $ok = $false }}"]
    expected = ps_quote(op.desired_value.text)
    return [
        f"$val = (Get-ItemProperty -Path {path} -ErrorAction SilentlyContinue).{name}",
        f'if ($null -eq $val -or ("$val" -cne {expected})) {{ $ok = $false }}',
    ]


def _service_predicate(op: ServiceOperation) -> List[str]:
    if not op.service_name:
        return []
    return [
        f"$svc = Get-Service -Name {ps_quote(op.service_name)} -ErrorAction SilentlyContinue",
        f"if ($null -eq $svc -or $svc.StartType.ToString() -cne '{op.desired_startup_type.value}') {{ $ok = $false }}",
    ]
