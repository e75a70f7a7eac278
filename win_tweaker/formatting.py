"""Console-friendly formatting utilities."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .catalog import category_label
from .compiler import skipped_on_undo
from .host import HostInfo
from .models import REMOVE, REMOVE_KEY, DesiredValue, OperationResult, TweakDefinition, TweakStatus


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = []
    lines.append(_format_row(headers, widths))
    lines.append(_format_row(["-" * w for w in widths], widths))
    for row in rows:
        lines.append(_format_row(row, widths))
    return "\n".join(lines)


def describe_value(value: "DesiredValue | None") -> str:
    if value is None:
        return "-"
    if value is REMOVE:
        return "<remove value>"
    if value is REMOVE_KEY:
        return "<remove key>"
    return value.text


def format_tweak_list(tweaks: Iterable[TweakDefinition], statuses: Mapping[str, TweakStatus]) -> str:
    rows = [
        [
            tweak.id,
            tweak.title,
            category_label(tweak.category),
            tweak.risk_level.value,
            statuses.get(tweak.id, TweakStatus.UNKNOWN).value,
        ]
        for tweak in tweaks
    ]
    return render_table(["ID", "Tweak", "Category", "Risk", "Status"], rows) if rows else "No tweaks"


def format_tweak_detail(tweak: TweakDefinition) -> str:
    lines = [
        f"{tweak.title} ({tweak.id})",
        f"Category: {category_label(tweak.category)} | Risk: {tweak.risk_level.value}",
    ]
    if tweak.description:
        lines.append(tweak.description)
    if tweak.link:
        lines.append(f"More: {tweak.link}")
    if tweak.registry_ops:
        lines.append("Registry:")
        lines.append(
            render_table(
                ["Path", "Name", "Type", "Value", "Original"],
                [
                    [op.path, op.name, op.value_type.value, describe_value(op.desired_value), describe_value(op.original_value)]
                    for op in tweak.registry_ops
                ],
            )
        )
    if tweak.service_ops:
        lines.append("Services:")
        lines.append(
            render_table(
                ["Service", "Startup", "Original"],
                [
                    [
                        op.service_name,
                        op.desired_startup_type.value,
                        op.original_startup_type.value if op.original_startup_type else "-",
                    ]
                    for op in tweak.service_ops
                ],
            )
        )
    if tweak.apply_script:
        lines.append("Script:")
        lines.extend(f"  {line}" for line in tweak.apply_script)
    if tweak.undo_script:
        lines.append("Undo script:")
        lines.extend(f"  {line}" for line in tweak.undo_script)
    skipped = skipped_on_undo(tweak)
    if skipped:
        lines.append(f"Undo cannot restore: {', '.join(skipped)}")
    if not tweak.is_verifiable:
        lines.append("Status cannot be verified for script-only tweaks.")
    return "\n".join(lines)


def format_result(action: str, result: OperationResult) -> str:
    text = f"{action} {result.target}: {result.status.value}"
    if result.affected:
        text += f" ({len(result.affected)} tweaks)"
    if result.partial:
        text += " (partial undo: some values had no recorded original)"
    return text


def format_host(info: HostInfo) -> str:
    lines = [
        f"System: {info.system} {info.release}",
        f"Booted: {info.boot_time:%Y-%m-%d %H:%M:%S}",
        f"PowerShell: {info.powershell_path or 'not found'}",
        f"Administrator: {_yes_no(info.is_admin)}",
    ]
    if info.service_startup_types:
        lines.append(
            render_table(
                ["Service", "Startup"],
                [[name, startup or "missing"] for name, startup in info.service_startup_types.items()],
            )
        )
    lines.append("Ready to apply tweaks." if info.can_run_tweaks else "Tweaks cannot be applied on this host.")
    return "\n".join(lines)


def _yes_no(flag: "bool | None") -> str:
    if flag is None:
        return "unknown"
    return "yes" if flag else "no"


def _format_row(row: Sequence[str], widths: Sequence[int]) -> str:
    padded = [cell.ljust(width) for cell, width in zip(row, widths)]
    return " | ".join(padded)
