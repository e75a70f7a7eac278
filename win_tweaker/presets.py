"""Combine several tweaks into one preset script."""

from __future__ import annotations

from typing import List, Optional, Tuple

from .catalog import Catalog
from .compiler import Direction, compile_script
from .models import Preset

SUMMARY_LIMIT = 6


def compose_apply(preset: Preset, catalog: Catalog) -> Optional[str]:
    """Concatenate the apply scripts of a preset's tweaks, or None if none produce one."""
    script, _ = compose_with_members(preset, catalog)
    return script


def compose_with_members(preset: Preset, catalog: Catalog) -> Tuple[Optional[str], List[str]]:
    """Like :func:`compose_apply` but also report which tweak ids contributed."""
    scripts: List[str] = []
    members: List[str] = []
    for tweak_id in preset.tweak_ids:
        tweak = catalog.get(tweak_id)
        if tweak is None:
            continue
        script = compile_script(tweak, Direction.APPLY)
        if script is None:
            continue
        scripts.append(script)
        members.append(tweak_id)
    return ("\n".join(scripts) or None), members


def summarize(preset: Preset, catalog: Catalog) -> str:
    names = [_title(catalog, tweak_id) for tweak_id in preset.tweak_ids]
    if len(names) <= SUMMARY_LIMIT:
        return ", ".join(names)
    extra = len(names) - SUMMARY_LIMIT
    return f"{', '.join(names[:SUMMARY_LIMIT])} +{extra} more"


def _title(catalog: Catalog, tweak_id: str) -> str:
    tweak = catalog.get(tweak_id)
    return tweak.title if tweak else tweak_id
