"""Load and validate the tweak and preset catalog."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import CatalogError, CatalogMiss
from .models import (
    Preset,
    RegistryOperation,
    RegistryValueType,
    ServiceOperation,
    StartupType,
    TweakDefinition,
    parse_desired_value,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_CATEGORY_PREFIX = re.compile(r"^z__+", re.IGNORECASE)


def category_label(category: Optional[str]) -> str:
    """Display label for a raw category, e.g. ``z__Advanced_Tweaks`` -> ``Advanced Tweaks``."""
    label = _CATEGORY_PREFIX.sub("", category or "").replace("_", " ").strip()
    return label or "Other"


@dataclass
class Catalog:
    tweaks: Dict[str, TweakDefinition] = field(default_factory=dict)
    presets: Dict[str, Preset] = field(default_factory=dict)

    def tweak(self, tweak_id: str) -> TweakDefinition:
        try:
            return self.tweaks[tweak_id]
        except KeyError:
            raise CatalogMiss("tweak", tweak_id) from None

    def preset(self, name: str) -> Preset:
        try:
            return self.presets[name]
        except KeyError:
            raise CatalogMiss("preset", name) from None

    def get(self, tweak_id: str) -> Optional[TweakDefinition]:
        return self.tweaks.get(tweak_id)

    def ordered(self) -> List[TweakDefinition]:
        return sorted(self.tweaks.values(), key=lambda tweak: tweak.order)

    def categories(self) -> List[str]:
        return sorted({category_label(tweak.category) for tweak in self.tweaks.values()})

    def by_category(self, label: str) -> List[TweakDefinition]:
        return [tweak for tweak in self.ordered() if category_label(tweak.category) == label]


def load_catalog(tweaks_path: Optional[PathLike] = None, presets_path: Optional[PathLike] = None) -> Catalog:
    """Load a catalog from JSON files, falling back to the packaged defaults."""
    tweaks_data = _read_json(tweaks_path, "tweaks.json")
    presets_data = _read_json(presets_path, "presets.json")
    catalog = Catalog(tweaks=parse_tweaks(tweaks_data), presets=parse_presets(presets_data))
    logger.debug("loaded %d tweaks and %d presets", len(catalog.tweaks), len(catalog.presets))
    return catalog


def parse_tweaks(data: Any) -> Dict[str, TweakDefinition]:
    if isinstance(data, Mapping):
        entries: Iterable[Tuple[Any, Any]] = data.items()
    elif isinstance(data, list):
        entries = [(_record_id(record, index), record) for index, record in enumerate(data)]
    else:
        raise CatalogError("tweak catalog must be a JSON object or list")

    tweaks: Dict[str, TweakDefinition] = {}
    for tweak_id, record in entries:
        if not isinstance(tweak_id, str) or not tweak_id:
            raise CatalogError(f"tweak id must be a non-empty string, got {tweak_id!r}")
        if tweak_id in tweaks:
            raise CatalogError(f"duplicate tweak id {tweak_id!r}")
        tweaks[tweak_id] = _parse_tweak(tweak_id, record)
    return tweaks


def parse_presets(data: Any) -> Dict[str, Preset]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise CatalogError("preset catalog must be a JSON object of name -> tweak ids")
    presets: Dict[str, Preset] = {}
    for name, ids in data.items():
        if not isinstance(ids, list) or not all(isinstance(item, str) for item in ids):
            raise CatalogError(f"preset {name!r} must list tweak ids as strings")
        presets[name] = Preset(name=name, tweak_ids=tuple(ids))
    return presets


def _read_json(path: Optional[PathLike], default_name: str) -> Any:
    try:
        if path is None:
            text = resources.files("win_tweaker").joinpath("data", default_name).read_text(encoding="utf-8")
        else:
            text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"cannot read catalog file {path or default_name}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"invalid JSON in {path or default_name}: {exc}") from exc


def _record_id(record: Any, index: int) -> Any:
    if not isinstance(record, Mapping) or "id" not in record:
        raise CatalogError(f"tweak record #{index} has no id")
    return record["id"]


def _parse_tweak(tweak_id: str, record: Any) -> TweakDefinition:
    if not isinstance(record, Mapping):
        raise CatalogError(f"tweak {tweak_id!r} must be an object")
    title = _require_str(record, "Content", tweak_id)
    try:
        registry_ops = tuple(_parse_registry(item) for item in _list_of(record, "registry", tweak_id))
        service_ops = tuple(_parse_service(item) for item in _list_of(record, "service", tweak_id))
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogError(f"tweak {tweak_id!r}: {exc}") from exc
    return TweakDefinition(
        id=tweak_id,
        title=title,
        description=_optional_str(record, "Description", tweak_id),
        category=_optional_str(record, "category", tweak_id),
        registry_ops=registry_ops,
        service_ops=service_ops,
        apply_script=_script_lines(record, "InvokeScript", tweak_id),
        undo_script=_script_lines(record, "UndoScript", tweak_id),
        order=_optional_str(record, "Order", tweak_id),
        link=_optional_str(record, "link", tweak_id) or None,
    )


def _parse_registry(item: Any) -> RegistryOperation:
    if not isinstance(item, Mapping):
        raise TypeError("registry entries must be objects")
    original = item.get("OriginalValue")
    return RegistryOperation(
        path=_entry_str(item, "Path"),
        name=_entry_str(item, "Name"),
        value_type=RegistryValueType.parse(item.get("Type")),
        desired_value=parse_desired_value(_entry_str(item, "Value")),
        original_value=parse_desired_value(_as_text(original)) if original is not None else None,
    )


def _parse_service(item: Any) -> ServiceOperation:
    if not isinstance(item, Mapping):
        raise TypeError("service entries must be objects")
    original = item.get("OriginalType")
    return ServiceOperation(
        service_name=_entry_str(item, "Name"),
        desired_startup_type=StartupType.parse(_entry_str(item, "StartupType")),
        original_startup_type=StartupType.parse(original) if original else None,
    )


def _entry_str(item: Mapping, key: str) -> str:
    if key not in item:
        raise KeyError(f"missing {key!r}")
    # Empty registry paths and names load; the compiler skips those ops.
    value = _as_text(item[key])
    if key == "StartupType" and not value:
        raise ValueError(f"{key!r} must not be empty")
    return value


def _as_text(value: Any) -> str:
    # Registry values are compared as strings; numeric JSON values keep their decimal form.
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError(f"expected a string value, got {type(value).__name__}")
    return str(value)


def _require_str(record: Mapping, key: str, tweak_id: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"tweak {tweak_id!r} is missing {key!r}")
    return value


def _optional_str(record: Mapping, key: str, tweak_id: str) -> str:
    value = record.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise CatalogError(f"tweak {tweak_id!r}: {key!r} must be a string")
    return value


def _list_of(record: Mapping, key: str, tweak_id: str) -> List[Any]:
    value = record.get(key) or []
    if not isinstance(value, list):
        raise CatalogError(f"tweak {tweak_id!r}: {key!r} must be a list")
    return value


def _script_lines(record: Mapping, key: str, tweak_id: str) -> Tuple[str, ...]:
    lines = _list_of(record, key, tweak_id)
    if not all(isinstance(line, str) for line in lines):
        raise CatalogError(f"tweak {tweak_id!r}: {key!r} must contain only strings")
    return tuple(lines)
