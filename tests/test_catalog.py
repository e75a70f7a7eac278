import json

import pytest

from win_tweaker.catalog import Catalog, category_label, load_catalog, parse_presets, parse_tweaks
from win_tweaker.errors import CatalogError, CatalogMiss
from win_tweaker.models import REMOVE, REMOVE_KEY, RegistryValueType, SetValue, StartupType


def record(**overrides):
    data = {
        "Content": "Disable Telemetry",
        "category": "Privacy",
        "registry": [
            {"Path": "HKLM:\\Soft\\X", "Name": "V", "Type": "DWord", "Value": "0", "OriginalValue": "1"},
            {"Path": "HKLM:\\Soft\\X", "Name": "W", "Value": "<RemoveEntry>"},
        ],
        "service": [{"Name": "DiagTrack", "StartupType": "Disabled", "OriginalType": "Automatic"}],
        "InvokeScript": ["Stop-Service DiagTrack"],
    }
    data.update(overrides)
    return data


def test_parse_toolbox_record():
    tweak = parse_tweaks({"telemetry": record()})["telemetry"]
    assert tweak.title == "Disable Telemetry"
    first, second = tweak.registry_ops
    assert first.value_type is RegistryValueType.DWORD
    assert first.desired_value == SetValue("0")
    assert first.original_value == SetValue("1")
    assert second.value_type is RegistryValueType.STRING
    assert second.desired_value is REMOVE
    assert second.original_value is None
    assert tweak.service_ops[0].desired_startup_type is StartupType.DISABLED
    assert tweak.apply_script == ("Stop-Service DiagTrack",)
    assert tweak.undo_script == ()


def test_numeric_values_keep_decimal_text():
    tweak = parse_tweaks({"t": record(registry=[{"Path": "P", "Name": "N", "Value": 1440, "OriginalValue": "<RemoveKey>"}])})["t"]
    assert tweak.registry_ops[0].desired_value == SetValue("1440")
    assert tweak.registry_ops[0].original_value is REMOVE_KEY


def test_duplicate_ids_in_list_form_are_rejected():
    records = [dict(record(), id="a"), dict(record(), id="a")]
    with pytest.raises(CatalogError, match="duplicate"):
        parse_tweaks(records)


@pytest.mark.parametrize(
    "overrides",
    [
        {"Content": ""},
        {"registry": [{"Path": "P", "Value": "1"}]},
        {"registry": [{"Path": "P", "Name": "N", "Type": "Float", "Value": "1"}]},
        {"service": [{"Name": "S", "StartupType": "Sometimes"}]},
        {"InvokeScript": "Stop-Service DiagTrack"},
        {"InvokeScript": [1, 2]},
        {"Description": 5},
    ],
)
def test_malformed_records_fail_fast(overrides):
    with pytest.raises(CatalogError, match="bad"):
        parse_tweaks({"bad": record(**overrides)})


def test_presets_parse_and_validate():
    presets = parse_presets({"Standard": ["a", "missing"]})
    assert presets["Standard"].tweak_ids == ("a", "missing")
    assert parse_presets(None) == {}
    with pytest.raises(CatalogError):
        parse_presets({"Standard": "a"})


def test_lookup_misses_raise_catalog_miss():
    catalog = Catalog(tweaks=parse_tweaks({"a": record()}))
    with pytest.raises(CatalogMiss):
        catalog.tweak("nope")
    with pytest.raises(KeyError):
        catalog.preset("nope")
    assert catalog.get("nope") is None


def test_category_labels_and_ordering():
    tweaks = parse_tweaks(
        {
            "b": record(category="z__Advanced_Tweaks", Order="a2"),
            "a": record(category="z__Advanced_Tweaks", Order="a1"),
            "c": record(category=""),
        }
    )
    catalog = Catalog(tweaks=tweaks)
    assert category_label("z__Advanced_Tweaks") == "Advanced Tweaks"
    assert catalog.categories() == ["Advanced Tweaks", "Other"]
    assert [t.id for t in catalog.by_category("Advanced Tweaks")] == ["a", "b"]


def test_load_catalog_from_files(tmp_path):
    tweaks_file = tmp_path / "tweaks.json"
    presets_file = tmp_path / "presets.json"
    tweaks_file.write_text(json.dumps({"a": record()}), encoding="utf-8")
    presets_file.write_text(json.dumps({"Only": ["a"]}), encoding="utf-8")
    catalog = load_catalog(tweaks_file, presets_file)
    assert list(catalog.tweaks) == ["a"]
    assert catalog.preset("Only").tweak_ids == ("a",)


def test_load_catalog_reports_bad_json(tmp_path):
    broken = tmp_path / "tweaks.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(CatalogError, match="invalid JSON"):
        load_catalog(broken)
    with pytest.raises(CatalogError, match="cannot read"):
        load_catalog(tmp_path / "missing.json")


def test_packaged_catalog_is_consistent():
    catalog = load_catalog()
    assert catalog.tweaks
    for preset in catalog.presets.values():
        assert all(tweak_id in catalog.tweaks for tweak_id in preset.tweak_ids)


def test_registry_entry_with_empty_name_loads_and_is_skipped():
    from win_tweaker.compiler import Direction, compile_script

    tweak = parse_tweaks(
        {
            "classic-menu": {
                "Content": "Classic Context Menu",
                "registry": [
                    {
                        "Path": "HKCU:\\Software\\Classes\\CLSID\\{86ca1aa0-34aa-4e8b-a509-50c905bae2a2}\\InprocServer32",
                        "Name": "",
                        "Type": "String",
                        "Value": "",
                        "OriginalValue": "<RemoveKey>",
                    }
                ],
                "InvokeScript": ["Stop-Process -Name explorer -Force"],
            }
        }
    )["classic-menu"]
    assert tweak.registry_ops[0].name == ""
    assert compile_script(tweak, Direction.APPLY) == "Stop-Process -Name explorer -Force"
    assert compile_script(tweak, Direction.UNDO) is None


def test_registry_entry_with_empty_path_compiles_to_nothing():
    from win_tweaker.compiler import Direction, compile_script

    tweak = parse_tweaks({"t": record(registry=[{"Path": "", "Name": "N", "Value": "1"}], service=[], InvokeScript=[])})["t"]
    assert tweak.registry_ops[0].path == ""
    assert compile_script(tweak, Direction.APPLY) is None
