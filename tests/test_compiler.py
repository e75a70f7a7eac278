from fakes import make_tweak, reg, svc

from win_tweaker.compiler import Direction, compile_script, ps_quote, skipped_on_undo
from win_tweaker.models import REMOVE, REMOVE_KEY, RegistryValueType, StartupType


def test_apply_sets_value_under_path():
    tweak = make_tweak(registry_ops=[reg()])
    script = compile_script(tweak, Direction.APPLY)
    assert script == (
        "if (-not (Test-Path 'HKLM:\\Soft\\X')) { New-Item -Path 'HKLM:\\Soft\\X' -Force | Out-Null }\n"
        "Set-ItemProperty -Path 'HKLM:\\Soft\\X' -Name 'V' -Type DWord -Value '0' -Force"
    )


def test_compile_is_deterministic():
    tweak = make_tweak(registry_ops=[reg()], service_ops=[svc()], apply_script=["Write-Host hi"])
    assert compile_script(tweak, Direction.APPLY) == compile_script(tweak, Direction.APPLY)


def test_undo_uses_original_value():
    tweak = make_tweak(registry_ops=[reg()])
    script = compile_script(tweak, Direction.UNDO)
    assert "-Value '1'" in script
    assert "-Value '0'" not in script


def test_phases_join_in_registry_service_raw_order():
    tweak = make_tweak(
        registry_ops=[reg()],
        service_ops=[svc()],
        apply_script=["Stop-Service DiagTrack", "Write-Host done"],
    )
    lines = compile_script(tweak, Direction.APPLY).splitlines()
    assert lines[1].startswith("Set-ItemProperty")
    assert lines[2] == "Set-Service -Name 'DiagTrack' -StartupType Disabled -ErrorAction SilentlyContinue"
    assert lines[3:] == ["Stop-Service DiagTrack", "Write-Host done"]


def test_remove_emits_tolerant_deletion():
    tweak = make_tweak(registry_ops=[reg(value=REMOVE, original="1")])
    script = compile_script(tweak, Direction.APPLY)
    assert script == "Remove-ItemProperty -Path 'HKLM:\\Soft\\X' -Name 'V' -Force -ErrorAction SilentlyContinue"


def test_undo_of_remove_key_original_deletes_key():
    tweak = make_tweak(registry_ops=[reg(value="1", original=REMOVE_KEY)])
    script = compile_script(tweak, Direction.UNDO)
    assert script == "Remove-Item -Path 'HKLM:\\Soft\\X' -Recurse -Force -ErrorAction SilentlyContinue"


def test_undo_without_original_is_skipped():
    tweak = make_tweak(registry_ops=[reg(original=None)], service_ops=[svc(original=None)])
    assert compile_script(tweak, Direction.UNDO) is None
    assert skipped_on_undo(tweak) == ["HKLM:\\Soft\\X\\V", "service DiagTrack"]


def test_ops_with_empty_path_or_name_are_skipped():
    tweak = make_tweak(registry_ops=[reg(path=""), reg(name="")], service_ops=[svc(name="")])
    assert compile_script(tweak, Direction.APPLY) is None


def test_empty_tweak_compiles_to_none():
    assert compile_script(make_tweak(), Direction.APPLY) is None
    assert compile_script(make_tweak(apply_script=["Write-Host hi"]), Direction.UNDO) is None


def test_undo_script_lines_kept_verbatim():
    tweak = make_tweak(apply_script=["a"], undo_script=["Set-Service WSearch -StartupType Automatic; Start-Service WSearch"])
    assert compile_script(tweak, Direction.UNDO) == "Set-Service WSearch -StartupType Automatic; Start-Service WSearch"


def test_literals_are_single_quoted():
    tweak = make_tweak(
        registry_ops=[reg(path="HKCU:\\Control Panel\\Desktop", name="Wall'paper", value="$home", value_type=RegistryValueType.STRING)]
    )
    script = compile_script(tweak, Direction.APPLY)
    assert "-Name 'Wall''paper' -Type String -Value '$home'" in script
    assert ps_quote("it's") == "'it''s'"


def test_service_undo_restores_original_type():
    tweak = make_tweak(service_ops=[svc(startup=StartupType.DISABLED, original=StartupType.MANUAL)])
    assert compile_script(tweak, Direction.UNDO) == (
        "Set-Service -Name 'DiagTrack' -StartupType Manual -ErrorAction SilentlyContinue"
    )
