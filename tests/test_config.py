import pytest

from win_tweaker.config import EngineConfig, load_config, parse_log_level


def test_defaults():
    assert load_config({}) == EngineConfig()


def test_environment_overrides():
    config = load_config(
        {
            "WIN_TWEAKER_TWEAKS": "/tmp/tweaks.json",
            "WIN_TWEAKER_POWERSHELL": "pwsh",
            "WIN_TWEAKER_TIMEOUT": "30",
            "WIN_TWEAKER_SERIALIZE": "yes",
            "WIN_TWEAKER_LOG_LEVEL": "debug",
        }
    )
    assert config.tweaks_path == "/tmp/tweaks.json"
    assert config.presets_path is None
    assert config.powershell == "pwsh"
    assert config.gateway_timeout == 30.0
    assert config.serialize_resources is True
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [
        {"WIN_TWEAKER_TIMEOUT": "soon"},
        {"WIN_TWEAKER_TIMEOUT": "-1"},
        {"WIN_TWEAKER_SERIALIZE": "maybe"},
        {"WIN_TWEAKER_LOG_LEVEL": "loud"},
    ],
)
def test_invalid_values_are_rejected(env):
    with pytest.raises(ValueError):
        load_config(env)


def test_parse_log_level():
    assert parse_log_level(" info ") == "INFO"
