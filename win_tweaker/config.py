"""Runtime configuration read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "WIN_TWEAKER_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass
class EngineConfig:
    tweaks_path: Optional[str] = None
    presets_path: Optional[str] = None
    powershell: str = "powershell"
    gateway_timeout: Optional[float] = None
    serialize_resources: bool = False
    log_level: str = "WARNING"


def load_config(environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    env = os.environ if environ is None else environ
    config = EngineConfig()
    config.tweaks_path = env.get(ENV_PREFIX + "TWEAKS") or None
    config.presets_path = env.get(ENV_PREFIX + "PRESETS") or None
    config.powershell = env.get(ENV_PREFIX + "POWERSHELL") or config.powershell
    config.gateway_timeout = _parse_timeout(env.get(ENV_PREFIX + "TIMEOUT"))
    config.serialize_resources = _parse_bool(env.get(ENV_PREFIX + "SERIALIZE", ""), ENV_PREFIX + "SERIALIZE")
    config.log_level = parse_log_level(env.get(ENV_PREFIX + "LOG_LEVEL") or config.log_level)
    return config


def parse_log_level(raw: str) -> str:
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"unknown log level {raw!r}")
    return level


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}TIMEOUT must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}TIMEOUT must be positive, got {raw!r}")
    return value


def _parse_bool(raw: str, name: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")
