"""Collect facts about the local host that decide whether tweaks can run."""

from __future__ import annotations

import ctypes
import os
import platform
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

import psutil


@dataclass
class HostInfo:
    system: str
    release: str
    boot_time: datetime
    powershell_path: Optional[str]
    is_admin: Optional[bool]
    service_startup_types: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def is_windows(self) -> bool:
        return self.system == "Windows"

    @property
    def can_run_tweaks(self) -> bool:
        return self.powershell_path is not None and bool(self.is_admin)


def gather_host_info(powershell: str = "powershell", service_names: Iterable[str] = ()) -> HostInfo:
    """Snapshot the host: OS, PowerShell availability, elevation and service startup types."""
    system = platform.system()
    return HostInfo(
        system=system,
        release=platform.release(),
        boot_time=datetime.fromtimestamp(psutil.boot_time()),
        powershell_path=shutil.which(powershell),
        is_admin=_is_admin(),
        service_startup_types=_startup_types(service_names) if system == "Windows" else {},
    )


def _is_admin() -> Optional[bool]:
    if hasattr(os, "geteuid"):
        return os.geteuid() == 0
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return None


def _startup_types(names: Iterable[str]) -> Dict[str, Optional[str]]:
    startup: Dict[str, Optional[str]] = {}
    if not hasattr(psutil, "win_service_get"):
        return startup
    for name in sorted(set(names)):
        try:
            startup[name] = psutil.win_service_get(name).start_type()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            # Missing or protected services report no startup type
            startup[name] = None
    return startup
