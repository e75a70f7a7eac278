"""Execution gateways that run compiled scripts on the host."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from .errors import GatewayError

logger = logging.getLogger(__name__)

NOISE_PREFIXES = ("At line:", "+", "CategoryInfo", "FullyQualifiedErrorId")
ACCESS_DENIED_MARKERS = ("Access is denied", "UnauthorizedAccessException")


class Gateway(Protocol):
    async def run(self, script: str) -> str:  # pragma: no cover - protocol
        ...


class PowerShellGateway:
    """Run scripts through ``powershell -NoProfile -NonInteractive -Command``."""

    def __init__(self, executable: str = "powershell", timeout: Optional[float] = None) -> None:
        self.executable = executable
        self.timeout = timeout

    def command(self, script: str) -> Sequence[str]:
        return [self.executable, "-NoProfile", "-NonInteractive", "-Command", script.strip()]

    async def run(self, script: str) -> str:
        logger.debug("running script via %s:\n%s", self.executable, script)
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command(script),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise GatewayError(f"PowerShell execution failed: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _reap(proc)
            raise GatewayError(f"PowerShell did not finish within {self.timeout} seconds") from None
        except asyncio.CancelledError:
            await _reap(proc)
            raise

        out = stdout.decode("utf-8", errors="replace")
        if proc.returncode == 0:
            return out.strip()
        err = stderr.decode("utf-8", errors="replace")
        raise GatewayError(clean_error(err if err.strip() else out))


async def _reap(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


def clean_error(raw: str) -> str:
    """Strip PowerShell's positional noise from an error message."""
    kept = [line for line in raw.splitlines() if not line.lstrip().startswith(NOISE_PREFIXES)]
    message = "\n".join(kept).strip() or raw.strip()
    if any(marker in message for marker in ACCESS_DENIED_MARKERS):
        return f"Administrator rights required. Error: {message}"
    return message
