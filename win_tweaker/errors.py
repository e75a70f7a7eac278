"""Exceptions raised by the tweak engine."""

from __future__ import annotations


class TweakEngineError(Exception):
    """Base class for every error the engine reports to callers."""


class CatalogError(TweakEngineError):
    """The catalog source is malformed and cannot be loaded."""


class CatalogMiss(TweakEngineError, KeyError):
    """A tweak id or preset name is not present in the catalog."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"unknown {kind}: {key}")
        self.kind = kind
        self.key = key

    def __str__(self) -> str:
        return f"unknown {self.kind}: {self.key}"


class CompileEmpty(TweakEngineError):
    """Compilation produced no script, so there is nothing to execute."""

    def __init__(self, target: str, action: str = "apply") -> None:
        super().__init__(f"nothing to {action} for {target}")
        self.target = target
        self.action = action


class TweakBusy(TweakEngineError):
    """Another operation for the same tweak id is still outstanding."""

    def __init__(self, target: str) -> None:
        super().__init__(f"an operation for {target} is already in progress")
        self.target = target


class GatewayError(Exception):
    """Raised by an execution gateway when a script fails to run."""


class GatewayFailure(TweakEngineError):
    """Execution failed; carries the raw gateway error text."""

    def __init__(self, target: str, message: str) -> None:
        super().__init__(message)
        self.target = target
        self.message = message
