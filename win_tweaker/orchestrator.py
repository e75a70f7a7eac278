"""Drive apply, undo and status checks for catalog tweaks."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Dict, Iterable, List, Optional

from .catalog import Catalog
from .compiler import Direction, compile_script, skipped_on_undo
from .errors import CompileEmpty, GatewayError, GatewayFailure, TweakBusy
from .gateway import Gateway
from .models import OperationResult, RiskLevel, TweakDefinition, TweakRuntimeState, TweakStatus
from .oracle import build_status_check, interpret_status
from .presets import compose_with_members

logger = logging.getLogger(__name__)


class TweakOrchestrator:
    """Owns the runtime state of every tweak and funnels scripts through a gateway.

    Operations for the same tweak id are rejected with :class:`TweakBusy` while one is
    outstanding. Operations for different ids run concurrently; two tweaks writing the same
    registry key or service race unless ``serialize_resources`` is enabled, which holds a lock
    per registry path and service name for the duration of each gateway call.
    """

    def __init__(self, catalog: Catalog, gateway: Gateway, *, serialize_resources: bool = False) -> None:
        self.catalog = catalog
        self.gateway = gateway
        self.serialize_resources = serialize_resources
        self._states: Dict[str, TweakRuntimeState] = {}
        self._resource_locks: Dict[str, asyncio.Lock] = {}

    def state(self, tweak_id: str) -> TweakRuntimeState:
        self.catalog.tweak(tweak_id)
        return self._states.setdefault(tweak_id, TweakRuntimeState())

    def status(self, tweak_id: str) -> TweakStatus:
        return self.state(tweak_id).status

    def risk_level(self, tweak_id: str) -> RiskLevel:
        return self.catalog.tweak(tweak_id).risk_level

    def in_flight(self, tweak_id: str) -> bool:
        return self.state(tweak_id).in_flight

    async def check(self, tweak_id: str) -> OperationResult:
        tweak = self.catalog.tweak(tweak_id)
        script = build_status_check(tweak)
        state = self._claim(tweak_id)
        try:
            if script is None:
                state.status = TweakStatus.UNKNOWN
                return OperationResult(target=tweak_id, status=state.status)
            previous = state.status
            self._transition(tweak_id, state, TweakStatus.CHECKING)
            try:
                output = await self._run([tweak], tweak_id, script)
            except BaseException:
                # Failed or cancelled checks say nothing about the host.
                self._transition(tweak_id, state, previous)
                raise
            self._transition(tweak_id, state, interpret_status(output))
            return OperationResult(target=tweak_id, status=state.status, output=output)
        finally:
            state.in_flight = False

    async def apply(self, tweak_id: str) -> OperationResult:
        return await self._execute(tweak_id, Direction.APPLY)

    async def undo(self, tweak_id: str) -> OperationResult:
        return await self._execute(tweak_id, Direction.UNDO)

    async def apply_preset(self, name: str) -> OperationResult:
        """Submit every tweak of a preset as one script; all or nothing from the engine's view."""
        preset = self.catalog.preset(name)
        script, members = compose_with_members(preset, self.catalog)
        if script is None:
            raise CompileEmpty(name, "run")

        # A preset may list a tweak more than once; claim each id a single time.
        members = list(dict.fromkeys(members))
        states: List[TweakRuntimeState] = []
        try:
            for tweak_id in members:
                states.append(self._claim(tweak_id))
        except TweakBusy:
            for state in states:
                state.in_flight = False
            raise

        try:
            tweaks = [self.catalog.tweak(tweak_id) for tweak_id in members]
            output = await self._run(tweaks, name, script)
            for tweak_id, state in zip(members, states):
                self._transition(tweak_id, state, TweakStatus.APPLIED)
        finally:
            for state in states:
                state.in_flight = False
        return OperationResult(target=name, status=TweakStatus.APPLIED, output=output, affected=tuple(members))

    async def _execute(self, tweak_id: str, direction: Direction) -> OperationResult:
        tweak = self.catalog.tweak(tweak_id)
        script = compile_script(tweak, direction)
        if script is None:
            raise CompileEmpty(tweak_id, direction.value)

        state = self._claim(tweak_id)
        try:
            output = await self._run([tweak], tweak_id, script)
            target = TweakStatus.APPLIED if direction is Direction.APPLY else TweakStatus.READY
            self._transition(tweak_id, state, target)
        finally:
            state.in_flight = False

        partial = False
        if direction is Direction.UNDO:
            skipped = skipped_on_undo(tweak)
            if skipped:
                partial = True
                logger.warning("undo of %s left %s untouched (no recorded original)", tweak_id, ", ".join(skipped))
        return OperationResult(target=tweak_id, status=state.status, output=output, partial=partial)

    def _claim(self, tweak_id: str) -> TweakRuntimeState:
        state = self.state(tweak_id)
        if state.in_flight:
            raise TweakBusy(tweak_id)
        state.in_flight = True
        return state

    def _transition(self, tweak_id: str, state: TweakRuntimeState, status: TweakStatus) -> None:
        if state.status is not status:
            logger.debug("%s: %s -> %s", tweak_id, state.status.value, status.value)
        state.status = status

    async def _run(self, tweaks: Iterable[TweakDefinition], target: str, script: str) -> str:
        async with AsyncExitStack() as stack:
            if self.serialize_resources:
                for key in _resource_keys(tweaks):
                    await stack.enter_async_context(self._lock_for(key))
            try:
                return await self.gateway.run(script)
            except GatewayError as exc:
                logger.warning("%s failed: %s", target, exc)
                raise GatewayFailure(target, str(exc)) from exc

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock: Optional[asyncio.Lock] = self._resource_locks.get(key)
        if lock is None:
            lock = self._resource_locks[key] = asyncio.Lock()
        return lock


def _resource_keys(tweaks: Iterable[TweakDefinition]) -> List[str]:
    keys = set()
    for tweak in tweaks:
        for op in tweak.registry_ops:
            keys.add("registry:" + op.path.rstrip("\\").lower())
        for op in tweak.service_ops:
            keys.add("service:" + op.service_name.lower())
    # A fixed acquisition order keeps overlapping tweaks from deadlocking.
    return sorted(keys)
