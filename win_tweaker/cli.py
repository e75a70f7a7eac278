"""Entry point for the win-tweaker command line tool."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .catalog import Catalog, category_label, load_catalog
from .compiler import Direction, compile_script
from .config import EngineConfig, load_config, parse_log_level
from .errors import CompileEmpty, TweakEngineError
from .formatting import format_host, format_result, format_tweak_detail, format_tweak_list, render_table
from .gateway import PowerShellGateway
from .host import gather_host_info
from .models import OperationResult, TweakDefinition, TweakStatus
from .oracle import build_status_check
from .orchestrator import TweakOrchestrator
from .presets import compose_apply, summarize

logger = logging.getLogger(__name__)

RISK_STYLES = {"low": "green", "medium": "yellow", "high": "bold red"}
STATUS_STYLES = {"applied": "green", "ready": "cyan", "checking": "yellow", "unknown": "dim"}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _resolve_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    _setup_logging(config.log_level)
    try:
        catalog = load_catalog(config.tweaks_path, config.presets_path)
        return args.handler(args, catalog, config)
    except TweakEngineError as exc:
        logger.debug("command failed", exc_info=True)
        Console(stderr=True).print(f"[bold red]error:[/] {escape(str(exc))}", highlight=False)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="win-tweaker",
        description="Apply, undo and verify declarative Windows tweaks.",
    )
    parser.add_argument("--tweaks", help="path to a tweak catalog JSON file")
    parser.add_argument("--presets", help="path to a preset catalog JSON file")
    parser.add_argument("--json", action="store_true", help="emit machine-readable JSON")
    parser.add_argument("--ui", action="store_true", help="render tables with Rich")
    parser.add_argument("--log-level", help="logging level (default: WARNING)")
    parser.add_argument("--serialize", action="store_true", help="lock shared registry keys and services")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="list catalog tweaks")
    list_cmd.add_argument("--category", help="only show tweaks in this category")
    list_cmd.add_argument("--check", action="store_true", help="verify the status of each listed tweak")
    list_cmd.set_defaults(handler=_cmd_list)

    show_cmd = sub.add_parser("show", help="describe one tweak")
    show_cmd.add_argument("id")
    show_cmd.set_defaults(handler=_cmd_show)

    script_cmd = sub.add_parser("script", help="print a compiled script without running it")
    script_cmd.add_argument("id")
    mode = script_cmd.add_mutually_exclusive_group()
    mode.add_argument("--undo", action="store_true", help="print the undo script")
    mode.add_argument("--status", action="store_true", help="print the status check script")
    script_cmd.set_defaults(handler=_cmd_script)

    check_cmd = sub.add_parser("check", help="verify whether tweaks are applied")
    check_cmd.add_argument("ids", nargs="+")
    check_cmd.set_defaults(handler=_cmd_check)

    apply_cmd = sub.add_parser("apply", help="apply a tweak")
    apply_cmd.add_argument("id")
    apply_cmd.set_defaults(handler=_cmd_apply)

    undo_cmd = sub.add_parser("undo", help="revert a tweak")
    undo_cmd.add_argument("id")
    undo_cmd.set_defaults(handler=_cmd_undo)

    presets_cmd = sub.add_parser("presets", help="list presets")
    presets_cmd.set_defaults(handler=_cmd_presets)

    preset_cmd = sub.add_parser("preset", help="apply every tweak of a preset in one script")
    preset_cmd.add_argument("name")
    preset_cmd.add_argument("--dry-run", action="store_true", help="print the combined script only")
    preset_cmd.set_defaults(handler=_cmd_preset)

    doctor_cmd = sub.add_parser("doctor", help="check whether this host can run tweaks")
    doctor_cmd.set_defaults(handler=_cmd_doctor)
    return parser


def _resolve_config(args: argparse.Namespace) -> EngineConfig:
    config = load_config()
    if args.tweaks:
        config.tweaks_path = args.tweaks
    if args.presets:
        config.presets_path = args.presets
    if args.log_level:
        config.log_level = parse_log_level(args.log_level)
    if args.serialize:
        config.serialize_resources = True
    return config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _orchestrator(catalog: Catalog, config: EngineConfig) -> TweakOrchestrator:
    gateway = PowerShellGateway(config.powershell, timeout=config.gateway_timeout)
    return TweakOrchestrator(catalog, gateway, serialize_resources=config.serialize_resources)


def _cmd_list(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    tweaks = catalog.by_category(args.category) if args.category else catalog.ordered()
    statuses: Dict[str, TweakStatus] = {}
    failures = 0
    if args.check:
        orchestrator = _orchestrator(catalog, config)
        results = asyncio.run(_check_all(orchestrator, [tweak.id for tweak in tweaks]))
        failures = sum(1 for outcome in results.values() if isinstance(outcome, Exception))
        statuses = {tweak.id: orchestrator.status(tweak.id) for tweak in tweaks}

    if args.json:
        payload = [_tweak_json(tweak, statuses.get(tweak.id, TweakStatus.UNKNOWN)) for tweak in tweaks]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    elif args.ui:
        Console().print(_rich_tweak_table(tweaks, statuses))
    else:
        print(format_tweak_list(tweaks, statuses))
    return 1 if failures else 0


def _cmd_show(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    tweak = catalog.tweak(args.id)
    if args.json:
        print(json.dumps(_tweak_json(tweak, None, detail=True), ensure_ascii=False, indent=2))
    elif args.ui:
        Console().print(Panel(Text(format_tweak_detail(tweak)), title=escape(tweak.title), style=RISK_STYLES[tweak.risk_level.value]))
    else:
        print(format_tweak_detail(tweak))
    return 0


def _cmd_script(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    tweak = catalog.tweak(args.id)
    if args.status:
        script = build_status_check(tweak)
        if script is None:
            print(f"{tweak.id} has no registry or service state to verify.", file=sys.stderr)
            return 1
    else:
        direction = Direction.UNDO if args.undo else Direction.APPLY
        script = compile_script(tweak, direction)
        if script is None:
            raise CompileEmpty(tweak.id, direction.value)
    print(script)
    return 0


def _cmd_check(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    for tweak_id in args.ids:
        catalog.tweak(tweak_id)
    orchestrator = _orchestrator(catalog, config)
    results = asyncio.run(_check_all(orchestrator, args.ids))

    rows: List[Dict[str, Any]] = []
    for tweak_id, outcome in results.items():
        row: Dict[str, Any] = {"id": tweak_id, "status": orchestrator.status(tweak_id).value}
        if isinstance(outcome, Exception):
            row["error"] = str(outcome)
        rows.append(row)

    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
    else:
        table_rows = [[row["id"], row["status"], row.get("error", "")] for row in rows]
        print(render_table(["ID", "Status", "Error"], table_rows))
    return 1 if any("error" in row for row in rows) else 0


def _cmd_apply(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    result = asyncio.run(_orchestrator(catalog, config).apply(args.id))
    _print_result(args, "apply", result)
    return 0


def _cmd_undo(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    result = asyncio.run(_orchestrator(catalog, config).undo(args.id))
    _print_result(args, "undo", result)
    return 0


def _cmd_presets(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    presets = list(catalog.presets.values())
    if args.json:
        payload = [{"name": p.name, "tweaks": list(p.tweak_ids), "summary": summarize(p, catalog)} for p in presets]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0
    if args.ui:
        table = Table(title="Presets", box=box.SIMPLE_HEAD)
        table.add_column("Preset", style="bold")
        table.add_column("Tweaks", justify="right")
        table.add_column("Includes")
        for preset in presets:
            table.add_row(escape(preset.name), str(len(preset.tweak_ids)), escape(summarize(preset, catalog)))
        Console().print(table)
        return 0
    rows = [[p.name, str(len(p.tweak_ids)), summarize(p, catalog)] for p in presets]
    print(render_table(["Preset", "Tweaks", "Includes"], rows) if rows else "No presets")
    return 0


def _cmd_preset(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    preset = catalog.preset(args.name)
    if args.dry_run:
        script = compose_apply(preset, catalog)
        if script is None:
            raise CompileEmpty(preset.name, "run")
        print(script)
        return 0
    result = asyncio.run(_orchestrator(catalog, config).apply_preset(preset.name))
    _print_result(args, "preset", result)
    return 0


def _cmd_doctor(args: argparse.Namespace, catalog: Catalog, config: EngineConfig) -> int:
    services = {op.service_name for tweak in catalog.tweaks.values() for op in tweak.service_ops}
    info = gather_host_info(config.powershell, services)
    if args.json:
        payload = asdict(info)
        payload["boot_time"] = info.boot_time.isoformat()
        payload["can_run_tweaks"] = info.can_run_tweaks
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(format_host(info))
    return 0 if info.can_run_tweaks else 1


async def _check_all(orchestrator: TweakOrchestrator, ids: Sequence[str]) -> Dict[str, Any]:
    ids = list(dict.fromkeys(ids))
    outcomes = await asyncio.gather(*(orchestrator.check(tweak_id) for tweak_id in ids), return_exceptions=True)
    for outcome in outcomes:
        if isinstance(outcome, Exception) and not isinstance(outcome, TweakEngineError):
            raise outcome
    return dict(zip(ids, outcomes))


def _print_result(args: argparse.Namespace, action: str, result: OperationResult) -> None:
    if args.json:
        payload = asdict(result)
        payload["status"] = result.status.value
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return
    print(format_result(action, result))
    if result.output:
        print(result.output)


def _tweak_json(tweak: TweakDefinition, status: Optional[TweakStatus], detail: bool = False) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": tweak.id,
        "title": tweak.title,
        "category": category_label(tweak.category),
        "risk": tweak.risk_level.value,
        "verifiable": tweak.is_verifiable,
    }
    if status is not None:
        payload["status"] = status.value
    if detail:
        payload["description"] = tweak.description
        payload["apply_script"] = compile_script(tweak, Direction.APPLY)
        payload["undo_script"] = compile_script(tweak, Direction.UNDO)
        payload["status_script"] = build_status_check(tweak)
    return payload


def _rich_tweak_table(tweaks: Sequence[TweakDefinition], statuses: Dict[str, TweakStatus]) -> Table:
    table = Table(title="Tweaks", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="bold")
    table.add_column("Tweak")
    table.add_column("Category")
    table.add_column("Risk")
    table.add_column("Status")

    if not tweaks:
        table.add_row("-", "No tweaks", "-", "-", "-")
        return table

    for tweak in tweaks:
        risk = tweak.risk_level.value
        status = statuses.get(tweak.id, TweakStatus.UNKNOWN).value
        table.add_row(
            escape(tweak.id),
            escape(tweak.title),
            escape(category_label(tweak.category)),
            f"[{RISK_STYLES[risk]}]{risk}[/]",
            f"[{STATUS_STYLES[status]}]{status}[/]",
        )
    return table


if __name__ == "__main__":
    sys.exit(main())
