from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from block42_engine.commands import CommandSet, get_available_commands
from block42_engine.level_io import (
    InputFormatError,
    LevelSpec,
    dump_event_stream,
    dump_execution_result,
    load_game_state,
    load_level,
    parse_program_tokens,
)
from block42_engine.models import MAX_CALL_DEPTH, MAX_STEPS, ExecutionOptions
from block42_engine.trace import StepTrace, run_with_trace
from block42_engine.validator import validate

logger = logging.getLogger("block42_engine")

LOG_LEVEL_ENV = "BLOCK42_LOG_LEVEL"


def _configure_logging(level_name: str | None) -> None:
    """Configure the root logger. --log-level wins over $BLOCK42_LOG_LEVEL."""
    name = level_name or os.getenv(LOG_LEVEL_ENV) or "WARNING"
    level = getattr(logging, name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _split_tokens(value: str | None) -> list[str]:
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def _program_from_args(args: argparse.Namespace, level: LevelSpec) -> CommandSet:
    overrides = {name: getattr(args, name) for name in ("f0", "f1", "f2")}
    if any(v is not None for v in overrides.values()):
        routines = {
            name: parse_program_tokens(_split_tokens(value), label=f"--{name}")
            for name, value in overrides.items()
        }
        return CommandSet.from_mapping(routines)

    if level.solution is None:
        raise InputFormatError("level has no solution; pass --f0/--f1/--f2")
    return level.solution.program


def _fmt_row(row: StepTrace, total_stars: int) -> str:
    if row.command is None:
        label = "-"
    elif row.skipped:
        label = f"{row.command} (skipped)"
    else:
        label = row.command
    pos = f"({row.position[0]}, {row.position[1]})"
    queue = " ".join(row.queue) if row.queue else "-"
    return (
        f"{row.index:4d}  {label:<18s} {pos:<10s} {row.direction:<6s} "
        f"{row.stars}/{total_stars:<4d} {row.status:<8s} {queue}"
    )


def _render_text_report(*, rows: list[StepTrace], total_stars: int) -> str:
    out: list[str] = [
        f"{'#':>4s}  {'Command':<18s} {'Position':<10s} {'Facing':<6s} {'Stars':<6s} {'Status':<8s} Queue"
    ]
    for row in rows:
        out.append(_fmt_row(row, total_stars))

    final = rows[-1]
    verdict = final.status.upper()
    summary = f"Result: {verdict} (steps={final.step}, stars={final.stars}/{total_stars})"
    if final.error:
        summary += f": {final.error}"
    out.append("")
    out.append(summary)
    return "\n".join(out) + "\n"


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _cmd_run(args: argparse.Namespace) -> int:
    try:
        level = load_level(Path(str(args.level)))
        program = _program_from_args(args, level)
    except InputFormatError as e:
        print(f"ERROR: invalid input: {e}", file=sys.stderr)
        return 2

    if args.max_steps < 0 or args.max_call_depth < 1:
        print("ERROR: --max-steps must be >= 0 and --max-call-depth must be >= 1.", file=sys.stderr)
        return 2

    options = ExecutionOptions(
        max_steps=int(args.max_steps),
        max_call_depth=int(args.max_call_depth),
        stop_when_complete=bool(args.stop_when_complete),
    )
    logger.info("running level %s with program %s", args.level, program.to_strings())

    result, rows, events = run_with_trace(level.map, level.config, program, options=options)

    if args.events_out:
        _write_json(Path(str(args.events_out)), dump_event_stream(events))
    if args.result_out:
        _write_json(Path(str(args.result_out)), dump_execution_result(result))

    sys.stdout.write(_render_text_report(rows=rows, total_stars=level.map.total_stars))
    return 0 if result.success else 1


def _cmd_validate(args: argparse.Namespace) -> int:
    try:
        level = load_level(Path(str(args.level)))
        state = load_game_state(Path(str(args.state)))
    except InputFormatError as e:
        print(f"ERROR: invalid input: {e}", file=sys.stderr)
        return 2

    verdict = validate(level.map, state)
    stars = f"stars={verdict.collected_stars}/{verdict.total_stars}"
    if verdict.valid:
        print(f"VALID ({stars})")
        return 0
    print(f"INVALID ({stars}): {verdict.message}")
    return 1


def _cmd_commands(args: argparse.Namespace) -> int:
    try:
        level = load_level(Path(str(args.level)))
    except InputFormatError as e:
        print(f"ERROR: invalid input: {e}", file=sys.stderr)
        return 2

    for ctype in get_available_commands(level.config):
        print(ctype.value)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="block42_engine",
        description=(
            "Block42 Program Simulator: user harness.\n"
            "\n"
            "Runs f0/f1/f2 command programs against a level map and prints the step trace."
        ),
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help=f"Logging level (DEBUG, INFO, ...). Defaults to ${LOG_LEVEL_ENV} or WARNING.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a program against a level and print the step trace.")
    run.add_argument("--level", type=str, required=True, help="Level JSON (map + config [+ solution]).")
    for name in ("f0", "f1", "f2"):
        run.add_argument(
            f"--{name}",
            type=str,
            default=None,
            help=f"Comma-separated {name} tokens (e.g. 'move,turn_left,move:B'). Overrides the level solution.",
        )
    run.add_argument("--max-steps", type=int, default=MAX_STEPS, help="Step limit before the run fails.")
    run.add_argument(
        "--max-call-depth",
        type=int,
        default=MAX_CALL_DEPTH,
        help="Routine call nesting limit before the run fails.",
    )
    run.add_argument(
        "--stop-when-complete",
        action="store_true",
        help="End the run as a success on the step that collects the last star.",
    )
    run.add_argument("--events-out", type=str, default=None, help="Write the event stream JSON here.")
    run.add_argument("--result-out", type=str, default=None, help="Write the execution result JSON here.")
    run.set_defaults(func=_cmd_run)

    val = sub.add_parser("validate", help="Validate a persisted final state against a level.")
    val.add_argument("--level", type=str, required=True, help="Level JSON.")
    val.add_argument("--state", type=str, required=True, help="Final game state JSON.")
    val.set_defaults(func=_cmd_validate)

    cmds = sub.add_parser("commands", help="List the commands available under a level's config.")
    cmds.add_argument("--level", type=str, required=True, help="Level JSON.")
    cmds.set_defaults(func=_cmd_commands)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
