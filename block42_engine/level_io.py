from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from block42_engine.commands import (
    ROUTINES,
    Command,
    CommandSet,
    is_valid_token,
    parse_command,
    parse_commands,
    serialize_command,
    serialize_commands,
)
from block42_engine.events import Event
from block42_engine.grid import (
    Bounds,
    Direction,
    MapData,
    StartPose,
    Star,
    Tile,
    TileColor,
    coord_to_key,
    key_to_coord,
)
from block42_engine.models import ExecutionResult, GameState, LevelConfig, RunStatus, ToolConfig


class InputFormatError(ValueError):
    """Raised when a level, state or program input fails validation."""


@dataclass(frozen=True)
class Solution:
    program: CommandSet
    # Step count recorded when the solution was published, if any.
    steps_count: int | None = None


@dataclass(frozen=True)
class LevelSpec:
    map: MapData
    config: LevelConfig
    solution: Solution | None = None
    title: str | None = None


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise InputFormatError(f"file not found: {path}")
    if not path.is_file():
        raise InputFormatError(f"not a file: {path}")

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputFormatError(
            f"invalid JSON: {e.msg} (line {e.lineno}, col {e.colno})"
        ) from e


def load_level(path: Path) -> LevelSpec:
    """Load and validate a level file.

    Format:
      {
        "title": "optional",
        "map": {
          "start": {"x": 0, "y": 0, "dir": 1},
          "tiles": [{"x": 0, "y": 0, "color": "R"}, ...],
          "stars": [{"x": 1, "y": 0}, ...],
          "padding": 1,                                   (optional)
          "bounds": {"minX": 0, "minY": 0, "maxX": 3, "maxY": 3}  (optional)
        },
        "config": {"f0": 3, "f1": 0, "f2": 0,
                   "tools": {"paint_red": false, "paint_green": false, "paint_blue": false}},
        "solution": {"commands_f0": ["move"], "commands_f1": [], "commands_f2": [],
                     "steps_count": 1}                    (optional)
      }

    Extra keys (e.g. "gridSize") are ignored.
    """
    raw = _read_json(path)
    return parse_level(raw)


def parse_level(raw: object) -> LevelSpec:
    if not isinstance(raw, dict):
        raise InputFormatError("root must be a JSON object")

    title = raw.get("title", None)
    if title is not None and (not isinstance(title, str) or not title.strip()):
        raise InputFormatError("title must be a non-empty string when provided")

    map_data = parse_map_data(raw.get("map"), label="map")
    config = parse_level_config(raw.get("config"), label="config")

    solution_raw = raw.get("solution", None)
    solution = None
    if solution_raw is not None:
        solution = parse_solution(solution_raw, label="solution")

    return LevelSpec(map=map_data, config=config, solution=solution, title=title)


def _require_int(raw: dict[str, Any], key: str, label: str) -> int:
    value = raw.get(key)
    # bool is an int subclass; reject it explicitly.
    if not isinstance(value, int) or isinstance(value, bool):
        raise InputFormatError(f"{label}.{key} must be an int")
    return value


def _parse_color(value: object, label: str) -> TileColor:
    try:
        return TileColor(value)
    except ValueError:
        raise InputFormatError(
            f"{label} must be one of {', '.join(c.value for c in TileColor)}"
        ) from None


def parse_map_data(raw: object, *, label: str = "map") -> MapData:
    if not isinstance(raw, dict):
        raise InputFormatError(f"{label} must be an object")

    start_raw = raw.get("start")
    if not isinstance(start_raw, dict):
        raise InputFormatError(f"{label}.start must be an object")
    sx = _require_int(start_raw, "x", f"{label}.start")
    sy = _require_int(start_raw, "y", f"{label}.start")
    sdir = _require_int(start_raw, "dir", f"{label}.start")
    if sdir not in {d.value for d in Direction}:
        raise InputFormatError(f"{label}.start.dir must be in [0..3] (got {sdir})")

    tiles_raw = raw.get("tiles", [])
    if not isinstance(tiles_raw, list):
        raise InputFormatError(f"{label}.tiles must be an array")
    tiles: list[Tile] = []
    for i, item in enumerate(tiles_raw):
        item_label = f"{label}.tiles[{i}]"
        if not isinstance(item, dict):
            raise InputFormatError(f"{item_label} must be an object")
        tiles.append(
            Tile(
                x=_require_int(item, "x", item_label),
                y=_require_int(item, "y", item_label),
                color=_parse_color(item.get("color"), f"{item_label}.color"),
            )
        )

    stars_raw = raw.get("stars", [])
    if not isinstance(stars_raw, list):
        raise InputFormatError(f"{label}.stars must be an array")
    stars: list[Star] = []
    for i, item in enumerate(stars_raw):
        item_label = f"{label}.stars[{i}]"
        if not isinstance(item, dict):
            raise InputFormatError(f"{item_label} must be an object")
        stars.append(Star(x=_require_int(item, "x", item_label), y=_require_int(item, "y", item_label)))

    padding = raw.get("padding", None)
    if padding is not None:
        if not isinstance(padding, int) or isinstance(padding, bool) or padding < 0:
            raise InputFormatError(f"{label}.padding must be an int >= 0 when provided")

    bounds_raw = raw.get("bounds", None)
    bounds = None
    if bounds_raw is not None:
        if not isinstance(bounds_raw, dict):
            raise InputFormatError(f"{label}.bounds must be an object when provided")
        b_label = f"{label}.bounds"
        bounds = Bounds(
            min_x=_require_int(bounds_raw, "minX", b_label),
            min_y=_require_int(bounds_raw, "minY", b_label),
            max_x=_require_int(bounds_raw, "maxX", b_label),
            max_y=_require_int(bounds_raw, "maxY", b_label),
        )
        if bounds.max_x < bounds.min_x or bounds.max_y < bounds.min_y:
            raise InputFormatError(f"{b_label} must satisfy minX <= maxX and minY <= maxY")

    return MapData.build(
        StartPose(x=sx, y=sy, dir=Direction(sdir)),
        tiles,
        stars,
        padding=padding,
        bounds=bounds,
    )


def parse_level_config(raw: object, *, label: str = "config") -> LevelConfig:
    if not isinstance(raw, dict):
        raise InputFormatError(f"{label} must be an object")

    capacities: dict[str, int] = {}
    for routine in ROUTINES:
        value = _require_int(raw, routine, label)
        if value < 0:
            raise InputFormatError(f"{label}.{routine} must be >= 0 (got {value})")
        capacities[routine] = value

    tools_raw = raw.get("tools", {})
    if not isinstance(tools_raw, dict):
        raise InputFormatError(f"{label}.tools must be an object")
    flags: dict[str, bool] = {}
    for key in ("paint_red", "paint_green", "paint_blue"):
        value = tools_raw.get(key, False)
        if not isinstance(value, bool):
            raise InputFormatError(f"{label}.tools.{key} must be a bool")
        flags[key] = value

    return LevelConfig(
        f0=capacities["f0"],
        f1=capacities["f1"],
        f2=capacities["f2"],
        tools=ToolConfig(**flags),
    )


def parse_program_tokens(tokens: object, *, label: str) -> tuple[Command, ...]:
    if not isinstance(tokens, list):
        raise InputFormatError(f"{label} must be an array of command strings")
    for i, token in enumerate(tokens):
        if not isinstance(token, str) or not is_valid_token(token):
            raise InputFormatError(f"{label}[{i}] is not a valid command: {token!r}")
    return parse_commands(tokens)


def parse_solution(raw: object, *, label: str = "solution") -> Solution:
    if not isinstance(raw, dict):
        raise InputFormatError(f"{label} must be an object")

    routines: dict[str, tuple[Command, ...]] = {}
    for routine in ROUTINES:
        key = f"commands_{routine}"
        if key not in raw:
            raise InputFormatError(f"{label}.{key} is required")
        routines[routine] = parse_program_tokens(raw[key], label=f"{label}.{key}")

    steps_count = raw.get("steps_count", None)
    if steps_count is not None:
        if not isinstance(steps_count, int) or isinstance(steps_count, bool) or steps_count < 0:
            raise InputFormatError(f"{label}.steps_count must be an int >= 0 when provided")

    return Solution(program=CommandSet.from_mapping(routines), steps_count=steps_count)


# ----------------------------
# Game state (persisted final states)
# ----------------------------


def _coord_dict(coord: tuple[int, int] | None) -> dict[str, int] | None:
    if coord is None:
        return None
    return {"x": coord[0], "y": coord[1]}


def dump_game_state(state: GameState) -> dict[str, Any]:
    """Return a JSON-serializable game state. Coordinate keys use "x,y"."""
    return {
        "position": _coord_dict(state.position),
        "direction": int(state.direction),
        "collected_stars": sorted(coord_to_key(x, y) for x, y in state.collected_stars),
        "painted_tiles": {
            coord_to_key(x, y): color.value for (x, y), color in sorted(state.painted_tiles.items())
        },
        "steps": state.steps,
        "status": state.status.value,
        "error": state.error,
        "failed_command": (
            serialize_command(state.failed_command) if state.failed_command is not None else None
        ),
        "out_of_bounds_position": _coord_dict(state.out_of_bounds_position),
    }


def _parse_coord_key(value: object, label: str) -> tuple[int, int]:
    if not isinstance(value, str):
        raise InputFormatError(f"{label} must be an \"x,y\" string")
    try:
        return key_to_coord(value)
    except ValueError:
        raise InputFormatError(f"{label} must be an \"x,y\" string (got {value!r})") from None


def _parse_coord_obj(value: object, label: str) -> tuple[int, int]:
    if not isinstance(value, dict):
        raise InputFormatError(f"{label} must be an object")
    return _require_int(value, "x", label), _require_int(value, "y", label)


def parse_game_state(raw: object, *, label: str = "state") -> GameState:
    if not isinstance(raw, dict):
        raise InputFormatError(f"{label} must be an object")

    position = _parse_coord_obj(raw.get("position"), f"{label}.position")
    direction = _require_int(raw, "direction", label)
    if direction not in {d.value for d in Direction}:
        raise InputFormatError(f"{label}.direction must be in [0..3] (got {direction})")

    stars_raw = raw.get("collected_stars", [])
    if not isinstance(stars_raw, list):
        raise InputFormatError(f"{label}.collected_stars must be an array")
    collected = {
        _parse_coord_key(v, f"{label}.collected_stars[{i}]") for i, v in enumerate(stars_raw)
    }

    painted_raw = raw.get("painted_tiles", {})
    if not isinstance(painted_raw, dict):
        raise InputFormatError(f"{label}.painted_tiles must be an object")
    painted = {
        _parse_coord_key(k, f"{label}.painted_tiles key"): _parse_color(v, f"{label}.painted_tiles[{k!r}]")
        for k, v in painted_raw.items()
    }

    steps = raw.get("steps", 0)
    if not isinstance(steps, int) or isinstance(steps, bool) or steps < 0:
        raise InputFormatError(f"{label}.steps must be an int >= 0")

    try:
        status = RunStatus(raw.get("status"))
    except ValueError:
        raise InputFormatError(
            f"{label}.status must be one of {', '.join(s.value for s in RunStatus)}"
        ) from None

    error = raw.get("error", None)
    if error is not None and not isinstance(error, str):
        raise InputFormatError(f"{label}.error must be a string or null")

    failed_raw = raw.get("failed_command", None)
    failed = None
    if failed_raw is not None:
        if not isinstance(failed_raw, str):
            raise InputFormatError(f"{label}.failed_command must be a string or null")
        failed = parse_command(failed_raw)

    oob_raw = raw.get("out_of_bounds_position", None)
    oob = _parse_coord_obj(oob_raw, f"{label}.out_of_bounds_position") if oob_raw is not None else None

    return GameState(
        position=position,
        direction=Direction(direction),
        collected_stars=collected,
        painted_tiles=painted,
        steps=steps,
        status=status,
        error=error,
        failed_command=failed,
        out_of_bounds_position=oob,
    )


def load_game_state(path: Path) -> GameState:
    """Load a persisted game state (as written by dump_game_state)."""
    raw = _read_json(path)
    return parse_game_state(raw)


def dump_execution_result(result: ExecutionResult, *, include_states: bool = True) -> dict[str, Any]:
    """Return a JSON-serializable execution result."""
    out: dict[str, Any] = {
        "success": result.success,
        "total_steps": result.total_steps,
        "final_state": dump_game_state(result.final_state),
    }
    if include_states:
        out["states"] = [dump_game_state(s) for s in result.states]
        out["queue_snapshots"] = [serialize_commands(q) for q in result.queue_snapshots]
    return out


def dump_event_stream(events: list[Event]) -> list[dict[str, Any]]:
    """Return a JSON-serializable event stream, ordered by (step, seq)."""
    raw: list[dict[str, Any]] = []
    for e in events:
        d = asdict(e)
        d["type"] = str(e.type.value)
        raw.append(d)
    return raw
