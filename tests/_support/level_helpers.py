# tests/_support/level_helpers.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping

from block42_engine.commands import CommandSet
from block42_engine.grid import Bounds, Direction, MapData, StartPose, Star, Tile, TileColor
from block42_engine.models import LevelConfig, ToolConfig


def make_map(
    tiles: Mapping[tuple[int, int], str],
    *,
    stars: Iterable[tuple[int, int]] = (),
    start: tuple[int, int] = (0, 0),
    direction: Direction = Direction.RIGHT,
    bounds: Bounds | None = None,
) -> MapData:
    """Build a map from {(x, y): "R"|"G"|"B"} plus star coordinates."""
    return MapData.build(
        StartPose(x=start[0], y=start[1], dir=direction),
        [Tile(x, y, TileColor(c)) for (x, y), c in tiles.items()],
        [Star(x, y) for (x, y) in stars],
        bounds=bounds,
    )


def line_map(length: int, *, stars: Iterable[tuple[int, int]] = (), color: str = "R") -> MapData:
    """A horizontal strip of `length` tiles starting at (0, 0), facing right."""
    return make_map({(x, 0): color for x in range(length)}, stars=stars)


def make_config(f0: int = 10, f1: int = 0, f2: int = 0, *, paint: bool = False) -> LevelConfig:
    return LevelConfig(
        f0=f0,
        f1=f1,
        f2=f2,
        tools=ToolConfig(paint_red=paint, paint_green=paint, paint_blue=paint),
    )


def program(
    f0: Iterable[str] = (),
    f1: Iterable[str] = (),
    f2: Iterable[str] = (),
) -> CommandSet:
    return CommandSet.from_strings(f0=f0, f1=f1, f2=f2)


def level_payload(**overrides: Any) -> dict[str, Any]:
    """A valid two-tile level (tutorial-move shape); top-level keys can be overridden."""
    payload: dict[str, Any] = {
        "map": {
            "start": {"x": 0, "y": 0, "dir": 1},
            "stars": [{"x": 1, "y": 0}],
            "tiles": [
                {"x": 0, "y": 0, "color": "R"},
                {"x": 1, "y": 0, "color": "R"},
            ],
        },
        "config": {
            "f0": 3,
            "f1": 0,
            "f2": 0,
            "tools": {"paint_red": False, "paint_green": False, "paint_blue": False},
        },
        "solution": {
            "commands_f0": ["move"],
            "commands_f1": [],
            "commands_f2": [],
            "steps_count": 1,
        },
    }
    payload.update(overrides)
    return payload


def write_json(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path
