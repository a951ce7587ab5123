from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from block42_engine.commands import PAINT_COLORS, Command, CommandType
from block42_engine.grid import Coord, Direction, MapData, TileColor

MAX_STEPS = 1000
MAX_CALL_DEPTH = 100


@dataclass(frozen=True, slots=True)
class ToolConfig:
    paint_red: bool = False
    paint_green: bool = False
    paint_blue: bool = False

    def allows(self, paint: CommandType) -> bool:
        color = PAINT_COLORS.get(paint)
        if color is None:
            return False
        return self.allows_color(color)

    def allows_color(self, color: TileColor) -> bool:
        if color == TileColor.RED:
            return self.paint_red
        if color == TileColor.GREEN:
            return self.paint_green
        return self.paint_blue


@dataclass(frozen=True, slots=True)
class LevelConfig:
    # Slot capacities per routine. A capacity of 0 disables calls to that routine.
    f0: int = 10
    f1: int = 0
    f2: int = 0
    tools: ToolConfig = ToolConfig()

    def capacity(self, routine: str) -> int:
        if routine == "f0":
            return self.f0
        if routine == "f1":
            return self.f1
        if routine == "f2":
            return self.f2
        raise ValueError(f"unknown routine {routine!r}")


@dataclass(frozen=True, slots=True)
class ExecutionOptions:
    """
    Hard limits for one run, plus the early-finish switch.

    stop_when_complete ends the run (as a success) on the step that collects
    the last star, instead of waiting for the call stack to drain. It has no
    effect on maps without stars.
    """

    max_steps: int = MAX_STEPS
    max_call_depth: int = MAX_CALL_DEPTH
    stop_when_complete: bool = False


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class GameState:
    position: Coord
    direction: Direction
    collected_stars: set[Coord] = field(default_factory=set)
    # Paint overlay over the map's static tile colours.
    painted_tiles: dict[Coord, TileColor] = field(default_factory=dict)
    steps: int = 0
    status: RunStatus = RunStatus.IDLE
    error: str | None = None
    # Set when a command ends the run in failure.
    failed_command: Command | None = None
    # Attempted target of a failed move (for crash animation).
    out_of_bounds_position: Coord | None = None

    @classmethod
    def initial(cls, map_data: MapData) -> GameState:
        return cls(
            position=(map_data.start.x, map_data.start.y),
            direction=Direction(map_data.start.dir),
        )

    def clone(self) -> GameState:
        return GameState(
            position=self.position,
            direction=self.direction,
            collected_stars=set(self.collected_stars),
            painted_tiles=dict(self.painted_tiles),
            steps=self.steps,
            status=self.status,
            error=self.error,
            failed_command=self.failed_command,
            out_of_bounds_position=self.out_of_bounds_position,
        )

    def fail(self, error: str, command: Command | None = None) -> None:
        self.status = RunStatus.FAILURE
        self.error = error
        if command is not None:
            self.failed_command = command

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.SUCCESS, RunStatus.FAILURE)


@dataclass(frozen=True)
class ExecutionResult:
    states: tuple[GameState, ...]
    final_state: GameState
    success: bool
    total_steps: int
    queue_snapshots: tuple[tuple[Command, ...], ...]


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    collected_stars: int
    total_stars: int
    message: str | None = None
