from __future__ import annotations

from dataclasses import dataclass

from block42_engine.commands import CommandSet, serialize_commands
from block42_engine.engine import execute
from block42_engine.event_sink import InMemoryEventSink
from block42_engine.events import Event, EventType
from block42_engine.grid import Coord, MapData
from block42_engine.models import ExecutionOptions, ExecutionResult, LevelConfig


@dataclass(frozen=True)
class StepTrace:
    index: int
    step: int
    # Token of the primitive command executed to reach this state; None for
    # the initial state and for terminal entries that are not steps.
    command: str | None
    skipped: bool
    position: Coord
    direction: str
    stars: int
    status: str
    error: str | None
    queue: tuple[str, ...]


def build_step_traces(result: ExecutionResult, events: list[Event]) -> list[StepTrace]:
    """
    Create one trace row per recorded state.

    Uses STEP_START / CONDITION_SKIPPED events to label each step with the
    command that produced it. This function does not re-run anything.
    """
    commands: dict[int, str | None] = {}
    skipped: set[int] = set()
    for e in events:
        if e.type == EventType.STEP_START:
            commands[e.step] = e.command
        elif e.type == EventType.CONDITION_SKIPPED:
            skipped.add(e.step)

    rows: list[StepTrace] = []
    prev_steps = 0
    for idx, (state, queue) in enumerate(zip(result.states, result.queue_snapshots)):
        is_step = idx > 0 and state.steps > prev_steps
        prev_steps = state.steps
        rows.append(
            StepTrace(
                index=idx,
                step=state.steps,
                command=commands.get(state.steps) if is_step else None,
                skipped=is_step and state.steps in skipped,
                position=state.position,
                direction=state.direction.name,
                stars=len(state.collected_stars),
                status=state.status.value,
                error=state.error,
                queue=tuple(serialize_commands(queue)),
            )
        )
    return rows


def run_with_trace(
    map_data: MapData,
    config: LevelConfig,
    program: CommandSet,
    *,
    options: ExecutionOptions | None = None,
) -> tuple[ExecutionResult, list[StepTrace], list[Event]]:
    """
    Run the program and return (result, per-state trace rows, event stream).

    Adds observability only (no rule changes).
    """
    sink = InMemoryEventSink()
    result = execute(map_data, config, program, options=options, event_sink=sink)
    return result, build_step_traces(result, sink.events), sink.events
