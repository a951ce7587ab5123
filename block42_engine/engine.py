from __future__ import annotations

import logging

from block42_engine.call_stack import FetchKind, FrameStack
from block42_engine.commands import PAINT_COLORS, Command, CommandSet, CommandType
from block42_engine.event_sink import EventSink
from block42_engine.events import EventType
from block42_engine.grid import DIRECTION_VECTORS, MapData, get_tile_color
from block42_engine.models import (
    ExecutionOptions,
    ExecutionResult,
    GameState,
    LevelConfig,
    RunStatus,
)

logger = logging.getLogger(__name__)

ERR_CALL_DEPTH = "call depth exceeded"
ERR_STEP_LIMIT = "step limit exceeded"
ERR_INCOMPLETE = "not all stars collected"


def execute(
    map_data: MapData,
    config: LevelConfig,
    program: CommandSet,
    *,
    options: ExecutionOptions | None = None,
    event_sink: EventSink | None = None,
) -> ExecutionResult:
    """
    Run `program` against `map_data` to completion and return the full trace.

    Rules:
    - states[0] is the untouched initial state; one post-effect clone is
      appended per primitive step (move/turn/paint), guarded-out or not.
    - Routine calls are not steps. A call whose colour guard does not match
      the tile under the actor, or whose target is unavailable (capacity 0
      or empty routine), is a no-op.
    - In-program failures (collision, disabled tool, depth/step limits,
      unknown command) end the run with status=FAILURE; nothing is raised.
    - When the call stack drains, the run is classified (all stars collected
      => SUCCESS, else FAILURE) and that state is appended as the last entry.

    queue_snapshots[i] is the remaining-instruction view that goes with states[i].
    """
    opts = options or ExecutionOptions()
    state = GameState.initial(map_data)
    stack = FrameStack(
        program,
        config,
        max_call_depth=opts.max_call_depth,
        call_guard=lambda command: meets_condition(command, state, map_data),
    )

    states: list[GameState] = [state.clone()]
    queues = [stack.remaining()]

    def record() -> None:
        states.append(state.clone())
        queues.append(stack.remaining())

    if event_sink is not None:
        event_sink.start_step(0)
        event_sink.emit(
            EventType.RUN_START,
            position=list(state.position),
            direction=int(state.direction),
            total_stars=map_data.total_stars,
        )

    state.status = RunStatus.RUNNING

    while True:
        fetched = stack.fetch()

        if fetched.kind == FetchKind.DONE:
            break

        if fetched.kind == FetchKind.CALL_SKIPPED:
            if event_sink is not None:
                event_sink.emit(
                    EventType.CALL_SKIPPED,
                    command=fetched.command.token,
                    routine=fetched.routine,
                    reason=fetched.skip_reason.value if fetched.skip_reason is not None else None,
                )
            continue

        if fetched.kind == FetchKind.CALL:
            if event_sink is not None:
                event_sink.emit(
                    EventType.ROUTINE_CALLED,
                    command=fetched.command.token,
                    routine=fetched.routine,
                    target=fetched.command.call_target,
                    depth=fetched.depth,
                )
            continue

        if fetched.kind == FetchKind.DEPTH_EXCEEDED:
            state.fail(ERR_CALL_DEPTH, fetched.command)
            record()
            break

        command = fetched.command
        state.steps += 1
        if event_sink is not None:
            event_sink.start_step(state.steps)
            event_sink.emit(EventType.STEP_START, command=command.token, routine=fetched.routine)

        if state.steps > opts.max_steps:
            state.fail(ERR_STEP_LIMIT, command)
            record()
            break

        _apply_command(state, command, map_data, config, event_sink)
        record()

        if state.is_terminal:
            break
        if opts.stop_when_complete and _all_stars_collected(state, map_data) and map_data.total_stars > 0:
            break

    if not state.is_terminal:
        _classify(state, map_data)
        record()

    if event_sink is not None:
        if state.status == RunStatus.FAILURE:
            event_sink.emit(
                EventType.RUN_FAILED,
                command=state.failed_command.token if state.failed_command is not None else None,
                error=state.error,
            )
        event_sink.emit(
            EventType.RUN_END,
            status=state.status.value,
            steps=state.steps,
            collected_stars=len(state.collected_stars),
        )

    logger.debug(
        "run finished: status=%s steps=%d stars=%d/%d error=%s",
        state.status.value,
        state.steps,
        len(state.collected_stars),
        map_data.total_stars,
        state.error,
    )

    final_state = states[-1]
    return ExecutionResult(
        states=tuple(states),
        final_state=final_state,
        success=final_state.status == RunStatus.SUCCESS,
        total_steps=final_state.steps,
        queue_snapshots=tuple(queues),
    )


def _all_stars_collected(state: GameState, map_data: MapData) -> bool:
    return len(state.collected_stars) == map_data.total_stars


def _classify(state: GameState, map_data: MapData) -> None:
    if _all_stars_collected(state, map_data):
        state.status = RunStatus.SUCCESS
        state.error = None
    else:
        state.fail(ERR_INCOMPLETE)


def meets_condition(command: Command, state: GameState, map_data: MapData) -> bool:
    if command.condition is None:
        return True
    x, y = state.position
    return get_tile_color(x, y, map_data, state.painted_tiles) == command.condition


def _apply_command(
    state: GameState,
    command: Command,
    map_data: MapData,
    config: LevelConfig,
    event_sink: EventSink | None,
) -> None:
    if not command.is_known:
        state.fail(f"unknown command: {command.type!r}", command)
        return

    if not meets_condition(command, state, map_data):
        if event_sink is not None:
            x, y = state.position
            event_sink.emit(
                EventType.CONDITION_SKIPPED,
                command=command.token,
                condition=_color_value(command.condition),
                tile_color=_color_value(get_tile_color(x, y, map_data, state.painted_tiles)),
            )
        return

    ctype = command.type
    if ctype == CommandType.MOVE:
        _move(state, command, map_data, event_sink)
    elif ctype == CommandType.TURN_LEFT:
        state.direction = state.direction.turned_left()
        _emit_turn(event_sink, command, state)
    elif ctype == CommandType.TURN_RIGHT:
        state.direction = state.direction.turned_right()
        _emit_turn(event_sink, command, state)
    elif ctype in PAINT_COLORS:
        _paint(state, command, config, event_sink)
    else:
        # Routine calls never reach here; FrameStack resolves them.
        state.fail(f"unknown command: {ctype!r}", command)


def _move(state: GameState, command: Command, map_data: MapData, event_sink: EventSink | None) -> None:
    dx, dy = DIRECTION_VECTORS[state.direction]
    x, y = state.position
    nx, ny = x + dx, y + dy

    if not map_data.is_on_tile(nx, ny):
        bounds = map_data.bounds
        if bounds is not None and not bounds.contains(nx, ny):
            state.fail(f"collision: ({nx}, {ny}) is out of bounds", command)
        else:
            state.fail(f"collision: no floor tile at ({nx}, {ny})", command)
        state.out_of_bounds_position = (nx, ny)
        return

    state.position = (nx, ny)
    if event_sink is not None:
        event_sink.emit(EventType.MOVED, command=command.token, x=nx, y=ny)

    if map_data.has_star(nx, ny) and (nx, ny) not in state.collected_stars:
        state.collected_stars.add((nx, ny))
        if event_sink is not None:
            event_sink.emit(
                EventType.STAR_COLLECTED,
                command=command.token,
                x=nx,
                y=ny,
                collected=len(state.collected_stars),
            )


def _paint(state: GameState, command: Command, config: LevelConfig, event_sink: EventSink | None) -> None:
    color = PAINT_COLORS[command.type]
    if not config.tools.allows_color(color):
        state.fail(f"tool disabled: {command.type.value} is not enabled for this level", command)
        return

    state.painted_tiles[state.position] = color
    if event_sink is not None:
        x, y = state.position
        event_sink.emit(EventType.PAINTED, command=command.token, x=x, y=y, color=color.value)


def _emit_turn(event_sink: EventSink | None, command: Command, state: GameState) -> None:
    if event_sink is not None:
        event_sink.emit(EventType.TURNED, command=command.token, direction=int(state.direction))


def _color_value(color: object) -> str | None:
    if color is None:
        return None
    return str(getattr(color, "value", color))
