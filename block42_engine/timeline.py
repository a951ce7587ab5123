from __future__ import annotations

from block42_engine.call_stack import CallGuard, FetchKind, FrameStack
from block42_engine.commands import Command, CommandSet
from block42_engine.models import ExecutionOptions, LevelConfig


def project_queue_snapshots(
    program: CommandSet,
    config: LevelConfig,
    step_limit: int,
    *,
    options: ExecutionOptions | None = None,
    call_guard: CallGuard | None = None,
) -> list[list[Command]]:
    """
    Rebuild the pending-instruction queue for each executed step.

    Walks the same call stack as engine.execute() without touching game
    state:
      - snapshot 0 is the queue before anything runs (f0 as written)
      - one snapshot follows each primitive step, flattened top frame first
      - routine calls are not steps; unfulfillable calls are skipped
      - stops when the stack drains, the call depth guard trips, or
        `step_limit` primitive steps have been produced

    A guarded call such as "f1:B" depends on the tile colour at the moment
    it is reached, which this walk cannot know. `call_guard` answers those
    calls in the order they are reached; without one they are treated as
    firing. The engine's own result.queue_snapshots always reflect the
    real outcome.

    For a run with result.total_steps == n and no guarded call answered
    differently, the returned list equals the first n + 1 entries of
    result.queue_snapshots.
    """
    opts = options or ExecutionOptions()
    stack = FrameStack(program, config, max_call_depth=opts.max_call_depth, call_guard=call_guard)

    snapshots: list[list[Command]] = [list(stack.remaining())]
    steps = 0
    while steps < step_limit:
        fetched = stack.fetch()
        if fetched.kind in (FetchKind.DONE, FetchKind.DEPTH_EXCEEDED):
            break
        if fetched.kind != FetchKind.PRIMITIVE:
            continue
        steps += 1
        snapshots.append(list(stack.remaining()))

    return snapshots
