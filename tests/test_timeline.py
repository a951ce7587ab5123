from __future__ import annotations

import pytest

from block42_engine.commands import serialize_commands
from block42_engine.engine import execute
from block42_engine.models import ExecutionOptions
from block42_engine.timeline import project_queue_snapshots
from tests._support.level_helpers import line_map, make_config, make_map, program


def tokens(snapshots):
    return [serialize_commands(s) for s in snapshots]


def test_queue_unwinds_routine_call_top_frame_first() -> None:
    prog = program(
        f0=["f1", "turn_left", "move"],
        f1=["turn_right", "move", "turn_left", "move"],
    )
    snapshots = project_queue_snapshots(prog, make_config(f0=8, f1=5), step_limit=100)

    assert tokens(snapshots) == [
        ["f1", "turn_left", "move"],
        ["move", "turn_left", "move", "turn_left", "move"],
        ["turn_left", "move", "turn_left", "move"],
        ["move", "turn_left", "move"],
        ["turn_left", "move"],
        ["move"],
        [],
    ]


def test_step_limit_truncates_snapshots() -> None:
    prog = program(f0=["move", "move", "move", "move"])
    snapshots = project_queue_snapshots(prog, make_config(), step_limit=2)

    assert tokens(snapshots) == [
        ["move", "move", "move", "move"],
        ["move", "move", "move"],
        ["move", "move"],
    ]


def test_zero_step_limit_returns_initial_queue_only() -> None:
    prog = program(f0=["move", "f1"], f1=["move"])
    snapshots = project_queue_snapshots(prog, make_config(f1=1), step_limit=0)

    assert tokens(snapshots) == [["move", "f1"]]


def test_unfulfillable_call_is_skipped_without_a_snapshot() -> None:
    prog = program(f0=["f1", "move"], f1=["turn_left"])
    snapshots = project_queue_snapshots(prog, make_config(f1=0), step_limit=10)

    assert tokens(snapshots) == [["f1", "move"], []]


def test_guarded_commands_still_produce_a_snapshot() -> None:
    prog = program(f0=["move:G", "move:B"])
    snapshots = project_queue_snapshots(prog, make_config(), step_limit=10)

    assert tokens(snapshots) == [["move:G", "move:B"], ["move:B"], []]


def test_recursive_program_stops_at_call_depth() -> None:
    prog = program(f0=["turn_left", "f0"])
    snapshots = project_queue_snapshots(prog, make_config(f0=2), step_limit=10_000)

    # one step per frame until the depth guard trips
    assert len(snapshots) == 101


@pytest.mark.parametrize(
    "prog, cfg, options",
    [
        (program(f0=["move", "move:B", "move"]), make_config(), None),
        (program(f0=["f1", "turn_left", "f2"], f1=["turn_right", "f2"], f2=["move"]), make_config(f1=2, f2=1), None),
        (program(f0=["f1", "move"], f1=["move"]), make_config(f1=0), None),
        (program(f0=["move", "move", "move"]), make_config(), None),
        (program(f0=["turn_left", "f0"]), make_config(f0=2), None),
        (program(f0=["turn_left", "f0"]), make_config(f0=2), ExecutionOptions(max_call_depth=5000)),
    ],
)
def test_projection_matches_engine_queue_snapshots(prog, cfg, options) -> None:
    m = make_map({(0, 0): "R", (1, 0): "R", (2, 0): "B", (1, 1): "G"}, stars=[(2, 0)])
    result = execute(m, cfg, prog, options=options)

    projected = project_queue_snapshots(prog, cfg, result.total_steps, options=options)

    engine_view = [list(q) for q in result.queue_snapshots[: result.total_steps + 1]]
    assert projected == engine_view


def test_guarded_calls_fire_without_a_call_guard() -> None:
    prog = program(f0=["move", "f0:R"])
    snapshots = project_queue_snapshots(prog, make_config(f0=2), step_limit=4)

    assert tokens(snapshots) == [["move", "f0:R"], ["f0:R"], ["f0:R"], ["f0:R"], ["f0:R"]]


def test_call_guard_resolves_conditional_loop_like_the_engine() -> None:
    m = make_map({(0, 0): "R", (1, 0): "R", (2, 0): "G"}, stars=[(2, 0)])
    prog = program(f0=["move", "f0:R"])
    cfg = make_config(f0=2)
    result = execute(m, cfg, prog)
    assert result.total_steps == 2

    # colours seen at each guarded call: red at (1, 0), then green at (2, 0)
    answers = iter([True, False])
    projected = project_queue_snapshots(prog, cfg, step_limit=10, call_guard=lambda command: next(answers))

    assert tokens(projected) == [["move", "f0:R"], ["f0:R"], ["f0:R"]]
    assert projected == [list(q) for q in result.queue_snapshots[: result.total_steps + 1]]


def test_engine_records_empty_queue_on_final_classification() -> None:
    m = line_map(2, stars=[(1, 0)])
    result = execute(m, make_config(), program(f0=["move"]))

    assert tokens(result.queue_snapshots) == [["move"], [], []]
