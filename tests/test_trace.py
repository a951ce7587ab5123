from __future__ import annotations

from block42_engine.trace import run_with_trace
from tests._support.level_helpers import line_map, make_config, make_map, program


def test_one_row_per_recorded_state() -> None:
    m = make_map({(0, 0): "R", (1, 0): "R", (2, 0): "B"}, stars=[(2, 0)])
    result, rows, events = run_with_trace(m, make_config(), program(f0=["move", "move:B", "move"]))

    assert len(rows) == len(result.states) == 5
    assert [r.index for r in rows] == [0, 1, 2, 3, 4]
    assert events[0].step == 0

    assert rows[0].command is None
    assert rows[0].status == "idle"
    assert rows[0].queue == ("move", "move:B", "move")

    assert rows[1].command == "move"
    assert rows[1].queue == ("move:B", "move")
    assert rows[1].direction == "RIGHT"

    assert rows[2].command == "move:B"
    assert rows[2].skipped is True
    assert rows[2].position == (1, 0)

    assert rows[3].skipped is False
    assert rows[3].stars == 1

    # the classification entry is not a step
    assert rows[4].command is None
    assert rows[4].step == 3
    assert rows[4].status == "success"
    assert rows[4].queue == ()


def test_failed_step_row_carries_error() -> None:
    m = line_map(1, stars=[(3, 0)])
    _, rows, _ = run_with_trace(m, make_config(), program(f0=["turn_left", "move"]))

    last = rows[-1]
    assert last.command == "move"
    assert last.status == "failure"
    assert last.error is not None and last.error.startswith("collision")
    assert rows[1].direction == "UP"


def test_routine_calls_do_not_add_rows() -> None:
    m = line_map(3, stars=[(2, 0)])
    result, rows, _ = run_with_trace(m, make_config(f1=2), program(f0=["f1"], f1=["move", "move"]))

    assert result.success is True
    assert [r.command for r in rows] == [None, "move", "move", None]
    assert rows[0].queue == ("f1",)
