from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SAMPLES = REPO_ROOT / "samples"


def _run_module(*args: str, extra_env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    cmd = [sys.executable, "-m", "block42_engine", *args]
    env = os.environ.copy()
    env["PYTHONPATH"] = str(REPO_ROOT) + os.pathsep + env.get("PYTHONPATH", "")
    env.pop("BLOCK42_LOG_LEVEL", None)
    if extra_env:
        env.update(extra_env)
    return subprocess.run(
        cmd, text=True, capture_output=True, cwd=REPO_ROOT, env=env
    )


def test_cli_help_succeeds() -> None:
    p = _run_module("--help")
    assert p.returncode == 0, p.stderr
    combined = (p.stdout or "") + (p.stderr or "")
    assert "Block42 Program Simulator" in combined


def test_cli_runs_level_solution() -> None:
    p = _run_module("run", "--level", str(SAMPLES / "tutorial_blocks.json"))
    assert p.returncode == 0, p.stderr
    assert "Result: SUCCESS (steps=6, stars=" in (p.stdout or "")


def test_cli_program_override_reports_collision() -> None:
    p = _run_module("run", "--level", str(SAMPLES / "tutorial_move.json"), "--f0", "move,move")
    assert p.returncode == 1, p.stderr
    out = p.stdout or ""
    assert "Result: FAILURE" in out
    assert "collision" in out


def test_cli_marks_skipped_steps() -> None:
    p = _run_module("run", "--level", str(SAMPLES / "tutorial_move.json"), "--f0", "move:B,move")
    assert p.returncode == 0, p.stderr
    assert "move:B (skipped)" in (p.stdout or "")


def test_cli_rejects_bad_token() -> None:
    p = _run_module("run", "--level", str(SAMPLES / "tutorial_move.json"), "--f0", "jump")
    assert p.returncode == 2
    assert "ERROR" in (p.stderr or "")
    assert "--f0[0] is not a valid command" in (p.stderr or "")


def test_cli_rejects_missing_level(tmp_path: Path) -> None:
    p = _run_module("run", "--level", str(tmp_path / "missing.json"))
    assert p.returncode == 2
    assert "file not found" in (p.stderr or "")


def test_cli_events_out_writes_event_stream(tmp_path: Path) -> None:
    out = tmp_path / "events.json"
    p = _run_module("run", "--level", str(SAMPLES / "tutorial_turns.json"), "--events-out", str(out))
    assert p.returncode == 0, p.stderr

    events = json.loads(out.read_text(encoding="utf-8"))
    assert events[0]["type"] == "RUN_START"
    assert events[-1]["type"] == "RUN_END"
    assert [e["type"] for e in events].count("STEP_START") == 3


def test_cli_result_out_feeds_validate(tmp_path: Path) -> None:
    level = str(SAMPLES / "maze_5x5.json")
    result_path = tmp_path / "result.json"
    p = _run_module("run", "--level", level, "--result-out", str(result_path))
    assert p.returncode == 0, p.stderr

    result = json.loads(result_path.read_text(encoding="utf-8"))
    state_path = tmp_path / "state.json"
    state_path.write_text(json.dumps(result["final_state"]), encoding="utf-8")

    v = _run_module("validate", "--level", level, "--state", str(state_path))
    assert v.returncode == 0, v.stderr
    assert (v.stdout or "").startswith("VALID (stars=")


def test_cli_validate_reports_incomplete_state(tmp_path: Path) -> None:
    state = {"position": {"x": 0, "y": 0}, "direction": 1, "status": "running"}
    state_path = tmp_path / "state.json"
    state_path.write_text(json.dumps(state), encoding="utf-8")

    v = _run_module("validate", "--level", str(SAMPLES / "tutorial_move.json"), "--state", str(state_path))
    assert v.returncode == 1
    assert "INVALID (stars=0/1): not all stars collected" in (v.stdout or "")


def test_cli_lists_available_commands() -> None:
    p = _run_module("commands", "--level", str(SAMPLES / "tutorial_brush.json"))
    assert p.returncode == 0, p.stderr
    lines = (p.stdout or "").split()
    assert lines[:3] == ["move", "turn_left", "turn_right"]
    assert "paint_blue" in lines
    assert "f0" in lines
    assert "f1" not in lines


def test_cli_debug_logging_goes_to_stderr() -> None:
    p = _run_module("--log-level", "DEBUG", "run", "--level", str(SAMPLES / "tutorial_move.json"))
    assert p.returncode == 0, p.stderr
    assert "run finished: status=success" in (p.stderr or "")
    assert "run finished" not in (p.stdout or "")
