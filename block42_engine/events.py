from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """What the engine reports while running a program.

    ROUTINE_CALLED and CALL_SKIPPED are not steps; CONDITION_SKIPPED marks a
    primitive step whose colour guard did not match.
    """

    RUN_START = "RUN_START"
    ROUTINE_CALLED = "ROUTINE_CALLED"
    CALL_SKIPPED = "CALL_SKIPPED"
    STEP_START = "STEP_START"
    CONDITION_SKIPPED = "CONDITION_SKIPPED"
    MOVED = "MOVED"
    STAR_COLLECTED = "STAR_COLLECTED"
    TURNED = "TURNED"
    PAINTED = "PAINTED"
    RUN_FAILED = "RUN_FAILED"
    RUN_END = "RUN_END"


@dataclass(frozen=True, slots=True)
class Event:
    """
    One thing that happened during a run.

    Ordered by (step, seq); both numbers come from the sink. Step 0 holds
    RUN_START and any routine calls made before the first primitive step.
    `command` is the wire token of the command involved, if any.
    """

    step: int
    seq: int
    type: EventType
    command: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
