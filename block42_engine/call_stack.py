from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from block42_engine.commands import Command, CommandSet
from block42_engine.models import MAX_CALL_DEPTH, LevelConfig

# Decides whether a guarded routine call fires. Receives the call command,
# whose condition is not None.
CallGuard = Callable[[Command], bool]


class FetchKind(str, Enum):
    PRIMITIVE = "PRIMITIVE"
    CALL = "CALL"
    CALL_SKIPPED = "CALL_SKIPPED"
    DEPTH_EXCEEDED = "DEPTH_EXCEEDED"
    DONE = "DONE"


class SkipReason(str, Enum):
    CONDITION = "condition"
    UNAVAILABLE = "unavailable"


@dataclass(slots=True)
class Frame:
    routine: str
    cursor: int = 0


@dataclass(frozen=True, slots=True)
class Fetch:
    kind: FetchKind
    command: Command | None = None
    # Routine the command was read from.
    routine: str | None = None
    # Stack depth after the fetch was applied.
    depth: int = 0
    # Set for CALL_SKIPPED only.
    skip_reason: SkipReason | None = None


class FrameStack:
    """
    Explicit call stack of (routine, cursor) frames.

    This is the single source of the call/skip rules shared by the engine
    and the queue projector:
      - an exhausted top frame is popped; an empty stack means DONE
      - a routine call with a condition is asked of `call_guard`; a failed
        guard makes the call a no-op (CALL_SKIPPED, reason "condition")
      - a routine call is honoured iff the target's capacity > 0 and its
        body is non-empty (CALL); otherwise it is a no-op (CALL_SKIPPED,
        reason "unavailable")
      - honouring a call that would grow the stack past max_call_depth
        yields DEPTH_EXCEEDED and leaves the stack as it was
      - anything else is returned as PRIMITIVE (unknown tags included)

    Neither calls nor skipped calls count as steps; the caller counts
    PRIMITIVE fetches.

    The stack holds no game state. The engine passes a guard that reads the
    live tile colour; without a guard, guarded calls are treated as firing.
    """

    def __init__(
        self,
        program: CommandSet,
        config: LevelConfig,
        *,
        max_call_depth: int = MAX_CALL_DEPTH,
        call_guard: CallGuard | None = None,
    ) -> None:
        self._program = program
        self._config = config
        self._max_call_depth = int(max_call_depth)
        self._call_guard = call_guard
        self._frames: list[Frame] = [Frame("f0")]

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def empty(self) -> bool:
        return not self._frames

    def can_call(self, routine: str) -> bool:
        return self._config.capacity(routine) > 0 and len(self._program.routine(routine)) > 0

    def fetch(self) -> Fetch:
        while self._frames:
            top = self._frames[-1]
            body = self._program.routine(top.routine)
            if top.cursor >= len(body):
                self._frames.pop()
                continue

            command = body[top.cursor]
            top.cursor += 1

            target = command.call_target
            if target is None:
                return Fetch(FetchKind.PRIMITIVE, command, top.routine, len(self._frames))

            if command.condition is not None and self._call_guard is not None:
                if not self._call_guard(command):
                    return Fetch(
                        FetchKind.CALL_SKIPPED, command, top.routine, len(self._frames), SkipReason.CONDITION
                    )

            if not self.can_call(target):
                return Fetch(
                    FetchKind.CALL_SKIPPED, command, top.routine, len(self._frames), SkipReason.UNAVAILABLE
                )

            if len(self._frames) >= self._max_call_depth:
                return Fetch(FetchKind.DEPTH_EXCEEDED, command, top.routine, len(self._frames))

            self._frames.append(Frame(target))
            return Fetch(FetchKind.CALL, command, top.routine, len(self._frames))

        return Fetch(FetchKind.DONE)

    def remaining(self) -> tuple[Command, ...]:
        """Not-yet-fetched commands, flattened top frame first. Calls stay unexpanded."""
        out: list[Command] = []
        for frame in reversed(self._frames):
            out.extend(self._program.routine(frame.routine)[frame.cursor:])
        return tuple(out)
