from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from block42_engine.events import Event, EventType


class EventSink(ABC):
    """
    Receives what happens during one program run, step by step.

    execute() calls start_step(0) before the first fetch and start_step(n)
    when primitive step n begins; every emit() belongs to the latest step.
    """

    @abstractmethod
    def start_step(self, step: int) -> int: ...

    @abstractmethod
    def emit(self, event_type: EventType, command: str | None = None, **data: Any) -> None: ...


@dataclass
class InMemoryEventSink(EventSink):
    """
    Collects a run's events in a list, numbered (step, seq).

    seq restarts at 1 for each new step. Re-announcing the current step
    keeps counting; going back to an earlier step is an error.
    """

    events: list[Event] = field(default_factory=list)
    _step: int = field(default=-1, init=False)
    _seq: int = field(default=0, init=False)

    @property
    def current_step(self) -> int:
        return self._step

    def start_step(self, step: int) -> int:
        if step < 0:
            raise ValueError("step must be >= 0")
        if step < self._step:
            raise RuntimeError(f"steps must not go backwards (got {step} after {self._step})")
        if step != self._step:
            self._step = step
            self._seq = 0
        return self._step

    def emit(self, event_type: EventType, command: str | None = None, **data: Any) -> None:
        if self._step < 0:
            raise RuntimeError("no step started; call start_step() before emit()")
        self._seq += 1
        self.events.append(
            Event(
                step=self._step,
                seq=self._seq,
                type=event_type,
                command=command,
                data=dict(data),
            )
        )

    def of_type(self, event_type: EventType) -> list[Event]:
        return [e for e in self.events if e.type == event_type]

    def by_step(self) -> dict[int, list[EventType]]:
        """Event types grouped by step, in emission order."""
        grouped: dict[int, list[EventType]] = {}
        for e in self.events:
            grouped.setdefault(e.step, []).append(e.type)
        return grouped
