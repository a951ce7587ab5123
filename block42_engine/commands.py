from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Sequence

from block42_engine.grid import TileColor

if TYPE_CHECKING:
    from block42_engine.models import LevelConfig


class CommandType(str, Enum):
    """Instruction tags. Values are the persisted wire tokens."""

    MOVE = "move"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    PAINT_RED = "paint_red"
    PAINT_GREEN = "paint_green"
    PAINT_BLUE = "paint_blue"
    CALL_F0 = "f0"
    CALL_F1 = "f1"
    CALL_F2 = "f2"


ROUTINES: tuple[str, ...] = ("f0", "f1", "f2")

CALL_TARGETS: dict[CommandType, str] = {
    CommandType.CALL_F0: "f0",
    CommandType.CALL_F1: "f1",
    CommandType.CALL_F2: "f2",
}

PAINT_COLORS: dict[CommandType, TileColor] = {
    CommandType.PAINT_RED: TileColor.RED,
    CommandType.PAINT_GREEN: TileColor.GREEN,
    CommandType.PAINT_BLUE: TileColor.BLUE,
}

BASE_COMMANDS: tuple[CommandType, ...] = tuple(CommandType)


@dataclass(frozen=True, slots=True)
class Command:
    """
    One program instruction with an optional colour guard.

    `type` is normally a CommandType. An unrecognised tag is kept as the raw
    string so it survives a parse/serialize round trip; the engine fails the
    run when it reaches one.
    """

    type: CommandType | str
    condition: TileColor | str | None = None

    @property
    def is_known(self) -> bool:
        return isinstance(self.type, CommandType)

    @property
    def call_target(self) -> str | None:
        if isinstance(self.type, CommandType):
            return CALL_TARGETS.get(self.type)
        return None

    @property
    def token(self) -> str:
        return serialize_command(self)


@dataclass(frozen=True)
class CommandSet:
    """The three routines of a program. f0 is the entry point."""

    f0: tuple[Command, ...] = ()
    f1: tuple[Command, ...] = ()
    f2: tuple[Command, ...] = ()
    _routines: dict[str, tuple[Command, ...]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "f0", tuple(self.f0))
        object.__setattr__(self, "f1", tuple(self.f1))
        object.__setattr__(self, "f2", tuple(self.f2))
        object.__setattr__(self, "_routines", {"f0": self.f0, "f1": self.f1, "f2": self.f2})

    def routine(self, name: str) -> tuple[Command, ...]:
        try:
            return self._routines[name]
        except KeyError:
            raise ValueError(f"unknown routine {name!r} (expected one of {', '.join(ROUTINES)})") from None

    def __iter__(self) -> Iterator[tuple[str, tuple[Command, ...]]]:
        return iter(self._routines.items())

    @classmethod
    def from_mapping(cls, routines: Mapping[str, Sequence[Command]]) -> CommandSet:
        """Build from a {"f0": [...], "f1": [...], "f2": [...]} mapping; all keys are required."""
        missing = [name for name in ROUTINES if name not in routines]
        if missing:
            raise ValueError(f"program is missing routine(s): {', '.join(missing)}")
        extra = sorted(set(routines) - set(ROUTINES))
        if extra:
            raise ValueError(f"program has unknown routine(s): {', '.join(extra)}")
        return cls(f0=tuple(routines["f0"]), f1=tuple(routines["f1"]), f2=tuple(routines["f2"]))

    @classmethod
    def from_strings(
        cls,
        f0: Iterable[str] = (),
        f1: Iterable[str] = (),
        f2: Iterable[str] = (),
    ) -> CommandSet:
        return cls(f0=parse_commands(f0), f1=parse_commands(f1), f2=parse_commands(f2))

    def to_strings(self) -> dict[str, list[str]]:
        """Persisted solution shape: commands_f0 / commands_f1 / commands_f2."""
        return {f"commands_{name}": serialize_commands(cmds) for name, cmds in self}


def create_empty_command_set() -> CommandSet:
    return CommandSet()


def serialize_command(command: Command) -> str:
    tag = command.type.value if isinstance(command.type, CommandType) else str(command.type)
    if command.condition is None:
        return tag
    cond = command.condition.value if isinstance(command.condition, TileColor) else str(command.condition)
    return f"{tag}:{cond}"


def serialize_commands(commands: Iterable[Command]) -> list[str]:
    return [serialize_command(c) for c in commands]


def parse_command(token: str) -> Command:
    """
    Parse a wire token: "type" or "type:condition" (e.g. "move", "move:B").

    Lossless for every token serialize_command() produces. Unknown tags and
    guards are carried as raw strings; use is_valid_token() to reject them.
    """
    tag, sep, cond = token.partition(":")
    try:
        ctype: CommandType | str = CommandType(tag)
    except ValueError:
        ctype = tag

    condition: TileColor | str | None = None
    if sep and cond:
        try:
            condition = TileColor(cond)
        except ValueError:
            condition = cond

    return Command(type=ctype, condition=condition)


def parse_commands(tokens: Iterable[str]) -> tuple[Command, ...]:
    return tuple(parse_command(t) for t in tokens)


def is_valid_token(token: str) -> bool:
    tag, sep, cond = token.partition(":")
    if tag not in {c.value for c in CommandType}:
        return False
    if not sep:
        return True
    return cond in {c.value for c in TileColor}


def get_available_commands(config: LevelConfig) -> list[CommandType]:
    """
    Commands a player may place under `config`.

    Move and turns are always available; paint commands follow the tool
    flags; routine calls need a capacity > 0.
    """
    commands = [CommandType.MOVE, CommandType.TURN_LEFT, CommandType.TURN_RIGHT]

    for ctype in PAINT_COLORS:
        if config.tools.allows(ctype):
            commands.append(ctype)

    for ctype, routine in CALL_TARGETS.items():
        if config.capacity(routine) > 0:
            commands.append(ctype)

    return commands
