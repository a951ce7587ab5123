from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable, Mapping

Coord = tuple[int, int]


class Direction(IntEnum):
    """Facing of the rocket. Values match the persisted `start.dir` field."""

    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    def turned_left(self) -> Direction:
        return Direction((self.value + 3) % 4)

    def turned_right(self) -> Direction:
        return Direction((self.value + 1) % 4)


class TileColor(str, Enum):
    RED = "R"
    GREEN = "G"
    BLUE = "B"


DIRECTION_VECTORS: dict[Direction, Coord] = {
    Direction.UP: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
}


@dataclass(frozen=True, slots=True)
class StartPose:
    x: int
    y: int
    dir: Direction = Direction.RIGHT


@dataclass(frozen=True, slots=True)
class Tile:
    x: int
    y: int
    color: TileColor


@dataclass(frozen=True, slots=True)
class Star:
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class Bounds:
    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    def contains(self, x: int, y: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


@dataclass(frozen=True)
class MapData:
    """
    Immutable level map.

    Tiles and stars are unique by coordinate: duplicates in the input collapse
    (last tile wins). A coordinate is traversable iff it has a tile.
    The start coordinate is expected to carry a tile; see
    map_utils.ensure_start_floor() for callers that need to guarantee it.
    """

    start: StartPose
    tiles: tuple[Tile, ...] = ()
    stars: tuple[Star, ...] = ()
    padding: int | None = None
    bounds: Bounds | None = None
    _tile_index: Mapping[Coord, TileColor] = field(init=False, repr=False, compare=False)
    _star_index: frozenset[Coord] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[Coord, TileColor] = {}
        for t in self.tiles:
            index[(t.x, t.y)] = t.color
        stars: dict[Coord, None] = {}
        for s in self.stars:
            stars[(s.x, s.y)] = None

        object.__setattr__(self, "tiles", tuple(Tile(x, y, c) for (x, y), c in index.items()))
        object.__setattr__(self, "stars", tuple(Star(x, y) for (x, y) in stars))
        object.__setattr__(self, "_tile_index", index)
        object.__setattr__(self, "_star_index", frozenset(stars))

    @classmethod
    def build(
        cls,
        start: StartPose,
        tiles: Iterable[Tile],
        stars: Iterable[Star] = (),
        *,
        padding: int | None = None,
        bounds: Bounds | None = None,
    ) -> MapData:
        return cls(start=start, tiles=tuple(tiles), stars=tuple(stars), padding=padding, bounds=bounds)

    @property
    def total_stars(self) -> int:
        return len(self._star_index)

    @property
    def star_coords(self) -> frozenset[Coord]:
        return self._star_index

    def is_on_tile(self, x: int, y: int) -> bool:
        return (x, y) in self._tile_index

    def has_star(self, x: int, y: int) -> bool:
        return (x, y) in self._star_index

    def base_color(self, x: int, y: int) -> TileColor | None:
        return self._tile_index.get((x, y))


def coord_to_key(x: int, y: int) -> str:
    return f"{x},{y}"


def key_to_coord(key: str) -> Coord:
    xs, ys = key.split(",", 1)
    return int(xs), int(ys)


def get_tile_color(
    x: int,
    y: int,
    map_data: MapData,
    painted_tiles: Mapping[Coord, TileColor] | None = None,
) -> TileColor | None:
    """
    Colour at (x, y) as seen by a running program.

    The paint overlay takes precedence over the map's static tile colour.
    Returns None for a coordinate without a tile (and without paint).
    """
    if painted_tiles and (x, y) in painted_tiles:
        return painted_tiles[(x, y)]
    return map_data.base_color(x, y)
