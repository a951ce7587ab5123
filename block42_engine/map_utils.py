from __future__ import annotations

from dataclasses import dataclass, replace

from block42_engine.grid import Bounds, MapData, StartPose, Star, Tile, TileColor

DEFAULT_PADDING = 1
MAX_RENDER_SIZE = 128
MAX_PADDING = 8


@dataclass(frozen=True, slots=True)
class CompiledMap:
    """A runtime-ready map: shifted to a padded origin, with bounds and grid size."""

    map: MapData
    padding: int
    bounds: Bounds
    grid_size: int


@dataclass(frozen=True, slots=True)
class RenderSize:
    width: int
    height: int
    ok: bool


def compute_content_bounds(map_data: MapData) -> Bounds:
    """
    Bounding box of everything authored on the map (start, tiles, stars).

    Coordinates may be negative while a level is being edited.
    """
    points = [(map_data.start.x, map_data.start.y)]
    points.extend((t.x, t.y) for t in map_data.tiles)
    points.extend((s.x, s.y) for s in map_data.stars)

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return Bounds(min_x=min(xs), min_y=min(ys), max_x=max(xs), max_y=max(ys))


def compute_render_bounds(map_data: MapData) -> Bounds:
    """
    Bounds of the drawable grid.

    Explicit bounds win. Otherwise the grid is the content box grown by
    `padding` on every side, anchored at (0, 0).
    """
    if map_data.bounds is not None:
        return map_data.bounds

    padding = map_data.padding if map_data.padding is not None else DEFAULT_PADDING
    content = compute_content_bounds(map_data)
    width = content.width + padding * 2
    height = content.height + padding * 2
    return Bounds(min_x=0, min_y=0, max_x=width - 1, max_y=height - 1)


def _clamp_padding(padding: int) -> int:
    return min(MAX_PADDING, max(0, int(padding)))


def compile_map_data(map_data: MapData, padding: int | None = None) -> CompiledMap:
    """
    Normalise an authored map for the runtime.

    Rules:
      - padding: explicit argument, else map.padding, else DEFAULT_PADDING; clamped to [0, MAX_PADDING]
      - all coordinates shift so the content box starts at (padding, padding)
      - tiles/stars are de-duplicated by coordinate (last tile colour wins)
      - a red floor tile is added under the start if missing
    """
    if padding is None:
        padding = map_data.padding if map_data.padding is not None else DEFAULT_PADDING
    padding = _clamp_padding(padding)

    content = compute_content_bounds(map_data)
    width = content.width + padding * 2
    height = content.height + padding * 2
    shift_x = padding - content.min_x
    shift_y = padding - content.min_y

    start = replace(map_data.start, x=map_data.start.x + shift_x, y=map_data.start.y + shift_y)
    tiles = [Tile(t.x + shift_x, t.y + shift_y, t.color) for t in map_data.tiles]
    stars = [Star(s.x + shift_x, s.y + shift_y) for s in map_data.stars]
    bounds = Bounds(min_x=0, min_y=0, max_x=width - 1, max_y=height - 1)

    compiled = ensure_start_floor(
        MapData.build(start, tiles, stars, padding=padding, bounds=bounds)
    )
    return CompiledMap(map=compiled, padding=padding, bounds=bounds, grid_size=max(width, height))


def ensure_start_floor(map_data: MapData) -> MapData:
    """Return the map with a red tile under the start pose (unchanged if one exists)."""
    start: StartPose = map_data.start
    if map_data.is_on_tile(start.x, start.y):
        return map_data
    tiles = (*map_data.tiles, Tile(start.x, start.y, TileColor.RED))
    return replace(map_data, tiles=tiles)


def validate_render_size(map_data: MapData, limit: int = MAX_RENDER_SIZE) -> RenderSize:
    bounds = compute_render_bounds(map_data)
    return RenderSize(
        width=bounds.width,
        height=bounds.height,
        ok=bounds.width <= limit and bounds.height <= limit,
    )
