from __future__ import annotations

from block42_engine.grid import MapData
from block42_engine.models import GameState, RunStatus, ValidationResult

MSG_FAILED = "execution failed"
MSG_INCOMPLETE = "not all stars collected"


def validate(map_data: MapData, final_state: GameState) -> ValidationResult:
    """
    Classify a finished run independently of the engine's own verdict.

    Usable on a state that was persisted and reloaded. Valid iff the state
    is not a failure and every star on the map was collected.
    """
    total = map_data.total_stars
    # Coordinates that hold no star on this map do not count.
    collected = len(final_state.collected_stars & map_data.star_coords)

    if final_state.status == RunStatus.FAILURE:
        return ValidationResult(
            valid=False,
            message=final_state.error or MSG_FAILED,
            collected_stars=collected,
            total_stars=total,
        )

    if collected != total:
        return ValidationResult(
            valid=False,
            message=MSG_INCOMPLETE,
            collected_stars=collected,
            total_stars=total,
        )

    return ValidationResult(valid=True, collected_stars=collected, total_stars=total)
