"""Gate, ice and path checks deciding whether a piece is tappable right now."""
from typing import AbstractSet, Mapping, Optional

from ..models.geometry import Coord, GridGeometry, grid_key
from ..models.level import Piece
from .path_resolver import NO_PAUSES, resolve_path


def has_neighbors(coord: Coord, occupancy: Mapping[str, Piece], geometry: GridGeometry) -> bool:
    """True if any 4-/6-adjacent cell holds a piece."""
    return any(grid_key(n) in occupancy for n in geometry.neighbors(coord))


def remaining_ice(piece: Piece, move_count: int) -> Optional[int]:
    """Ice layers left, or None for a piece that was never iced."""
    if piece.ice_count is None:
        return None
    return max(0, piece.ice_count - move_count)


def is_frozen(piece: Piece, move_count: int) -> bool:
    remaining = remaining_ice(piece, move_count)
    return remaining is not None and remaining > 0


def is_gate_open(
    piece: Piece,
    occupancy: Mapping[str, Piece],
    move_count: int,
    geometry: GridGeometry,
) -> bool:
    """Timed gates open at their move threshold, neighbor gates once isolated."""
    if not piece.locked:
        return True
    if piece.is_timed_gate:
        return move_count >= piece.unlock_after_moves
    return not has_neighbors(piece.coord, occupancy, geometry)


def is_unlocked(
    piece: Piece,
    occupancy: Mapping[str, Piece],
    move_count: int,
    geometry: GridGeometry,
) -> bool:
    """Neither frozen under ice nor held by a closed gate."""
    if is_frozen(piece, move_count):
        return False
    return is_gate_open(piece, occupancy, move_count, geometry)


def is_waiting(
    piece: Piece,
    occupancy: Mapping[str, Piece],
    move_count: int,
    geometry: GridGeometry,
) -> bool:
    """
    Held only by timing: still frozen, or gated while neighbors remain or
    the move threshold is not yet reached. Such pieces are not deadlocked.
    """
    return not is_unlocked(piece, occupancy, move_count, geometry)


def is_clearable(
    piece: Piece,
    occupancy: Mapping[str, Piece],
    holes: AbstractSet[str],
    move_count: int,
    geometry: GridGeometry,
    pauses: AbstractSet[str] = NO_PAUSES,
) -> bool:
    """
    Check if a piece can be cleared right now.

    Args:
        piece: Piece to check.
        occupancy: Current pieces keyed by coordinate key.
        holes: Void cell keys.
        move_count: Global move counter, drives ice and timed gates.
        geometry: Board topology and extent.
        pauses: Pause cell keys (hex only).

    Returns:
        True if unlocked, unfrozen and its resolved path exits or reaches a hole.
    """
    if not is_unlocked(piece, occupancy, move_count, geometry):
        return False
    return resolve_path(piece, occupancy, holes, geometry, pauses).can_exit
