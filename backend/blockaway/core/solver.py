"""Reachability engine for Block Away boards."""
import logging
from typing import AbstractSet, Dict, List, Optional, Set, Tuple

from ..models.geometry import Coord, GridGeometry, key_set
from ..models.level import Piece, SolveResult, index_pieces
from .clearability import has_neighbors, is_clearable
from .path_resolver import NO_PAUSES, resolve_path

logger = logging.getLogger(__name__)


def _design_clearable(
    piece: Piece,
    occupancy: Dict[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str],
) -> bool:
    # Design-time rules: every lock is a neighbor gate, ice is ignored
    if piece.locked and has_neighbors(piece.coord, occupancy, geometry):
        return False
    return resolve_path(piece, occupancy, holes, geometry, pauses).can_exit


def state_signature(occupancy: Dict[str, Piece]) -> frozenset:
    """Hashable board state; pieces with equal facing and flags are interchangeable."""
    return frozenset(
        (key, piece.direction, piece.locked, piece.mirror)
        for key, piece in occupancy.items()
    )


def _pause_target(
    piece: Piece,
    occupancy: Dict[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str],
) -> Optional[Coord]:
    if piece.locked and has_neighbors(piece.coord, occupancy, geometry):
        return None
    return resolve_path(piece, occupancy, holes, geometry, pauses).pause


def pause_moves(
    occupancy: Dict[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str],
) -> List[Tuple[str, Piece]]:
    """
    Every piece whose tap ends on a pause cell.

    Returns:
        (current key, piece moved onto the pause cell) pairs in occupancy order.
    """
    moves = []
    if not pauses:
        return moves
    for key, piece in occupancy.items():
        target = _pause_target(piece, occupancy, holes, geometry, pauses)
        if target is not None:
            moves.append((key, piece.moved_to(target)))
    return moves


def apply_pause_move(occupancy: Dict[str, Piece], key: str, moved: Piece) -> Dict[str, Piece]:
    """New occupancy with the piece at key relocated."""
    result = dict(occupancy)
    del result[key]
    result[moved.key] = moved
    return result


def _removal_drops_pause_move(
    key: str,
    occupancy: Dict[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str],
) -> bool:
    """
    True if clearing the piece at key takes a pause move away from another piece.

    Only bidirectional pieces can lose one: a freed direction may outrank the
    direction that used to stop on a pause.
    """
    removed_id = occupancy[key].id
    before = {
        (piece.id, piece.coord)
        for _, piece in pause_moves(occupancy, holes, geometry, pauses)
        if piece.id != removed_id
    }
    if not before:
        return False
    remaining = {k: p for k, p in occupancy.items() if k != key}
    after = {(piece.id, piece.coord) for _, piece in pause_moves(remaining, holes, geometry, pauses)}
    return not before <= after


def _clear_greedily(
    remaining: Dict[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str],
    order: List[str],
) -> List[str]:
    """
    Remove clearable pieces in place until none is left.

    Returns:
        Keys of clearable pieces held back because removing them would cost
        another piece its pause move. The caller branches on those.
    """
    while True:
        guarded = bool(pauses) and any(
            geometry.is_bidirectional(p.direction) for p in remaining.values()
        )
        held = []
        cleared = False
        for key in list(remaining.keys()):
            piece = remaining[key]
            if not _design_clearable(piece, remaining, holes, geometry, pauses):
                continue
            if guarded and _removal_drops_pause_move(key, remaining, holes, geometry, pauses):
                held.append(key)
                continue
            del remaining[key]
            order.append(piece.id)
            cleared = True
        if not cleared:
            return held


def check_solvable(
    pieces,
    holes,
    geometry: GridGeometry,
    pauses=(),
) -> SolveResult:
    """
    Solvability check under design-time rules.

    Clearable pieces are removed greedily: removing a piece never blocks
    another one, so without pause cells a failed scan proves the remaining
    pieces are stuck. With pause cells a stuck board branches on every piece
    that can slide onto a pause, depth first, memoised on board state.

    Args:
        pieces: Occupancy mapping keyed by coordinate key, or an iterable of pieces.
        holes: Void cells as coordinates or keys.
        geometry: Board topology and extent.
        pauses: Pause cells as coordinates or keys (hex only).

    Returns:
        SolveResult with the removal order and, when unsolvable, the pieces
        left at the dead end with the fewest pieces.
    """
    hole_keys = key_set(holes)
    pause_keys = key_set(pauses)
    seen: Set[frozenset] = set()
    dead_end = None

    # (occupancy, removal order, pause moves made)
    stack = [(index_pieces(pieces), [], 0)]
    while stack:
        remaining, order, advances = stack.pop()
        held = _clear_greedily(remaining, hole_keys, geometry, pause_keys, order)

        if not remaining:
            return SolveResult(
                solvable=True,
                stuck_count=0,
                moves=len(order) + advances,
                order=order,
            )

        if dead_end is None or len(remaining) < len(dead_end[0]):
            dead_end = (remaining, order, advances)

        if not pause_keys:
            break
        state = state_signature(remaining)
        if state in seen:
            continue
        seen.add(state)

        branches = []
        for key in held:
            branches.append((
                {k: p for k, p in remaining.items() if k != key},
                order + [remaining[key].id],
                advances,
            ))
        for key, moved in pause_moves(remaining, hole_keys, geometry, pause_keys):
            branches.append((apply_pause_move(remaining, key, moved), list(order), advances + 1))
        # First branch is explored first
        stack.extend(reversed(branches))

    remaining, order, advances = dead_end
    logger.debug(
        "Deadlock with %d stuck pieces after %d explored states",
        len(remaining), len(seen),
    )
    return SolveResult(
        solvable=False,
        stuck_count=len(remaining),
        moves=len(order) + advances,
        order=order,
        stuck_keys=sorted(remaining.keys()),
    )


def compute_clearable_set(
    pieces,
    holes,
    move_count: int,
    geometry: GridGeometry,
    pauses=(),
) -> Set[str]:
    """Keys of every piece clearable right now, with ice and timed gates applied."""
    occupancy = index_pieces(pieces)
    hole_keys = key_set(holes)
    pause_keys = key_set(pauses)
    return {
        key
        for key, piece in occupancy.items()
        if is_clearable(piece, occupancy, hole_keys, move_count, geometry, pause_keys)
    }


def design_clearable_keys(
    occupancy: Dict[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str] = NO_PAUSES,
) -> List[str]:
    """Keys clearable under design-time rules, in occupancy order."""
    return [
        key for key, piece in occupancy.items()
        if _design_clearable(piece, occupancy, holes, geometry, pauses)
    ]


def greedy_waves(pieces, holes, geometry: GridGeometry, pauses=()) -> List[List[str]]:
    """
    Remove all clearable pieces simultaneously, wave by wave.

    When no piece clears on a board with pause cells, the pieces that can
    reach a pause slide onto it one after another and form a wave of their own.

    Returns:
        List of waves (lists of coordinate keys at the start of the wave).
        Pieces left over after the last wave are stuck.
    """
    remaining = index_pieces(pieces)
    hole_keys = key_set(holes)
    pause_keys = key_set(pauses)
    seen: Set[frozenset] = set()
    waves = []
    while remaining:
        wave = design_clearable_keys(remaining, hole_keys, geometry, pause_keys)
        if wave:
            for key in wave:
                del remaining[key]
            waves.append(wave)
            continue

        state = state_signature(remaining)
        if not pause_keys or state in seen:
            break
        seen.add(state)

        advanced = []
        for key in list(remaining.keys()):
            piece = remaining[key]
            target = _pause_target(piece, remaining, hole_keys, geometry, pause_keys)
            if target is not None:
                remaining = apply_pause_move(remaining, key, piece.moved_to(target))
                advanced.append(key)
        if not advanced:
            break
        waves.append(advanced)
    return waves
