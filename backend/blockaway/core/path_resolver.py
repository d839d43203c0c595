"""Directional path resolution for sliding pieces."""
from typing import AbstractSet, Mapping, Tuple

from ..models.geometry import Coord, GridGeometry, grid_key
from ..models.level import Piece, PathOutcome

NO_PAUSES: frozenset = frozenset()


def resolve_direction(
    start: Coord,
    direction,
    occupancy: Mapping[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str] = NO_PAUSES,
) -> PathOutcome:
    """
    Walk from the cell next to start until a hole, a piece, a pause cell or the edge.

    Holes and pause cells are included in the path; a blocking piece is not.

    Args:
        start: Coordinate the piece slides from.
        direction: Single direction to walk in.
        occupancy: Current pieces keyed by coordinate key.
        holes: Void cell keys.
        geometry: Board topology and extent.
        pauses: Pause cell keys (hex only).

    Returns:
        PathOutcome for this one direction.
    """
    path = []
    last_free = start
    current = geometry.add(start, direction)

    while geometry.in_bounds(current):
        key = grid_key(current)

        # Falls in
        if key in holes:
            path.append(current)
            return PathOutcome(direction, tuple(path), False, None, last_free, hole=current)

        if key in occupancy:
            return PathOutcome(direction, tuple(path), True, current, last_free)

        path.append(current)
        last_free = current

        if key in pauses:
            return PathOutcome(direction, tuple(path), False, None, last_free, pause=current)

        current = geometry.add(current, direction)

    return PathOutcome(direction, tuple(path), False, None, last_free)


def choose_outcome(first: PathOutcome, second: PathOutcome) -> PathOutcome:
    """
    Pick one of two candidate outcomes for a bidirectional piece.

    An exit-capable candidate always wins over one that cannot exit. Between
    two exit-capable candidates the shorter path wins; between two that
    cannot exit the longer path wins. Ties go to the first candidate.
    """
    if first.can_exit and not second.can_exit:
        return first
    if second.can_exit and not first.can_exit:
        return second
    if first.can_exit:
        return first if len(first.path) <= len(second.path) else second
    return first if len(first.path) >= len(second.path) else second


def effective_directions(piece: Piece, geometry: GridGeometry) -> Tuple:
    """Candidate exit directions, flipped for mirror pieces."""
    if geometry.is_bidirectional(piece.direction):
        directions = geometry.axis_directions(piece.direction)
    else:
        directions = (piece.direction,)
    if piece.mirror:
        directions = tuple(geometry.opposite(d) for d in directions)
    return tuple(directions)


def resolve_path(
    piece: Piece,
    occupancy: Mapping[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
    pauses: AbstractSet[str] = NO_PAUSES,
) -> PathOutcome:
    """Resolve the outcome of tapping piece on the current board."""
    directions = effective_directions(piece, geometry)
    outcome = resolve_direction(piece.coord, directions[0], occupancy, holes, geometry, pauses)
    if len(directions) == 2:
        other = resolve_direction(piece.coord, directions[1], occupancy, holes, geometry, pauses)
        outcome = choose_outcome(outcome, other)
    return outcome


def count_blocks_in_direction(
    start: Coord,
    direction,
    occupancy: Mapping[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
) -> int:
    """Count the pieces lying between start and the edge, stopping at a hole."""
    count = 0
    current = geometry.add(start, direction)
    while geometry.in_bounds(current):
        key = grid_key(current)
        if key in holes:
            return count
        if key in occupancy:
            count += 1
        current = geometry.add(current, direction)
    return count


def min_blocks_ahead(
    piece: Piece,
    occupancy: Mapping[str, Piece],
    holes: AbstractSet[str],
    geometry: GridGeometry,
) -> int:
    """Fewest pieces ahead over the piece's candidate directions."""
    return min(
        count_blocks_in_direction(piece.coord, d, occupancy, holes, geometry)
        for d in effective_directions(piece, geometry)
    )
