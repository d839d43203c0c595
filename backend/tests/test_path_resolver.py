"""Tests for path resolution."""
import pytest
from blockaway.core.path_resolver import (
    choose_outcome,
    effective_directions,
    min_blocks_ahead,
    resolve_direction,
    resolve_path,
)
from blockaway.models.geometry import (
    HexDirection,
    HexGeometry,
    SquareAxis,
    SquareDirection,
    SquareGeometry,
)
from blockaway.models.level import PathOutcome, Piece


def make_piece(row, col, direction, **kwargs):
    return Piece(id=f"p{row}{col}", coord=(row, col), direction=direction, **kwargs)


def occupancy_of(*pieces):
    return {p.key: p for p in pieces}


@pytest.fixture
def grid3():
    """3x3 square grid."""
    return SquareGeometry(rows=3, cols=3)


class TestResolveDirection:
    """Test cases for single-direction walks."""

    def test_unblocked_exit(self, grid3):
        """Test a clear walk to the edge."""
        outcome = resolve_direction((1, 0), SquareDirection.E, {}, frozenset(), grid3)
        assert not outcome.blocked
        assert outcome.path == ((1, 1), (1, 2))
        assert outcome.last_free == (1, 2)
        assert outcome.can_exit

    def test_blocked_stops_before_blocker(self, grid3):
        """Test that the blocker is reported and not included in the path."""
        occ = occupancy_of(make_piece(1, 2, SquareDirection.N))
        outcome = resolve_direction((1, 0), SquareDirection.E, occ, frozenset(), grid3)
        assert outcome.blocked
        assert outcome.blocker == (1, 2)
        assert outcome.path == ((1, 1),)
        assert outcome.last_free == (1, 1)
        assert not outcome.can_exit

    def test_adjacent_blocker_has_empty_path(self, grid3):
        """Test that a blocker right next to the start leaves last_free at the start."""
        occ = occupancy_of(make_piece(1, 1, SquareDirection.N))
        outcome = resolve_direction((1, 0), SquareDirection.E, occ, frozenset(), grid3)
        assert outcome.path == ()
        assert outcome.last_free == (1, 0)

    def test_at_edge_exits_immediately(self, grid3):
        """Test a piece already on the edge facing out."""
        outcome = resolve_direction((0, 0), SquareDirection.N, {}, frozenset(), grid3)
        assert outcome.path == ()
        assert outcome.can_exit

    def test_hole_before_blocker(self, grid3):
        """Test that a hole in front of a piece wins over the piece behind it."""
        occ = occupancy_of(make_piece(1, 2, SquareDirection.N))
        outcome = resolve_direction((1, 0), SquareDirection.E, occ, frozenset({"1,1"}), grid3)
        assert outcome.hole == (1, 1)
        assert outcome.path == ((1, 1),)
        assert not outcome.blocked
        assert outcome.can_exit


class TestResolvePath:
    """Test cases for resolve_path including the bidirectional tie-break."""

    def test_hole_outcome(self):
        """Test a piece sliding into a void cell on a 2x2 board."""
        grid = SquareGeometry(rows=2, cols=2)
        piece = make_piece(1, 0, SquareDirection.E)
        outcome = resolve_path(piece, occupancy_of(piece), frozenset({"1,1"}), grid)
        assert outcome.hole == (1, 1)
        assert outcome.can_exit

    def test_bidirectional_prefers_exit_capable(self, grid3):
        """Test an E_W piece blocked to the West and clear to the East."""
        piece = make_piece(1, 1, SquareAxis.E_W)
        occ = occupancy_of(piece, make_piece(1, 0, SquareDirection.N))
        outcome = resolve_path(piece, occ, frozenset(), grid3)
        assert outcome.direction == SquareDirection.E
        assert outcome.can_exit

    def test_bidirectional_prefers_exit_capable_when_second(self, grid3):
        """Test the same choice when the exit is the second candidate."""
        piece = make_piece(1, 1, SquareAxis.E_W)
        occ = occupancy_of(piece, make_piece(1, 2, SquareDirection.N))
        outcome = resolve_path(piece, occ, frozenset(), grid3)
        assert outcome.direction == SquareDirection.W

    def test_both_exit_prefers_shorter(self):
        """Test that the closer exit wins."""
        grid = SquareGeometry(rows=1, cols=5)
        piece = make_piece(0, 3, SquareAxis.E_W)
        outcome = resolve_path(piece, occupancy_of(piece), frozenset(), grid)
        assert outcome.direction == SquareDirection.E
        assert len(outcome.path) == 1

    def test_both_blocked_prefers_longer(self):
        """Test that the longer blocked path wins when neither exits."""
        grid = SquareGeometry(rows=1, cols=6)
        piece = make_piece(0, 1, SquareAxis.E_W)
        occ = occupancy_of(
            piece,
            make_piece(0, 0, SquareDirection.N),
            make_piece(0, 4, SquareDirection.N),
        )
        outcome = resolve_path(piece, occ, frozenset(), grid)
        assert outcome.direction == SquareDirection.E
        assert outcome.blocker == (0, 4)
        assert outcome.last_free == (0, 3)

    def test_ties_go_to_first_candidate(self):
        """Test that equal-length exits pick the axis' first direction."""
        grid = SquareGeometry(rows=3, cols=3)
        piece = make_piece(1, 1, SquareAxis.N_S)
        outcome = resolve_path(piece, occupancy_of(piece), frozenset(), grid)
        assert outcome.direction == SquareDirection.N

    def test_mirror_flips_direction(self, grid3):
        """Test that a mirror piece exits through the opposite side."""
        piece = make_piece(1, 1, SquareDirection.E, mirror=True)
        outcome = resolve_path(piece, occupancy_of(piece), frozenset(), grid3)
        assert outcome.direction == SquareDirection.W
        assert effective_directions(piece, grid3) == (SquareDirection.W,)

    def test_deterministic(self, grid3):
        """Test that identical inputs give identical outputs."""
        piece = make_piece(1, 1, SquareAxis.E_W)
        occ = occupancy_of(piece, make_piece(1, 0, SquareDirection.N))
        first = resolve_path(piece, occ, frozenset(), grid3)
        second = resolve_path(piece, occ, frozenset(), grid3)
        assert first == second


class TestPauseCells:
    """Test cases for hex pause cells."""

    def test_pause_stops_slide(self):
        """Test that a pause cell ends the walk and is included in the path."""
        grid = HexGeometry(radius=2)
        piece = Piece(id="a", coord=(-2, 0), direction=HexDirection.E)
        outcome = resolve_path(piece, {piece.key: piece}, frozenset(), grid, frozenset({"0,0"}))
        assert outcome.pause == (0, 0)
        assert outcome.path == ((-1, 0), (0, 0))
        assert not outcome.blocked
        assert not outcome.can_exit

    def test_pause_does_not_count_as_exit_in_tie_break(self):
        """Test that a real exit beats a pause stop."""
        grid = HexGeometry(radius=2)
        piece = Piece(id="a", coord=(0, 0), direction=grid.parse_facing("E_W"))
        outcome = resolve_path(piece, {piece.key: piece}, frozenset(), grid, frozenset({"1,0"}))
        assert outcome.direction == HexDirection.W
        assert outcome.can_exit


class TestChooseOutcome:
    """Test cases for the tie-break in isolation."""

    def test_exit_beats_blocked(self):
        """Test that exit-capable wins regardless of length."""
        blocked = PathOutcome("E", ((0, 1),), True, (0, 2), (0, 1))
        free = PathOutcome("W", ((0, -1), (0, -2), (0, -3)), False, None, (0, -3))
        assert choose_outcome(blocked, free) is free
        assert choose_outcome(free, blocked) is free

    def test_hole_counts_as_exit(self):
        """Test that a hole outcome beats a blocked one."""
        blocked = PathOutcome("E", ((0, 1), (0, 2)), True, (0, 3), (0, 2))
        hole = PathOutcome("W", ((0, -1),), False, None, (0, 0), hole=(0, -1))
        assert choose_outcome(blocked, hole) is hole


class TestBlocksAhead:
    """Test cases for blocks-ahead counting."""

    def test_counts_pieces_to_edge(self):
        """Test counting every piece in the way, not only the first."""
        grid = SquareGeometry(rows=1, cols=4)
        piece = make_piece(0, 0, SquareDirection.E)
        occ = occupancy_of(piece, make_piece(0, 1, SquareDirection.N), make_piece(0, 3, SquareDirection.N))
        assert min_blocks_ahead(piece, occ, frozenset(), grid) == 2

    def test_hole_stops_count(self):
        """Test that pieces beyond a hole are not counted."""
        grid = SquareGeometry(rows=1, cols=4)
        piece = make_piece(0, 0, SquareDirection.E)
        occ = occupancy_of(piece, make_piece(0, 3, SquareDirection.N))
        assert min_blocks_ahead(piece, occ, frozenset({"0,2"}), grid) == 0

    def test_axis_takes_minimum(self):
        """Test that a bidirectional piece counts its better side."""
        grid = SquareGeometry(rows=1, cols=5)
        piece = make_piece(0, 2, SquareAxis.E_W)
        occ = occupancy_of(piece, make_piece(0, 0, SquareDirection.N), make_piece(0, 1, SquareDirection.N),
                           make_piece(0, 4, SquareDirection.N))
        assert min_blocks_ahead(piece, occ, frozenset(), grid) == 1
