"""Tests for the clearability predicate."""
import pytest
from blockaway.core.clearability import (
    has_neighbors,
    is_clearable,
    is_frozen,
    is_unlocked,
    is_waiting,
    remaining_ice,
)
from blockaway.core.path_resolver import resolve_path
from blockaway.models.geometry import SquareDirection, SquareGeometry
from blockaway.models.level import Piece

N, E, S, W = SquareDirection.N, SquareDirection.E, SquareDirection.S, SquareDirection.W
NO_HOLES = frozenset()


def make_piece(row, col, direction, **kwargs):
    return Piece(id=f"p{row}{col}", coord=(row, col), direction=direction, **kwargs)


def occupancy_of(*pieces):
    return {p.key: p for p in pieces}


@pytest.fixture
def grid():
    """2x3 square grid."""
    return SquareGeometry(rows=2, cols=3)


class TestNeighborGate:
    """Test cases for locked pieces gated on their neighbors."""

    def test_locked_with_neighbor_not_clearable(self, grid):
        """Test that a neighbor keeps the gate shut even with a clear path."""
        locked = make_piece(0, 0, N, locked=True)
        occ = occupancy_of(locked, make_piece(0, 1, N))
        assert has_neighbors(locked.coord, occ, grid)
        assert not is_clearable(locked, occ, NO_HOLES, 0, grid)

    def test_clearing_neighbor_opens_gate(self, grid):
        """Test that the locked piece becomes clearable once its neighbor leaves."""
        locked = make_piece(0, 0, N, locked=True)
        neighbor = make_piece(0, 1, N)
        occ = occupancy_of(locked, neighbor)
        assert is_clearable(neighbor, occ, NO_HOLES, 0, grid)

        del occ[neighbor.key]
        assert is_clearable(locked, occ, NO_HOLES, 1, grid)

    def test_diagonal_is_not_a_neighbor(self, grid):
        """Test that square grids only look at 4 neighbors."""
        locked = make_piece(0, 0, N, locked=True)
        occ = occupancy_of(locked, make_piece(1, 1, N))
        assert is_unlocked(locked, occ, 0, grid)


class TestTimedGate:
    """Test cases for move-count gates."""

    def test_unlocks_at_threshold(self, grid):
        """Test that a timed gate ignores neighbors and opens at the threshold."""
        gate = make_piece(0, 0, N, locked=True, unlock_after_moves=3)
        occ = occupancy_of(gate, make_piece(0, 1, N))
        assert not is_clearable(gate, occ, NO_HOLES, 2, grid)
        assert is_clearable(gate, occ, NO_HOLES, 3, grid)

    def test_pending_gate_is_waiting(self, grid):
        """Test that a timed gate below its threshold is waiting."""
        gate = make_piece(0, 0, N, locked=True, unlock_after_moves=5)
        assert is_waiting(gate, occupancy_of(gate), 1, grid)


class TestIce:
    """Test cases for iced pieces."""

    def test_frozen_until_melted(self, grid):
        """Test that ice blocks clearing until the move count catches up."""
        iced = make_piece(0, 0, N, ice_count=2)
        occ = occupancy_of(iced)
        assert is_frozen(iced, 1)
        assert remaining_ice(iced, 1) == 1
        assert not is_clearable(iced, occ, NO_HOLES, 1, grid)
        assert is_clearable(iced, occ, NO_HOLES, 2, grid)
        assert remaining_ice(iced, 5) == 0

    def test_no_ice(self):
        """Test that pieces without ice report None."""
        assert remaining_ice(make_piece(0, 0, N), 3) is None


class TestConsistency:
    """Clearable implies an exit-capable path, an open gate and no ice."""

    def test_clearable_implies_components(self, grid):
        """Test the implication over every piece of a mixed board."""
        pieces = [
            make_piece(0, 0, E),
            make_piece(0, 1, W, locked=True),
            make_piece(0, 2, N, ice_count=1),
            make_piece(1, 0, E),
            make_piece(1, 1, S),
            make_piece(1, 2, W, locked=True, unlock_after_moves=1),
        ]
        occ = occupancy_of(*pieces)
        for move_count in range(3):
            for piece in pieces:
                if is_clearable(piece, occ, NO_HOLES, move_count, grid):
                    assert resolve_path(piece, occ, NO_HOLES, grid).can_exit
                    assert is_unlocked(piece, occ, move_count, grid)
                    assert not is_frozen(piece, move_count)
