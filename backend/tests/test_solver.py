"""Tests for the solver and clearable set."""
import random

import pytest
from blockaway.core.solver import (
    apply_pause_move,
    check_solvable,
    compute_clearable_set,
    design_clearable_keys,
    greedy_waves,
    pause_moves,
    state_signature,
)
from blockaway.models.geometry import (
    HexDirection,
    HexGeometry,
    SquareAxis,
    SquareDirection,
    SquareGeometry,
    key_set,
    parse_key,
)
from blockaway.models.level import Piece, index_pieces

N, E, S, W = SquareDirection.N, SquareDirection.E, SquareDirection.S, SquareDirection.W


def make_piece(row, col, direction, **kwargs):
    return Piece(id=f"p{row}{col}", coord=(row, col), direction=direction, **kwargs)


def random_board(rng, geometry, lock_rate=0.2):
    """Random square board with every cell filled."""
    facings = geometry.directions + geometry.axes
    pieces = {}
    for idx, coord in enumerate(geometry.cells()):
        piece = Piece(
            id=f"r{idx}",
            coord=coord,
            direction=rng.choice(facings),
            locked=rng.random() < lock_rate,
        )
        pieces[piece.key] = piece
    return pieces


@pytest.fixture
def row3():
    """1x3 board."""
    return SquareGeometry(rows=1, cols=3)


class TestCheckSolvable:
    """Test cases for check_solvable."""

    def test_row_of_east_pieces(self, row3):
        """Test three pieces in a row all facing East clear from the right."""
        pieces = [make_piece(0, 0, E), make_piece(0, 1, E), make_piece(0, 2, E)]
        result = check_solvable(pieces, (), row3)
        assert result.solvable
        assert result.stuck_count == 0
        assert sorted(result.order) == ["p00", "p01", "p02"]

    def test_facing_pieces_deadlock(self, row3):
        """Test two pieces facing each other."""
        pieces = [make_piece(0, 0, E), make_piece(0, 1, W)]
        result = check_solvable(pieces, (), row3)
        assert not result.solvable
        assert result.stuck_count == 2
        assert result.stuck_keys == ["0,0", "0,1"]

    def test_partial_deadlock_counts_only_stuck(self):
        """Test that free pieces are cleared before reporting the stuck ones."""
        grid = SquareGeometry(rows=2, cols=2)
        pieces = [make_piece(0, 0, E), make_piece(0, 1, W), make_piece(1, 0, S)]
        result = check_solvable(pieces, (), grid)
        assert not result.solvable
        assert result.stuck_count == 2
        assert result.order == ["p10"]

    def test_hole_rescues_blocked_pair(self):
        """Test that a hole between facing pieces lets both fall in."""
        grid = SquareGeometry(rows=1, cols=3)
        pieces = [make_piece(0, 0, E), make_piece(0, 2, W)]
        assert check_solvable(pieces, [(0, 1)], grid).solvable

    def test_accepts_mapping(self, row3):
        """Test that an occupancy mapping works as input and is not mutated."""
        occupancy = {p.key: p for p in [make_piece(0, 0, E), make_piece(0, 1, E)]}
        assert check_solvable(occupancy, (), row3).solvable
        assert len(occupancy) == 2

    def test_locked_needs_isolation(self, row3):
        """Test that a locked piece waits for its neighbors."""
        pieces = [make_piece(0, 0, N, locked=True), make_piece(0, 1, N)]
        result = check_solvable(pieces, (), row3)
        assert result.solvable
        assert result.order.index("p01") < result.order.index("p00")

    def test_ignores_ice_and_timed_gates(self, row3):
        """Test that design-time checks treat timed gates as neighbor gates and skip ice."""
        pieces = [
            make_piece(0, 0, N, ice_count=10),
            make_piece(0, 1, N, locked=True, unlock_after_moves=99),
        ]
        assert check_solvable(pieces, (), row3).solvable

    def test_locked_pair_with_blocked_neighbor(self, row3):
        """Test that two adjacent locked pieces can never open."""
        pieces = [make_piece(0, 0, N, locked=True), make_piece(0, 1, N, locked=True)]
        assert not check_solvable(pieces, (), row3).solvable

    def test_empty_board(self, row3):
        """Test that an empty board is trivially solvable."""
        result = check_solvable([], (), row3)
        assert result.solvable
        assert result.moves == 0

    def test_deterministic(self):
        """Test that repeated runs give identical results."""
        grid = SquareGeometry(rows=4, cols=4)
        pieces = random_board(random.Random(7), grid)
        assert check_solvable(pieces, (), grid) == check_solvable(pieces, (), grid)


class TestPauseAdvance:
    """Test cases for hex boards with pause cells."""

    def test_piece_advances_through_pause(self):
        """Test that a piece stopping on a pause is advanced and then exits."""
        grid = HexGeometry(radius=2)
        piece = Piece(id="a", coord=(-2, 0), direction=HexDirection.E)
        result = check_solvable([piece], (), grid, pauses=[(0, 0)])
        assert result.solvable
        assert result.moves == 2

    def test_pause_does_not_loop(self):
        """Test that a bidirectional piece between two pauses cannot loop forever."""
        grid = HexGeometry(radius=2)
        piece = Piece(id="a", coord=(0, 0), direction=grid.parse_facing("E_W"))
        blockers = [
            Piece(id="b", coord=(2, 0), direction=HexDirection.W),
            Piece(id="c", coord=(-2, 0), direction=HexDirection.E),
        ]
        result = check_solvable([piece] + blockers, (), grid, pauses=[(1, 0), (-1, 0)])
        assert result.moves < 50


def exhaustive_solvable(pieces, pauses, geometry):
    """Depth-first search over every tap that clears a piece or stops on a pause."""
    pause_keys = key_set(pauses)
    seen = set()
    stack = [index_pieces(pieces)]
    while stack:
        occupancy = stack.pop()
        if not occupancy:
            return True
        state = state_signature(occupancy)
        if state in seen:
            continue
        seen.add(state)
        for key in design_clearable_keys(occupancy, frozenset(), geometry, pause_keys):
            stack.append({k: p for k, p in occupancy.items() if k != key})
        for key, moved in pause_moves(occupancy, frozenset(), geometry, pause_keys):
            stack.append(apply_pause_move(occupancy, key, moved))
    return False


def random_pause_board(rng, geometry, pause_count=3):
    """Sparse hex board of single-direction pieces plus pause cells."""
    cells = geometry.cells()
    rng.shuffle(cells)
    pauses = cells[:pause_count]
    pieces = [
        Piece(
            id=f"h{idx}",
            coord=coord,
            direction=rng.choice(geometry.directions),
            locked=rng.random() < 0.15,
        )
        for idx, coord in enumerate(cells[pause_count:pause_count + rng.randint(4, 8)])
    ]
    return pieces, pauses


class TestPauseSearch:
    """Pause moves are searched, not taken greedily."""

    def test_second_pause_candidate_needed(self):
        """Test a board where only the second piece that can pause leads to a clear."""
        grid = HexGeometry(radius=2)
        layout = {
            "-1,-1": HexDirection.E,
            "-1,0": HexDirection.E,
            "1,-2": HexDirection.SW,
            "0,2": HexDirection.SE,
            "1,-1": HexDirection.NW,
            "0,1": HexDirection.E,
        }
        pieces = [
            Piece(id=f"s{idx}", coord=parse_key(key), direction=direction)
            for idx, (key, direction) in enumerate(layout.items())
        ]
        pauses = [(-1, 1), (0, -2), (0, -1)]

        result = check_solvable(pieces, (), grid, pauses=pauses)
        assert result.solvable
        assert sorted(result.order) == sorted(p.id for p in pieces)
        assert result.moves > len(pieces)

    @pytest.mark.parametrize("seed", range(300))
    def test_matches_exhaustive_search(self, seed):
        """Test the verdict against a search over every possible tap."""
        rng = random.Random(seed)
        grid = HexGeometry(radius=2)
        pieces, pauses = random_pause_board(rng, grid)
        expected = exhaustive_solvable(pieces, pauses, grid)
        assert check_solvable(pieces, (), grid, pauses=pauses).solvable == expected

    def test_stuck_keys_from_smallest_dead_end(self):
        """Test that an unsolvable pause board reports the pieces it could not move."""
        grid = HexGeometry(radius=2)
        pieces = [
            Piece(id="a", coord=(0, 0), direction=HexDirection.E),
            Piece(id="b", coord=(1, 0), direction=HexDirection.W),
            Piece(id="c", coord=(-2, 2), direction=HexDirection.SW),
        ]
        result = check_solvable(pieces, (), grid, pauses=[(-1, 1)])
        assert not result.solvable
        assert result.stuck_keys == ["0,0", "1,0"]
        assert result.order == ["c"]


class TestClearableSet:
    """Test cases for compute_clearable_set."""

    def test_row_clearable_set(self, row3):
        """Test that only the front piece of an East row is clearable."""
        pieces = [make_piece(0, 0, E), make_piece(0, 1, E), make_piece(0, 2, E)]
        assert compute_clearable_set(pieces, (), 0, row3) == {"0,2"}

    def test_facing_pair_empty(self, row3):
        """Test that facing pieces leave the clearable set empty."""
        pieces = [make_piece(0, 0, E), make_piece(0, 1, W)]
        assert compute_clearable_set(pieces, (), 0, row3) == set()

    def test_respects_ice(self, row3):
        """Test that live clearability honors ice."""
        pieces = [make_piece(0, 0, N, ice_count=2)]
        assert compute_clearable_set(pieces, (), 1, row3) == set()
        assert compute_clearable_set(pieces, (), 2, row3) == {"0,0"}

    def test_matches_design_rules_without_timing(self):
        """Test that both rule sets agree on boards without ice or timed gates."""
        grid = SquareGeometry(rows=4, cols=4)
        rng = random.Random(3)
        for _ in range(20):
            pieces = random_board(rng, grid)
            assert compute_clearable_set(pieces, (), 0, grid) == set(
                design_clearable_keys(pieces, frozenset(), grid)
            )


class TestWaves:
    """Test cases for simultaneous-removal waves."""

    def test_row_needs_three_waves(self, row3):
        """Test that a row of East pieces clears one per wave."""
        pieces = [make_piece(0, 0, E), make_piece(0, 1, E), make_piece(0, 2, E)]
        assert greedy_waves(pieces, (), row3) == [["0,2"], ["0,1"], ["0,0"]]


class TestMonotonicity:
    """Removing a clearable piece never turns a solvable board unsolvable."""

    @pytest.mark.parametrize("seed", range(10))
    def test_removal_preserves_solvability(self, seed):
        """Test every single removal on random solvable boards."""
        rng = random.Random(seed)
        grid = SquareGeometry(rows=4, cols=4)
        checked = 0
        while checked < 5:
            pieces = random_board(rng, grid, lock_rate=0.15)
            # Thin the board so a fair share of samples are solvable
            for key in rng.sample(list(pieces), 6):
                del pieces[key]
            if not check_solvable(pieces, (), grid).solvable:
                continue
            checked += 1
            for key in design_clearable_keys(pieces, frozenset(), grid):
                remaining = {k: p for k, p in pieces.items() if k != key}
                assert check_solvable(remaining, (), grid).solvable

    def test_removal_never_blocks_paths(self):
        """Test that a piece's path outcome only improves after any removal."""
        rng = random.Random(11)
        grid = SquareGeometry(rows=5, cols=5)
        pieces = random_board(rng, grid, lock_rate=0.0)
        before = set(design_clearable_keys(pieces, frozenset(), grid))
        for key in list(pieces)[:10]:
            remaining = {k: p for k, p in pieces.items() if k != key}
            after = set(design_clearable_keys(remaining, frozenset(), grid))
            assert before - {key} <= after

    def test_axis_pieces_in_random_boards(self):
        """Test that random boards include bidirectional pieces."""
        grid = SquareGeometry(rows=4, cols=4)
        pieces = random_board(random.Random(1), grid)
        assert any(p.direction in (SquareAxis.N_S, SquareAxis.E_W) for p in pieces.values())


class TestPauseWaves:
    """Test cases for waves on boards with pause cells."""

    def test_pause_wave_then_clear(self):
        """Test that a pause advance counts as its own wave."""
        grid = HexGeometry(radius=2)
        piece = Piece(id="a", coord=(-2, 0), direction=HexDirection.E)
        assert greedy_waves([piece], (), grid, pauses=[(0, 0)]) == [["-2,0"], ["0,0"]]

    def test_pause_is_not_an_exit(self):
        """Test that design-time clearability stops at pause cells."""
        grid = HexGeometry(radius=2)
        piece = Piece(id="a", coord=(-2, 0), direction=HexDirection.E)
        occupancy = {piece.key: piece}
        assert design_clearable_keys(occupancy, frozenset(), grid) == ["-2,0"]
        assert design_clearable_keys(occupancy, frozenset(), grid, frozenset({"0,0"})) == []
