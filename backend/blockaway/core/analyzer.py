"""Puzzle structure analyzer and difficulty scoring."""
import math
import random
from collections import deque
from typing import Dict, List, Optional, Tuple

from ..models.level import (
    DifficultyBreakdown,
    DifficultyTier,
    Level,
    PuzzleAnalysis,
)
from .path_resolver import min_blocks_ahead
from .solver import (
    apply_pause_move,
    check_solvable,
    design_clearable_keys,
    greedy_waves,
    pause_moves,
    state_signature,
)


class PuzzleAnalyzer:
    """Analyzes Block Away boards and scores their difficulty."""

    # Score = sum of weighted components, clamped to 0-100
    # Calibrated on shipped levels: ~19 easy, ~44 medium, ~73 hard
    WEIGHTS = {
        "avg_blockers": 4.5,      # primary factor, ~0-45 points
        "clearability": 20.0,     # (1 - initial clearability) * 20
        "piece_count_divisor": 40.0,
        "piece_count_cap": 10.0,
        "locked_cap": 5.0,
    }

    # Large boards (400+ pieces) get extra points, capped
    SIZE_BONUS_START = 400
    SIZE_BONUS_DIVISOR = 20.0
    SIZE_BONUS_CAP = 20.0

    # Solution-space search limits
    MAX_SOLUTIONS = 1000
    MAX_STATES = 50000
    SAMPLING_THRESHOLD = 25   # boards with more pieces are sampled
    SAMPLE_COUNT = 50

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def analyze(self, level: Level, explore: bool = True) -> PuzzleAnalysis:
        """
        Analyze the structure of a level.

        Args:
            level: Level to analyze.
            explore: Also search the solution space. The difficulty score does
                not need it, so callers that only score can skip it.

        Returns:
            PuzzleAnalysis with solvability, depth, branching, solution-space
            and blocker metrics.
        """
        geometry = level.geometry
        occupancy = level.occupancy()
        holes = level.hole_keys
        pauses = level.pause_keys
        piece_count = len(occupancy)
        grid_size = geometry.cell_count()

        solve = check_solvable(occupancy, holes, geometry, pauses)
        analysis = PuzzleAnalysis(
            solvable=solve.solvable,
            piece_count=piece_count,
            hole_count=len(level.holes),
            locked_count=sum(1 for p in occupancy.values() if p.locked),
            grid_size=grid_size,
            density=piece_count / grid_size if grid_size else 0.0,
        )
        if piece_count == 0:
            return analysis

        waves = greedy_waves(occupancy, holes, geometry, pauses)
        analysis.solution_depth = len(waves)
        analysis.max_chain_length = len(waves)
        analysis.initial_clearable = len(design_clearable_keys(occupancy, holes, geometry, pauses))
        analysis.initial_clearability = analysis.initial_clearable / piece_count

        if explore:
            if piece_count > self.SAMPLING_THRESHOLD:
                branching = self._sample(analysis, occupancy, holes, geometry, pauses)
                analysis.min_moves = solve.moves if solve.solvable else 0
            else:
                branching = self._explore(analysis, occupancy, holes, geometry, pauses)
            if branching:
                analysis.avg_branching_factor = sum(branching) / len(branching)
                analysis.min_branching_factor = min(branching)
                analysis.forced_move_count = sum(1 for b in branching if b == 1)
                analysis.forced_move_ratio = analysis.forced_move_count / len(branching)

        analysis.total_blockers = sum(
            min_blocks_ahead(piece, occupancy, holes, geometry)
            for piece in occupancy.values()
        )
        analysis.avg_blockers = analysis.total_blockers / piece_count

        facings = {getattr(p.direction, "value", p.direction) for p in occupancy.values()}
        analysis.unique_directions = len(facings)
        analysis.direction_variety = len(facings) / (len(geometry.directions) + len(geometry.axes))
        analysis.bidirectional_ratio = sum(
            1 for p in occupancy.values() if geometry.is_bidirectional(p.direction)
        ) / piece_count

        return analysis

    @staticmethod
    def _moves(occupancy, holes, geometry, pauses) -> List[Dict]:
        """Every board reachable with one tap: a clear or a slide onto a pause."""
        children = [
            {k: p for k, p in occupancy.items() if k != key}
            for key in design_clearable_keys(occupancy, holes, geometry, pauses)
        ]
        for key, moved in pause_moves(occupancy, holes, geometry, pauses):
            children.append(apply_pause_move(occupancy, key, moved))
        return children

    def _explore(self, analysis, occupancy, holes, geometry, pauses) -> List[int]:
        """
        Breadth-first search over board states.

        Counts the shortest solutions (every solution when there are no pause
        cells), the reachable dead ends, and the choices at each state.
        Stops after MAX_STATES states or once MAX_SOLUTIONS is reached.
        """
        start = state_signature(occupancy)
        depth = {start: 0}
        ways = {start: 1}
        queue = deque([(start, occupancy)])
        branching = []
        explored = 0
        solved: Optional[Tuple[frozenset, int]] = None

        while queue and explored < self.MAX_STATES:
            state, board = queue.popleft()
            explored += 1

            if not board:
                solved = (state, depth[state])
                continue
            if solved is not None and ways[solved[0]] >= self.MAX_SOLUTIONS:
                break

            children = self._moves(board, holes, geometry, pauses)
            if not children:
                if depth[state] > 0:
                    analysis.bottleneck_count += 1
                continue

            branching.append(len(children))
            for child in children:
                child_state = state_signature(child)
                if child_state not in depth:
                    depth[child_state] = depth[state] + 1
                    ways[child_state] = ways[state]
                    queue.append((child_state, child))
                elif depth[child_state] == depth[state] + 1:
                    ways[child_state] = min(ways[child_state] + ways[state], self.MAX_SOLUTIONS)

        analysis.states_explored = explored
        if solved is not None:
            analysis.solution_count = min(ways[solved[0]], self.MAX_SOLUTIONS)
            analysis.min_moves = solved[1]
        return branching

    def _sample(self, analysis, occupancy, holes, geometry, pauses) -> List[int]:
        """
        Branching from one greedy playthrough, then random playthroughs.

        Used on boards too large to search. The greedy run prefers clears over
        pause slides; random runs keep going until one clears the board.
        """
        analysis.sampled = True
        branching, solved = self._playthrough(occupancy, holes, geometry, pauses, lambda moves: moves[0])
        analysis.states_explored = len(branching)
        if not solved:
            analysis.bottleneck_count += 1
            for _ in range(self.SAMPLE_COUNT):
                sample, solved = self._playthrough(occupancy, holes, geometry, pauses, self.rng.choice)
                analysis.states_explored += len(sample)
                if solved:
                    branching = sample
                    break
                analysis.bottleneck_count += 1
        analysis.solution_count = 1 if solved or analysis.solvable else 0
        return branching

    def _playthrough(self, occupancy, holes, geometry, pauses, choose) -> Tuple[List[int], bool]:
        remaining = dict(occupancy)
        seen = set()
        branching = []
        while remaining:
            state = state_signature(remaining)
            if state in seen:
                return branching, False
            seen.add(state)
            moves = self._moves(remaining, holes, geometry, pauses)
            if not moves:
                return branching, False
            branching.append(len(moves))
            remaining = choose(moves)
        return branching, True

    def score(self, analysis: PuzzleAnalysis) -> DifficultyBreakdown:
        """
        Calculate the 0-100 difficulty score of an analyzed board.

        Unsolvable and empty boards score 0 (easy).
        """
        if not analysis.solvable or analysis.piece_count == 0:
            return DifficultyBreakdown(
                score=0,
                raw_score=0.0,
                tier=DifficultyTier.EASY,
                components=self._components(0.0, 0.0, 0, 0, 0.0),
            )

        w = self.WEIGHTS
        count = analysis.piece_count
        size_bonus = 0.0
        if count > self.SIZE_BONUS_START:
            size_bonus = min((count - self.SIZE_BONUS_START) / self.SIZE_BONUS_DIVISOR, self.SIZE_BONUS_CAP)

        raw_score = (
            analysis.avg_blockers * w["avg_blockers"]
            + (1 - analysis.initial_clearability) * w["clearability"]
            + min(count / w["piece_count_divisor"], w["piece_count_cap"])
            + min(analysis.locked_count, w["locked_cap"])
            + size_bonus
        )
        score = int(math.floor(max(0.0, min(100.0, raw_score)) + 0.5))

        return DifficultyBreakdown(
            score=score,
            raw_score=raw_score,
            tier=DifficultyTier.from_score(score),
            components=self._components(
                analysis.avg_blockers, analysis.initial_clearability,
                count, analysis.locked_count, size_bonus,
            ),
        )

    def score_level(self, level: Level) -> DifficultyBreakdown:
        """Score a level without searching its solution space."""
        return self.score(self.analyze(level, explore=False))

    @staticmethod
    def _components(avg_blockers, clearability, count, locked, size_bonus) -> Dict[str, float]:
        return {
            "avg_blockers": round(avg_blockers, 2),
            "clearability": round(clearability, 3),
            "piece_count": count,
            "locked_count": locked,
            "size_bonus": round(size_bonus, 2),
        }


# Singleton instance
_analyzer = None


def get_analyzer() -> PuzzleAnalyzer:
    """Get or create analyzer singleton instance."""
    global _analyzer
    if _analyzer is None:
        _analyzer = PuzzleAnalyzer()
    return _analyzer
