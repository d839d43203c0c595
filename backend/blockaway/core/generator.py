"""Constrained level generator: filled boards that stay solvable."""
import logging
import random
import time
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.geometry import Coord, GridGeometry
from ..models.level import (
    BLOCK_COLORS,
    AdjustmentResult,
    GameMode,
    GenerationResult,
    Level,
    Piece,
)
from ..utils.helpers import format_board_for_display
from .analyzer import PuzzleAnalyzer, get_analyzer
from .clearability import is_clearable
from .solver import check_solvable

logger = logging.getLogger(__name__)


class LevelGenerator:
    """
    Fills a board with pieces that are solvable by construction, then
    perturbs directions and adds locks, keeping each change only if the
    board still passes the solvability check. Also nudges the difficulty
    of an existing level one step up or down.
    """

    # (min pieces, flip fraction, lock fraction), largest boards first
    FRACTION_TABLE: List[Tuple[int, float, float]] = [
        (201, 0.25, 0.15),
        (101, 0.35, 0.18),
        (0, 0.50, 0.20),
    ]
    DEFAULT_ATTEMPT_MULTIPLIER = 3
    ICE_RANGE = (3, 7)

    def __init__(self, rng: Optional[random.Random] = None, attempt_multiplier: int = DEFAULT_ATTEMPT_MULTIPLIER):
        if attempt_multiplier < 1:
            raise ValueError("attempt_multiplier must be >= 1")
        self.rng = rng or random.Random()
        self.attempt_multiplier = attempt_multiplier

    @classmethod
    def default_fractions(cls, piece_count: int) -> Tuple[float, float]:
        """Flip and lock fractions, scaled down as the board grows."""
        for min_pieces, flip, lock in cls.FRACTION_TABLE:
            if piece_count >= min_pieces:
                return flip, lock
        return cls.FRACTION_TABLE[-1][1], cls.FRACTION_TABLE[-1][2]

    def generate_filled_board(
        self,
        geometry: GridGeometry,
        holes: Iterable[Coord] = (),
        mode: GameMode = GameMode.CLASSIC,
        flip_fraction: Optional[float] = None,
        lock_fraction: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> GenerationResult:
        """
        Generate a filled, solvable board.

        Args:
            geometry: Board topology and extent.
            holes: Void cells left empty.
            mode: Game mode; push mode may also flip pieces to bidirectional axes.
            flip_fraction: Share of pieces to re-point. Defaults scale with board size.
            lock_fraction: Share of pieces to lock. Defaults scale with board size.
            rng: Random source for this call, overriding the generator's own.

        Returns:
            GenerationResult. Targets that could not be met are reported in
            flipped/flip_target and locked/lock_target, not raised.

        Raises:
            ValueError: If a fraction is outside [0, 1] or a hole is out of bounds.
        """
        start_time = time.time()
        rng = rng or self.rng
        mode = GameMode(mode)

        hole_set = frozenset(tuple(h) for h in holes)
        for hole in hole_set:
            if not geometry.in_bounds(hole):
                raise ValueError(f"Hole {hole} is out of bounds")

        cells = [c for c in geometry.cells() if c not in hole_set]
        default_flip, default_lock = self.default_fractions(len(cells))
        flip_fraction = default_flip if flip_fraction is None else flip_fraction
        lock_fraction = default_lock if lock_fraction is None else lock_fraction
        for name, value in (("flip_fraction", flip_fraction), ("lock_fraction", lock_fraction)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        # Step 1: every piece points at its nearest edge
        colors = list(BLOCK_COLORS.values())
        pieces: Dict[str, Piece] = {}
        for idx, coord in enumerate(cells):
            piece = Piece(
                id=f"piece-{idx}",
                coord=coord,
                direction=self._nearest_edge_direction(geometry, coord, rng),
                color=rng.choice(colors),
            )
            pieces[piece.key] = piece

        result = GenerationResult(
            geometry=geometry,
            pieces=pieces,
            holes=hole_set,
            game_mode=mode,
        )

        # Step 2: flips
        candidates = self._facings(geometry, mode)
        result.flip_target = int(len(pieces) * flip_fraction)
        order = list(pieces.keys())
        rng.shuffle(order)
        for key in order[:self._attempt_budget(len(order), result.flip_target)]:
            if result.flipped >= result.flip_target:
                break
            piece = pieces[key]
            others = [d for d in candidates if d != piece.direction]
            pieces[key] = replace(piece, direction=rng.choice(others))
            result.solvability_checks += 1
            if check_solvable(pieces, hole_set, geometry).solvable:
                result.flipped += 1
            else:
                pieces[key] = piece

        # Step 3: locks
        result.lock_target = int(len(pieces) * lock_fraction)
        rng.shuffle(order)
        for key in order[:self._attempt_budget(len(order), result.lock_target)]:
            if result.locked >= result.lock_target:
                break
            piece = pieces[key]
            if piece.locked:
                continue
            pieces[key] = replace(piece, locked=True)
            result.solvability_checks += 1
            if check_solvable(pieces, hole_set, geometry).solvable:
                result.locked += 1
            else:
                pieces[key] = piece

        result.solvable = check_solvable(pieces, hole_set, geometry).solvable
        result.generation_time_ms = int((time.time() - start_time) * 1000)

        if result.exhausted:
            logger.info(
                "Generator exhausted: flipped %d/%d, locked %d/%d",
                result.flipped, result.flip_target, result.locked, result.lock_target,
            )
        logger.debug(
            "Generated %d pieces in %dms with %d solvability checks",
            len(pieces), result.generation_time_ms, result.solvability_checks,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Generated board:\n%s", format_board_for_display(result.to_level()))
        return result

    def increase_difficulty(
        self,
        level: Level,
        analyzer: Optional[PuzzleAnalyzer] = None,
        rng: Optional[random.Random] = None,
    ) -> AdjustmentResult:
        """
        Make one change that raises the difficulty of a solvable level.

        Strategies are tried in order and the first one that keeps the level
        solvable is applied:
            1. Re-point a piece toward a farther edge (only if the score rises)
            2. Gate a plain piece
            3. Put 3-7 layers of ice on a plain piece
            4. Mirror a piece

        Raises:
            ValueError: If the level is not solvable to begin with.
        """
        rng = rng or self.rng
        analyzer, before = self._score_before(level, analyzer)
        if not level.pieces:
            return AdjustmentResult(False, "Level has no pieces", level, before, before)

        geometry = level.geometry
        pieces = level.occupancy()
        order = list(pieces.keys())
        rng.shuffle(order)

        for key in order:
            piece = pieces[key]
            for facing in self._facings_by_reach(geometry, level.game_mode, piece.coord, farthest_first=True):
                if facing == piece.direction:
                    continue
                pieces[key] = replace(piece, direction=facing)
                if self._solvable(level, pieces):
                    candidate = replace(level, pieces=tuple(pieces.values()))
                    after = analyzer.score_level(candidate).score
                    if after > before:
                        return self._adjusted(candidate, "Rotated piece toward a farther edge", before, after)
                pieces[key] = piece

        plain = [k for k in order if not pieces[k].locked and pieces[k].ice_count is None]
        rng.shuffle(plain)
        for key in plain:
            piece = pieces[key]
            pieces[key] = replace(piece, locked=True)
            if self._solvable(level, pieces):
                return self._apply(level, pieces, analyzer, "Added gate to piece", before)
            pieces[key] = piece

        rng.shuffle(plain)
        for key in plain:
            piece = pieces[key]
            ice_count = rng.randint(*self.ICE_RANGE)
            pieces[key] = replace(piece, ice_count=ice_count)
            if self._solvable(level, pieces):
                return self._apply(level, pieces, analyzer, f"Added ice ({ice_count}) to piece", before)
            pieces[key] = piece

        unmirrored = [k for k in order if not pieces[k].mirror]
        rng.shuffle(unmirrored)
        for key in unmirrored:
            piece = pieces[key]
            pieces[key] = replace(piece, mirror=True)
            if self._solvable(level, pieces):
                return self._apply(level, pieces, analyzer, "Added mirror to piece", before)
            pieces[key] = piece

        return AdjustmentResult(False, "Cannot increase difficulty further", level, before, before)

    def decrease_difficulty(
        self,
        level: Level,
        analyzer: Optional[PuzzleAnalyzer] = None,
        rng: Optional[random.Random] = None,
    ) -> AdjustmentResult:
        """
        Make one change that lowers the difficulty of a solvable level.

        Removes a mirror, then ice, then a gate. Failing those, it re-points a
        blocked plain piece so it can clear, and as a last resort turns a
        plain piece toward a nearer edge when that lowers the score.

        Raises:
            ValueError: If the level is not solvable to begin with.
        """
        rng = rng or self.rng
        analyzer, before = self._score_before(level, analyzer)
        if not level.pieces:
            return AdjustmentResult(False, "Level has no pieces", level, before, before)

        geometry = level.geometry
        pieces = level.occupancy()
        order = list(pieces.keys())
        rng.shuffle(order)

        removals = [
            ("Removed mirror from piece", lambda p: p.mirror, lambda p: replace(p, mirror=False)),
            ("Removed ice from piece", lambda p: p.ice_count, lambda p: replace(p, ice_count=None)),
            ("Removed gate from piece", lambda p: p.locked,
             lambda p: replace(p, locked=False, unlock_after_moves=None)),
        ]
        for action, has_feature, without in removals:
            for key in [k for k in order if has_feature(pieces[k])]:
                piece = pieces[key]
                pieces[key] = without(piece)
                if self._solvable(level, pieces):
                    return self._apply(level, pieces, analyzer, action, before)
                pieces[key] = piece

        plain = [k for k in order if not pieces[k].locked and pieces[k].ice_count is None]
        hole_keys, pause_keys = level.hole_keys, level.pause_keys
        for key in plain:
            piece = pieces[key]
            if is_clearable(piece, pieces, hole_keys, 0, geometry, pause_keys):
                continue
            for facing in self._facings(geometry, level.game_mode):
                if facing == piece.direction:
                    continue
                changed = replace(piece, direction=facing)
                pieces[key] = changed
                if (is_clearable(changed, pieces, hole_keys, 0, geometry, pause_keys)
                        and self._solvable(level, pieces)):
                    return self._apply(level, pieces, analyzer, "Made blocked piece clearable", before)
                pieces[key] = piece

        for key in plain:
            piece = pieces[key]
            for facing in self._facings_by_reach(geometry, level.game_mode, piece.coord, farthest_first=False):
                if facing == piece.direction:
                    continue
                pieces[key] = replace(piece, direction=facing)
                if self._solvable(level, pieces):
                    candidate = replace(level, pieces=tuple(pieces.values()))
                    after = analyzer.score_level(candidate).score
                    if after < before:
                        return self._adjusted(candidate, "Rotated piece toward a nearer edge", before, after)
                pieces[key] = piece

        return AdjustmentResult(False, "Cannot decrease difficulty further", level, before, before)

    @staticmethod
    def _score_before(level: Level, analyzer: Optional[PuzzleAnalyzer]) -> Tuple[PuzzleAnalyzer, int]:
        analyzer = analyzer or get_analyzer()
        if not check_solvable(level.pieces, level.holes, level.geometry, level.pauses).solvable:
            raise ValueError("Level is not solvable")
        return analyzer, analyzer.score_level(level).score

    @staticmethod
    def _solvable(level: Level, pieces: Dict[str, Piece]) -> bool:
        return check_solvable(pieces, level.holes, level.geometry, level.pauses).solvable

    def _apply(self, level, pieces, analyzer, action, before) -> AdjustmentResult:
        candidate = replace(level, pieces=tuple(pieces.values()))
        return self._adjusted(candidate, action, before, analyzer.score_level(candidate).score)

    @staticmethod
    def _adjusted(level: Level, action: str, before: int, after: int) -> AdjustmentResult:
        logger.info("Adjusted level %s: %s (score %d -> %d)", level.id, action, before, after)
        return AdjustmentResult(True, action, level, before, after)

    def _facings_by_reach(self, geometry: GridGeometry, mode: GameMode, coord: Coord, farthest_first: bool) -> List:
        """Facings sorted by distance to the edge they exit through."""
        def reach(facing) -> int:
            if geometry.is_bidirectional(facing):
                return min(geometry.steps_to_edge(coord, d) for d in geometry.axis_directions(facing))
            return geometry.steps_to_edge(coord, facing)

        return sorted(self._facings(geometry, mode), key=reach, reverse=farthest_first)

    def _attempt_budget(self, available: int, target: int) -> int:
        return min(available, target * self.attempt_multiplier)

    @staticmethod
    def _facings(geometry: GridGeometry, mode: GameMode) -> List:
        if mode == GameMode.PUSH:
            return geometry.directions + geometry.axes
        return geometry.directions

    @staticmethod
    def _nearest_edge_direction(geometry: GridGeometry, coord: Coord, rng: random.Random):
        distances = {d: geometry.steps_to_edge(coord, d) for d in geometry.directions}
        nearest = min(distances.values())
        return rng.choice([d for d, steps in distances.items() if steps == nearest])


def generate_filled_board(
    geometry: GridGeometry,
    holes: Iterable[Coord] = (),
    mode: GameMode = GameMode.CLASSIC,
    flip_fraction: Optional[float] = None,
    lock_fraction: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> GenerationResult:
    return LevelGenerator(rng=rng).generate_filled_board(
        geometry, holes, mode, flip_fraction, lock_fraction,
    )


# Singleton instance
_generator = None


def get_generator() -> LevelGenerator:
    """Get or create generator singleton instance."""
    global _generator
    if _generator is None:
        _generator = LevelGenerator()
    return _generator
