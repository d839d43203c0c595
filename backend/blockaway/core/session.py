"""Runtime play state and move transitions for one play attempt."""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from ..models.geometry import Coord, grid_key
from ..models.level import DeadlockInfo, GameMode, Level, PathOutcome, Piece
from .clearability import is_unlocked, remaining_ice
from .deadlock import compute_deadlock_info
from .path_resolver import resolve_path
from .solver import compute_clearable_set

logger = logging.getLogger(__name__)

DEFAULT_MISTAKE_LIMIT = 3


class TapOutcome(str, Enum):
    """What a tap did to the board."""
    IGNORED = "ignored"      # Empty cell, finished game, or a locked tap without mistakes
    CLEARED = "cleared"      # Exited through the edge
    FELL = "fell"            # Fell into a hole
    PAUSED = "paused"        # Stopped on a pause cell
    PUSHED = "pushed"        # Push mode relocation up to the blocker
    WASTED = "wasted"        # Blocked, counted as a move
    MISTAKE = "mistake"      # Blocked or locked, counted as a mistake
    ROTATED = "rotated"      # Carousel rotation


@dataclass(frozen=True)
class Ruleset:
    """
    Game rules layered on the core predicate.

    The gated square game promotes invalid taps to mistakes and loses after
    mistake_limit of them. mistake_limit 0 disables mistakes, so a blocked
    tap is just a wasted move (the hex game).
    """
    mistake_limit: int = DEFAULT_MISTAKE_LIMIT

    @classmethod
    def for_level(cls, level: Level, mistake_limit: int = DEFAULT_MISTAKE_LIMIT) -> "Ruleset":
        if level.geometry.kind == "hex":
            return cls(mistake_limit=0)
        return cls(mistake_limit=mistake_limit)


@dataclass(frozen=True)
class Snapshot:
    """Board state saved before each move for undo."""
    pieces: Dict[str, Piece]
    move_count: int
    paused: FrozenSet[str]


@dataclass(frozen=True)
class GameState:
    """Immutable runtime state. Every transition returns a new GameState."""
    level: Level
    ruleset: Ruleset
    pieces: Dict[str, Piece] = field(default_factory=dict)
    move_count: int = 0
    mistakes: int = 0
    paused: FrozenSet[str] = frozenset()
    history: Tuple[Snapshot, ...] = ()
    is_complete: bool = False
    is_won: bool = False
    is_lost: bool = False

    @property
    def finished(self) -> bool:
        return self.is_complete or self.is_lost

    def clearable(self):
        """Keys of pieces clearable right now."""
        return compute_clearable_set(
            self.pieces, self.level.holes, self.move_count,
            self.level.geometry, self.level.pauses,
        )

    def deadlock(self, full_chain: bool = True) -> DeadlockInfo:
        return compute_deadlock_info(
            self.pieces, self.level.holes, self.move_count, self.level.geometry,
            self.level.pauses, finished=self.finished, full_chain=full_chain,
        )

    def _piece_dict(self, piece: Piece) -> Dict:
        data = piece.to_dict()
        ice = remaining_ice(piece, self.move_count)
        if ice is not None:
            data["ice_remaining"] = ice
        return data

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "level_id": self.level.id,
            "pieces": [self._piece_dict(p) for p in self.pieces.values()],
            "move_count": self.move_count,
            "mistakes": self.mistakes,
            "mistake_limit": self.ruleset.mistake_limit,
            "move_limit": self.level.move_limit,
            "paused": sorted(self.paused),
            "can_undo": len(self.history) > 0,
            "is_complete": self.is_complete,
            "is_won": self.is_won,
            "is_lost": self.is_lost,
        }


@dataclass(frozen=True)
class TapResult:
    state: GameState
    outcome: TapOutcome
    path: Optional[PathOutcome] = None


def initialize_state(level: Level, ruleset: Optional[Ruleset] = None) -> GameState:
    """Fresh runtime state for one play attempt."""
    return GameState(
        level=level,
        ruleset=ruleset or Ruleset.for_level(level),
        pieces=level.occupancy(),
    )


def _snapshot(state: GameState) -> Snapshot:
    return Snapshot(pieces=state.pieces, move_count=state.move_count, paused=state.paused)


def _commit_move(state: GameState, pieces: Dict[str, Piece], paused: FrozenSet[str]) -> GameState:
    """Record a move: push history, bump the counter, check win/lose."""
    move_count = state.move_count + 1
    is_complete = len(pieces) == 0
    move_limit = state.level.move_limit
    is_lost = not is_complete and move_limit > 0 and move_count >= move_limit

    if is_complete:
        logger.debug("Level %s cleared in %d moves", state.level.id, move_count)
    elif is_lost:
        logger.debug("Level %s lost: move limit %d reached", state.level.id, move_limit)

    return replace(
        state,
        pieces=pieces,
        paused=paused,
        move_count=move_count,
        history=state.history + (_snapshot(state),),
        is_complete=is_complete,
        is_won=is_complete,
        is_lost=is_lost,
    )


def _mistake(state: GameState) -> GameState:
    mistakes = state.mistakes + 1
    is_lost = mistakes >= state.ruleset.mistake_limit
    logger.debug("Mistake %d/%d", mistakes, state.ruleset.mistake_limit)
    return replace(state, mistakes=mistakes, is_lost=state.is_lost or is_lost)


def tap(state: GameState, coord: Coord) -> TapResult:
    """
    Tap the piece at coord.

    Args:
        state: Current state (not modified).
        coord: Cell that was tapped.

    Returns:
        TapResult with the new state, what happened and the resolved path.
    """
    if state.finished:
        return TapResult(state, TapOutcome.IGNORED)

    key = grid_key(coord)
    piece = state.pieces.get(key)
    if piece is None:
        return TapResult(state, TapOutcome.IGNORED)

    level = state.level
    gated = state.ruleset.mistake_limit > 0

    if not is_unlocked(piece, state.pieces, state.move_count, level.geometry):
        if gated:
            return TapResult(_mistake(state), TapOutcome.MISTAKE)
        return TapResult(state, TapOutcome.IGNORED)

    outcome = resolve_path(piece, state.pieces, level.hole_keys, level.geometry, level.pause_keys)
    pieces = dict(state.pieces)
    paused = state.paused - {piece.id}

    if outcome.hole is not None:
        del pieces[key]
        return TapResult(_commit_move(state, pieces, paused), TapOutcome.FELL, outcome)

    if outcome.pause is not None:
        del pieces[key]
        moved = piece.moved_to(outcome.pause)
        pieces[moved.key] = moved
        return TapResult(_commit_move(state, pieces, paused | {piece.id}), TapOutcome.PAUSED, outcome)

    if not outcome.blocked:
        del pieces[key]
        return TapResult(_commit_move(state, pieces, paused), TapOutcome.CLEARED, outcome)

    if level.game_mode == GameMode.PUSH and outcome.path:
        del pieces[key]
        moved = piece.moved_to(outcome.last_free)
        pieces[moved.key] = moved
        return TapResult(_commit_move(state, pieces, paused), TapOutcome.PUSHED, outcome)

    if gated:
        return TapResult(_mistake(state), TapOutcome.MISTAKE, outcome)

    # Hex rules: a blocked tap still spends a move
    return TapResult(_commit_move(state, dict(state.pieces), state.paused), TapOutcome.WASTED, outcome)


def rotate_carousel(state: GameState, carousel_id: str) -> TapResult:
    """
    Rotate the pieces on a carousel's arm cells one step clockwise.

    Raises:
        ValueError: If the level has no carousel with that id.
    """
    carousel = next((c for c in state.level.carousels if c.id == carousel_id), None)
    if carousel is None:
        raise ValueError(f"Unknown carousel: {carousel_id}")

    if state.finished:
        return TapResult(state, TapOutcome.IGNORED)

    geometry = state.level.geometry
    arm_cells = [geometry.add(carousel.center, arm) for arm in carousel.arms]
    occupants = [state.pieces.get(grid_key(cell)) for cell in arm_cells]
    if all(p is None for p in occupants):
        return TapResult(state, TapOutcome.IGNORED)

    pieces = dict(state.pieces)
    for occupant in occupants:
        if occupant is not None:
            del pieces[occupant.key]
    for idx, occupant in enumerate(occupants):
        if occupant is not None:
            moved = occupant.moved_to(arm_cells[(idx + 1) % len(arm_cells)])
            pieces[moved.key] = moved

    return TapResult(_commit_move(state, pieces, state.paused), TapOutcome.ROTATED)


def undo(state: GameState) -> GameState:
    """Restore the last snapshot; win and loss flags are cleared."""
    if not state.history:
        return state
    snapshot = state.history[-1]
    return replace(
        state,
        pieces=snapshot.pieces,
        move_count=snapshot.move_count,
        paused=snapshot.paused,
        history=state.history[:-1],
        is_complete=False,
        is_won=False,
        is_lost=False,
    )


def reset(state: GameState) -> GameState:
    return initialize_state(state.level, state.ruleset)
