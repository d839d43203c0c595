"""Level data models and structures."""
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, List, Any, Optional, Tuple, FrozenSet
from enum import Enum

from .geometry import (
    Coord,
    Facing,
    GridGeometry,
    HexDirection,
    grid_key,
    sort_arms_clockwise,
)


class GameMode(str, Enum):
    """How a blocked tap resolves."""
    CLASSIC = "classic"
    PUSH = "push"


class DifficultyTier(str, Enum):
    """Difficulty tier enumeration."""
    EASY = "easy"          # 0-24
    MEDIUM = "medium"      # 25-49
    HARD = "hard"          # 50-74
    SUPER_HARD = "superHard"  # 75-100

    @classmethod
    def from_score(cls, score: float) -> "DifficultyTier":
        """Get tier from score."""
        if score < 25:
            return cls.EASY
        elif score < 50:
            return cls.MEDIUM
        elif score < 75:
            return cls.HARD
        else:
            return cls.SUPER_HARD


class RootCause(str, Enum):
    """Why a blocking chain can never move."""
    EDGE_BLOCKED = "edge_blocked"        # Chain ends at a piece that cannot exit
    MUTUAL_BLOCK = "mutual_block"        # A blocks B, B blocks A
    CIRCULAR_CHAIN = "circular_chain"    # A -> B -> C -> A


class StuckType(str, Enum):
    """Per-piece stuck classification shown to the player."""
    BLOCKED_BY = "blocked_by"
    EDGE_BLOCKED = "edge_blocked"
    MUTUAL_BLOCK = "mutual_block"
    CIRCULAR_CHAIN = "circular_chain"


def generate_piece_id() -> str:
    return f"block-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Piece:
    """A single directional block occupying one cell."""
    id: str
    coord: Coord
    direction: Facing
    locked: bool = False
    unlock_after_moves: Optional[int] = None
    ice_count: Optional[int] = None
    mirror: bool = False
    color: str = "#06b6d4"

    @property
    def key(self) -> str:
        return grid_key(self.coord)

    @property
    def is_timed_gate(self) -> bool:
        return self.locked and self.unlock_after_moves is not None and self.unlock_after_moves > 0

    def moved_to(self, coord: Coord) -> "Piece":
        return replace(self, coord=coord)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {
            "id": self.id,
            "coord": list(self.coord),
            "direction": getattr(self.direction, "value", self.direction),
            "color": self.color,
        }
        if self.locked:
            data["locked"] = True
        if self.unlock_after_moves is not None:
            data["unlock_after_moves"] = self.unlock_after_moves
        if self.ice_count is not None:
            data["ice_count"] = self.ice_count
        if self.mirror:
            data["mirror"] = True
        return data


def index_pieces(pieces) -> Dict[str, Piece]:
    """Occupancy mapping from either an existing mapping or an iterable of pieces."""
    if isinstance(pieces, dict):
        return dict(pieces)
    return {piece.key: piece for piece in pieces}


@dataclass(frozen=True)
class Carousel:
    """Hex fixture that rotates the pieces on its arm cells clockwise."""
    id: str
    center: Coord
    arms: Tuple[HexDirection, ...]

    def __post_init__(self):
        if len(self.arms) < 2:
            raise ValueError(f"Carousel {self.id} needs at least 2 arms")
        object.__setattr__(self, "arms", tuple(sort_arms_clockwise(self.arms)))

    @property
    def key(self) -> str:
        return grid_key(self.center)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "center": list(self.center),
            "arms": [a.value for a in self.arms],
        }


@dataclass(frozen=True)
class Level:
    """
    Immutable level definition.

    Runtime state (occupancy, move counter, history) is derived from it by
    the session layer; a Level is never mutated after load.
    """
    geometry: GridGeometry
    pieces: Tuple[Piece, ...]
    holes: FrozenSet[Coord] = frozenset()
    pauses: FrozenSet[Coord] = frozenset()
    carousels: Tuple[Carousel, ...] = ()
    game_mode: GameMode = GameMode.CLASSIC
    move_limit: int = 0  # 0 = unlimited
    id: str = "level"
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "pieces", tuple(self.pieces))
        object.__setattr__(self, "holes", frozenset(tuple(h) for h in self.holes))
        object.__setattr__(self, "pauses", frozenset(tuple(p) for p in self.pauses))
        object.__setattr__(self, "carousels", tuple(self.carousels))
        object.__setattr__(self, "game_mode", GameMode(self.game_mode))

        if self.move_limit < 0:
            raise ValueError("move_limit must be >= 0")
        if (self.pauses or self.carousels) and self.geometry.kind != "hex":
            raise ValueError("Pause cells and carousels are only available on hex grids")

        for hole in self.holes:
            if not self.geometry.in_bounds(hole):
                raise ValueError(f"Hole {hole} is out of bounds")
        for pause in self.pauses:
            if not self.geometry.in_bounds(pause):
                raise ValueError(f"Pause cell {pause} is out of bounds")
            if pause in self.holes:
                raise ValueError(f"Cell {pause} cannot be both a hole and a pause cell")

        blocked_cells = set(self.holes) | {c.center for c in self.carousels}
        seen: Dict[Coord, str] = {}
        for piece in self.pieces:
            if not self.geometry.in_bounds(piece.coord):
                raise ValueError(f"Piece {piece.id} at {piece.coord} is out of bounds")
            if piece.coord in seen:
                raise ValueError(
                    f"Pieces {seen[piece.coord]} and {piece.id} share cell {piece.coord}"
                )
            if piece.coord in blocked_cells:
                raise ValueError(f"Piece {piece.id} sits on a hole or carousel at {piece.coord}")
            seen[piece.coord] = piece.id

        for carousel in self.carousels:
            for arm in carousel.arms:
                cell = self.geometry.add(carousel.center, arm)
                if not self.geometry.in_bounds(cell) or cell in blocked_cells:
                    raise ValueError(f"Carousel {carousel.id} arm {arm.value} is not a playable cell")

    @property
    def hole_keys(self) -> FrozenSet[str]:
        return frozenset(grid_key(h) for h in self.holes)

    @property
    def pause_keys(self) -> FrozenSet[str]:
        return frozenset(grid_key(p) for p in self.pauses)

    def occupancy(self) -> Dict[str, Piece]:
        """Fresh occupancy mapping keyed by coordinate key."""
        return {piece.key: piece for piece in self.pieces}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            **self.geometry.to_dict(),
            "pieces": [p.to_dict() for p in self.pieces],
            "holes": [list(h) for h in sorted(self.holes)],
            "pauses": [list(p) for p in sorted(self.pauses)],
            "carousels": [c.to_dict() for c in self.carousels],
            "game_mode": self.game_mode.value,
            "move_limit": self.move_limit,
        }


@dataclass(frozen=True)
class PathOutcome:
    """Result of resolving a piece's slide in its chosen direction."""
    direction: Any
    path: Tuple[Coord, ...]
    blocked: bool
    blocker: Optional[Coord]
    last_free: Coord
    hole: Optional[Coord] = None
    pause: Optional[Coord] = None

    @property
    def can_exit(self) -> bool:
        """Leaves the board or falls into a hole; a pause stop does not count."""
        if self.hole is not None:
            return True
        return not self.blocked and self.pause is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "direction": getattr(self.direction, "value", self.direction),
            "path": [list(c) for c in self.path],
            "blocked": self.blocked,
            "blocker": list(self.blocker) if self.blocker is not None else None,
            "last_free": list(self.last_free),
            "hole": list(self.hole) if self.hole is not None else None,
            "pause": list(self.pause) if self.pause is not None else None,
            "can_exit": self.can_exit,
        }


@dataclass
class SolveResult:
    """Result of the solvability check."""
    solvable: bool
    stuck_count: int
    moves: int = 0
    order: List[str] = field(default_factory=list)
    stuck_keys: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "solvable": self.solvable,
            "stuck_count": self.stuck_count,
            "moves": self.moves,
            "order": self.order,
            "stuck_keys": self.stuck_keys,
        }


@dataclass
class StuckReason:
    """Why one piece is stuck, traced back to the root of its blocking chain."""
    type: StuckType
    blocking_chain: List[str]
    root_cause: RootCause
    message: str
    blocked_by: Optional[str] = None
    root_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "blocked_by": self.blocked_by,
            "blocking_chain": self.blocking_chain,
            "root_cause": self.root_cause.value,
            "root_key": self.root_key,
            "message": self.message,
        }


@dataclass
class DeadlockInfo:
    """Deadlock diagnosis for a board with no clearable pieces."""
    stuck: Dict[str, StuckReason] = field(default_factory=dict)
    blockers: set = field(default_factory=set)
    waiting: set = field(default_factory=set)

    @property
    def has_deadlock(self) -> bool:
        return len(self.stuck) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "has_deadlock": self.has_deadlock,
            "stuck": {k: v.to_dict() for k, v in self.stuck.items()},
            "blockers": sorted(self.blockers),
            "waiting": sorted(self.waiting),
        }


@dataclass
class GenerationResult:
    """Result of filled-board generation."""
    geometry: GridGeometry
    pieces: Dict[str, Piece]
    holes: FrozenSet[Coord]
    game_mode: GameMode
    flipped: int = 0
    flip_target: int = 0
    locked: int = 0
    lock_target: int = 0
    solvability_checks: int = 0
    solvable: bool = True
    generation_time_ms: int = 0

    @property
    def exhausted(self) -> bool:
        """True when a perturbation target was not met within the attempt budget."""
        return self.flipped < self.flip_target or self.locked < self.lock_target

    def to_level(self, level_id: str = "generated", name: str = "") -> Level:
        return Level(
            geometry=self.geometry,
            pieces=tuple(self.pieces.values()),
            holes=self.holes,
            game_mode=self.game_mode,
            id=level_id,
            name=name,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            **self.geometry.to_dict(),
            "pieces": [p.to_dict() for p in self.pieces.values()],
            "holes": [list(h) for h in sorted(self.holes)],
            "game_mode": self.game_mode.value,
            "flipped": self.flipped,
            "flip_target": self.flip_target,
            "locked": self.locked,
            "lock_target": self.lock_target,
            "solvability_checks": self.solvability_checks,
            "solvable": self.solvable,
            "exhausted": self.exhausted,
            "generation_time_ms": self.generation_time_ms,
        }


# Block colors offered by the designer palette
BLOCK_COLORS = {
    "cyan": "#06b6d4",
    "purple": "#a855f7",
    "amber": "#f59e0b",
    "emerald": "#10b981",
    "rose": "#f43f5e",
    "blue": "#3b82f6",
}


@dataclass
class PuzzleAnalysis:
    """Structural metrics of a board, the inputs of the difficulty score."""
    solvable: bool
    piece_count: int
    hole_count: int
    locked_count: int
    grid_size: int
    density: float
    initial_clearable: int = 0
    initial_clearability: float = 0.0
    solution_depth: int = 0
    avg_branching_factor: float = 0.0
    min_branching_factor: int = 0
    forced_move_count: int = 0
    forced_move_ratio: float = 0.0
    solution_count: int = 0
    min_moves: int = 0
    max_chain_length: int = 0
    bottleneck_count: int = 0
    states_explored: int = 0
    sampled: bool = False
    total_blockers: int = 0
    avg_blockers: float = 0.0
    unique_directions: int = 0
    direction_variety: float = 0.0
    bidirectional_ratio: float = 0.0

    @property
    def has_critical_path(self) -> bool:
        """A wrong early choice can leave the board unsolvable."""
        return self.bottleneck_count > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "solvable": self.solvable,
            "piece_count": self.piece_count,
            "hole_count": self.hole_count,
            "locked_count": self.locked_count,
            "grid_size": self.grid_size,
            "density": round(self.density, 3),
            "initial_clearable": self.initial_clearable,
            "initial_clearability": round(self.initial_clearability, 3),
            "solution_depth": self.solution_depth,
            "avg_branching_factor": round(self.avg_branching_factor, 2),
            "min_branching_factor": self.min_branching_factor,
            "forced_move_count": self.forced_move_count,
            "forced_move_ratio": round(self.forced_move_ratio, 3),
            "solution_count": self.solution_count,
            "min_moves": self.min_moves,
            "max_chain_length": self.max_chain_length,
            "bottleneck_count": self.bottleneck_count,
            "has_critical_path": self.has_critical_path,
            "states_explored": self.states_explored,
            "sampled": self.sampled,
            "total_blockers": self.total_blockers,
            "avg_blockers": round(self.avg_blockers, 2),
            "unique_directions": self.unique_directions,
            "direction_variety": round(self.direction_variety, 3),
            "bidirectional_ratio": round(self.bidirectional_ratio, 3),
        }


@dataclass
class DifficultyBreakdown:
    """Difficulty score with the components it was summed from."""
    score: int
    raw_score: float
    tier: DifficultyTier
    components: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "raw_score": round(self.raw_score, 2),
            "tier": self.tier.value,
            "components": self.components,
        }


@dataclass
class AdjustmentResult:
    """Outcome of one difficulty adjustment step."""
    success: bool
    action: str
    level: Level
    score_before: int
    score_after: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "action": self.action,
            "score_before": self.score_before,
            "score_after": self.score_after,
            "level": self.level.to_dict(),
        }
