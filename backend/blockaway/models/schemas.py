"""Pydantic schemas for API request/response validation."""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Dict, List, Any, Literal, Optional, Tuple

from .geometry import GridGeometry, HexGeometry, SquareGeometry
from .level import Carousel, GameMode, Level, Piece, generate_piece_id


class GridSpec(BaseModel):
    """Board topology and extent."""
    grid: Literal["square", "hex"] = Field(default="square", description="Grid topology")
    rows: Optional[int] = Field(default=None, ge=1, description="Square grid rows")
    cols: Optional[int] = Field(default=None, ge=1, description="Square grid columns")
    radius: Optional[int] = Field(default=None, ge=0, description="Hex grid radius")

    @model_validator(mode="after")
    def check_extent(self):
        if self.grid == "square" and (self.rows is None or self.cols is None):
            raise ValueError("Square grids need 'rows' and 'cols'")
        if self.grid == "hex" and self.radius is None:
            raise ValueError("Hex grids need 'radius'")
        return self

    def build_geometry(self) -> GridGeometry:
        if self.grid == "hex":
            return HexGeometry(radius=self.radius)
        return SquareGeometry(rows=self.rows, cols=self.cols)


class PieceModel(BaseModel):
    """Persisted piece."""
    id: Optional[str] = Field(default=None, description="Unique piece id, assigned if missing")
    coord: Tuple[int, int] = Field(..., description="(row, col) or axial (q, r)")
    direction: str = Field(..., description="Direction (N, E, ...) or axis (N_S, E_W, ...)")
    locked: bool = Field(default=False, description="Gate flag")
    unlock_after_moves: Optional[int] = Field(default=None, ge=1, description="Timed gate threshold")
    ice_count: Optional[int] = Field(default=None, ge=0, description="Moves until thawed")
    mirror: bool = Field(default=False, description="Exit through the opposite direction")
    color: str = Field(default="#06b6d4", description="Display color")


class CarouselModel(BaseModel):
    """Persisted hex carousel."""
    id: str = Field(..., description="Carousel id")
    center: Tuple[int, int] = Field(..., description="Axial center coordinate")
    arms: List[str] = Field(..., min_length=2, description="Arm directions")


class LevelDefinition(GridSpec):
    """Persisted level definition."""
    id: str = Field(default="level", description="Level id")
    name: str = Field(default="", description="Display name")
    pieces: List[PieceModel] = Field(default=[], description="Pieces on the board")
    holes: List[Tuple[int, int]] = Field(default=[], description="Void cells")
    pauses: List[Tuple[int, int]] = Field(default=[], description="Pause cells (hex)")
    carousels: List[CarouselModel] = Field(default=[], description="Carousels (hex)")
    game_mode: GameMode = Field(default=GameMode.CLASSIC, description="classic or push")
    move_limit: int = Field(default=0, ge=0, description="Move budget, 0 = unlimited")

    def to_level(self) -> Level:
        """
        Build the immutable Level.

        Raises:
            ValueError: On unknown directions or an inconsistent board.
        """
        geometry = self.build_geometry()
        pieces = [
            Piece(
                id=p.id or generate_piece_id(),
                coord=tuple(p.coord),
                direction=geometry.parse_facing(p.direction),
                locked=p.locked,
                unlock_after_moves=p.unlock_after_moves,
                ice_count=p.ice_count,
                mirror=p.mirror,
                color=p.color,
            )
            for p in self.pieces
        ]
        carousels = [
            Carousel(id=c.id, center=tuple(c.center), arms=tuple(c.arms))
            for c in self.carousels
        ]
        return Level(
            geometry=geometry,
            pieces=tuple(pieces),
            holes=frozenset(tuple(h) for h in self.holes),
            pauses=frozenset(tuple(p) for p in self.pauses),
            carousels=tuple(carousels),
            game_mode=self.game_mode,
            move_limit=self.move_limit,
            id=self.id,
            name=self.name,
        )

    @classmethod
    def from_level(cls, level: Level) -> "LevelDefinition":
        return cls.model_validate(level.to_dict())


class PathRequest(BaseModel):
    """Request schema for resolving one piece's path."""
    level: LevelDefinition = Field(..., description="Board to resolve on")
    coord: Tuple[int, int] = Field(..., description="Coordinate of the piece")
    move_count: int = Field(default=0, ge=0, description="Global move counter")


class PathResponse(BaseModel):
    """Response schema for path resolution."""
    direction: str = Field(..., description="Chosen direction")
    path: List[Tuple[int, int]] = Field(default=[], description="Traversed free cells")
    blocked: bool = Field(..., description="Stopped by a piece")
    blocker: Optional[Tuple[int, int]] = Field(default=None, description="Blocking piece")
    last_free: Tuple[int, int] = Field(..., description="Last free cell before any block")
    hole: Optional[Tuple[int, int]] = Field(default=None, description="Hole reached")
    pause: Optional[Tuple[int, int]] = Field(default=None, description="Pause cell reached")
    can_exit: bool = Field(..., description="Exits the board or falls into a hole")
    clearable: bool = Field(..., description="Clearable right now, gates and ice included")
    blocks_ahead: int = Field(default=0, description="Pieces between it and its exit")


class LevelStateRequest(BaseModel):
    """Request schema for checks on a board at a given move count."""
    level: LevelDefinition = Field(..., description="Board to check")
    move_count: int = Field(default=0, ge=0, description="Global move counter")


class SolveResponse(BaseModel):
    """Response schema for the solvability check."""
    solvable: bool = Field(..., description="Some sequence of taps clears the board")
    stuck_count: int = Field(..., ge=0, description="Pieces left when stuck")
    moves: int = Field(default=0, description="Moves on the solving line, pause slides included")
    order: List[str] = Field(default=[], description="Piece ids in removal order")
    stuck_keys: List[str] = Field(default=[], description="Coordinate keys of stuck pieces")
    clearable: List[str] = Field(default=[], description="Keys clearable right now")


class DeadlockRequest(LevelStateRequest):
    """Request schema for deadlock diagnosis."""
    full_chain: bool = Field(default=True, description="Walk full blocking chains")


class StuckReasonModel(BaseModel):
    """Why one piece is stuck."""
    type: str
    blocked_by: Optional[str] = None
    blocking_chain: List[str] = []
    root_cause: str
    root_key: Optional[str] = None
    message: str


class DeadlockResponse(BaseModel):
    """Response schema for deadlock diagnosis."""
    has_deadlock: bool = Field(..., description="Any piece is stuck")
    stuck: Dict[str, StuckReasonModel] = Field(default={}, description="Reason per stuck piece")
    blockers: List[str] = Field(default=[], description="Pieces blocking a stuck chain")
    waiting: List[str] = Field(default=[], description="Pieces waiting on ice or gate timing")


class AnalyzeRequest(BaseModel):
    """Request schema for puzzle analysis."""
    level: LevelDefinition = Field(..., description="Board to analyze")


class AnalyzeResponse(BaseModel):
    """Response schema for puzzle analysis."""
    score: int = Field(..., ge=0, le=100, description="Difficulty score (0-100)")
    tier: str = Field(..., description="Difficulty tier (easy/medium/hard/superHard)")
    raw_score: float = Field(default=0.0, description="Score before clamping")
    components: Dict[str, float] = Field(default={}, description="Score components")
    analysis: Dict[str, Any] = Field(..., description="Structural metrics")


class GenerateRequest(GridSpec):
    """Request schema for filled-board generation."""
    holes: List[Tuple[int, int]] = Field(default=[], description="Void cells")
    game_mode: GameMode = Field(default=GameMode.CLASSIC, description="classic or push")
    flip_fraction: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Share of pieces to re-point")
    lock_fraction: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Share of pieces to lock")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible output")


class GenerateResponse(BaseModel):
    """Response schema for filled-board generation."""
    level: LevelDefinition = Field(..., description="Generated level")
    flipped: int = Field(default=0, description="Direction changes kept")
    flip_target: int = Field(default=0, description="Direction changes requested")
    locked: int = Field(default=0, description="Locks kept")
    lock_target: int = Field(default=0, description="Locks requested")
    solvability_checks: int = Field(default=0, description="Solvability checks run")
    solvable: bool = Field(default=True, description="Final board is solvable")
    exhausted: bool = Field(default=False, description="A target was not met")
    generation_time_ms: int = Field(default=0, description="Generation time in milliseconds")


class AdjustRequest(BaseModel):
    """Request schema for a one-step difficulty adjustment."""
    level: LevelDefinition = Field(..., description="Solvable level to adjust")
    direction: Literal["increase", "decrease"] = Field(..., description="Make the level harder or easier")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible output")


class AdjustResponse(BaseModel):
    """Response schema for a one-step difficulty adjustment."""
    success: bool = Field(..., description="A change was applied")
    action: str = Field(..., description="What was changed")
    score_before: int = Field(..., ge=0, le=100, description="Score before the change")
    score_after: int = Field(..., ge=0, le=100, description="Score after the change")
    level: LevelDefinition = Field(..., description="Adjusted level, unchanged on failure")


class PlayAction(BaseModel):
    """One player action."""
    action: Literal["tap", "rotate", "undo", "reset"] = Field(default="tap", description="Action type")
    coord: Optional[Tuple[int, int]] = Field(default=None, description="Tapped cell")
    carousel_id: Optional[str] = Field(default=None, description="Rotated carousel")

    @model_validator(mode="after")
    def check_target(self):
        if self.action == "tap" and self.coord is None:
            raise ValueError("tap needs 'coord'")
        if self.action == "rotate" and self.carousel_id is None:
            raise ValueError("rotate needs 'carousel_id'")
        return self


class PlayRequest(BaseModel):
    """Request schema for replaying actions on a fresh session."""
    level: LevelDefinition = Field(..., description="Level to play")
    actions: List[PlayAction] = Field(default=[], description="Actions in order")
    mistake_limit: Optional[int] = Field(default=None, ge=0, description="Override the ruleset")


class PlayResponse(BaseModel):
    """Response schema for a replayed session."""
    state: Dict[str, Any] = Field(..., description="Final session state")
    outcomes: List[str] = Field(default=[], description="Outcome of each action")
    clearable: List[str] = Field(default=[], description="Keys clearable now")
    deadlock: DeadlockResponse = Field(..., description="Deadlock diagnosis of the final state")


class ReferenceExportRequest(BaseModel):
    """Request schema for exporting a square level to the reference format."""
    level: LevelDefinition = Field(..., description="Square level to export")


class ReferenceImportRequest(BaseModel):
    """Request schema for importing a reference-format level."""
    data: Dict[str, Any] = Field(..., description="Reference-format level JSON")

    @field_validator("data")
    @classmethod
    def non_empty(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("data must not be empty")
        return v


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(default=None, description="Detailed error information")
