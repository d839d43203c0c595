"""Data models package.

This package contains grid geometry, level data models and API schemas.
"""
from .geometry import (
    GridGeometry,
    SquareGeometry,
    HexGeometry,
    SquareDirection,
    SquareAxis,
    HexDirection,
    HexAxis,
    grid_key,
    parse_key,
)
from .level import (
    GameMode,
    DifficultyTier,
    RootCause,
    StuckType,
    Piece,
    Carousel,
    Level,
    PathOutcome,
    SolveResult,
    StuckReason,
    DeadlockInfo,
    GenerationResult,
    PuzzleAnalysis,
    DifficultyBreakdown,
    AdjustmentResult,
    BLOCK_COLORS,
)
from .schemas import (
    LevelDefinition,
    PieceModel,
    CarouselModel,
    PathRequest,
    PathResponse,
    LevelStateRequest,
    SolveResponse,
    DeadlockRequest,
    DeadlockResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    GenerateRequest,
    GenerateResponse,
    AdjustRequest,
    AdjustResponse,
    PlayRequest,
    PlayResponse,
    ReferenceExportRequest,
    ReferenceImportRequest,
    ErrorResponse,
)

__all__ = [
    # Geometry
    "GridGeometry",
    "SquareGeometry",
    "HexGeometry",
    "SquareDirection",
    "SquareAxis",
    "HexDirection",
    "HexAxis",
    "grid_key",
    "parse_key",
    # Level models
    "GameMode",
    "DifficultyTier",
    "RootCause",
    "StuckType",
    "Piece",
    "Carousel",
    "Level",
    "PathOutcome",
    "SolveResult",
    "StuckReason",
    "DeadlockInfo",
    "GenerationResult",
    "PuzzleAnalysis",
    "DifficultyBreakdown",
    "AdjustmentResult",
    "BLOCK_COLORS",
    # API schemas
    "LevelDefinition",
    "PieceModel",
    "CarouselModel",
    "PathRequest",
    "PathResponse",
    "LevelStateRequest",
    "SolveResponse",
    "DeadlockRequest",
    "DeadlockResponse",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "GenerateRequest",
    "GenerateResponse",
    "AdjustRequest",
    "AdjustResponse",
    "PlayRequest",
    "PlayResponse",
    "ReferenceExportRequest",
    "ReferenceImportRequest",
    "ErrorResponse",
]
