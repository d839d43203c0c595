"""Puzzle analysis API routes."""
from fastapi import APIRouter, Depends

from ...models.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    ErrorResponse,
)
from ...core.analyzer import PuzzleAnalyzer
from ..deps import get_puzzle_analyzer, load_level

router = APIRouter(prefix="/api", tags=["analyze"], responses={400: {"model": ErrorResponse}})


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_level(
    request: AnalyzeRequest,
    analyzer: PuzzleAnalyzer = Depends(get_puzzle_analyzer),
) -> AnalyzeResponse:
    """
    Analyze a level and return its difficulty score.

    Args:
        request: AnalyzeRequest with the level.
        analyzer: PuzzleAnalyzer dependency.

    Returns:
        AnalyzeResponse with score, tier, components and structural metrics.
    """
    level = load_level(request.level)
    analysis = analyzer.analyze(level)
    breakdown = analyzer.score(analysis)
    return AnalyzeResponse(**breakdown.to_dict(), analysis=analysis.to_dict())
