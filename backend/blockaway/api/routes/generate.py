"""Level generation API routes."""
import random

from fastapi import APIRouter, Depends, HTTPException

from ...config import Settings
from ...models.schemas import (
    AdjustRequest,
    AdjustResponse,
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    LevelDefinition,
)
from ...core.analyzer import PuzzleAnalyzer
from ...core.generator import LevelGenerator
from ..deps import get_app_settings, get_level_generator, get_puzzle_analyzer, load_level

router = APIRouter(prefix="/api", tags=["generate"], responses={400: {"model": ErrorResponse}})


@router.post("/generate", response_model=GenerateResponse)
async def generate_level(
    request: GenerateRequest,
    generator: LevelGenerator = Depends(get_level_generator),
    settings: Settings = Depends(get_app_settings),
) -> GenerateResponse:
    """
    Generate a filled, solvable board.

    Args:
        request: GenerateRequest with grid extent, holes, mode and fractions.
        generator: LevelGenerator dependency.
        settings: Application settings (board size limit).

    Returns:
        GenerateResponse with the level and how far the perturbation targets got.
    """
    geometry = request.build_geometry()
    if geometry.cell_count() > settings.generator_max_cells:
        raise HTTPException(
            status_code=400,
            detail=f"Board has {geometry.cell_count()} cells, limit is {settings.generator_max_cells}",
        )

    rng = random.Random(request.seed) if request.seed is not None else None
    try:
        result = generator.generate_filled_board(
            geometry,
            holes=[tuple(h) for h in request.holes],
            mode=request.game_mode,
            flip_fraction=request.flip_fraction,
            lock_fraction=request.lock_fraction,
            rng=rng,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Generation failed: {str(e)}")

    return GenerateResponse(
        level=LevelDefinition.from_level(result.to_level()),
        flipped=result.flipped,
        flip_target=result.flip_target,
        locked=result.locked,
        lock_target=result.lock_target,
        solvability_checks=result.solvability_checks,
        solvable=result.solvable,
        exhausted=result.exhausted,
        generation_time_ms=result.generation_time_ms,
    )


@router.post("/generate/adjust", response_model=AdjustResponse)
async def adjust_difficulty(
    request: AdjustRequest,
    generator: LevelGenerator = Depends(get_level_generator),
    analyzer: PuzzleAnalyzer = Depends(get_puzzle_analyzer),
) -> AdjustResponse:
    """
    Make one change to a level that raises or lowers its difficulty.

    Args:
        request: AdjustRequest with the level and the direction of the change.
        generator: LevelGenerator dependency.
        analyzer: PuzzleAnalyzer dependency used for the before and after scores.

    Returns:
        AdjustResponse with the scores and the (possibly unchanged) level.
    """
    level = load_level(request.level)
    rng = random.Random(request.seed) if request.seed is not None else None
    adjust = generator.increase_difficulty if request.direction == "increase" else generator.decrease_difficulty
    try:
        result = adjust(level, analyzer=analyzer, rng=rng)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Adjustment failed: {str(e)}")

    return AdjustResponse(
        success=result.success,
        action=result.action,
        score_before=result.score_before,
        score_after=result.score_after,
        level=LevelDefinition.from_level(result.level),
    )
