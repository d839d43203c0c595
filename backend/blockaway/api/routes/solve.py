"""Path, solvability, deadlock and play API routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ...config import Settings
from ...core.clearability import is_clearable
from ...core.path_resolver import min_blocks_ahead, resolve_path
from ...core.session import Ruleset, initialize_state, reset, rotate_carousel, tap, undo
from ...core.solver import check_solvable, compute_clearable_set
from ...core.deadlock import compute_deadlock_info
from ...models.geometry import grid_key
from ...models.level import DeadlockInfo
from ...models.schemas import (
    DeadlockRequest,
    DeadlockResponse,
    ErrorResponse,
    LevelStateRequest,
    PathRequest,
    PathResponse,
    PlayRequest,
    PlayResponse,
    SolveResponse,
)
from ..deps import get_app_settings, load_level

router = APIRouter(prefix="/api", tags=["solve"], responses={400: {"model": ErrorResponse}})


def _deadlock_response(info: DeadlockInfo) -> DeadlockResponse:
    return DeadlockResponse(**info.to_dict())


@router.post("/path", response_model=PathResponse)
async def resolve_piece_path(request: PathRequest) -> PathResponse:
    """
    Resolve where the piece at a coordinate would go if tapped.

    Args:
        request: PathRequest with the level and the piece coordinate.

    Returns:
        PathResponse with the chosen outcome and clearability.
    """
    level = load_level(request.level)
    occupancy = level.occupancy()
    piece = occupancy.get(grid_key(request.coord))
    if piece is None:
        raise HTTPException(status_code=400, detail=f"No piece at {list(request.coord)}")

    outcome = resolve_path(piece, occupancy, level.hole_keys, level.geometry, level.pause_keys)
    clearable = is_clearable(
        piece, occupancy, level.hole_keys, request.move_count, level.geometry, level.pause_keys,
    )
    return PathResponse(
        **outcome.to_dict(),
        clearable=clearable,
        blocks_ahead=min_blocks_ahead(piece, occupancy, level.hole_keys, level.geometry),
    )


@router.post("/solve", response_model=SolveResponse)
async def solve_level(request: LevelStateRequest) -> SolveResponse:
    """
    Run the solvability check.

    Args:
        request: LevelStateRequest with the level and move counter.

    Returns:
        SolveResponse with the verdict, removal order and current clearable set.
    """
    level = load_level(request.level)
    result = check_solvable(level.pieces, level.holes, level.geometry, level.pauses)
    clearable = compute_clearable_set(
        level.pieces, level.holes, request.move_count, level.geometry, level.pauses,
    )
    return SolveResponse(**result.to_dict(), clearable=sorted(clearable))


@router.post("/deadlock", response_model=DeadlockResponse)
async def diagnose_deadlock(request: DeadlockRequest) -> DeadlockResponse:
    """Trace blocking chains when no piece can be cleared."""
    level = load_level(request.level)
    info = compute_deadlock_info(
        level.pieces, level.holes, request.move_count, level.geometry,
        level.pauses, full_chain=request.full_chain,
    )
    return _deadlock_response(info)


@router.post("/play", response_model=PlayResponse)
async def play_level(
    request: PlayRequest,
    settings: Settings = Depends(get_app_settings),
) -> PlayResponse:
    """
    Replay player actions on a fresh session and report the final state.

    Args:
        request: PlayRequest with the level and the actions to apply.
        settings: Application settings (default mistake limit).

    Returns:
        PlayResponse with the final state, per-action outcomes and diagnosis.
    """
    level = load_level(request.level)
    mistake_limit = request.mistake_limit
    if mistake_limit is None:
        ruleset = Ruleset.for_level(level, mistake_limit=settings.mistake_limit)
    else:
        ruleset = Ruleset(mistake_limit=mistake_limit)

    state = initialize_state(level, ruleset)
    outcomes: List[str] = []
    for action in request.actions:
        if action.action == "tap":
            result = tap(state, action.coord)
            state = result.state
            outcomes.append(result.outcome.value)
        elif action.action == "rotate":
            try:
                result = rotate_carousel(state, action.carousel_id)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            state = result.state
            outcomes.append(result.outcome.value)
        elif action.action == "undo":
            state = undo(state)
            outcomes.append("undone")
        else:
            state = reset(state)
            outcomes.append("reset")

    return PlayResponse(
        state=state.to_dict(),
        outcomes=outcomes,
        clearable=sorted(state.clearable()),
        deadlock=_deadlock_response(state.deadlock()),
    )
