"""Level import/export and validation API routes."""
from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from ...models.schemas import (
    ErrorResponse,
    LevelDefinition,
    ReferenceExportRequest,
    ReferenceImportRequest,
)
from ...utils.helpers import (
    export_reference_format,
    import_reference_format,
    validate_level_json,
)
from ..deps import load_level

router = APIRouter(prefix="/api", tags=["codec"], responses={400: {"model": ErrorResponse}})


@router.post("/export/reference")
async def export_reference(request: ReferenceExportRequest) -> Dict[str, Any]:
    """Export a square level to the row-major reference cell format."""
    level = load_level(request.level)
    try:
        return export_reference_format(level)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/import/reference", response_model=LevelDefinition)
async def import_reference(request: ReferenceImportRequest) -> LevelDefinition:
    """Import a reference-format level."""
    try:
        level = import_reference_format(request.data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Import failed: {str(e)}")
    return LevelDefinition.from_level(level)


@router.post("/validate")
async def validate_level(level_json: Dict[str, Any]) -> Dict[str, Any]:
    """Check a persisted level definition without running anything on it."""
    is_valid, error = validate_level_json(level_json)
    return {"valid": is_valid, "error": error}
