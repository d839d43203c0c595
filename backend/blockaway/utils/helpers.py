"""Utility helper functions."""
from typing import Dict, Any, Iterable, List, Optional

from ..models.geometry import SquareAxis, SquareDirection, SquareGeometry, grid_key
from ..models.level import Level, Piece, generate_piece_id
from ..models.schemas import LevelDefinition

# Reference format direction codes, 0 = empty cell
DIRECTION_TO_NUMBER: Dict[str, int] = {
    SquareDirection.N: 1,
    SquareDirection.E: 2,
    SquareDirection.S: 3,
    SquareDirection.W: 4,
    SquareAxis.N_S: 5,
    SquareAxis.E_W: 6,
}
NUMBER_TO_DIRECTION = {number: direction for direction, number in DIRECTION_TO_NUMBER.items()}

MECHANIC_NORMAL = 0
MECHANIC_LOCKED = 3

EMPTY_CELL: Dict[str, Any] = {
    "direction": 0,
    "colorHex": "#00000000",
    "mechanic": MECHANIC_NORMAL,
    "mechanicExtras": "",
}

DISPLAY_SYMBOLS = {
    "N": "^", "E": ">", "S": "v", "W": "<", "N_S": "|", "E_W": "-",
    "NE": "/", "SW": "/", "SE": "\\", "NW": "\\", "NE_SW": "/", "SE_NW": "\\",
}


def validate_level_json(level_json: Dict[str, Any]) -> tuple[bool, Optional[str]]:
    """
    Validate a persisted level definition.

    Args:
        level_json: Level data to validate.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not isinstance(level_json, dict):
        return False, "Level must be an object"
    if "pieces" not in level_json:
        return False, "Missing 'pieces' field"

    try:
        LevelDefinition.model_validate(level_json).to_level()
    except ValueError as e:
        return False, str(e)
    return True, None


def color_to_hex8(color: str) -> str:
    """'#06b6d4' -> '#06B6D4FF'. Colors already carrying alpha are only uppercased."""
    hex_part = color[1:] if color.startswith("#") else color
    if len(hex_part) == 8:
        return "#" + hex_part.upper()
    return "#" + hex_part.upper() + "FF"


def hex8_to_color(color_hex: str) -> str:
    """'#06B6D4FF' -> '#06b6d4'."""
    hex_part = color_hex[1:] if color_hex.startswith("#") else color_hex
    if len(hex_part) == 8:
        return "#" + hex_part[:6].lower()
    return "#" + hex_part.lower()


def piece_to_reference_cell(piece: Piece) -> Dict[str, Any]:
    return {
        "direction": DIRECTION_TO_NUMBER[piece.direction],
        "colorHex": color_to_hex8(piece.color),
        "mechanic": MECHANIC_LOCKED if piece.locked else MECHANIC_NORMAL,
        "mechanicExtras": str(piece.unlock_after_moves) if piece.unlock_after_moves is not None else "",
    }


def export_reference_format(level: Level) -> Dict[str, Any]:
    """
    Export a square level to the reference cell format.

    Cells are row-major, one per grid cell. Holes, ice and mirror flags have
    no representation in this format and are dropped.

    Raises:
        ValueError: If the level is not on a square grid.
    """
    geometry = level.geometry
    if not isinstance(geometry, SquareGeometry):
        raise ValueError("Reference format only supports square grids")

    occupancy = level.occupancy()
    cells: List[Dict[str, Any]] = []
    for coord in geometry.cells():
        piece = occupancy.get(grid_key(coord))
        cells.append(piece_to_reference_cell(piece) if piece else dict(EMPTY_CELL))

    return {"rows": geometry.rows, "cols": geometry.cols, "cells": cells}


def is_reference_format(data: Any) -> bool:
    """Check if a JSON object is in reference format (has a cells array)."""
    if not isinstance(data, dict):
        return False
    return (
        isinstance(data.get("rows"), int)
        and isinstance(data.get("cols"), int)
        and isinstance(data.get("cells"), list)
    )


def import_reference_format(data: Dict[str, Any], level_id: str = "imported") -> Level:
    """
    Import a reference-format level.

    Empty cells (direction 0 or a transparent color) and unknown direction
    codes are skipped. A locked cell with a numeric mechanicExtras becomes a
    timed gate.

    Raises:
        ValueError: If the data is not reference format or the cell count
            does not match rows x cols.
    """
    if not is_reference_format(data):
        raise ValueError("Not a reference-format level: needs 'rows', 'cols' and 'cells'")

    geometry = SquareGeometry(rows=data["rows"], cols=data["cols"])
    cells = data["cells"]
    if len(cells) != geometry.cell_count():
        raise ValueError(
            f"Expected {geometry.cell_count()} cells for {geometry.rows}x{geometry.cols}, got {len(cells)}"
        )

    pieces = []
    for idx, cell in enumerate(cells):
        direction = NUMBER_TO_DIRECTION.get(cell.get("direction", 0))
        color_hex = cell.get("colorHex", EMPTY_CELL["colorHex"])
        if direction is None or color_hex == EMPTY_CELL["colorHex"]:
            continue

        mechanic = cell.get("mechanic", MECHANIC_NORMAL)
        extras = cell.get("mechanicExtras", "")
        locked = mechanic == MECHANIC_LOCKED
        unlock_after_moves = None
        if locked and isinstance(extras, str) and extras.strip().isdigit() and int(extras) > 0:
            unlock_after_moves = int(extras)

        pieces.append(Piece(
            id=generate_piece_id(),
            coord=divmod(idx, geometry.cols),
            direction=direction,
            locked=locked,
            unlock_after_moves=unlock_after_moves,
            color=hex8_to_color(color_hex),
        ))

    return Level(geometry=geometry, pieces=tuple(pieces), id=level_id)


def format_board_for_display(level: Level, pieces: Optional[Iterable[Piece]] = None) -> str:
    """
    Render a board as text for debugging.

    Each cell is an arrow for the piece direction followed by '*' when the
    piece is locked; holes are 'O' and empty cells '.'.

    Args:
        level: Level supplying the geometry and holes.
        pieces: Pieces to draw instead of the level's initial ones.
    """
    geometry = level.geometry
    occupancy = {p.key: p for p in (level.pieces if pieces is None else pieces)}

    def cell(coord) -> str:
        if coord in level.holes:
            return "O "
        piece = occupancy.get(grid_key(coord))
        if piece is None:
            return ". "
        symbol = DISPLAY_SYMBOLS.get(getattr(piece.direction, "value", piece.direction), "?")
        return symbol + ("*" if piece.locked else " ")

    lines = []
    if isinstance(geometry, SquareGeometry):
        for row in range(geometry.rows):
            lines.append("".join(cell((row, col)) for col in range(geometry.cols)).rstrip())
    else:
        n = geometry.radius
        for r in range(-n, n + 1):
            row_cells = [(q, r) for q in range(-n, n + 1) if geometry.in_bounds((q, r))]
            indent = " " * abs(r)
            lines.append(indent + "".join(cell(c) for c in row_cells).rstrip())
    return "\n".join(lines)
