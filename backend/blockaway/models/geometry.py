"""Grid geometry for square (row, col) and hexagonal (axial q, r) boards."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple, Union

Coord = Tuple[int, int]


class SquareDirection(str, Enum):
    """Unit movement directions on a square grid."""
    N = "N"
    E = "E"
    S = "S"
    W = "W"


class SquareAxis(str, Enum):
    """Bidirectional facings on a square grid."""
    N_S = "N_S"
    E_W = "E_W"


class HexDirection(str, Enum):
    """Unit movement directions on a pointy-top hex grid, clockwise from NE."""
    NE = "NE"
    E = "E"
    SE = "SE"
    SW = "SW"
    W = "W"
    NW = "NW"


class HexAxis(str, Enum):
    """Bidirectional facings on a hex grid."""
    NE_SW = "NE_SW"
    E_W = "E_W"
    SE_NW = "SE_NW"


Direction = Union[SquareDirection, HexDirection]
Facing = Union[SquareDirection, SquareAxis, HexDirection, HexAxis]


# (row, col) deltas
SQUARE_VECTORS: Dict[SquareDirection, Coord] = {
    SquareDirection.N: (-1, 0),
    SquareDirection.E: (0, 1),
    SquareDirection.S: (1, 0),
    SquareDirection.W: (0, -1),
}

# (q, r) deltas
HEX_VECTORS: Dict[HexDirection, Coord] = {
    HexDirection.NE: (1, -1),
    HexDirection.E: (1, 0),
    HexDirection.SE: (0, 1),
    HexDirection.SW: (-1, 1),
    HexDirection.W: (-1, 0),
    HexDirection.NW: (0, -1),
}

SQUARE_AXIS_DIRECTIONS: Dict[SquareAxis, Tuple[SquareDirection, SquareDirection]] = {
    SquareAxis.N_S: (SquareDirection.N, SquareDirection.S),
    SquareAxis.E_W: (SquareDirection.E, SquareDirection.W),
}

HEX_AXIS_DIRECTIONS: Dict[HexAxis, Tuple[HexDirection, HexDirection]] = {
    HexAxis.NE_SW: (HexDirection.NE, HexDirection.SW),
    HexAxis.E_W: (HexDirection.E, HexDirection.W),
    HexAxis.SE_NW: (HexDirection.SE, HexDirection.NW),
}

SQUARE_OPPOSITES: Dict[SquareDirection, SquareDirection] = {
    SquareDirection.N: SquareDirection.S,
    SquareDirection.S: SquareDirection.N,
    SquareDirection.E: SquareDirection.W,
    SquareDirection.W: SquareDirection.E,
}

HEX_OPPOSITES: Dict[HexDirection, HexDirection] = {
    HexDirection.NE: HexDirection.SW,
    HexDirection.SW: HexDirection.NE,
    HexDirection.E: HexDirection.W,
    HexDirection.W: HexDirection.E,
    HexDirection.SE: HexDirection.NW,
    HexDirection.NW: HexDirection.SE,
}

# Clockwise order used by carousels
CLOCKWISE_DIRECTIONS: List[HexDirection] = list(HexDirection)


def grid_key(coord: Coord) -> str:
    """Canonical mapping key for a coordinate ("row,col" or "q,r")."""
    return f"{coord[0]},{coord[1]}"


def parse_key(key: str) -> Coord:
    """
    Parse a canonical key back into a coordinate.

    Raises:
        ValueError: If the key is not two comma-separated integers.
    """
    parts = key.split(",")
    if len(parts) != 2:
        raise ValueError(f"Invalid coordinate key: '{key}'")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid coordinate key: '{key}'") from None


def sort_arms_clockwise(arms) -> List[HexDirection]:
    """Sort carousel arm directions into clockwise order starting at NE."""
    return sorted((HexDirection(a) for a in arms), key=CLOCKWISE_DIRECTIONS.index)


class GridGeometry(ABC):
    """
    Shared contract of a board topology.

    Subclasses provide the direction vectors, axis bundles and the bounds
    test; every other operation is derived from those.
    """

    kind: str = ""
    vectors: Dict = {}
    axis_directions_map: Dict = {}
    opposites: Dict = {}
    direction_type = None
    axis_type = None

    @property
    def directions(self) -> List:
        return list(self.vectors.keys())

    @property
    def axes(self) -> List:
        return list(self.axis_directions_map.keys())

    @abstractmethod
    def in_bounds(self, coord: Coord) -> bool:
        ...

    @abstractmethod
    def cells(self) -> List[Coord]:
        ...

    def add(self, coord: Coord, direction) -> Coord:
        delta = self.vectors[direction]
        return coord[0] + delta[0], coord[1] + delta[1]

    def neighbors(self, coord: Coord) -> List[Coord]:
        """Adjacent coordinates in direction order, including out-of-bounds ones."""
        return [self.add(coord, d) for d in self.directions]

    def is_bidirectional(self, facing) -> bool:
        return facing in self.axis_directions_map

    def axis_directions(self, axis) -> Tuple:
        return self.axis_directions_map[axis]

    def opposite(self, direction):
        return self.opposites[direction]

    def parse_facing(self, value) -> Facing:
        """
        Convert a stored facing string into this grid's direction or axis.

        Raises:
            ValueError: If the value is not a facing of this grid.
        """
        raw = value.value if isinstance(value, Enum) else value
        try:
            return self.direction_type(raw)
        except ValueError:
            pass
        try:
            return self.axis_type(raw)
        except ValueError:
            raise ValueError(f"'{raw}' is not a valid {self.kind} direction") from None

    def steps_to_edge(self, coord: Coord, direction) -> int:
        """Number of in-bounds cells between coord and the edge along direction."""
        steps = 0
        current = self.add(coord, direction)
        while self.in_bounds(current):
            steps += 1
            current = self.add(current, direction)
        return steps

    def cell_count(self) -> int:
        return len(self.cells())

    @abstractmethod
    def to_dict(self) -> Dict:
        ...


@dataclass(frozen=True)
class SquareGeometry(GridGeometry):
    """Rectangular grid of rows x cols, 4-neighbor."""
    rows: int
    cols: int

    kind = "square"
    vectors = SQUARE_VECTORS
    axis_directions_map = SQUARE_AXIS_DIRECTIONS
    opposites = SQUARE_OPPOSITES
    direction_type = SquareDirection
    axis_type = SquareAxis

    def __post_init__(self):
        if self.rows < 1 or self.cols < 1:
            raise ValueError(f"Grid must be at least 1x1, got {self.rows}x{self.cols}")

    def in_bounds(self, coord: Coord) -> bool:
        row, col = coord
        return 0 <= row < self.rows and 0 <= col < self.cols

    def cells(self) -> List[Coord]:
        return [(row, col) for row in range(self.rows) for col in range(self.cols)]

    def cell_count(self) -> int:
        return self.rows * self.cols

    def to_dict(self) -> Dict:
        return {"grid": self.kind, "rows": self.rows, "cols": self.cols}


@dataclass(frozen=True)
class HexGeometry(GridGeometry):
    """Hexagon-shaped grid of the given radius in axial coordinates, 6-neighbor."""
    radius: int

    kind = "hex"
    vectors = HEX_VECTORS
    axis_directions_map = HEX_AXIS_DIRECTIONS
    opposites = HEX_OPPOSITES
    direction_type = HexDirection
    axis_type = HexAxis

    def __post_init__(self):
        if self.radius < 0:
            raise ValueError(f"Hex radius must be non-negative, got {self.radius}")

    def in_bounds(self, coord: Coord) -> bool:
        q, r = coord
        s = -q - r
        return max(abs(q), abs(r), abs(s)) <= self.radius

    def cells(self) -> List[Coord]:
        # Radius 0 = 1 hex, radius 1 = 7, radius 2 = 19
        n = self.radius
        return [
            (q, r)
            for q in range(-n, n + 1)
            for r in range(max(-n, -q - n), min(n, -q + n) + 1)
        ]

    def cell_count(self) -> int:
        return 3 * self.radius * (self.radius + 1) + 1

    def to_dict(self) -> Dict:
        return {"grid": self.kind, "radius": self.radius}


def key_set(cells) -> frozenset:
    """Canonical key set from coordinates or already-keyed strings."""
    return frozenset(c if isinstance(c, str) else grid_key(c) for c in cells)
