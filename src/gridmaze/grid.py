from typing import Iterator, List, Tuple

import numpy as np

from .errors import InvariantViolationError, OutOfRangeError

# Directions and their vectors (dx, dy); y grows downwards
NORTH = 0
SOUTH = 1
WEST = 2
EAST = 3
DIRECTION_VECTORS: List[Tuple[int, int]] = [(0, -1), (0, 1), (-1, 0), (1, 0)]  # N, S, W, E
OPPOSITE = {NORTH: SOUTH, SOUTH: NORTH, WEST: EAST, EAST: WEST}


class Lattice:
    """A fixed width x height rectangle of cells addressed by (x, y) or a linear index.

    index = y * width + x. Neighbours are 4-connected and always listed in
    N, S, W, E order.
    """

    def __init__(self, width: int, height: int) -> None:
        if not isinstance(width, (int, np.integer)) or not isinstance(height, (int, np.integer)):
            raise InvariantViolationError(f"lattice dimensions must be integers, got {width!r}x{height!r}")
        if width <= 0 or height <= 0:
            raise InvariantViolationError(f"lattice dimensions must be positive, got {width}x{height}")
        self._width = int(width)
        self._height = int(height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> int:
        return self._width * self._height

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.size))

    def __repr__(self) -> str:
        return f"Lattice({self._width}, {self._height})"

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self._width and 0 <= y < self._height

    def check_index(self, index: int) -> int:
        """Return index unchanged, raising OutOfRangeError if it is not on the lattice."""
        if not 0 <= index < self.size:
            raise OutOfRangeError(f"index {index} outside {self._width}x{self._height} lattice")
        return index

    def index_of(self, x: int, y: int) -> int:
        if not self.contains(x, y):
            raise OutOfRangeError(f"cell ({x}, {y}) outside {self._width}x{self._height} lattice")
        return y * self._width + x

    def coords_of(self, index: int) -> Tuple[int, int]:
        self.check_index(index)
        return index % self._width, index // self._width

    def neighbor_directions(self, index: int) -> List[Tuple[int, int]]:
        """(direction, neighbour index) pairs for every in-bounds neighbour of index."""
        x, y = self.coords_of(index)
        out: List[Tuple[int, int]] = []
        for direction, (dx, dy) in enumerate(DIRECTION_VECTORS):
            nx, ny = x + dx, y + dy
            if self.contains(nx, ny):
                out.append((direction, ny * self._width + nx))
        return out

    def neighbors(self, index: int) -> List[int]:
        return [n for _, n in self.neighbor_directions(index)]

    def are_adjacent(self, a: int, b: int) -> bool:
        ax, ay = self.coords_of(a)
        bx, by = self.coords_of(b)
        return abs(ax - bx) + abs(ay - by) == 1
