import enum
import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .errors import InvariantViolationError, SessionNotStartedError
from .grid import EAST, NORTH, OPPOSITE, SOUTH, WEST, Lattice

logger = logging.getLogger(__name__)

# Cell bits
CELL_VISITED = 0x01
CELL_PATH_S = 0x02
CELL_PATH_N = 0x04
CELL_PATH_E = 0x08
CELL_PATH_W = 0x10

PASSAGE_BITS = {NORTH: CELL_PATH_N, SOUTH: CELL_PATH_S, WEST: CELL_PATH_W, EAST: CELL_PATH_E}


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    DONE = "done"


@dataclass(frozen=True)
class CellState:
    visited: bool
    passage_north: bool
    passage_south: bool
    passage_east: bool
    passage_west: bool

    @classmethod
    def from_bits(cls, bits: int) -> "CellState":
        return cls(
            visited=bool(bits & CELL_VISITED),
            passage_north=bool(bits & CELL_PATH_N),
            passage_south=bool(bits & CELL_PATH_S),
            passage_east=bool(bits & CELL_PATH_E),
            passage_west=bool(bits & CELL_PATH_W),
        )


class MazeGenerator:
    """Perfect maze generator using a randomized depth-first backtracker.

    Work is done one carve-or-backtrack unit per step() so a caller can
    animate progress. Each cell is a bitmask of CELL_* flags.

    step() before start_session() raises SessionNotStartedError. Once every
    cell has been visited the session is DONE and step() does nothing but
    return True; call start_session() again for a new maze.
    """

    def __init__(self) -> None:
        self.lattice: Optional[Lattice] = None
        self._cells: Optional[np.ndarray] = None
        self._stack: List[int] = []
        self._carved: List[Tuple[int, int]] = []
        self._visited_count = 0
        self._start_cell: Optional[int] = None
        self._rng = random.Random()
        self._state = SessionState.UNINITIALIZED

    def start_session(self, width: int, height: int, start_cell: Optional[int] = None, seed: Optional[int] = None) -> None:
        """Allocate a fresh width x height maze and mark start_cell visited.

        When start_cell is None a cell is drawn from the session's RNG.
        """
        lattice = Lattice(width, height)
        rng = random.Random(seed)
        if start_cell is None:
            start_cell = rng.randrange(lattice.size)
        lattice.check_index(start_cell)

        self.lattice = lattice
        self._rng = rng
        self._cells = np.zeros(lattice.size, dtype=np.uint8)
        self._cells[start_cell] = CELL_VISITED
        self._stack = [start_cell]
        self._carved = []
        self._visited_count = 1
        self._start_cell = start_cell
        self._state = SessionState.RUNNING
        logger.debug(f"Maze session started: {width}x{height} start={start_cell} seed={seed}")
        self._check_done()

    def _require_session(self) -> None:
        if self._state is SessionState.UNINITIALIZED:
            raise SessionNotStartedError("call start_session() first")

    def _check_done(self) -> None:
        if self._visited_count == self.lattice.size:
            self._state = SessionState.DONE
            logger.debug(f"Maze done: {len(self._carved)} passages carved")

    def step(self) -> bool:
        """Carve one passage or backtrack one cell. Returns True once the maze is complete."""
        self._require_session()
        if self._state is SessionState.DONE:
            return True

        if not self._stack:
            raise InvariantViolationError(
                f"stack exhausted with {self._visited_count}/{self.lattice.size} cells visited"
            )

        current = self._stack[-1]
        candidates = [
            (direction, n)
            for direction, n in self.lattice.neighbor_directions(current)
            if not self._cells[n] & CELL_VISITED
        ]

        if candidates:
            direction, chosen = self._rng.choice(candidates)
            self._cells[current] |= PASSAGE_BITS[direction]
            self._cells[chosen] |= CELL_VISITED | PASSAGE_BITS[OPPOSITE[direction]]
            self._visited_count += 1
            self._stack.append(chosen)
            self._carved.append((current, chosen))
            self._check_done()
        else:
            self._stack.pop()

        return self._state is SessionState.DONE

    def run(self, max_steps: Optional[int] = None) -> int:
        """Step until the maze is complete or max_steps steps were taken; return steps taken."""
        self._require_session()
        steps = 0
        while self._state is not SessionState.DONE:
            if max_steps is not None and steps >= max_steps:
                break
            self.step()
            steps += 1
        return steps

    # -------------------- read-out --------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state is SessionState.DONE

    @property
    def visited_count(self) -> int:
        return self._visited_count

    @property
    def start_cell(self) -> Optional[int]:
        return self._start_cell

    @property
    def current_cell(self) -> Optional[int]:
        """Top of the exploration stack, or None when no session is running."""
        if self._state is not SessionState.RUNNING or not self._stack:
            return None
        return self._stack[-1]

    @property
    def stack(self) -> List[int]:
        return list(self._stack)

    @property
    def carved(self) -> List[Tuple[int, int]]:
        """Passages in the order they were carved, as (from, to) index pairs."""
        return list(self._carved)

    def cell_bits(self, index: int) -> int:
        self._require_session()
        self.lattice.check_index(index)
        return int(self._cells[index])

    def cell_state(self, index: int) -> CellState:
        return CellState.from_bits(self.cell_bits(index))

    def cells(self) -> np.ndarray:
        """Copy of the cell bitmasks shaped (height, width)."""
        self._require_session()
        return self._cells.reshape(self.lattice.height, self.lattice.width).copy()

    def passage_count(self) -> int:
        """Number of carved passages, counting each connection once."""
        self._require_session()
        south = np.count_nonzero(self._cells & CELL_PATH_S)
        east = np.count_nonzero(self._cells & CELL_PATH_E)
        return int(south + east)

    def to_grid(self) -> np.ndarray:
        """Wall grid of shape (2h+1, 2w+1): 1 = wall, 0 = free.

        Cell (x, y) sits at [2y+1, 2x+1]; an open passage clears the wall
        cell between two neighbours.
        """
        self._require_session()
        w, h = self.lattice.width, self.lattice.height
        grid = np.ones((2 * h + 1, 2 * w + 1), dtype=np.int8)
        for index in range(self.lattice.size):
            bits = self._cells[index]
            if not bits & CELL_VISITED:
                continue
            x, y = self.lattice.coords_of(index)
            r, c = 2 * y + 1, 2 * x + 1
            grid[r, c] = 0
            if bits & CELL_PATH_E:
                grid[r, c + 1] = 0
            if bits & CELL_PATH_S:
                grid[r + 1, c] = 0
        return grid
