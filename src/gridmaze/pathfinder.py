import heapq
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from . import config
from .errors import InvariantViolationError
from .grid import Lattice

logger = logging.getLogger(__name__)

NO_PARENT = -1


@dataclass(frozen=True)
class PathNode:
    """Read-only snapshot of one node of the search arena."""

    x: int
    y: int
    is_obstacle: bool
    visited: bool
    g_score: int
    f_score: int
    parent: Optional[int]


def heuristic(a, b: Tuple[int, int]):
    """Straight-line distance from a to the cell b, truncated to an integer.

    a is an (x, y) pair of ints or of coordinate arrays; arrays give an
    int64 array of estimates. Never larger than the number of 4-connected
    steps between the cells, and changes by at most 1 between neighbours,
    so A* stays optimal.
    """
    dx = np.asarray(a[0], dtype=np.int64) - b[0]
    dy = np.asarray(a[1], dtype=np.int64) - b[1]
    h = np.sqrt(dx * dx + dy * dy).astype(np.int64)
    return int(h) if h.ndim == 0 else h


class Pathfinder:
    """A* search over a 4-connected lattice with unit step cost.

    Nodes live in flat numpy arrays indexed by lattice index; parents are
    stored as indices (-1 for none). The obstacle layer and the start/end
    cells persist between searches. Every mutation sets ``dirty`` and every
    search starts from freshly reset cost fields.

    Open set ordering: a binary heap keyed by ``(f_score, index)``, so among
    equal f_score candidates the lower index is expanded first. Improved
    nodes are pushed again and outdated heap entries are skipped on pop.
    """

    def __init__(self, width: int = config.PATH_GRID_WIDTH, height: int = config.PATH_GRID_HEIGHT) -> None:
        self.initialize(width, height)

    @classmethod
    def from_grid(cls, grid: np.ndarray) -> "Pathfinder":
        """Build a pathfinder whose obstacles are the non-zero cells of a (rows, cols) array."""
        grid = np.asarray(grid)
        if grid.ndim != 2:
            raise ValueError(f"expected a 2D grid, got shape {grid.shape}")
        height, width = grid.shape
        finder = cls(width, height)
        finder.load_obstacles(grid != 0)
        return finder

    # -------------------- lifecycle --------------------

    def initialize(self, width: int, height: int) -> None:
        """Allocate width*height open nodes and reset start/end to their defaults."""
        self.lattice = Lattice(width, height)
        indices = np.arange(self.lattice.size, dtype=np.int64)
        self._xs = indices % self.lattice.width
        self._ys = indices // self.lattice.width
        self._obstacle = np.zeros(self.lattice.size, dtype=bool)
        self._reset_costs()

        start, end = config.default_endpoints(width, height)
        self._start = self.lattice.index_of(*start)
        self._end = self.lattice.index_of(*end)

        self._dirty = True
        self._last_query: Optional[Tuple[int, int]] = None
        self._last_path: Optional[List[int]] = None

    def _reset_costs(self) -> None:
        n = self.lattice.size
        self._visited = np.zeros(n, dtype=bool)
        self._g = np.full(n, config.INFINITE_COST, dtype=np.int64)
        self._f = np.full(n, config.INFINITE_COST, dtype=np.int64)
        self._parent = np.full(n, NO_PARENT, dtype=np.int64)

    # -------------------- mutation --------------------

    @property
    def dirty(self) -> bool:
        """True when the obstacle layer or endpoints changed since the last search."""
        return self._dirty

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    def set_obstacle(self, index: int, value: bool = True) -> None:
        self.lattice.check_index(index)
        self._obstacle[index] = bool(value)
        self._dirty = True

    def toggle_obstacle(self, index: int) -> bool:
        """Flip the obstacle flag of a cell and return its new value."""
        self.lattice.check_index(index)
        self._obstacle[index] = not self._obstacle[index]
        self._dirty = True
        return bool(self._obstacle[index])

    def clear_obstacles(self) -> None:
        self._obstacle[:] = False
        self._dirty = True

    def load_obstacles(self, mask: np.ndarray) -> None:
        """Replace the whole obstacle layer with a (height, width) boolean mask."""
        mask = np.asarray(mask, dtype=bool)
        expected = (self.lattice.height, self.lattice.width)
        if mask.shape != expected:
            raise ValueError(f"obstacle mask shape {mask.shape} != lattice shape {expected}")
        self._obstacle = mask.reshape(-1).copy()
        self._dirty = True

    def set_start(self, index: int) -> None:
        self._start = self.lattice.check_index(index)
        self._dirty = True

    def set_end(self, index: int) -> None:
        self._end = self.lattice.check_index(index)
        self._dirty = True

    # -------------------- search --------------------

    def _heuristic_to(self, goal: int) -> np.ndarray:
        return heuristic((self._xs, self._ys), self.lattice.coords_of(goal))

    def find_path(self, start_index: int, goal_index: int) -> Optional[List[int]]:
        """Run A* from start_index to goal_index.

        Returns the cell indices from start to goal inclusive, or None when
        the goal cannot be reached. Out-of-range indices raise
        OutOfRangeError before any state changes.
        """
        self.lattice.check_index(start_index)
        self.lattice.check_index(goal_index)

        self._reset_costs()
        self._dirty = False
        self._last_query = (start_index, goal_index)
        self._last_path = None

        obstacle = self._obstacle
        if obstacle[start_index] or obstacle[goal_index]:
            logger.debug(f"Endpoint blocked: start={start_index} goal={goal_index}")
            return None

        g, f, parent, visited = self._g, self._f, self._parent, self._visited
        h = self._heuristic_to(goal_index)

        g[start_index] = 0
        f[start_index] = h[start_index]
        open_heap: List[Tuple[int, int]] = [(int(f[start_index]), start_index)]
        expanded = 0

        while open_heap:
            f_current, current = heapq.heappop(open_heap)
            # Ignore stale entries
            if visited[current] or f_current != f[current]:
                continue

            if current == goal_index:
                self._last_path = self._construct_path(goal_index)
                logger.debug(
                    f"Path found: {start_index}->{goal_index} length={len(self._last_path) - 1} expanded={expanded}"
                )
                return list(self._last_path)

            visited[current] = True
            expanded += 1

            tentative_g = int(g[current]) + 1
            for neighbor in self.lattice.neighbors(current):
                if obstacle[neighbor]:
                    continue
                if tentative_g < g[neighbor]:
                    parent[neighbor] = current
                    g[neighbor] = tentative_g
                    f[neighbor] = tentative_g + h[neighbor]
                    heapq.heappush(open_heap, (int(f[neighbor]), neighbor))

        logger.debug(f"No path: {start_index}->{goal_index} expanded={expanded}")
        return None

    def _construct_path(self, index: int) -> List[int]:
        path = [index]
        while self._parent[index] != NO_PARENT:
            index = int(self._parent[index])
            path.append(index)
            if len(path) > self.lattice.size:
                raise InvariantViolationError("parent chain does not terminate")
        path.reverse()
        return path

    def current_path(self) -> Optional[List[int]]:
        """Path between the stored start and end, searching again only when stale."""
        if self._dirty or self._last_query != (self._start, self._end):
            return self.find_path(self._start, self._end)
        return None if self._last_path is None else list(self._last_path)

    # -------------------- read-out --------------------

    def node(self, index: int) -> PathNode:
        self.lattice.check_index(index)
        parent = int(self._parent[index])
        return PathNode(
            x=int(self._xs[index]),
            y=int(self._ys[index]),
            is_obstacle=bool(self._obstacle[index]),
            visited=bool(self._visited[index]),
            g_score=int(self._g[index]),
            f_score=int(self._f[index]),
            parent=None if parent == NO_PARENT else parent,
        )

    def is_obstacle(self, index: int) -> bool:
        self.lattice.check_index(index)
        return bool(self._obstacle[index])

    def visited_indices(self) -> List[int]:
        """Indices expanded by the last search, in ascending order."""
        return [int(i) for i in np.flatnonzero(self._visited)]

    @property
    def obstacles(self) -> np.ndarray:
        """Copy of the obstacle layer shaped (height, width)."""
        return self._obstacle.reshape(self.lattice.height, self.lattice.width).copy()
