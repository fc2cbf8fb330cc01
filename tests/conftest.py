"""
Pytest configuration and shared fixtures.
"""

import pytest

from gridmaze.maze import MazeGenerator
from gridmaze.pathfinder import Pathfinder


@pytest.fixture
def empty_finder() -> Pathfinder:
    """16x16 pathfinder without obstacles."""
    return Pathfinder(16, 16)


@pytest.fixture
def walled_finder() -> Pathfinder:
    """16x16 pathfinder split by a full vertical wall at x=8."""
    finder = Pathfinder(16, 16)
    for y in range(16):
        finder.set_obstacle(finder.lattice.index_of(8, y), True)
    return finder


@pytest.fixture
def finished_maze() -> MazeGenerator:
    gen = MazeGenerator()
    gen.start_session(12, 9, start_cell=0, seed=1234)
    gen.run()
    return gen

