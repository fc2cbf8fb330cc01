"""
Default settings for the gridmaze engines and command line.

Values that make sense to override at runtime are read from the environment.
"""

import os

import numpy as np

# =============================================================================
# Pathfinding
# =============================================================================

# Lattice used by the pathfinding demo
PATH_GRID_WIDTH = 16
PATH_GRID_HEIGHT = 16

# Cost assigned to nodes the search has not reached yet
INFINITE_COST = int(np.iinfo(np.int32).max)

# =============================================================================
# Maze generation
# =============================================================================

MAZE_WIDTH = 40
MAZE_HEIGHT = 25

# =============================================================================
# Logging
# =============================================================================

# Log level (DEBUG, INFO, WARNING, ERROR)
LOG_LEVEL = os.environ.get("GRIDMAZE_LOG_LEVEL", "WARNING").upper()


def default_endpoints(width: int, height: int):
    """Start and end cells used when none are given: either side of the middle row."""
    row = height // 2
    return (min(1, width - 1), row), (max(width - 2, 0), row)
