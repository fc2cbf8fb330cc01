import argparse
import logging
import sys
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from . import config
from .errors import GridError
from .grid import Lattice
from .maze import MazeGenerator
from .pathfinder import Pathfinder

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def parse_cell(text: str) -> Tuple[int, int]:
    """Parse an 'x,y' pair."""
    try:
        x, y = (int(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected x,y but got {text!r}")
    return x, y


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="gridmaze", description="A* pathfinding and maze generation on a grid")
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=config.LOG_LEVEL,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    pp = sub.add_parser("path", help="Find a shortest path around obstacles")
    pp.add_argument("--width", type=int, default=config.PATH_GRID_WIDTH, help="Grid width")
    pp.add_argument("--height", type=int, default=config.PATH_GRID_HEIGHT, help="Grid height")
    pp.add_argument("--start", type=parse_cell, default=None, help="Start cell as x,y (default: left of middle row)")
    pp.add_argument("--end", type=parse_cell, default=None, help="End cell as x,y (default: right of middle row)")
    pp.add_argument("--obstacle", type=parse_cell, action="append", default=[], help="Obstacle cell as x,y (repeatable)")

    mp = sub.add_parser("maze", help="Generate a perfect maze")
    mp.add_argument("--width", type=int, default=config.MAZE_WIDTH, help="Maze width in cells")
    mp.add_argument("--height", type=int, default=config.MAZE_HEIGHT, help="Maze height in cells")
    mp.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    mp.add_argument("--start", type=parse_cell, default=None, help="Cell to start carving from as x,y (default: random)")
    mp.add_argument("--solve", action="store_true", help="Solve the maze from the top-left to the bottom-right cell")
    return p.parse_args(argv)


def render_path_grid(finder: Pathfinder, path: Optional[Iterable[int]]) -> str:
    """Text picture of a pathfinding grid: # obstacle, S/E endpoints, * path, + expanded."""
    lattice = finder.lattice
    chars = np.full(lattice.size, ".", dtype="<U1")
    chars[np.asarray(finder.visited_indices(), dtype=np.intp)] = "+"
    chars[finder.obstacles.reshape(-1)] = "#"
    if path:
        chars[np.asarray(list(path), dtype=np.intp)] = "*"
    chars[finder.start] = "S"
    chars[finder.end] = "E"
    rows = chars.reshape(lattice.height, lattice.width)
    return "\n".join("".join(row) for row in rows)


def render_wall_grid(grid: np.ndarray, path_cells: Iterable[Tuple[int, int]] = ()) -> str:
    """Text picture of a wall grid (1 = wall) with optional (row, col) path cells marked."""
    chars = np.where(grid != 0, "#", " ")
    for r, c in path_cells:
        chars[r, c] = "*"
    return "\n".join("".join(row) for row in chars)


def run_path(args: argparse.Namespace) -> None:
    finder = Pathfinder(args.width, args.height)
    lattice = finder.lattice
    if args.start is not None:
        finder.set_start(lattice.index_of(*args.start))
    if args.end is not None:
        finder.set_end(lattice.index_of(*args.end))
    for cell in args.obstacle:
        finder.set_obstacle(lattice.index_of(*cell), True)

    print(f"Grid size: {args.width}x{args.height}. Start={lattice.coords_of(finder.start)} End={lattice.coords_of(finder.end)}")
    path = finder.current_path()
    print(render_path_grid(finder, path))
    if path is None:
        print("No path.")
    else:
        cells: List[Tuple[int, int]] = [lattice.coords_of(i) for i in path]
        print(f"Path length: {len(path) - 1}")
        print("Path:", " ".join(f"{x},{y}" for x, y in cells))
    print(f"Expanded nodes: {len(finder.visited_indices())}")


def run_maze(args: argparse.Namespace) -> None:
    gen = MazeGenerator()
    start_cell = None
    if args.start is not None:
        start_cell = Lattice(args.width, args.height).index_of(*args.start)
    gen.start_session(args.width, args.height, start_cell=start_cell, seed=args.seed)
    steps = gen.run()
    logger.info(f"Maze finished after {steps} steps")

    grid = gen.to_grid()
    print(f"Maze size: {args.width}x{args.height}. Start cell={gen.lattice.coords_of(gen.start_cell)} Seed={args.seed}")
    print(f"Passages: {gen.passage_count()} Steps: {steps}")

    path_cells: List[Tuple[int, int]] = []
    if args.solve:
        finder = Pathfinder.from_grid(grid)
        rows, cols = grid.shape
        path = finder.find_path(finder.lattice.index_of(1, 1), finder.lattice.index_of(cols - 2, rows - 2))
        if path is None:
            # a perfect maze is fully connected
            raise GridError("maze has no route between opposite corners")
        path_cells = [(y, x) for x, y in (finder.lattice.coords_of(i) for i in path)]
        print(f"Solution length: {len(path) - 1}")
    print(render_wall_grid(grid, path_cells))


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "path":
            run_path(args)
        else:
            run_maze(args)
    except GridError as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
