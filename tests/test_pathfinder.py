import random

import numpy as np
import pytest

from gridmaze import config
from gridmaze.errors import OutOfRangeError
from gridmaze.pathfinder import Pathfinder, heuristic


def manhattan(finder, a, b):
    ax, ay = finder.lattice.coords_of(a)
    bx, by = finder.lattice.coords_of(b)
    return abs(ax - bx) + abs(ay - by)


def assert_valid_path(finder, path, start, goal):
    assert path[0] == start
    assert path[-1] == goal
    for a, b in zip(path, path[1:]):
        assert finder.lattice.are_adjacent(a, b)
    assert not any(finder.is_obstacle(i) for i in path)


class TestHeuristic:
    def test_truncated_euclidean(self):
        assert heuristic((0, 0), (3, 4)) == 5
        assert heuristic((0, 0), (1, 1)) == 1
        assert heuristic((2, 2), (2, 2)) == 0

    def test_admissible_and_consistent_over_lattice(self):
        finder = Pathfinder(7, 5)
        lattice = finder.lattice
        xs = np.arange(lattice.size) % lattice.width
        ys = np.arange(lattice.size) // lattice.width
        for goal in range(lattice.size):
            gx, gy = lattice.coords_of(goal)
            h = heuristic((xs, ys), (gx, gy))
            assert h.dtype == np.int64
            assert (h >= 0).all()
            assert (h <= np.abs(xs - gx) + np.abs(ys - gy)).all()
            assert h[goal] == 0
            for index in range(lattice.size):
                for n in lattice.neighbors(index):
                    assert abs(int(h[index]) - int(h[n])) <= 1

    def test_array_and_scalar_forms_agree(self):
        xs = np.array([0, 3, 5, 1])
        ys = np.array([0, 4, 2, 6])
        h = heuristic((xs, ys), (2, 1))
        assert list(h) == [heuristic((x, y), (2, 1)) for x, y in zip(xs, ys)]

    def test_search_scores_use_heuristic(self):
        finder = Pathfinder(9, 9)
        goal = finder.lattice.index_of(7, 2)
        for start in range(finder.lattice.size):
            if start == goal:
                continue
            finder.find_path(start, goal)
            node = finder.node(start)
            assert node.g_score == 0
            assert node.f_score == heuristic((node.x, node.y), (7, 2))


class TestInitialize:
    def test_fresh_nodes(self):
        finder = Pathfinder(4, 3)
        node = finder.node(5)
        assert (node.x, node.y) == (1, 1)
        assert not node.is_obstacle
        assert not node.visited
        assert node.g_score == config.INFINITE_COST
        assert node.f_score == config.INFINITE_COST
        assert node.parent is None
        assert finder.dirty

    def test_default_endpoints_middle_row(self, empty_finder):
        assert empty_finder.lattice.coords_of(empty_finder.start) == (1, 8)
        assert empty_finder.lattice.coords_of(empty_finder.end) == (14, 8)


class TestFindPath:
    def test_horizontal_scenario(self, empty_finder):
        path = empty_finder.find_path(17, 30)
        assert len(path) - 1 == 13
        assert all(empty_finder.lattice.coords_of(i)[1] == 1 for i in path)
        assert_valid_path(empty_finder, path, 17, 30)

    def test_empty_grid_length_is_manhattan(self):
        finder = Pathfinder(7, 5)
        rng = random.Random(3)
        for _ in range(40):
            start = rng.randrange(finder.lattice.size)
            goal = rng.randrange(finder.lattice.size)
            path = finder.find_path(start, goal)
            assert len(path) - 1 == manhattan(finder, start, goal)
            assert_valid_path(finder, path, start, goal)

    def test_start_equals_goal(self, empty_finder):
        assert empty_finder.find_path(40, 40) == [40]

    def test_detour_around_wall_with_gap(self):
        finder = Pathfinder(5, 5)
        for y in range(4):
            finder.set_obstacle(finder.lattice.index_of(2, y), True)
        start = finder.lattice.index_of(0, 0)
        goal = finder.lattice.index_of(4, 0)
        path = finder.find_path(start, goal)
        assert_valid_path(finder, path, start, goal)
        # down to row 4, across, and back up
        assert len(path) - 1 == 12
        assert finder.lattice.index_of(2, 4) in path

    def test_full_wall_means_no_path(self, walled_finder):
        lattice = walled_finder.lattice
        assert walled_finder.find_path(lattice.index_of(1, 1), lattice.index_of(14, 1)) is None

    def test_obstacle_start_or_goal(self, empty_finder):
        empty_finder.set_obstacle(17, True)
        assert empty_finder.find_path(17, 30) is None
        assert empty_finder.find_path(30, 17) is None
        assert empty_finder.find_path(17, 17) is None

    def test_enclosed_goal_terminates(self):
        finder = Pathfinder(6, 6)
        goal = finder.lattice.index_of(3, 3)
        for n in finder.lattice.neighbors(goal):
            finder.set_obstacle(n, True)
        assert finder.find_path(0, goal) is None
        # every reachable open cell was expanded exactly once
        assert len(finder.visited_indices()) == finder.lattice.size - 4 - 1

    @pytest.mark.parametrize("start,goal", [(-1, 3), (3, 256), (1000, 1000)])
    def test_out_of_range(self, empty_finder, start, goal):
        with pytest.raises(OutOfRangeError):
            empty_finder.find_path(start, goal)

    def test_deterministic_tie_break(self):
        a = Pathfinder(6, 6).find_path(0, 35)
        b = Pathfinder(6, 6).find_path(0, 35)
        assert a == b


class TestSearchMetadata:
    def test_parent_chain_is_decreasing(self):
        finder = Pathfinder(10, 10)
        for cell in [(4, 0), (4, 1), (4, 2), (4, 3), (4, 4), (4, 5), (2, 7), (3, 7), (4, 7)]:
            finder.set_obstacle(finder.lattice.index_of(*cell), True)
        start = finder.lattice.index_of(0, 0)
        goal = finder.lattice.index_of(9, 0)
        assert finder.find_path(start, goal) is not None

        for index in range(finder.lattice.size):
            node = finder.node(index)
            if node.parent is None:
                continue
            assert finder.node(node.parent).g_score < node.g_score
            assert node.f_score >= node.g_score
            steps = 0
            while node.parent is not None:
                node = finder.node(node.parent)
                steps += 1
                assert steps <= finder.lattice.size
            assert finder.lattice.index_of(node.x, node.y) == start

    def test_obstacles_are_never_scored(self, walled_finder):
        lattice = walled_finder.lattice
        walled_finder.find_path(lattice.index_of(1, 1), lattice.index_of(14, 1))
        for y in range(16):
            node = walled_finder.node(lattice.index_of(8, y))
            assert node.g_score == config.INFINITE_COST
            assert not node.visited

    def test_start_node_scores(self, empty_finder):
        empty_finder.find_path(17, 30)
        node = empty_finder.node(17)
        assert node.g_score == 0
        assert node.f_score == 13
        assert node.visited


class TestReruns:
    def test_mutations_mark_dirty(self, empty_finder):
        empty_finder.current_path()
        assert not empty_finder.dirty
        empty_finder.set_obstacle(3, True)
        assert empty_finder.dirty
        empty_finder.current_path()
        empty_finder.set_start(20)
        assert empty_finder.dirty
        empty_finder.current_path()
        empty_finder.set_end(21)
        assert empty_finder.dirty
        empty_finder.current_path()
        assert empty_finder.toggle_obstacle(3) is False
        assert empty_finder.dirty

    def test_out_of_range_mutation_leaves_state(self, empty_finder):
        empty_finder.current_path()
        with pytest.raises(OutOfRangeError):
            empty_finder.set_obstacle(256, True)
        with pytest.raises(OutOfRangeError):
            empty_finder.set_start(-1)
        assert not empty_finder.dirty
        assert not empty_finder.obstacles.any()

    def test_no_stale_scores_after_toggle(self):
        finder = Pathfinder(8, 8)
        start, goal = finder.lattice.index_of(0, 3), finder.lattice.index_of(7, 3)
        finder.find_path(start, goal)
        blocker = finder.lattice.index_of(4, 3)
        finder.set_obstacle(blocker, True)
        rerun = finder.find_path(start, goal)

        fresh = Pathfinder(8, 8)
        fresh.set_obstacle(blocker, True)
        expected = fresh.find_path(start, goal)

        assert rerun == expected
        for index in range(finder.lattice.size):
            assert finder.node(index) == fresh.node(index)

    def test_toggle_back_restores_straight_path(self):
        finder = Pathfinder(8, 8)
        start, goal = finder.lattice.index_of(0, 3), finder.lattice.index_of(7, 3)
        blocker = finder.lattice.index_of(4, 3)
        finder.set_obstacle(blocker, True)
        assert len(finder.find_path(start, goal)) - 1 == 9
        finder.set_obstacle(blocker, False)
        assert len(finder.find_path(start, goal)) - 1 == 7

    def test_current_path_is_cached_until_dirty(self, empty_finder):
        first = empty_finder.current_path()
        visited = empty_finder.visited_indices()
        # a search for another pair invalidates the cache
        empty_finder.find_path(0, 1)
        assert empty_finder.current_path() == first
        assert empty_finder.visited_indices() == visited
        first.append(-1)
        assert empty_finder.current_path()[-1] != -1


class TestObstacleLayer:
    def test_from_grid(self):
        grid = np.array(
            [
                [0, 1, 0],
                [0, 1, 0],
                [0, 0, 0],
            ]
        )
        finder = Pathfinder.from_grid(grid)
        assert finder.lattice.width == 3 and finder.lattice.height == 3
        np.testing.assert_array_equal(finder.obstacles, grid.astype(bool))
        assert finder.find_path(0, 2) == [0, 3, 6, 7, 8, 5, 2]

    def test_load_obstacles_shape_mismatch(self, empty_finder):
        with pytest.raises(ValueError):
            empty_finder.load_obstacles(np.zeros((3, 3), dtype=bool))

    def test_clear_obstacles(self, walled_finder):
        walled_finder.clear_obstacles()
        assert not walled_finder.obstacles.any()
        assert walled_finder.find_path(0, 15) is not None

    def test_obstacles_copy_is_detached(self, empty_finder):
        layer = empty_finder.obstacles
        layer[:] = True
        assert not empty_finder.is_obstacle(0)
