"""A* over the coarse walkability grid.

Search never fails loudly: when the goal cannot be reached (blocked,
out of bounds, walled off, or the expansion cap runs out) the path leads
to the explored cell closest to the goal instead. Only when that closest
cell is the start itself is the result empty.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math

from villagequest.config import Config
from villagequest.navgrid import WalkabilityGrid


logger = logging.getLogger(__name__)

Cell = tuple[int, int]

SQRT2 = math.sqrt(2)
NEIGHBORS = (
    (1, 0, 1.0), (-1, 0, 1.0), (0, 1, 1.0), (0, -1, 1.0),
    (1, 1, SQRT2), (1, -1, SQRT2), (-1, 1, SQRT2), (-1, -1, SQRT2),
)


def heuristic(a: Cell, b: Cell) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def _reconstruct(came_from: dict[Cell, Cell], node: Cell) -> list[Cell]:
    path = [node]
    while node in came_from:
        node = came_from[node]
        path.append(node)
    path.reverse()
    return path[1:]  # drop the start cell


def find_path(
    grid: WalkabilityGrid,
    start: Cell,
    end: Cell,
    max_nodes: int = Config.MAX_PATH_NODES,
) -> list[Cell]:
    """Cells from `start` (exclusive) to `end` or to the closest reachable cell.

    8-connected, axis step cost 1, diagonal step cost sqrt(2), Euclidean
    heuristic. A diagonal step may not squeeze between two blocked
    orthogonal neighbours. At most `max_nodes` cells have their neighbours
    generated; the goal still counts as reached if it is popped afterwards.
    """
    if not grid.is_walkable(*start):
        logger.debug("Path start %s is not walkable", start)
        return []

    counter = itertools.count()
    g_score: dict[Cell, float] = {start: 0.0}
    came_from: dict[Cell, Cell] = {}
    closed: set[Cell] = set()
    open_heap = [(heuristic(start, end), next(counter), start)]

    best = start
    best_h = heuristic(start, end)
    expanded = 0

    while open_heap:
        _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        closed.add(current)

        h = heuristic(current, end)
        if h < best_h:
            best, best_h = current, h
        if current == end:
            return _reconstruct(came_from, current)

        if expanded >= max_nodes:
            logger.debug("Path search hit the %d node cap", max_nodes)
            break
        expanded += 1

        cx, cy = current
        for dx, dy, cost in NEIGHBORS:
            nx, ny = cx + dx, cy + dy
            if not grid.is_walkable(nx, ny) or (nx, ny) in closed:
                continue
            if dx and dy and not grid.is_walkable(cx + dx, cy) and not grid.is_walkable(cx, cy + dy):
                continue
            tentative = g_score[current] + cost
            if tentative < g_score.get((nx, ny), math.inf):
                g_score[(nx, ny)] = tentative
                came_from[(nx, ny)] = current
                heapq.heappush(open_heap, (tentative + heuristic((nx, ny), end), next(counter), (nx, ny)))

    if best == start:
        return []
    logger.debug("Goal %s unreachable; falling back to %s", end, best)
    return _reconstruct(came_from, best)


def cells_to_waypoints(
    grid: WalkabilityGrid,
    cells: list[Cell],
    final_point: tuple[float, float] | None = None,
) -> list[tuple[float, float]]:
    """Expand coarse cells to pixel-space cell centres.

    If `final_point` lies inside the last cell and is walkable at full
    resolution, the agent stops exactly there instead of the cell centre.
    """
    points = [grid.cell_center(c, r) for c, r in cells]
    if points and final_point is not None:
        if grid.cell_at(*final_point) == cells[-1] and grid.is_walkable_px(*final_point):
            points[-1] = (float(final_point[0]), float(final_point[1]))
    return points


def plan_route(
    grid: WalkabilityGrid,
    origin: tuple[float, float],
    target: tuple[float, float],
    max_nodes: int = Config.MAX_PATH_NODES,
) -> list[tuple[float, float]]:
    """Pixel-space route from `origin` to `target` (or as close as possible).

    An origin standing in a blocked cell (it can happen at mask edges, since
    the agent lives at pixel resolution) starts from the nearest walkable
    cell instead.
    """
    origin_cell = grid.cell_at(*origin)
    start = origin_cell
    if not grid.is_walkable(*start):
        start = grid.nearest_walkable(*start, max_radius=2) or start
    end = grid.cell_at(*target)
    cells = find_path(grid, start, end, max_nodes=max_nodes)
    if cells and start != origin_cell:
        cells.insert(0, start)
    return cells_to_waypoints(grid, cells, final_point=target)
