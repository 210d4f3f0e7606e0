# routing.py
import logging
from collections import deque

from utils import format_route

logger = logging.getLogger(__name__)


def find_all_shortest_paths(G, start, end):
    """
    Enumerate every shortest (fewest tracks) simple path from start to end.

    Breadth-first search where each frontier entry carries the path taken so
    far plus the stations already on it. Neighbors are expanded in sorted
    order so the returned list, and therefore the round-robin train
    assignment built on it, is identical across runs.

    Args:
        G (nx.Graph): station graph; start and end must be nodes of G.
        start (str): departure station.
        end (str): destination station, distinct from start.

    Returns:
        list[tuple]: minimum-length routes in discovery order. Empty when
        the two stations are not connected.
    """
    results = []
    min_len = None  # node count of the shortest route found so far
    queue = deque([((start,), frozenset((start,)))])

    while queue:
        path, visited = queue.popleft()
        last = path[-1]
        if last == end:
            if min_len is None:
                min_len = len(path)
            if len(path) == min_len:
                results.append(path)
            continue
        if min_len is not None and len(path) >= min_len:
            continue
        for neighbor in sorted(G.neighbors(last)):
            if neighbor in visited:
                continue
            queue.append((path + (neighbor,), visited | {neighbor}))

    if results:
        logger.debug("%d shortest route(s) of %d track(s) from %s to %s",
                     len(results), min_len - 1, start, end)
        for route in results:
            logger.debug("  %s", format_route(route))
    else:
        logger.info("No route between %s and %s", start, end)
    return results


def shortest_path_length(routes):
    """Track count shared by all routes, or None for an empty route set."""
    if not routes:
        return None
    return len(routes[0]) - 1
