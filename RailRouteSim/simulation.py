# simulation.py
import heapq
import logging
from collections import defaultdict, deque

import numpy as np

from errors import NoRouteError
from routing import find_all_shortest_paths
from utils import format_route, format_turn

logger = logging.getLogger(__name__)


def track_key(a, b):
    """Tracks are undirected: a-b and b-a are the same resource."""
    return frozenset((a, b))


class Simulator:
    """
    Turn based movement of numbered trains along pre-assigned shortest routes.

    Train i (1-based) permanently follows ``routes[(i - 1) % len(routes)]``.
    Within a turn trains are evaluated in ascending index order, so the lowest
    index wins any contested station or track. Between turns the station
    occupancy snapshot is replaced wholesale, never edited in place.

    Each train's ``log`` holds ``(turn, from, to, action)`` tuples for
    ``move`` and ``arrived``, and one ``(first_turn, station, station, action,
    last_turn)`` tuple per uninterrupted ``wait_station``/``wait_track`` spell.
    """

    def __init__(self, routes, num_trains, end=None):
        if not routes:
            raise ValueError("at least one route is required")
        if num_trains < 1:
            raise ValueError("num_trains must be at least 1")
        self.routes = [tuple(r) for r in routes]
        self.num_trains = int(num_trains)
        self.end = end if end is not None else self.routes[0][-1]
        self.turns = []         # recorded turns, each a list of (train, station)
        self.occupancy = {}     # station -> train at the end of the last turn
        self.halted = False
        self.usage = defaultdict(int)

        self.state = {}
        self._running = set()   # left the start, not yet arrived
        self._departures = {}   # first track -> trains still at the start, ascending
        for tid in range(1, self.num_trains + 1):
            route = self.routes[(tid - 1) % len(self.routes)]
            self.state[tid] = {
                "route": route,
                "pos": 0,
                "status": "waiting",
                "waits": 0,
                "arrival_turn": None,
                "log": [],
            }
            if len(route) < 2:
                self.state[tid]["status"] = "arrived"
            else:
                self._departures.setdefault((route[0], route[1]), deque()).append(tid)
        logger.debug("Assigned %d train(s) over %d route(s)", self.num_trains, len(self.routes))

    def all_arrived(self):
        return not self._running and not any(self._departures.values())

    def step_turn(self):
        """
        Evaluate every train once and return the moves made this turn.

        Trains still at the start queue up behind their first track. Once one
        of them is blocked for the rest of the turn, the ones behind it wait
        without being looked at. An empty return means nobody could move; the
        simulator is then halted and the turn is not recorded.
        """
        if self.halted:
            return []
        turn = len(self.turns) + 1
        occupied = self.occupancy
        claims = {}
        vacated = set()
        used_tracks = set()
        moves = []
        waits = []
        departed = defaultdict(list)

        # (train, first track, offset in that queue); running trains carry no queue
        heap = [(tid, None, None) for tid in self._running]
        heap += [(queue[0], key, 0) for key, queue in self._departures.items() if queue]
        heapq.heapify(heap)

        while heap:
            tid, key, offset = heapq.heappop(heap)
            st = self.state[tid]
            route = st["route"]
            idx = st["pos"]
            here, nxt = route[idx], route[idx + 1]

            action, settled = None, True
            if nxt != self.end:
                holder = occupied.get(nxt)
                if nxt in claims:
                    action = "wait_station"
                elif holder is not None and nxt not in vacated:
                    action = "wait_station"
                    # the holder has not been evaluated yet and may still leave
                    settled = holder < tid
            if action is None and track_key(here, nxt) in used_tracks:
                action = "wait_track"

            if key is not None and (action is None or not settled):
                queue = self._departures[key]
                if offset + 1 < len(queue):
                    heapq.heappush(heap, (queue[offset + 1], key, offset + 1))
            if action is not None:
                waits.append((tid, here, action))
                continue

            st["pos"] = idx + 1
            st["status"] = "running"
            used_tracks.add(track_key(here, nxt))
            if occupied.get(here) == tid:
                vacated.add(here)
            if nxt != self.end:
                claims[nxt] = tid
            moves.append((tid, nxt))
            self.usage[nxt] += 1
            st["log"].append((turn, here, nxt, "move"))
            if key is not None:
                departed[key].append(offset)
                st["waits"] = turn - 1
                self._running.add(tid)
            if st["pos"] == len(route) - 1:
                st["status"] = "arrived"
                st["arrival_turn"] = turn
                st["log"].append((turn, nxt, None, "arrived"))
                self._running.discard(tid)

        if not moves:
            self.halted = True
            self._settle_waits()
            return moves

        for key, offsets in departed.items():
            queue = self._departures[key]
            for offset in reversed(offsets):
                del queue[offset]

        # Trains that stayed keep holding their station into the next turn.
        next_occupancy = dict(claims)
        for station, tid in occupied.items():
            if station not in vacated:
                next_occupancy[station] = tid
        self.occupancy = next_occupancy

        for tid, station, action in waits:
            st = self.state[tid]
            if st["pos"]:
                st["waits"] += 1
            self._log_wait(st, turn, station, action)
        self.turns.append(moves)
        if self.all_arrived():
            self.halted = True
        return moves

    @staticmethod
    def _log_wait(st, turn, station, action):
        log = st["log"]
        if log and log[-1][3] == action and log[-1][4] == turn - 1:
            log[-1] = (log[-1][0], station, station, action, turn)
        else:
            log.append((turn, station, station, action, turn))

    def _settle_waits(self):
        """Trains still at the start have waited every recorded turn."""
        for queue in self._departures.values():
            for tid in queue:
                self.state[tid]["waits"] = len(self.turns)

    def run(self, max_turns=None):
        """Step until no train can move; returns the rendered schedule."""
        while not self.halted:
            if max_turns is not None and len(self.turns) >= max_turns:
                break
            self.step_turn()
        self._settle_waits()
        if self.halted:
            stranded = self.stranded()
            if stranded:
                logger.warning("Schedule ended with %d train(s) short of %s: %s",
                               len(stranded), self.end,
                               ", ".join(f"T{tid}" for tid in stranded))
            else:
                logger.info("All %d train(s) reached %s in %d turn(s)",
                            self.num_trains, self.end, len(self.turns))
        return self.schedule()

    def schedule(self):
        return [format_turn(moves) for moves in self.turns]

    def stranded(self):
        """Trains that have not reached the end station."""
        return [tid for tid in range(1, self.num_trains + 1)
                if self.state[tid]["pos"] < len(self.state[tid]["route"]) - 1]

    def compute_kpis(self):
        self._settle_waits()
        waits = []
        per_train = {}
        for tid, st in self.state.items():
            waits.append(st["waits"])
            per_train[tid] = {
                "route": format_route(st["route"]),
                "status": st["status"],
                "waits": st["waits"],
                "arrival_turn": st["arrival_turn"],
            }
        stranded = self.stranded()
        total_turns = len(self.turns)
        util = {node: cnt / max(1, total_turns) for node, cnt in self.usage.items()}
        return {
            "turns": total_turns,
            "arrived": self.num_trains - len(stranded),
            "stranded": stranded,
            "avg_wait": float(np.mean(waits)) if waits else 0.0,
            "max_wait": int(np.max(waits)) if waits else 0,
            "util": util,
            "per_train": per_train,
        }


def find_train_movements(G, start, end, num_trains):
    """
    Route ``num_trains`` trains from start to end over G.

    Returns:
        list[str]: one line per turn, e.g. ``"T1-b T2-d"``.

    Raises:
        NoRouteError: start and end are not connected.
    """
    routes = find_all_shortest_paths(G, start, end)
    if not routes:
        raise NoRouteError()
    sim = Simulator(routes, num_trains, end=end)
    return sim.run()
