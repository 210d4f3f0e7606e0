import logging

import pytest

from conftest import make_network
from errors import NoRouteError
from routing import find_all_shortest_paths
from simulation import Simulator, find_train_movements, track_key


def replay(routes, num_trains, end):
    """
    Re-run a schedule move by move and check the capacity rules.

    Returns the simulator, final route index per train and the assignment.
    """
    sim = Simulator(routes, num_trains, end=end)
    sim.run()
    assigned = {tid: routes[(tid - 1) % len(routes)] for tid in range(1, num_trains + 1)}
    pos = {tid: 0 for tid in assigned}
    for moves in sim.turns:
        trains = [tid for tid, _ in moves]
        assert trains == sorted(trains)
        assert len(set(trains)) == len(trains)

        tracks = set()
        destinations = set()
        movers = set(trains)
        for tid, station in moves:
            route = assigned[tid]
            assert route[pos[tid] + 1] == station
            key = track_key(route[pos[tid]], station)
            assert key not in tracks
            tracks.add(key)
            if station != end:
                assert station not in destinations
                destinations.add(station)
        # A station receiving a train must not hold a train that stayed put.
        for tid, p in pos.items():
            station = assigned[tid][p]
            if tid not in movers and 0 < p < len(assigned[tid]) - 1:
                assert station not in destinations
        for tid, _ in moves:
            pos[tid] += 1
    return sim, pos, assigned


def test_diamond_scenario(diamond):
    assert find_train_movements(diamond, "a", "c", 2) == ["T1-b T2-d", "T1-c T2-c"]


def test_single_line_staggers_departures(line):
    assert find_train_movements(line, "a", "c", 2) == ["T1-b", "T1-c T2-b", "T2-c"]


def test_single_train_single_track():
    G = make_network([("a", "b")])
    assert find_train_movements(G, "a", "b", 1) == ["T1-b"]


def test_direct_track_carries_one_train_per_turn():
    G = make_network([("a", "b")])
    assert find_train_movements(G, "a", "b", 3) == ["T1-b", "T2-b", "T3-b"]


def test_round_robin_assignment(diamond):
    routes = find_all_shortest_paths(diamond, "a", "c")
    sim = Simulator(routes, 5)
    assert [sim.state[t]["route"] for t in range(1, 6)] == [
        ("a", "b", "c"), ("a", "d", "c"), ("a", "b", "c"), ("a", "d", "c"), ("a", "b", "c"),
    ]
    assert sim.end == "c"


def test_diamond_with_many_trains(diamond):
    lines = find_train_movements(diamond, "a", "c", 4)
    assert lines == ["T1-b T2-d", "T1-c T2-c T3-b T4-d", "T3-c T4-c"]


def test_no_route_raises():
    G = make_network([("a", "b"), ("c", "d")])
    with pytest.raises(NoRouteError, match="no path between the start and end stations"):
        find_train_movements(G, "a", "d", 3)


def test_simulator_rejects_bad_preconditions():
    with pytest.raises(ValueError):
        Simulator([], 1)
    with pytest.raises(ValueError):
        Simulator([("a", "b")], 0)


def test_capacity_rules_hold_on_a_busy_network():
    # three routes, two of which merge at m before the end
    G = make_network([
        ("s", "p"), ("s", "q"), ("p", "m"), ("q", "m"), ("m", "t"),
        ("s", "r"), ("r", "y"), ("y", "t"),
    ])
    routes = find_all_shortest_paths(G, "s", "t")
    assert len(routes) == 3
    sim, pos, assigned = replay(routes, 7, "t")
    assert sim.stranded() == []
    for tid, p in pos.items():
        assert p == len(assigned[tid]) - 1
        moves = [rec for rec in sim.state[tid]["log"] if rec[3] == "move"]
        assert len(moves) == len(assigned[tid]) - 1
        assert len({rec[0] for rec in moves}) == len(moves)


def test_every_train_arrives_exactly_once(line):
    routes = find_all_shortest_paths(line, "a", "c")
    sim = Simulator(routes, 4, end="c")
    lines = sim.run()
    tokens = " ".join(lines).split()
    for tid in range(1, 5):
        assert tokens.count(f"T{tid}-c") == 1
    assert sim.all_arrived()
    assert len(lines) == 5


def test_runs_are_identical(diamond):
    first = find_train_movements(diamond, "a", "c", 9)
    second = find_train_movements(diamond, "a", "c", 9)
    assert first == second


def test_waiting_train_keeps_its_station():
    # routes a-b-c-e and a-d-c-e merge at c
    G = make_network([("a", "b"), ("b", "c"), ("a", "d"), ("d", "c"), ("c", "e")])
    routes = find_all_shortest_paths(G, "a", "e")
    assert routes == [("a", "b", "c", "e"), ("a", "d", "c", "e")]
    sim = Simulator(routes, 2, end="e")
    sim.step_turn()
    assert sim.step_turn() == [(1, "c")]
    # T2 stayed at d and still holds it
    assert sim.occupancy == {"c": 1, "d": 2}
    assert sim.state[2]["log"][-1] == (2, "d", "d", "wait_station", 2)
    sim.run()
    assert sim.schedule() == ["T1-b T2-d", "T1-c", "T1-e T2-c", "T2-e"]
    assert sim.state[2]["waits"] == 1


def test_step_turn_and_halt(line):
    sim = Simulator(find_all_shortest_paths(line, "a", "c"), 1, end="c")
    assert sim.step_turn() == [(1, "b")]
    assert sim.occupancy == {"b": 1}
    assert sim.step_turn() == [(1, "c")]
    assert sim.occupancy == {}
    assert sim.halted
    assert sim.step_turn() == []
    assert sim.schedule() == ["T1-b", "T1-c"]


def test_max_turns_pauses_the_run(line):
    sim = Simulator(find_all_shortest_paths(line, "a", "c"), 3, end="c")
    assert sim.run(max_turns=2) == ["T1-b", "T1-c T2-b"]
    assert not sim.halted
    assert sim.run() == ["T1-b", "T1-c T2-b", "T2-c T3-b", "T3-c"]


def test_deadlocked_routes_end_quietly(caplog):
    # Two crossing routes handed in directly: T1 goes x->u->v->e while
    # T2 goes y->v->u->e. After one turn each wants the other's station.
    routes = [("x", "u", "v", "e"), ("y", "v", "u", "e")]
    sim = Simulator(routes, 2, end="e")
    with caplog.at_level(logging.WARNING, logger="simulation"):
        lines = sim.run()
    assert lines == ["T1-u T2-v"]
    assert sim.halted
    assert sim.stranded() == [1, 2]
    assert "short of e" in caplog.text
    kpis = sim.compute_kpis()
    assert kpis["stranded"] == [1, 2]
    assert kpis["arrived"] == 0


def test_kpis(line):
    sim = Simulator(find_all_shortest_paths(line, "a", "c"), 2, end="c")
    sim.run()
    kpis = sim.compute_kpis()
    assert kpis["turns"] == 3
    assert kpis["arrived"] == 2
    assert kpis["stranded"] == []
    assert kpis["avg_wait"] == pytest.approx(0.5)
    assert kpis["max_wait"] == 1
    assert kpis["per_train"][1]["arrival_turn"] == 2
    assert kpis["per_train"][2]["arrival_turn"] == 3
    assert kpis["util"]["b"] == pytest.approx(2 / 3)


def test_track_key_ignores_direction():
    assert track_key("a", "b") == track_key("b", "a")
    assert track_key("a", "b") != track_key("a", "c")


def test_opposite_directions_share_a_track():
    # T1 runs p->q while T2 wants q->p on the same track; both finish at e,
    # so only the track rule can hold T2 back.
    routes = [("p", "q", "e"), ("q", "p", "e")]
    sim = Simulator(routes, 2, end="e")
    assert sim.step_turn() == [(1, "q")]
    assert sim.state[2]["log"] == [(1, "q", "q", "wait_track", 1)]
    assert sim.run() == ["T1-q", "T1-e T2-p", "T2-e"]
    assert sim.state[2]["waits"] == 1


def test_trains_left_at_the_start_wait_every_turn():
    routes = [("x", "u", "v", "e"), ("y", "v", "u", "e")]
    sim = Simulator(routes, 4, end="e")
    assert sim.run() == ["T1-u T2-v"]
    assert sim.stranded() == [1, 2, 3, 4]
    assert [sim.state[t]["waits"] for t in range(1, 5)] == [0, 0, 1, 1]
    assert sim.compute_kpis()["max_wait"] == 1


def test_consecutive_waits_share_one_log_record():
    # three routes merge at m; T3 waits at z while T1 then T2 pass through m
    G = make_network([
        ("s", "x"), ("s", "y"), ("s", "z"), ("x", "m"), ("y", "m"), ("z", "m"), ("m", "t"),
    ])
    sim = Simulator(find_all_shortest_paths(G, "s", "t"), 3, end="t")
    assert sim.run() == ["T1-x T2-y T3-z", "T1-m", "T1-t T2-m", "T2-t T3-m", "T3-t"]
    assert sim.state[3]["waits"] == 2
    waits = [rec for rec in sim.state[3]["log"] if rec[3] == "wait_station"]
    assert waits == [(2, "z", "z", "wait_station", 3)]


def test_log_grows_linearly_with_trains(diamond):
    n = 2000
    sim = Simulator(find_all_shortest_paths(diamond, "a", "c"), n, end="c")
    lines = sim.run()
    assert len(lines) == n // 2 + 1
    assert lines[-1] == f"T{n - 1}-c T{n}-c"
    assert sum(len(st["log"]) for st in sim.state.values()) <= 4 * n
    assert sim.state[n]["waits"] == n // 2 - 1
    assert sim.all_arrived()
