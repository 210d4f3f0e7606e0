# network.py
import logging
import re

import networkx as nx

from errors import InvalidNetworkError

logger = logging.getLogger(__name__)

STATION_NAME_RE = re.compile(r"^[a-z0-9_]+$")
LAYOUT_SEED = 7  # spring layout fallback must be reproducible


def parse_network(path):
    """
    Read a network map file and return an undirected station graph.

    Args:
        path: location of the map file.

    Returns:
        nx.Graph: one node per station (``pos`` attribute holds declared
        coordinates or None), one edge per connection.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidNetworkError("could not open network map file") from exc
    return parse_network_text(text)


def parse_network_text(text):
    """Parse map text with ``stations:`` and ``connections:`` sections."""
    stations = []
    connections = []
    section = None
    for line_num, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        if line == "stations:":
            section = "stations"
            continue
        if line == "connections:":
            section = "connections"
            continue
        if section == "stations":
            parts = [p.strip() for p in line.split(",")]
            if len(parts) not in (1, 3):
                raise InvalidNetworkError(f"invalid station line at {line_num}")
            stations.append(tuple(parts))
        elif section == "connections":
            parts = [p.strip() for p in line.split("-")]
            if len(parts) != 2:
                raise InvalidNetworkError(f"invalid connection line at {line_num}")
            connections.append(tuple(parts))
        else:
            raise InvalidNetworkError(f"unexpected line outside of section at {line_num}")
    return build_network(stations, connections)


def _parse_coord(value):
    if not re.fullmatch(r"[+-]?\d+", value):
        return None
    return int(value)


def build_network(stations, connections):
    """
    Build a validated graph from in-memory definitions.

    ``stations`` holds ``(name,)`` or ``(name, x, y)`` entries (coordinates as
    strings or ints), ``connections`` holds ``(a, b)`` pairs.
    """
    G = nx.Graph()
    coords = {}  # (x, y) -> station name

    for entry in stations:
        name = str(entry[0]).strip()
        if not STATION_NAME_RE.match(name):
            raise InvalidNetworkError(f"invalid station name: {name}")
        if G.has_node(name):
            raise InvalidNetworkError(f"duplicate station name: {name}")
        pos = None
        if len(entry) == 3:
            x = _parse_coord(str(entry[1]).strip())
            y = _parse_coord(str(entry[2]).strip())
            if x is None or y is None or x <= 0 or y <= 0:
                raise InvalidNetworkError(f"invalid coordinates for station: {name}")
            if (x, y) in coords:
                raise InvalidNetworkError(
                    f"two stations at same coordinates: {name} and {coords[(x, y)]}"
                )
            coords[(x, y)] = name
            pos = (x, y)
        elif len(entry) != 1:
            raise InvalidNetworkError(f"invalid station entry: {entry!r}")
        G.add_node(name, pos=pos)

    for a, b in connections:
        a, b = str(a).strip(), str(b).strip()
        if a == b:
            raise InvalidNetworkError(f"connection from station to itself: {a}")
        for name in (a, b):
            if not G.has_node(name):
                raise InvalidNetworkError(f"connection references non-existent station: {name}")
        if G.has_edge(a, b):
            raise InvalidNetworkError(f"duplicate connection: {a}-{b}")
        G.add_edge(a, b)

    logger.info("Network parsed: %d stations, %d connections", G.number_of_nodes(), G.number_of_edges())
    return G


def has_station(G, name):
    return G.has_node(name)


def station_positions(G):
    """Return name -> (x, y); stations without coordinates get a seeded layout."""
    declared = {n: d["pos"] for n, d in G.nodes(data=True) if d.get("pos") is not None}
    if len(declared) == G.number_of_nodes():
        return declared
    # fixed= requires at least one pinned node; with none the layout is free
    if declared:
        layout = nx.spring_layout(G, pos=declared, fixed=list(declared), seed=LAYOUT_SEED)
    else:
        layout = nx.spring_layout(G, seed=LAYOUT_SEED)
    return {n: tuple(float(v) for v in layout[n]) for n in G.nodes}
