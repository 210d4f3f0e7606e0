import pytest

from network import build_network


def make_network(edges, extra_stations=()):
    names = sorted({n for e in edges for n in e} | set(extra_stations))
    return build_network([(n,) for n in names], edges)


@pytest.fixture
def diamond():
    return make_network([("a", "b"), ("b", "c"), ("a", "d"), ("d", "c")])


@pytest.fixture
def line():
    return make_network([("a", "b"), ("b", "c")])
