# utils.py
import re

from errors import InvalidArgumentError

_INT_RE = re.compile(r"[+-]?\d+")


def format_move(train, station):
    return f"T{train}-{station}"


def format_turn(moves):
    """Render (train, station) moves as one schedule line."""
    return " ".join(format_move(train, station) for train, station in moves)


def format_route(route):
    if not route:
        return "None"
    return " -> ".join(route)


def short_train(train):
    return f"T{train}"


def parse_positive_int(text):
    """
    Parse a train count the way the command line expects it.

    Only an optional sign followed by decimal digits is accepted, so inputs
    such as "1_000", "2.0" or " 3" are rejected along with zero and negatives.
    """
    text = str(text)
    if not _INT_RE.fullmatch(text) or int(text) <= 0:
        raise InvalidArgumentError("number of trains is not a valid positive integer.")
    return int(text)
