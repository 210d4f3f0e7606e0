# main.py
"""
Command line entry point.

Usage:
    railroute <network_map> <start> <end> <num_trains>

Prints one line per turn (``T1-b T2-d``) on stdout. Any failure is reported
as ``Error: <reason>`` on stderr with exit status 1.
"""
import argparse
import logging
import sys

from config import settings
from errors import InvalidArgumentError, RailRouteError
from network import has_station, parse_network
from simulation import find_train_movements
from utils import parse_positive_int

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise InvalidArgumentError("incorrect number of arguments.")


def build_parser():
    parser = _ArgumentParser(
        prog="railroute",
        description="Schedule trains over the shortest routes of a network map.",
    )
    parser.add_argument("network_map", help="path to the network map file")
    parser.add_argument("start", help="departure station")
    parser.add_argument("end", help="destination station")
    parser.add_argument("num_trains", help="number of trains to move (positive integer)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log progress to stderr")
    return parser


def run(argv):
    """Validate arguments in order, then return the schedule lines."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    num_trains = parse_positive_int(args.num_trains)
    G = parse_network(args.network_map)

    if args.start == args.end:
        raise InvalidArgumentError("start and end station are the same.")
    if not has_station(G, args.start):
        raise InvalidArgumentError("start station does not exist.")
    if not has_station(G, args.end):
        raise InvalidArgumentError("end station does not exist.")

    logger.info("Routing %d train(s) from %s to %s", num_trains, args.start, args.end)
    return find_train_movements(G, args.start, args.end, num_trains)


def main(argv=None):
    settings.configure_logging()
    try:
        turns = run(sys.argv[1:] if argv is None else argv)
    except RailRouteError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    for line in turns:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
