# errors.py

class RailRouteError(Exception):
    """Base class for every failure reported by RailRouteSim."""


class NoRouteError(RailRouteError):
    def __init__(self, message="no path between the start and end stations"):
        super().__init__(message)


class InvalidNetworkError(RailRouteError):
    """The network map file is missing, malformed or inconsistent."""


class InvalidArgumentError(RailRouteError):
    """Command line input rejected before the core is invoked."""
