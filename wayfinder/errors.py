"""Exception types for Wayfinder."""


class WayfinderError(Exception):
    """Base class for all Wayfinder errors"""


class GraphNotBuiltError(WayfinderError):
    """A graph query was made before any node exists"""


class NavigationStateError(WayfinderError):
    """An operation was attempted in the wrong navigation state"""


class PositionError(WayfinderError):
    """Failure reported by a position source.

    Codes match the ones browsers and phone location APIs report, so traces
    recorded on a device can be replayed unchanged.
    """

    PERMISSION_DENIED = "PERMISSION_DENIED"
    POSITION_UNAVAILABLE = "POSITION_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"

    MESSAGES = {
        PERMISSION_DENIED: "GPS permission denied",
        POSITION_UNAVAILABLE: "GPS position unavailable",
        TIMEOUT: "GPS timeout",
    }

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message or self.MESSAGES.get(code, "GPS error")
        super().__init__(self.message)
