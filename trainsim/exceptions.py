"""Exception hierarchy for trainsim.

Only invalid commands are raised. Unparseable sensor lines, unreachable
stations and duplicate station reports degrade to "no event" and are
logged instead.
"""


class TrainSimError(Exception):
    """Base exception for all trainsim errors."""

    pass


class ValidationError(TrainSimError, ValueError):
    """Raised when a track configuration or control command is rejected.

    Raised before any state is touched, so a rejected command leaves the
    current run exactly as it was.
    """

    pass
