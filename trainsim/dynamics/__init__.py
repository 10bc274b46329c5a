"""Kinematic state representation.

Example:
    >>> from trainsim.dynamics import SimulationState
    >>> from trainsim.track import TrackConfig
    >>>
    >>> state = SimulationState.initial(TrackConfig())
    >>> state.next_station_position
    1000.0
"""

from trainsim.dynamics.state import (
    SimulationState,
    StationEvent,
    TickResult,
)

__all__ = [
    "SimulationState",
    "StationEvent",
    "TickResult",
]
