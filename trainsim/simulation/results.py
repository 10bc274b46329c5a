"""In-memory run history.

Example:
    >>> result = SimulationResult()
    >>> result.record(tick)
    >>> df = result.to_dataframe()
    >>> stations = result.stations_dataframe()
"""

from dataclasses import dataclass, field

import numpy as np
import polars as pl
from beartype import beartype
from numpy.typing import NDArray

from trainsim.dynamics.state import StationEvent, TickResult


@beartype
@dataclass
class SimulationResult:
    """Tick history and station log of one run."""
    ticks: list[TickResult] = field(default_factory=list)

    def record(self, tick: TickResult) -> None:
        """Append one tick."""
        self.ticks.append(tick)

    @property
    def station_events(self) -> list[StationEvent]:
        """Every station reached, in crossing order."""
        return [event for tick in self.ticks for event in tick.station_events]

    @property
    def time(self) -> NDArray[np.float64]:
        """Time array [s]."""
        return np.array([t.time for t in self.ticks], dtype=np.float64)

    @property
    def position(self) -> NDArray[np.float64]:
        """Position history [m]."""
        return np.array([t.position for t in self.ticks], dtype=np.float64)

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Velocity history [m/s]."""
        return np.array([t.velocity for t in self.ticks], dtype=np.float64)

    @property
    def acceleration(self) -> NDArray[np.float64]:
        """Acceleration history [m/s^2]."""
        return np.array([t.acceleration for t in self.ticks], dtype=np.float64)

    def to_dataframe(self) -> pl.DataFrame:
        """Convert the tick history to a Polars DataFrame."""
        return pl.DataFrame({
            "time": self.time,
            "position": self.position,
            "velocity": self.velocity,
            "acceleration": self.acceleration,
            "from_sensor": [t.from_sensor for t in self.ticks],
        })

    def stations_dataframe(self) -> pl.DataFrame:
        """Convert the station log to a Polars DataFrame."""
        events = self.station_events
        return pl.DataFrame(
            {
                "station_index": [e.station_index for e in events],
                "station_name": [e.station_name for e in events],
                "position": [e.position for e in events],
                "arrival_time": [e.arrival_time for e in events],
                "velocity": [e.velocity_at_crossing for e in events],
            },
            schema={
                "station_index": pl.Int64,
                "station_name": pl.Utf8,
                "position": pl.Float64,
                "arrival_time": pl.Float64,
                "velocity": pl.Float64,
            },
        )
