"""Analytic arrival-time prediction for the remaining stations.

For each station not yet reached, solves

    0.5*a*t^2 + v*t + (x - station) = 0

for the first strictly positive ``t`` from the current state, without
stepping the simulation forward. Stations that cannot be reached under the
current acceleration (no real root, no positive root, or zero acceleration
with non-positive velocity) are reported as unreachable.

The prediction ignores the velocity clamp: it assumes the current
acceleration holds until the station is reached.

Example:
    >>> from trainsim.simulation import ArrivalTimePredictor
    >>>
    >>> predictor = ArrivalTimePredictor()
    >>> for p in predictor.predict_arrival_times(state):
    ...     print(p.station_name, p.estimated_arrival_label)
"""

import math
from dataclasses import dataclass
from typing import Any

from beartype import beartype
from numba import njit

from trainsim.dynamics.state import SimulationState

# |a| below this is treated as uniform motion
ZERO_ACCELERATION_TOLERANCE: float = 1e-10

UNREACHABLE_LABEL: str = "unreachable"

# =============================================================================
# Numba-Optimized Root Finding
# =============================================================================


@njit(cache=True)
def _time_to_reach(
    position: float,
    velocity: float,
    acceleration: float,
    target: float,
    zero_tol: float,
) -> float:
    """First strictly positive time to reach ``target``.

    Returns -1.0 when the target is never reached.
    """
    if abs(acceleration) < zero_tol:
        if velocity > 0.0:
            t = (target - position) / velocity
            if t > 0.0:
                return t
        return -1.0

    qa = 0.5 * acceleration
    qb = velocity
    qc = position - target

    discriminant = qb * qb - 4.0 * qa * qc
    if discriminant < 0.0:
        return -1.0

    sqrt_disc = math.sqrt(discriminant)
    t1 = (-qb + sqrt_disc) / (2.0 * qa)
    t2 = (-qb - sqrt_disc) / (2.0 * qa)

    best = -1.0
    if t1 > 0.0:
        best = t1
    if t2 > 0.0 and (best < 0.0 or t2 < best):
        best = t2
    return best


@beartype
def time_to_reach(position: float, velocity: float, acceleration: float, target: float) -> float | None:
    """Time from now until ``target`` is first reached, None if never [s]."""
    t = _time_to_reach(
        float(position), float(velocity), float(acceleration), float(target),
        ZERO_ACCELERATION_TOLERANCE,
    )
    return t if t > 0.0 else None


# =============================================================================
# Predictions
# =============================================================================


@beartype
@dataclass(frozen=True)
class ArrivalPrediction:
    """Predicted arrival at one station.

    Attributes:
        station_index: 0-based station index
        station_name: Station display name
        position: Station distance from origin [m]
        predicted_arrival_time: Absolute simulation time of arrival [s],
            None if unreachable
    """
    station_index: int
    station_name: str
    position: float
    predicted_arrival_time: float | None

    @property
    def reachable(self) -> bool:
        """Whether the station is reached under the current acceleration."""
        return self.predicted_arrival_time is not None

    @property
    def estimated_arrival_label(self) -> str:
        """Human-readable arrival time, e.g. ``'12.34s'``."""
        if self.predicted_arrival_time is None:
            return UNREACHABLE_LABEL
        return f"{self.predicted_arrival_time:.2f}s"

    def to_payload(self) -> dict[str, Any]:
        """Transport representation."""
        return {
            "stationIndex": self.station_index,
            "stationName": self.station_name,
            "position": self.position,
            "predictedArrivalTime": self.predicted_arrival_time,
            "estimatedArrivalTime": self.estimated_arrival_label,
            "reachable": self.reachable,
        }


@beartype
class ArrivalTimePredictor:
    """Pure function of state: predicts arrival times for unreached stations."""

    def predict(self, state: SimulationState, station_index: int) -> ArrivalPrediction:
        """Predict the arrival at a single station."""
        target = float(state.track.station_position(station_index))
        dt_to_station = time_to_reach(state.position, state.velocity, state.acceleration, target)

        return ArrivalPrediction(
            station_index=station_index,
            station_name=state.track.station_name(station_index),
            position=target,
            predicted_arrival_time=state.time + dt_to_station if dt_to_station is not None else None,
        )

    def predict_arrival_times(self, state: SimulationState) -> list[ArrivalPrediction]:
        """Predictions for every station from the current index onward, in order."""
        return [
            self.predict(state, i)
            for i in range(state.current_station_index, state.track.num_stations)
        ]
