"""trainsim - Kinematic state estimation for a single vehicle on a station line.

A vehicle moves along a straight track divided into evenly spaced stations.
Its state comes either from a constant-acceleration integrator or from a
trackside sensor feed; both paths share the same station-arrival log.

Example:
    >>> from trainsim import TrackConfig, SimulationState, KinematicIntegrator
    >>> from trainsim import ArrivalTimePredictor
    >>>
    >>> track = TrackConfig(num_stations=3, station_spacing=100.0, acceleration=2.0)
    >>> state = SimulationState.initial(track)
    >>> state.is_running = True
    >>>
    >>> predictions = ArrivalTimePredictor().predict_arrival_times(state)
    >>> print(predictions[0].estimated_arrival_label)
    10.00s
    >>>
    >>> integrator = KinematicIntegrator()
    >>> while not state.is_finished:
    ...     integrator.step(state)
    >>> print(f"{state.stations_reached[0].arrival_time:.2f}")
    10.00
"""

__version__ = "0.1.0"

# Configuration and errors
from trainsim.exceptions import TrainSimError, ValidationError
from trainsim.track import TrackConfig

# State
from trainsim.dynamics import SimulationState, StationEvent, TickResult

# Simulation
from trainsim.simulation import (
    ArrivalPrediction,
    ArrivalTimePredictor,
    KinematicIntegrator,
    RunController,
    RunMode,
    SensorSource,
    SimulatedSource,
    SimulationResult,
    StateSource,
)

# Sensor feed
from trainsim.sensor import (
    ReadingType,
    SensorLineParser,
    SensorReading,
    StateReconciler,
)

__all__ = [
    "__version__",
    # Configuration and errors
    "TrackConfig",
    "TrainSimError",
    "ValidationError",
    # State
    "SimulationState",
    "StationEvent",
    "TickResult",
    # Simulation
    "KinematicIntegrator",
    "ArrivalTimePredictor",
    "ArrivalPrediction",
    "SimulationResult",
    "RunController",
    "RunMode",
    "StateSource",
    "SimulatedSource",
    "SensorSource",
    # Sensor feed
    "SensorLineParser",
    "SensorReading",
    "ReadingType",
    "StateReconciler",
]
