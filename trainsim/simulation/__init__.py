"""Simulation module: integration, prediction, and run control.

Provides the fixed-step integrator, the analytic arrival predictor, the two
state sources (simulated and sensor-fed), and the controller that runs
exactly one of them at a time.

Example:
    >>> from trainsim.simulation import RunController
    >>>
    >>> controller = RunController(publish=broadcast, drive_timer=False)
    >>> controller.start({"numStations": 3, "stationDistance": 100})
    >>> while controller.state is not None:
    ...     controller.tick()
"""

from trainsim.simulation.controller import RunController, make_envelope
from trainsim.simulation.integrator import KinematicIntegrator
from trainsim.simulation.prediction import (
    ArrivalPrediction,
    ArrivalTimePredictor,
    time_to_reach,
)
from trainsim.simulation.results import SimulationResult
from trainsim.simulation.sources import (
    RunMode,
    SensorSource,
    SimulatedSource,
    StateSource,
)

__all__ = [
    # Integration
    "KinematicIntegrator",
    # Prediction
    "ArrivalPrediction",
    "ArrivalTimePredictor",
    "time_to_reach",
    # Results
    "SimulationResult",
    # Sources
    "RunMode",
    "StateSource",
    "SimulatedSource",
    "SensorSource",
    # Control
    "RunController",
    "make_envelope",
]
