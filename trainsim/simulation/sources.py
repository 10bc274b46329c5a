"""State sources: the two ways a run's state can be advanced.

Both implement ``advance(state) -> TickResult | None``; the controller picks
one per run from the run mode and never mixes them.

- SimulatedSource: one fixed time step of the kinematic integrator per call.
- SensorSource: one queued sensor line per call, parsed and reconciled.
"""

from collections import deque
from enum import Enum
from typing import Protocol, runtime_checkable

from beartype import beartype

from trainsim.dynamics.state import SimulationState, TickResult
from trainsim.sensor.parser import SensorLineParser
from trainsim.sensor.reconciler import StateReconciler
from trainsim.simulation.integrator import KinematicIntegrator


class RunMode(Enum):
    """Where a run's state comes from."""

    SIMULATED = "simulated"
    SENSOR = "sensor"


@runtime_checkable
class StateSource(Protocol):
    """Capability shared by every state source."""

    def advance(self, state: SimulationState) -> TickResult | None:
        """Advance the state by one tick; None when nothing changed."""
        ...


@beartype
class SimulatedSource:
    """Closed-form physics, one integrator step per tick."""

    mode = RunMode.SIMULATED

    def __init__(self, integrator: KinematicIntegrator | None = None) -> None:
        self.integrator = integrator or KinematicIntegrator()

    def advance(self, state: SimulationState) -> TickResult | None:
        return self.integrator.step(state)


@beartype
class SensorSource:
    """Live sensor feed, one line per tick.

    Lines are queued by the channel owner and consumed strictly in arrival
    order; every queued line goes through the parser, even while the run is
    paused, so multi-line reports stay in sync.
    """

    mode = RunMode.SENSOR

    def __init__(
        self,
        parser: SensorLineParser,
        reconciler: StateReconciler | None = None,
    ) -> None:
        self.parser = parser
        self.reconciler = reconciler or StateReconciler()
        self._lines: deque[str] = deque()

    @property
    def has_pending(self) -> bool:
        """Whether queued lines remain."""
        return bool(self._lines)

    def push_line(self, line: str) -> None:
        """Queue a raw line from the sensor channel."""
        self._lines.append(line)

    def advance(self, state: SimulationState) -> TickResult | None:
        if not self._lines:
            return None
        reading = self.parser.parse_line(self._lines.popleft())
        if reading is None:
            return None
        return self.reconciler.reconcile(state, reading)
