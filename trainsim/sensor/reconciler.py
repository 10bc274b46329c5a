"""Fold live sensor readings into the shared station-tracking state.

The sensor is treated as ground truth: time, position, velocity and
acceleration are overwritten from each reading with no smoothing. Station
arrivals are then derived from position with the same log and finish rules
as the integrator.

Unlike the integrator, one reading may record several stations. Sensor
readings arrive at irregular, device-controlled intervals, so a reading
that jumps past several stations catches up on all of them.
"""

from dataclasses import dataclass

import structlog
from beartype import beartype

from trainsim.dynamics.state import SimulationState, StationEvent, TickResult
from trainsim.sensor.parser import SensorReading

logger = structlog.get_logger(__name__)


@beartype
@dataclass
class StateReconciler:
    """Applies SensorReadings to a SimulationState.

    Attributes:
        require_running: Ignore readings while the run is paused
    """
    require_running: bool = True

    def reconcile(self, state: SimulationState, reading: SensorReading) -> TickResult | None:
        """Apply one reading.

        Returns:
            TickResult for the reading, or None (and no mutation) when the
            state is finished or, with ``require_running``, paused
        """
        if state.is_finished or (self.require_running and not state.is_running):
            return None

        state.time = float(reading.time)
        state.position = float(reading.position)
        state.velocity = float(reading.velocity)
        state.acceleration = float(reading.acceleration)

        events: list[StationEvent] = []
        while not state.is_finished:
            station_position = state.next_station_position
            if station_position is None or state.position < station_position:
                break
            event = state.record_arrival(state.time, state.velocity)
            events.append(event)
            logger.info(
                "station_reached",
                station_index=event.station_index,
                station_name=event.station_name,
                arrival_time=round(event.arrival_time, 4),
                source="sensor",
            )

        if state.is_finished and events:
            logger.info("run_finished", time=round(state.time, 4), source="sensor")

        return TickResult.from_state(state, station_events=tuple(events), from_sensor=True)
