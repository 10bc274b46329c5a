"""Fixed-step kinematic integrator with station-crossing detection.

Advances position and velocity under constant acceleration:

    x' = x + v*dt + 0.5*a*dt^2
    v' = v + a*dt

then clamps velocity to +/- max_velocity (sign preserved). A crossing of
the next station is detected when ``x < station <= x'`` and the arrival
time is linearly interpolated inside the step, from the pre-step time.

Known limitation: at most one station is recorded per step, and only the
next unreached one. This is exact as long as ``velocity * dt <=
station_spacing``. A larger step can jump over a station entirely; that
station is never recorded and the run keeps waiting on it.

Example:
    >>> from trainsim.track import TrackConfig
    >>> from trainsim.dynamics import SimulationState
    >>> from trainsim.simulation import KinematicIntegrator
    >>>
    >>> state = SimulationState.initial(TrackConfig(num_stations=2, station_spacing=100.0))
    >>> state.is_running = True
    >>> integrator = KinematicIntegrator()
    >>> while not state.is_finished:
    ...     tick = integrator.step(state)
"""

import structlog
from beartype import beartype
from numba import njit

from trainsim.dynamics.state import SimulationState, TickResult

logger = structlog.get_logger(__name__)

# =============================================================================
# Numba-Optimized Kernels
# =============================================================================


@njit(cache=True)
def _euler_step_core(
    position: float,
    velocity: float,
    acceleration: float,
    max_velocity: float,
    dt: float,
) -> tuple[float, float]:
    """Constant-acceleration position/velocity update with velocity clamp."""
    new_position = position + velocity * dt + 0.5 * acceleration * dt * dt
    new_velocity = velocity + acceleration * dt

    if new_velocity > max_velocity:
        new_velocity = max_velocity
    elif new_velocity < -max_velocity:
        new_velocity = -max_velocity

    return new_position, new_velocity


@njit(cache=True)
def _crossing_ratio(prev_position: float, new_position: float, station_position: float) -> float:
    """Fraction of the step at which ``station_position`` is crossed.

    Returns -1.0 when the step does not cross the station.
    """
    if prev_position < station_position <= new_position:
        return (station_position - prev_position) / (new_position - prev_position)
    return -1.0


# =============================================================================
# Integrator
# =============================================================================


@beartype
class KinematicIntegrator:
    """Advances a SimulationState by its track's fixed time step.

    Stateless apart from configuration: all run data lives in the
    SimulationState passed to ``step``.
    """

    def step(self, state: SimulationState) -> TickResult | None:
        """Advance ``state`` by exactly one time step.

        Returns:
            TickResult for the step, or None (and no mutation) when the
            state is paused or finished
        """
        if not state.is_running or state.is_finished:
            return None

        dt = state.track.time_step
        prev_time = state.time
        prev_position = state.position
        prev_velocity = state.velocity

        new_position, new_velocity = _euler_step_core(
            state.position,
            state.velocity,
            state.acceleration,
            state.track.max_velocity,
            dt,
        )
        state.position = new_position
        state.velocity = new_velocity
        state.time = prev_time + dt

        events = ()
        station_position = state.next_station_position
        if station_position is not None:
            ratio = _crossing_ratio(prev_position, new_position, station_position)
            if ratio >= 0.0:
                crossing_time = prev_time + ratio * dt
                crossing_velocity = prev_velocity + ratio * (new_velocity - prev_velocity)
                event = state.record_arrival(crossing_time, crossing_velocity)
                events = (event,)
                logger.info(
                    "station_reached",
                    station_index=event.station_index,
                    station_name=event.station_name,
                    arrival_time=round(event.arrival_time, 4),
                    velocity=round(event.velocity_at_crossing, 4),
                )
                if state.is_finished:
                    logger.info("run_finished", time=round(state.time, 4))

        return TickResult.from_state(state, station_events=events)

    def set_acceleration(self, state: SimulationState, acceleration: float) -> float:
        """Set the acceleration for future steps, clamped to the track limits.

        Returns:
            The acceleration actually applied
        """
        state.acceleration = state.track.clamp_acceleration(acceleration)
        return state.acceleration
