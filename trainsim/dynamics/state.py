"""Kinematic state of a single vehicle on a one-dimensional track.

The state holds:
- Time [s], position along the track [m], velocity [m/s], acceleration [m/s^2]
- Index of the next station not yet reached
- Append-only log of station arrivals, in crossing order
- Run flags (running / finished)

Invariants maintained by every writer (integrator and sensor reconciler):
- ``current_station_index == len(stations_reached)``
- station indices in the log are 0, 1, 2, ... in order
- once ``is_finished`` is set, nothing mutates the state again

Payload methods (``to_payload``) produce the camelCase dictionaries that
the transport layer fans out to subscribers.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from beartype import beartype

from trainsim.track import TrackConfig

# =============================================================================
# Station Event
# =============================================================================


@beartype
@dataclass(frozen=True)
class StationEvent:
    """A recorded station arrival.

    Attributes:
        station_index: 0-based station index
        station_name: Display name at the time of arrival
        position: Fixed distance of the station from the origin [m]
        arrival_time: Simulation time of the crossing [s]
        velocity_at_crossing: Velocity at the crossing [m/s]
    """
    station_index: int
    station_name: str
    position: float
    arrival_time: float
    velocity_at_crossing: float

    def to_payload(self) -> dict[str, Any]:
        """Transport representation."""
        return {
            "stationIndex": self.station_index,
            "stationName": self.station_name,
            "position": self.position,
            "arrivalTime": self.arrival_time,
            "velocity": self.velocity_at_crossing,
        }


# =============================================================================
# Simulation State
# =============================================================================


@beartype
@dataclass
class SimulationState:
    """Mutable, single-owner run state.

    Created fresh for every run and discarded when the run stops or
    completes.

    Attributes:
        track: Track configuration for this run
        time: Simulation time [s]
        position: Distance along the track [m]
        velocity: Velocity [m/s]
        acceleration: Commanded acceleration [m/s^2]
        current_station_index: Next station not yet reached
        stations_reached: Arrival log, one entry per reached station
        is_running: Whether the active driver should advance the state
        is_finished: Terminal flag, set when the last station is reached
    """
    track: TrackConfig
    time: float = 0.0
    position: float = 0.0
    velocity: float = 0.0
    acceleration: float = 0.0
    current_station_index: int = 0
    stations_reached: list[StationEvent] = field(default_factory=list)
    is_running: bool = False
    is_finished: bool = False

    @classmethod
    def initial(cls, track: TrackConfig) -> "SimulationState":
        """Create the t=0 state for a track, with clamped acceleration."""
        return cls(
            track=track,
            velocity=track.initial_velocity,
            acceleration=track.clamp_acceleration(track.acceleration),
        )

    def copy(self) -> "SimulationState":
        """Create a copy that shares no mutable containers."""
        return replace(self, stations_reached=list(self.stations_reached))

    @property
    def num_stations(self) -> int:
        """Total stations on the track."""
        return self.track.num_stations

    @property
    def next_station_position(self) -> float | None:
        """Position of the next unreached station, None when all are reached."""
        if self.current_station_index >= self.track.num_stations:
            return None
        return self.track.station_position(self.current_station_index)

    @property
    def next_station_name(self) -> str | None:
        """Name of the next unreached station, None when all are reached."""
        if self.current_station_index >= self.track.num_stations:
            return None
        return self.track.station_name(self.current_station_index)

    @property
    def is_active(self) -> bool:
        """Whether a driver may mutate this state."""
        return self.is_running and not self.is_finished

    def record_arrival(self, arrival_time: float, velocity: float) -> StationEvent:
        """Append an arrival for the current station and advance to the next.

        Sets ``is_finished`` when the last station has been reached.
        """
        index = self.current_station_index
        event = StationEvent(
            station_index=index,
            station_name=self.track.station_name(index),
            position=float(self.track.station_position(index)),
            arrival_time=float(arrival_time),
            velocity_at_crossing=float(velocity),
        )
        self.stations_reached.append(event)
        self.current_station_index += 1

        if self.current_station_index >= self.track.num_stations:
            self.is_finished = True

        return event

    def to_payload(self) -> dict[str, Any]:
        """Full snapshot for the transport layer."""
        next_position = self.next_station_position
        return {
            "time": self.time,
            "position": self.position,
            "velocity": self.velocity,
            "acceleration": self.acceleration,
            "currentStation": self.current_station_index,
            "stationsReached": [event.to_payload() for event in self.stations_reached],
            "isRunning": self.is_running,
            "isFinished": self.is_finished,
            "totalStations": self.track.num_stations,
            "stationNames": list(self.track.station_names),
            "nextStationDistance": next_position - self.position if next_position is not None else 0.0,
            "nextStationName": self.next_station_name,
        }


# =============================================================================
# Tick Result
# =============================================================================


@beartype
@dataclass(frozen=True)
class TickResult:
    """Outcome of one driver tick (integrator step or sensor reading).

    Attributes:
        time: Simulation time after the tick [s]
        position: Position after the tick [m]
        velocity: Velocity after the tick [m/s]
        acceleration: Acceleration in effect [m/s^2]
        is_finished: Whether the run is finished after this tick
        station_events: Stations reached during this tick, in order
        from_sensor: Whether the tick came from live sensor data
    """
    time: float
    position: float
    velocity: float
    acceleration: float
    is_finished: bool
    station_events: tuple[StationEvent, ...] = ()
    from_sensor: bool = False

    @classmethod
    def from_state(
        cls,
        state: SimulationState,
        station_events: tuple[StationEvent, ...] = (),
        from_sensor: bool = False,
    ) -> "TickResult":
        """Capture the current state after a tick."""
        return cls(
            time=float(state.time),
            position=float(state.position),
            velocity=float(state.velocity),
            acceleration=float(state.acceleration),
            is_finished=state.is_finished,
            station_events=station_events,
            from_sensor=from_sensor,
        )

    @property
    def station_event(self) -> StationEvent | None:
        """Most recent station reached during this tick, if any."""
        return self.station_events[-1] if self.station_events else None

    def to_payload(self) -> dict[str, Any]:
        """Continuous tick payload for the transport layer."""
        event = self.station_event
        return {
            "time": self.time,
            "position": self.position,
            "velocity": self.velocity,
            "acceleration": self.acceleration,
            "isFinished": self.is_finished,
            "stationEvent": event.to_payload() if event is not None else None,
            "stationEvents": [e.to_payload() for e in self.station_events],
            "fromSensor": self.from_sensor,
        }
