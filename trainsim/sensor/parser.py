"""Line parser for the trackside sensor feed.

The sensor device prints a loosely structured, newline-delimited stream.
Each line is classified in priority order (first match wins):

1. Structured record: a JSON object. With a ``station`` key it is a
   one-shot arrival; without it, a continuous tick.
2. Informational notice ("Tren detectado", "Detección ignorada", ...):
   logged, no event.
3. Multi-line lap report, e.g.::

       Vuelta número: 3
       Tiempo de vuelta: 2.41 s
       -------------------

   composed into one arrival when the separator line arrives.
4. Generic ``key:value`` pairs, comma separated
   (``time:5.0,velocity:1.2,distance:3.3``).

Anything else produces no event. The device firmware prints Spanish
labels; the English equivalents are accepted as well.

Lap-report assembly is an explicit state machine::

    IDLE --station N (N != last emitted)--> STATION_PENDING(N)
    STATION_PENDING(N) --lap time T--> TIME_READY(N, T)
    TIME_READY(N, T) --separator--> emit arrival, IDLE
    any other state --separator--> IDLE (nothing emitted)

A station index equal to the last emitted one is ignored until a different
index has been reported, so a report repeated by the device yields one
event.

Example:
    >>> parser = SensorLineParser(station_spacing=3.33)
    >>> parser.parse_line("Vuelta número: 1")
    >>> parser.parse_line("Tiempo de vuelta: 2.5 s")
    >>> reading = parser.parse_line("-------------------")
    >>> reading.event_type
    <ReadingType.ARRIVAL: 'arrival'>
"""

import json
import math
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

import structlog
from beartype import beartype

from trainsim.exceptions import ValidationError

logger = structlog.get_logger(__name__)

# =============================================================================
# Line Shapes
# =============================================================================

# Spacing of the physical bench track [m]
DEFAULT_SENSOR_SPACING: float = 3.33

INFO_MARKERS: tuple[str, ...] = (
    "Tren detectado",
    "vuelta completada",
    "Train detected",
    "lap completed",
)
IGNORED_DETECTION_MARKERS: tuple[str, ...] = (
    "Detección ignorada",
    "Detection ignored",
)

STATION_LINE = re.compile(r"(?:Vuelta n[úu]mero|Lap number):\s*(\d+)")
TRAVEL_TIME_LINE = re.compile(r"(?:Tiempo de vuelta|Lap time):\s*([\d.]+)\s*s")
SEPARATOR = "-" * 19

# key:value aliases -> canonical field
KEY_ALIASES: dict[str, str] = {
    "time": "time",
    "t": "time",
    "velocity": "velocity",
    "vel": "velocity",
    "v": "velocity",
    "acceleration": "acceleration",
    "acc": "acceleration",
    "a": "acceleration",
    "distance": "distance",
    "dist": "distance",
    "d": "distance",
}


class ReadingType(Enum):
    """Discriminator for emitted sensor readings."""

    ARRIVAL = "arrival"  # One-shot station arrival
    TICK = "tick"        # Continuous update (untagged on the wire)


# =============================================================================
# Sensor Reading
# =============================================================================


@beartype
@dataclass(frozen=True)
class SensorReading:
    """A normalized kinematic event decoded from the sensor feed.

    Attributes:
        event_type: Arrival or continuous tick
        time: Reported time [s] (leg travel time for arrivals)
        velocity: Reported or derived velocity [m/s]
        acceleration: Reported or derived acceleration [m/s^2]
        distance: Reported distance [m] (leg distance for arrivals)
        station: Station number as reported by the device (arrivals only)
        total_distance: Distance from origin at arrival [m] (arrivals only)
        arrival_wallclock_ms: Host wall clock at decode time [ms] (arrivals only)
        departure_wallclock_ms: Estimated leg start, for display only [ms]
    """
    event_type: ReadingType
    time: float = 0.0
    velocity: float = 0.0
    acceleration: float = 0.0
    distance: float = 0.0
    station: int | None = None
    total_distance: float | None = None
    arrival_wallclock_ms: float | None = None
    departure_wallclock_ms: float | None = None

    @property
    def is_arrival(self) -> bool:
        """Whether this is a one-shot station arrival."""
        return self.event_type is ReadingType.ARRIVAL

    @property
    def position(self) -> float:
        """Distance from the origin implied by this reading [m]."""
        if self.total_distance is not None:
            return self.total_distance
        return self.distance

    def to_payload(self) -> dict[str, Any]:
        """Transport representation; ticks carry no ``eventType``."""
        payload: dict[str, Any] = {
            "time": self.time,
            "velocity": self.velocity,
            "acceleration": self.acceleration,
            "distance": self.distance,
        }
        if self.is_arrival:
            payload.update({
                "eventType": ReadingType.ARRIVAL.value,
                "station": self.station,
                "stationIndex": self.station,
                "totalDistance": self.total_distance,
                "travelTime": self.time,
                "arrivalTime": self.arrival_wallclock_ms,
                "departureTime": self.departure_wallclock_ms,
                "stationReached": True,
            })
        return payload


# =============================================================================
# Lap Report State Machine
# =============================================================================


class LapReportPhase(Enum):
    """Progress of a multi-line lap report."""

    IDLE = "idle"
    STATION_PENDING = "station_pending"
    TIME_READY = "time_ready"


@dataclass(frozen=True)
class LapReportState:
    """Tagged lap-report state; index/time are set only in the phases that carry them."""
    phase: LapReportPhase = LapReportPhase.IDLE
    station: int | None = None
    travel_time: float | None = None

    @classmethod
    def idle(cls) -> "LapReportState":
        return cls()

    @classmethod
    def station_pending(cls, station: int) -> "LapReportState":
        return cls(LapReportPhase.STATION_PENDING, station)

    @classmethod
    def time_ready(cls, station: int, travel_time: float) -> "LapReportState":
        return cls(LapReportPhase.TIME_READY, station, travel_time)


# =============================================================================
# Parser
# =============================================================================


@beartype
class SensorLineParser:
    """Stateful classifier for one sensor connection.

    Lines must be fed strictly in arrival order. Each instance owns its own
    lap-report state, so independent runs use independent parsers.

    Attributes:
        station_spacing: Known distance between stations [m]
        report: Current lap-report state
        last_emitted_station: Station number of the last lap report emitted
        latest: Last-known reading, used to fill missing fields
    """

    def __init__(
        self,
        station_spacing: float = DEFAULT_SENSOR_SPACING,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            station_spacing: Known distance between stations [m]
            clock: Wall clock in seconds, used for display timestamps
        """
        if station_spacing <= 0:
            raise ValidationError("station_spacing must be positive")
        self.station_spacing = station_spacing
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        """Forget any partial report and all last-known values."""
        self.report = LapReportState.idle()
        self.last_emitted_station: int | None = None
        self.latest = SensorReading(event_type=ReadingType.TICK)

    def parse_line(self, line: str) -> SensorReading | None:
        """Classify one raw line and return the event it completes, if any."""
        line = line.strip()
        if not line:
            return None

        reading = self._classify(line)
        if reading is not None:
            self.latest = reading
        return reading

    def _classify(self, line: str) -> SensorReading | None:
        if line.startswith("{"):
            record = _load_json_object(line)
            if record is not None:
                return self._parse_record(record, line)

        if any(marker in line for marker in INFO_MARKERS):
            logger.info("device_notice", line=line)
            return None

        if any(marker in line for marker in IGNORED_DETECTION_MARKERS):
            logger.warning("device_detection_ignored", line=line)
            return None

        if self._is_lap_report_line(line):
            return self._advance_lap_report(line)

        reading = self._parse_key_values(line)
        if reading is None:
            logger.debug("unrecognized_sensor_line", line=line)
        return reading

    # -------------------------------------------------------------------------
    # Structured records
    # -------------------------------------------------------------------------

    def _parse_record(self, record: dict[str, Any], line: str) -> SensorReading | None:
        if "station" not in record:
            fields = {
                "time": record.get("time"),
                "velocity": _first_present(record, "velocity", "vel"),
                "acceleration": _first_present(record, "acceleration", "acc"),
                "distance": _first_present(record, "distance", "dist"),
            }
            values = {k: v for k, v in ((k, _to_float(v)) for k, v in fields.items()) if v is not None}
            if not values:
                logger.debug("unrecognized_sensor_line", line=line)
                return None
            return self._tick(values)

        station = _to_int(record.get("station"))
        travel_time = _to_float(record.get("time"))
        if station is None or station < 0 or travel_time is None or travel_time <= 0:
            logger.debug("malformed_station_record", line=line)
            return None

        distance = _to_float(record.get("distance"))
        velocity = _to_float(record.get("velocity"))
        acceleration = _to_float(record.get("acceleration"))
        return self._arrival(
            station=station,
            travel_time=travel_time,
            distance=distance if distance is not None else self.station_spacing,
            velocity=velocity,
            acceleration=acceleration,
        )

    # -------------------------------------------------------------------------
    # Lap reports
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_lap_report_line(line: str) -> bool:
        return bool(
            STATION_LINE.search(line)
            or TRAVEL_TIME_LINE.search(line)
            or SEPARATOR in line
        )

    def _advance_lap_report(self, line: str) -> SensorReading | None:
        state = self.report

        match = STATION_LINE.search(line)
        if match:
            station = int(match.group(1))
            if state.phase is not LapReportPhase.IDLE:
                logger.debug("lap_station_ignored", station=station, pending=state.station)
            elif station == self.last_emitted_station:
                logger.debug("duplicate_lap_report_suppressed", station=station)
            else:
                self.report = LapReportState.station_pending(station)
                logger.debug("lap_station_announced", station=station)
            return None

        match = TRAVEL_TIME_LINE.search(line)
        if match:
            travel_time = _to_float(match.group(1))
            if travel_time is None:
                return None
            self.latest = replace(self.latest, time=travel_time)
            if state.phase is not LapReportPhase.IDLE:
                self.report = LapReportState.time_ready(state.station, travel_time)
            return None

        # Separator: the report is complete, emit at most once
        self.report = LapReportState.idle()
        if state.phase is not LapReportPhase.TIME_READY:
            if state.phase is LapReportPhase.STATION_PENDING:
                logger.debug("incomplete_lap_report_discarded", station=state.station)
            return None
        if state.station == self.last_emitted_station or not state.travel_time or state.travel_time <= 0:
            return None

        self.last_emitted_station = state.station
        spacing = self.station_spacing
        # Leg assumed to start from rest
        return self._arrival(
            station=state.station,
            travel_time=state.travel_time,
            distance=spacing,
            velocity=spacing / state.travel_time,
            acceleration=2.0 * spacing / state.travel_time**2,
        )

    # -------------------------------------------------------------------------
    # key:value lines
    # -------------------------------------------------------------------------

    def _parse_key_values(self, line: str) -> SensorReading | None:
        values: dict[str, float] = {}
        for pair in line.split(","):
            parts = pair.split(":")
            if len(parts) < 2:
                continue
            key = KEY_ALIASES.get(parts[0].strip().lower())
            value = _to_float(parts[1].strip())
            if key is None or value is None:
                continue
            values[key] = value

        if not values:
            return None
        return self._tick(values)

    # -------------------------------------------------------------------------
    # Event construction
    # -------------------------------------------------------------------------

    def _tick(self, values: dict[str, float]) -> SensorReading:
        """Continuous reading; missing fields hold their last-known value."""
        latest = self.latest
        return SensorReading(
            event_type=ReadingType.TICK,
            time=values.get("time", latest.time),
            velocity=values.get("velocity", latest.velocity),
            acceleration=values.get("acceleration", latest.acceleration),
            distance=values.get("distance", latest.distance),
        )

    def _arrival(
        self,
        station: int,
        travel_time: float,
        distance: float,
        velocity: float | None,
        acceleration: float | None,
    ) -> SensorReading:
        if velocity is None:
            velocity = distance / travel_time
        if acceleration is None:
            acceleration = 2.0 * distance / travel_time**2

        arrival_ms = self._clock() * 1000.0
        reading = SensorReading(
            event_type=ReadingType.ARRIVAL,
            time=travel_time,
            velocity=velocity,
            acceleration=acceleration,
            distance=distance,
            station=station,
            total_distance=station * self.station_spacing,
            arrival_wallclock_ms=arrival_ms,
            # Estimate only: the device reports elapsed time, not departure
            departure_wallclock_ms=arrival_ms - travel_time * 1000.0,
        )
        logger.info(
            "sensor_arrival",
            station=station,
            travel_time=round(travel_time, 4),
            distance=distance,
            velocity=round(velocity, 4),
            acceleration=round(acceleration, 4),
        )
        return reading


# =============================================================================
# Helpers
# =============================================================================


def _load_json_object(line: str) -> dict[str, Any] | None:
    try:
        value = json.loads(line)
    except ValueError:
        # Malformed JSON, or an integer literal past the conversion limit
        return None
    return value if isinstance(value, dict) else None


def _first_present(record: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def _to_float(value: Any) -> float | None:
    """Finite float or None; booleans and unparseable values are rejected."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)
