"""Track configuration for a single-vehicle, one-dimensional line.

The track is a straight line starting at the origin with evenly spaced
stations. Station ``i`` (0-based) sits at ``(i + 1) * station_spacing``, so
the vehicle always starts one full leg before the first station.

Example:
    >>> from trainsim.track import TrackConfig
    >>>
    >>> track = TrackConfig(num_stations=3, station_spacing=500.0)
    >>> track.station_position(2)
    1500.0
    >>> track.station_names
    ('Station 1', 'Station 2', 'Station 3')
    >>>
    >>> # Loosely typed client payload (as sent over the wire)
    >>> track = TrackConfig.from_params({"numStations": 4, "timeStep": 0.1})
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from beartype import BeartypeConf, beartype

from trainsim.exceptions import ValidationError

# =============================================================================
# Limits
# =============================================================================

MAX_STATIONS: int = 20
MAX_TIME_STEP: float = 1.0  # [s]
MAX_COMMANDED_ACCELERATION: float = 20.0  # |a| accepted at the command surface [m/s^2]
MAX_INITIAL_VELOCITY: float = 150.0  # [m/s]

_FLOAT_FIELDS: tuple[str, ...] = (
    "station_spacing",
    "time_step",
    "initial_velocity",
    "acceleration",
    "max_velocity",
    "max_acceleration",
    "min_acceleration",
)

# Client payload keys -> TrackConfig fields
_PARAM_ALIASES: dict[str, str] = {
    "numStations": "num_stations",
    "stationDistance": "station_spacing",
    "stationSpacing": "station_spacing",
    "stationNames": "station_names",
    "timeStep": "time_step",
    "initialVelocity": "initial_velocity",
    "maxVelocity": "max_velocity",
    "maxAcceleration": "max_acceleration",
    "minAcceleration": "min_acceleration",
}


def default_station_name(index: int) -> str:
    """Default display name for a 0-based station index."""
    return f"Station {index + 1}"


@beartype
def normalize_station_names(names: Sequence[str] | None, num_stations: int) -> tuple[str, ...]:
    """Pad with default names or truncate so exactly ``num_stations`` remain."""
    given = list(names or [])[:num_stations]
    for i in range(len(given), num_stations):
        given.append(default_station_name(i))
    return tuple(given)


# =============================================================================
# Track Configuration
# =============================================================================


@beartype(conf=BeartypeConf(is_pep484_tower=True))
@dataclass(frozen=True)
class TrackConfig:
    """Immutable per-run track and vehicle limits.

    Integer values are accepted for the float fields and stored as floats.

    Attributes:
        num_stations: Number of stations on the line (1..20)
        station_spacing: Distance between consecutive stations [m]
        station_names: Display names, one per station
        time_step: Integration step and driver tick interval [s]
        initial_velocity: Velocity at t=0 [m/s]
        acceleration: Initial commanded acceleration [m/s^2]
        max_velocity: Velocity magnitude limit [m/s]
        max_acceleration: Upper acceleration clamp [m/s^2]
        min_acceleration: Lower acceleration clamp [m/s^2]
    """
    num_stations: int = 5
    station_spacing: float = 1000.0
    station_names: tuple[str, ...] = field(default=())
    time_step: float = 0.05
    initial_velocity: float = 0.0
    acceleration: float = 1.0
    max_velocity: float = 100.0
    max_acceleration: float = 10.0
    min_acceleration: float = -10.0

    def __post_init__(self) -> None:
        """Validate bounds and normalize float fields and station names."""
        for name in _FLOAT_FIELDS:
            try:
                value = float(getattr(self, name))
            except OverflowError as err:
                raise ValidationError(f"{name} must be a finite number") from err
            if not math.isfinite(value):
                raise ValidationError(f"{name} must be a finite number")
            object.__setattr__(self, name, value)
        if not 1 <= self.num_stations <= MAX_STATIONS:
            raise ValidationError(f"Number of stations must be between 1 and {MAX_STATIONS}")
        if self.station_spacing <= 0:
            raise ValidationError("Station spacing must be positive")
        if not 0 < self.time_step <= MAX_TIME_STEP:
            raise ValidationError(f"Time step must be in (0, {MAX_TIME_STEP}] seconds")
        if abs(self.acceleration) > MAX_COMMANDED_ACCELERATION:
            raise ValidationError(
                f"Acceleration must be between {-MAX_COMMANDED_ACCELERATION} "
                f"and {MAX_COMMANDED_ACCELERATION} m/s^2"
            )
        if abs(self.initial_velocity) > MAX_INITIAL_VELOCITY:
            raise ValidationError(
                f"Initial velocity must be between {-MAX_INITIAL_VELOCITY} "
                f"and {MAX_INITIAL_VELOCITY} m/s"
            )
        if self.max_velocity <= 0:
            raise ValidationError("Maximum velocity must be positive")
        if self.min_acceleration > self.max_acceleration:
            raise ValidationError("Minimum acceleration must not exceed maximum acceleration")

        # Frozen dataclass: bypass __setattr__ for the derived field
        object.__setattr__(
            self,
            "station_names",
            normalize_station_names(self.station_names, self.num_stations),
        )

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> "TrackConfig":
        """Build a config from a loosely typed command payload.

        Accepts camelCase client keys or field names, applies defaults for
        anything missing, and coerces numeric strings.

        Raises:
            ValidationError: If a value is not numeric or violates a bound
        """
        kwargs: dict[str, Any] = {}
        for key, value in (params or {}).items():
            name = _PARAM_ALIASES.get(key, key)
            if name not in _FIELD_COERCERS or value is None:
                continue
            try:
                kwargs[name] = _FIELD_COERCERS[name](value)
            except (TypeError, ValueError, OverflowError) as err:
                raise ValidationError(f"Invalid value for {key}: {value!r}") from err
        return cls(**kwargs)

    def station_position(self, index: int) -> float:
        """Distance of station ``index`` from the origin [m]."""
        return (index + 1) * self.station_spacing

    def station_name(self, index: int) -> str:
        """Display name of station ``index``."""
        if 0 <= index < len(self.station_names):
            return self.station_names[index]
        return default_station_name(index)

    def clamp_acceleration(self, acceleration: float) -> float:
        """Clamp an acceleration into [min_acceleration, max_acceleration]."""
        return max(self.min_acceleration, min(self.max_acceleration, float(acceleration)))

    def with_station_names(self, names: Sequence[Any]) -> "TrackConfig":
        """Return a copy with new station names.

        Extra names are dropped.

        Raises:
            ValidationError: If fewer names than stations are given
        """
        if isinstance(names, str) or len(names) < self.num_stations:
            raise ValidationError(f"Expected at least {self.num_stations} station names")
        if not all(isinstance(name, str) for name in names):
            raise ValidationError("Station names must be strings")
        return replace(self, station_names=tuple(names[: self.num_stations]))


def _coerce_int(value: Any) -> int:
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"{value!r} is not a whole number")
    return int(number)


def _coerce_names(value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise TypeError("station names must be a list")
    return tuple(str(name) for name in value)


_FIELD_COERCERS: dict[str, Any] = {
    "num_stations": _coerce_int,
    "station_spacing": float,
    "station_names": _coerce_names,
    "time_step": float,
    "initial_velocity": float,
    "acceleration": float,
    "max_velocity": float,
    "max_acceleration": float,
    "min_acceleration": float,
}
