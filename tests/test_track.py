"""Tests for the track configuration."""

import pytest
from numpy.testing import assert_allclose

from trainsim.exceptions import TrainSimError, ValidationError
from trainsim.track import (
    MAX_STATIONS,
    TrackConfig,
    default_station_name,
    normalize_station_names,
)

# =============================================================================
# Construction
# =============================================================================


class TestTrackConfigDefaults:
    """Test default values and derived fields."""

    def test_defaults(self):
        """Default configuration values."""
        track = TrackConfig()

        assert track.num_stations == 5
        assert track.station_spacing == 1000.0
        assert track.time_step == 0.05
        assert track.initial_velocity == 0.0
        assert track.acceleration == 1.0
        assert track.max_velocity == 100.0
        assert track.max_acceleration == 10.0
        assert track.min_acceleration == -10.0

    def test_default_station_names(self):
        """Missing names are filled with 1-based defaults."""
        track = TrackConfig(num_stations=3)
        assert track.station_names == ("Station 1", "Station 2", "Station 3")

    def test_partial_names_are_padded(self):
        """Missing trailing names are filled with defaults."""
        track = TrackConfig(num_stations=3, station_names=("Depot",))
        assert track.station_names == ("Depot", "Station 2", "Station 3")

    def test_extra_names_are_truncated(self):
        """Names beyond the station count are dropped."""
        track = TrackConfig(num_stations=2, station_names=("A", "B", "C"))
        assert track.station_names == ("A", "B")

    def test_station_positions(self):
        """Station i sits one leg past station i-1, starting one leg from the origin."""
        track = TrackConfig(num_stations=4, station_spacing=250.0)
        positions = [track.station_position(i) for i in range(4)]
        assert_allclose(positions, [250.0, 500.0, 750.0, 1000.0])

    def test_station_name_out_of_range(self):
        """Out-of-range indices get a default name."""
        track = TrackConfig(num_stations=2)
        assert track.station_name(7) == default_station_name(7) == "Station 8"


class TestTrackConfigValidation:
    """Test bounds checking."""

    @pytest.mark.parametrize("num_stations", [0, MAX_STATIONS + 1])
    def test_station_count_bounds(self, num_stations):
        """Station count must be within 1..MAX_STATIONS."""
        with pytest.raises(ValidationError, match="Number of stations"):
            TrackConfig(num_stations=num_stations)

    def test_spacing_must_be_positive(self):
        """Station spacing must be positive."""
        with pytest.raises(ValidationError):
            TrackConfig(station_spacing=0.0)

    @pytest.mark.parametrize("time_step", [0.0, -0.1, 1.5])
    def test_time_step_bounds(self, time_step):
        """Time step must be within (0, 1]."""
        with pytest.raises(ValidationError, match="Time step"):
            TrackConfig(time_step=time_step)

    def test_acceleration_bounds(self):
        """Commanded acceleration is limited."""
        with pytest.raises(ValidationError, match="Acceleration"):
            TrackConfig(acceleration=25.0)

    def test_initial_velocity_bounds(self):
        """Initial velocity is limited."""
        with pytest.raises(ValidationError, match="Initial velocity"):
            TrackConfig(initial_velocity=-200.0)

    def test_non_finite_rejected(self):
        """NaN values are rejected."""
        with pytest.raises(ValidationError, match="finite"):
            TrackConfig(station_spacing=float("nan"))

    def test_inverted_acceleration_limits(self):
        """The acceleration range must not be inverted."""
        with pytest.raises(ValidationError):
            TrackConfig(max_acceleration=-1.0, min_acceleration=1.0)

    def test_integer_values_accepted_for_float_fields(self):
        """Plain ints are stored as floats."""
        track = TrackConfig(num_stations=2, station_spacing=100, acceleration=2)

        assert track.station_spacing == 100.0
        assert isinstance(track.station_spacing, float)
        assert isinstance(track.acceleration, float)

    def test_integer_values_still_validated(self):
        """Bounds are checked with ValidationError whatever the numeric type."""
        with pytest.raises(ValidationError, match="Number of stations"):
            TrackConfig(num_stations=0, station_spacing=100)

    def test_integer_beyond_float_range(self):
        """An int too large for a float is not finite."""
        with pytest.raises(ValidationError, match="finite"):
            TrackConfig(station_spacing=10**400)

    def test_validation_error_hierarchy(self):
        """Callers may catch either the package error or ValueError."""
        assert issubclass(ValidationError, TrainSimError)
        assert issubclass(ValidationError, ValueError)


# =============================================================================
# Client Payloads
# =============================================================================


class TestFromParams:
    """Test building a config from loosely typed command payloads."""

    def test_empty_payload_gives_defaults(self):
        """An empty or missing payload gives the defaults."""
        assert TrackConfig.from_params({}) == TrackConfig()
        assert TrackConfig.from_params(None) == TrackConfig()

    def test_camel_case_keys(self):
        """Client camelCase keys map to fields."""
        track = TrackConfig.from_params({
            "numStations": 3,
            "stationDistance": 200,
            "timeStep": 0.1,
            "initialVelocity": 5,
            "maxVelocity": 40,
        })

        assert track.num_stations == 3
        assert track.station_spacing == 200.0
        assert track.time_step == 0.1
        assert track.initial_velocity == 5.0
        assert track.max_velocity == 40.0

    def test_numeric_strings_are_coerced(self):
        """Numeric strings are converted."""
        track = TrackConfig.from_params({"numStations": "4", "acceleration": "2.5"})
        assert track.num_stations == 4
        assert track.acceleration == 2.5

    def test_unknown_keys_ignored(self):
        """Unknown keys are ignored."""
        track = TrackConfig.from_params({"numStations": 2, "colour": "red"})
        assert track.num_stations == 2

    def test_station_names_from_payload(self):
        """Station names are read from the payload."""
        track = TrackConfig.from_params({"numStations": 2, "stationNames": ["North", "South"]})
        assert track.station_names == ("North", "South")

    @pytest.mark.parametrize(
        "params",
        [
            {"numStations": "abc"},
            {"numStations": 2.5},
            {"acceleration": "fast"},
            {"stationNames": "North"},
            {"numStations": 10**400},
        ],
    )
    def test_invalid_values(self, params):
        """Unconvertible values raise ValidationError."""
        with pytest.raises(ValidationError):
            TrackConfig.from_params(params)


# =============================================================================
# Derived Copies and Limits
# =============================================================================


class TestStationNamesAndLimits:
    """Test renaming and acceleration clamping."""

    def test_with_station_names(self):
        """Renaming returns a new config and leaves the original."""
        track = TrackConfig(num_stations=2)
        renamed = track.with_station_names(["Alpha", "Beta", "Gamma"])

        assert renamed.station_names == ("Alpha", "Beta")
        assert track.station_names == ("Station 1", "Station 2")

    def test_with_too_few_names(self):
        """Renaming needs a name for every station."""
        track = TrackConfig(num_stations=3)
        with pytest.raises(ValidationError, match="at least 3"):
            track.with_station_names(["Only one"])

    def test_with_non_string_names(self):
        """Station names must be strings."""
        track = TrackConfig(num_stations=2)
        with pytest.raises(ValidationError):
            track.with_station_names(["A", 2])

    @pytest.mark.parametrize(
        "requested, expected",
        [(3.0, 3.0), (15.0, 10.0), (-15.0, -10.0)],
    )
    def test_clamp_acceleration(self, requested, expected):
        """Accelerations are clamped into the configured range."""
        assert TrackConfig().clamp_acceleration(requested) == expected

    def test_normalize_station_names(self):
        """Names are padded to the station count."""
        assert normalize_station_names(None, 2) == ("Station 1", "Station 2")
        assert normalize_station_names(["X"], 1) == ("X",)
