"""Tests for analytic arrival-time prediction."""

import math

import pytest
from numpy.testing import assert_allclose

from trainsim.dynamics import SimulationState
from trainsim.simulation import ArrivalTimePredictor, KinematicIntegrator, time_to_reach
from trainsim.simulation.prediction import UNREACHABLE_LABEL
from trainsim.track import TrackConfig

# =============================================================================
# Root Finding
# =============================================================================


class TestTimeToReach:
    """Test the closed-form time-to-target solver."""

    def test_from_rest(self):
        """From rest at 2 m/s^2, 100 m takes 10 s."""
        assert_allclose(time_to_reach(0.0, 0.0, 2.0, 100.0), 10.0)

    def test_uniform_motion(self):
        """Zero acceleration reduces to distance over velocity."""
        assert_allclose(time_to_reach(0.0, 10.0, 0.0, 100.0), 10.0)

    def test_zero_acceleration_and_velocity_is_unreachable(self):
        """A stationary vehicle never arrives."""
        assert time_to_reach(0.0, 0.0, 0.0, 100.0) is None

    def test_uniform_motion_away_from_target(self):
        """Moving away at constant speed never arrives."""
        assert time_to_reach(0.0, -5.0, 0.0, 100.0) is None

    def test_target_behind(self):
        """A target already passed is unreachable."""
        assert time_to_reach(200.0, 10.0, 0.0, 100.0) is None

    def test_stops_short_of_target(self):
        """Braking from 10 m/s at 2 m/s^2 stops after 25 m."""
        assert time_to_reach(0.0, 10.0, -2.0, 100.0) is None

    def test_two_positive_roots_keeps_first(self):
        """0.5*(-2)*t^2 + 10*t = 9 at t = 1 and t = 9."""
        assert_allclose(time_to_reach(0.0, 10.0, -2.0, 9.0), 1.0)

    def test_reversing_toward_target(self):
        """Moving away but accelerating back toward the station."""
        t = time_to_reach(0.0, -2.0, 1.0, 10.0)
        assert t is not None
        assert_allclose(0.5 * 1.0 * t**2 - 2.0 * t, 10.0)

    def test_near_zero_acceleration_treated_as_uniform(self):
        """Tiny accelerations are treated as uniform motion."""
        assert_allclose(time_to_reach(0.0, 10.0, 1e-12, 100.0), 10.0)


# =============================================================================
# Predictor
# =============================================================================


class TestArrivalTimePredictor:
    """Test predictions built from a simulation state."""

    def test_predictions_from_rest(self, running_state):
        """Predictions match the closed-form arrival times."""
        predictions = ArrivalTimePredictor().predict_arrival_times(running_state)

        assert [p.station_index for p in predictions] == [0, 1, 2]
        assert_allclose(
            [p.predicted_arrival_time for p in predictions],
            [10.0, math.sqrt(200.0), math.sqrt(300.0)],
        )
        assert predictions[0].estimated_arrival_label == "10.00s"

    def test_prediction_is_offset_by_current_time(self, running_state):
        """Predictions are absolute simulation times."""
        running_state.time = 5.0
        prediction = ArrivalTimePredictor().predict(running_state, 0)
        assert_allclose(prediction.predicted_arrival_time, 15.0)

    def test_unreachable(self):
        """Unreachable stations are labelled as such."""
        state = SimulationState.initial(TrackConfig(num_stations=2, acceleration=0.0))

        predictions = ArrivalTimePredictor().predict_arrival_times(state)

        assert len(predictions) == 2
        for p in predictions:
            assert not p.reachable
            assert p.predicted_arrival_time is None
            assert p.estimated_arrival_label == UNREACHABLE_LABEL

    def test_prediction_does_not_mutate_state(self, running_state):
        """Predicting leaves the state untouched."""
        before = running_state.copy()
        ArrivalTimePredictor().predict_arrival_times(running_state)
        assert running_state == before

    def test_only_remaining_stations(self, running_state):
        """Reached stations are not predicted."""
        integrator = KinematicIntegrator()
        while running_state.current_station_index < 1:
            integrator.step(running_state)

        predictions = ArrivalTimePredictor().predict_arrival_times(running_state)
        assert [p.station_index for p in predictions] == [1, 2]

    def test_finished_state_has_no_predictions(self, running_state):
        """A finished run has nothing left to predict."""
        integrator = KinematicIntegrator()
        while not running_state.is_finished:
            integrator.step(running_state)

        assert ArrivalTimePredictor().predict_arrival_times(running_state) == []

    def test_payload(self, running_state):
        """Payloads carry the formatted arrival label."""
        payload = ArrivalTimePredictor().predict(running_state, 0).to_payload()

        assert payload["stationIndex"] == 0
        assert payload["stationName"] == "Station 1"
        assert payload["position"] == 100.0
        assert payload["estimatedArrivalTime"] == "10.00s"
        assert payload["reachable"] is True


@pytest.mark.parametrize("time_step", [0.02, 0.05])
def test_prediction_matches_simulated_arrival(time_step):
    """Predicting mid-run agrees with the arrival the integrator later records."""
    track = TrackConfig(
        num_stations=3,
        station_spacing=50.0,
        initial_velocity=3.0,
        acceleration=1.5,
        time_step=time_step,
    )
    state = SimulationState.initial(track)
    state.is_running = True
    integrator = KinematicIntegrator()
    predictor = ArrivalTimePredictor()

    while not state.is_finished:
        expected = predictor.predict(state, state.current_station_index)
        index = state.current_station_index
        while state.current_station_index == index:
            integrator.step(state)
        actual = state.stations_reached[index].arrival_time
        assert abs(actual - expected.predicted_arrival_time) < time_step
