"""Shared pytest configuration and fixtures."""

import pytest
import structlog

from trainsim.dynamics import SimulationState
from trainsim.track import TrackConfig


def pytest_configure(config):
    """Configure test logging."""
    _configure_test_logging()


def _configure_test_logging() -> None:
    """Plain JSON logs, uncached so ``structlog.testing.capture_logs`` sees every call."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.BoundLogger,
        logger_factory=structlog.PrintLoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def short_track() -> TrackConfig:
    """Three stations 100 m apart, accelerating at 2 m/s^2 from rest."""
    return TrackConfig(num_stations=3, station_spacing=100.0, acceleration=2.0)


@pytest.fixture
def running_state(short_track: TrackConfig) -> SimulationState:
    """Fresh running state on the short track."""
    state = SimulationState.initial(short_track)
    state.is_running = True
    return state


@pytest.fixture
def envelopes() -> list[dict]:
    """Collects every envelope a controller publishes."""
    return []
