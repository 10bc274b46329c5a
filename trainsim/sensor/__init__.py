"""Sensor feed: line parsing and state reconciliation.

Example:
    >>> from trainsim.sensor import SensorLineParser, StateReconciler
    >>>
    >>> parser = SensorLineParser(station_spacing=3.33)
    >>> reconciler = StateReconciler()
    >>> for line in serial_lines:
    ...     reading = parser.parse_line(line)
    ...     if reading is not None:
    ...         reconciler.reconcile(state, reading)
"""

from trainsim.sensor.parser import (
    LapReportPhase,
    LapReportState,
    ReadingType,
    SensorLineParser,
    SensorReading,
)
from trainsim.sensor.reconciler import StateReconciler

__all__ = [
    # Parsing
    "SensorLineParser",
    "SensorReading",
    "ReadingType",
    "LapReportPhase",
    "LapReportState",
    # Reconciliation
    "StateReconciler",
]
