#!/usr/bin/env python
"""Simulated station run example.

This example demonstrates the simulated driver end to end:
1. Configure a short line
2. Predict arrival times before departure
3. Run the timer-driven simulation to the last station
4. Compare predicted and recorded arrivals
"""

import asyncio

from trainsim.logging_config import configure_logging
from trainsim.simulation import ArrivalTimePredictor, RunController
from trainsim.track import TrackConfig


async def run() -> None:
    """Run the simulated line and print the station log."""

    print("=" * 60)
    print("SIMULATED STATION RUN")
    print("=" * 60)

    # =========================================================================
    # 1. Configure the line
    # =========================================================================
    track = TrackConfig(
        num_stations=3,
        station_spacing=5.0,
        station_names=("Depot", "Market", "Harbour"),
        time_step=0.01,
        acceleration=8.0,
    )
    print(f"\n1. {track.num_stations} stations, {track.station_spacing} m apart")

    envelopes: list[dict] = []
    controller = RunController(publish=envelopes.append)
    state = controller.start(track)

    # =========================================================================
    # 2. Predict before departure
    # =========================================================================
    print("\n2. Predicted arrivals:")
    predictions = ArrivalTimePredictor().predict_arrival_times(state)
    for p in predictions:
        print(f"   {p.station_name:<10} {p.estimated_arrival_label}")

    # =========================================================================
    # 3. Run to completion
    # =========================================================================
    print("\n3. Running...")
    await controller.wait_for_driver()

    result = controller.result
    print(f"   Ticks: {len(result.ticks)}")
    print(f"   Envelopes published: {len(envelopes)}")

    # =========================================================================
    # 4. Compare
    # =========================================================================
    print("\n4. Recorded arrivals:")
    print(result.stations_dataframe())

    for p, event in zip(predictions, result.station_events):
        error = event.arrival_time - p.predicted_arrival_time
        print(f"   {event.station_name:<10} error vs prediction: {error:+.5f} s")

    print("\n" + "=" * 60)
    print("RUN COMPLETE")
    print("=" * 60)


def main() -> None:
    configure_logging(log_level="WARNING")
    asyncio.run(run())


if __name__ == "__main__":
    main()
