#!/usr/bin/env python
"""Sensor feed replay example.

Replays a captured transcript of the trackside sensor through the
controller in sensor mode. The transcript mixes every line shape the
device prints, including a repeated lap report that must only count once.
"""

import asyncio
from collections.abc import AsyncIterator

from trainsim.logging_config import configure_logging
from trainsim.simulation import RunController

TRANSCRIPT = [
    "Sistema listo",
    "Tren detectado - inicio de vuelta",
    "Vuelta número: 1",
    "Tiempo de vuelta: 2.85 s",
    "-------------------",
    # Repeated report from the device
    "Vuelta número: 1",
    "Tiempo de vuelta: 2.85 s",
    "-------------------",
    "Detección ignorada (rebote)",
    "time:4.1,velocity:1.9,distance:5.2",
    "time:4.6,velocity:abc",
    '{"station":2,"time":2.4,"distance":3.33,"velocity":1.39,"acceleration":0.58}',
    "Vuelta número: 3",
    "Tiempo de vuelta: 2.2 s",
    "-------------------",
]


async def replay(lines: list[str], delay: float = 0.0) -> AsyncIterator[str]:
    """Yield transcript lines as a serial reader would."""
    for line in lines:
        await asyncio.sleep(delay)
        yield line


async def run() -> None:
    """Replay the transcript and print what the subscribers saw."""

    print("=" * 60)
    print("SENSOR FEED REPLAY")
    print("=" * 60)

    envelopes: list[dict] = []
    controller = RunController(publish=envelopes.append)
    controller.start({"numStations": 3, "stationDistance": 3.33}, mode="sensor")

    await controller.consume(replay(TRANSCRIPT))

    print("\nStation arrivals broadcast:")
    for envelope in envelopes:
        if envelope["type"] == "stationReached":
            payload = envelope["payload"]
            print(f"   #{payload['stationIndex']} {payload['stationName']:<10} t={payload['arrivalTime']:.2f}s")

    completed = [e for e in envelopes if e["type"] == "simulationComplete"]
    print(f"\nRun complete: {bool(completed)}")
    print(controller.result.to_dataframe())


def main() -> None:
    configure_logging(log_level="WARNING")
    asyncio.run(run())


if __name__ == "__main__":
    main()
