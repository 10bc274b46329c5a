"""Run controller: command surface, single active driver, and broadcast envelopes.

The controller owns at most one run at a time (a SimulationState plus the
StateSource that advances it). Exactly one driver writes to the state:

- simulated mode: an asyncio task that sleeps ``time_step`` seconds between
  integrator steps (simulated time always advances by exactly ``dt``)
- sensor mode: ``feed_line`` / ``consume``, called in line-arrival order

Every command runs on the event loop thread. Stopping cancels the timer
task before the state is dropped, and each tick re-checks that its state is
still the current one, so a late tick can never write into a replaced run.

Everything sent to subscribers is an envelope::

    {"type": "update", "payload": {...}, "timestamp": 1718000000000}

handed to the ``publish`` callback supplied by the transport layer.

Example:
    >>> import asyncio
    >>> from trainsim.simulation import RunController
    >>>
    >>> async def main():
    ...     controller = RunController(publish=print)
    ...     controller.start({"numStations": 3, "stationDistance": 200})
    ...     await controller.wait_for_driver()
    >>>
    >>> asyncio.run(main())
"""

import asyncio
import math
import time
from collections.abc import AsyncIterable, Callable, Mapping
from typing import Any

import structlog

from trainsim.dynamics.state import SimulationState, TickResult
from trainsim.exceptions import ValidationError
from trainsim.sensor.parser import SensorLineParser
from trainsim.simulation.prediction import ArrivalPrediction, ArrivalTimePredictor
from trainsim.simulation.results import SimulationResult
from trainsim.simulation.sources import RunMode, SensorSource, SimulatedSource, StateSource
from trainsim.track import MAX_COMMANDED_ACCELERATION, TrackConfig

logger = structlog.get_logger(__name__)

Publisher = Callable[[dict[str, Any]], None]


def make_envelope(message_type: str, payload: Any, clock: Callable[[], float] = time.time) -> dict[str, Any]:
    """Wrap a payload in the transport envelope."""
    return {
        "type": message_type,
        "payload": payload,
        "timestamp": int(clock() * 1000),
    }


def _discard(envelope: dict[str, Any]) -> None:
    pass


class RunController:
    """Owns the active run and translates commands into state changes.

    Attributes:
        state: State of the active run, None when idle
        source: Source advancing the active run
        result: History of the active (or most recently completed) run
    """

    def __init__(
        self,
        publish: Publisher | None = None,
        clock: Callable[[], float] = time.time,
        drive_timer: bool = True,
    ) -> None:
        """
        Args:
            publish: Receives every broadcast envelope
            clock: Wall clock in seconds, for envelope timestamps
            drive_timer: Schedule the simulated-mode timer task on start.
                Disable to drive ``tick()`` manually.
        """
        self._publish = publish or _discard
        self._clock = clock
        self.drive_timer = drive_timer
        self.predictor = ArrivalTimePredictor()

        self.state: SimulationState | None = None
        self.source: StateSource | None = None
        self.result: SimulationResult | None = None
        self._timer: asyncio.Task[None] | None = None

    # =========================================================================
    # Commands
    # =========================================================================

    def start(
        self,
        params: TrackConfig | Mapping[str, Any] | None = None,
        mode: RunMode | str = RunMode.SIMULATED,
    ) -> SimulationState:
        """Replace any current run with a fresh one.

        Raises:
            ValidationError: Invalid parameters; the current run is untouched
        """
        track = params if isinstance(params, TrackConfig) else TrackConfig.from_params(params)
        try:
            mode = RunMode(mode)
        except ValueError as err:
            raise ValidationError(f"Unknown run mode: {mode!r}") from err

        loop = None
        if mode is RunMode.SIMULATED and self.drive_timer:
            loop = asyncio.get_running_loop()

        self._end_run(announce=True)

        state = SimulationState.initial(track)
        state.is_running = True
        if mode is RunMode.SENSOR:
            parser = SensorLineParser(station_spacing=track.station_spacing, clock=self._clock)
            self.source = SensorSource(parser)
        else:
            self.source = SimulatedSource()
        self.state = state
        self.result = SimulationResult()

        if loop is not None:
            self._timer = loop.create_task(self._run_timer(state, track.time_step))

        logger.info(
            "run_started",
            mode=mode.value,
            num_stations=track.num_stations,
            station_spacing=track.station_spacing,
            time_step=track.time_step,
            acceleration=state.acceleration,
        )
        self._send("simulationStarted", {
            "message": "Simulation started",
            "mode": mode.value,
            "initialState": state.to_payload(),
        })
        return state

    def pause(self) -> None:
        """Hold the state; the driver keeps running but changes nothing."""
        if self.state is None:
            return
        self.state.is_running = False
        logger.info("run_paused", time=round(self.state.time, 4))
        self._send("simulationPaused", {"message": "Simulation paused", "state": self.state.to_payload()})

    def resume(self) -> None:
        """Let the driver advance the state again."""
        if self.state is None or self.state.is_finished:
            return
        self.state.is_running = True
        logger.info("run_resumed", time=round(self.state.time, 4))
        self._send("simulationResumed", {"message": "Simulation resumed", "state": self.state.to_payload()})

    def stop(self) -> None:
        """Halt the driver, then discard the run."""
        self._end_run(announce=True)

    def set_acceleration(self, acceleration: Any) -> float | None:
        """Change the acceleration of a running simulated run.

        Returns:
            The clamped acceleration applied, None if there was nothing to change

        Raises:
            ValidationError: Non-numeric or out of the commandable range
        """
        value = _coerce_float(acceleration, "acceleration")
        if abs(value) > MAX_COMMANDED_ACCELERATION:
            raise ValidationError(
                f"Acceleration must be between {-MAX_COMMANDED_ACCELERATION} "
                f"and {MAX_COMMANDED_ACCELERATION} m/s^2"
            )

        state = self.state
        if state is None or not state.is_active or not isinstance(self.source, SimulatedSource):
            return None

        applied = self.source.integrator.set_acceleration(state, value)
        logger.info("acceleration_changed", requested=value, applied=applied, time=round(state.time, 4))
        self._send("accelerationChanged", {"acceleration": applied, "time": state.time})
        return applied

    def set_station_names(self, names: Any) -> None:
        """Rename the stations of the current run.

        Raises:
            ValidationError: Not a list, or fewer names than stations
        """
        if not isinstance(names, (list, tuple)):
            raise ValidationError("Station names must be a list")
        if self.state is None:
            return
        self.state.track = self.state.track.with_station_names(names)
        self._send("stationNamesUpdated", {
            "stationNames": list(self.state.track.station_names),
            "message": "Station names updated",
        })

    def get_arrival_times(self) -> list[ArrivalPrediction] | None:
        """Predicted arrivals for the remaining stations, None when idle."""
        if self.state is None:
            return None
        return self.predictor.predict_arrival_times(self.state)

    def get_state(self) -> dict[str, Any] | None:
        """Full state snapshot, None when idle."""
        return self.state.to_payload() if self.state is not None else None

    # =========================================================================
    # Drivers
    # =========================================================================

    def tick(self) -> TickResult | None:
        """Advance the current run by one tick of its source."""
        if self.state is None or self.source is None:
            return None
        return self._apply(self.state, self.source.advance(self.state))

    def feed_line(self, line: str) -> list[TickResult]:
        """Sensor mode: process one raw line from the sensor channel.

        Lines received outside a sensor-mode run are dropped.
        """
        state, source = self.state, self.source
        if state is None or not isinstance(source, SensorSource):
            logger.debug("sensor_line_dropped", line=line)
            return []

        source.push_line(line)
        ticks: list[TickResult] = []
        while source.has_pending and self.state is state:
            tick = self._apply(state, source.advance(state))
            if tick is not None:
                ticks.append(tick)
        return ticks

    async def consume(self, lines: AsyncIterable[str]) -> None:
        """Sensor mode: feed lines from an async line source until it ends.

        A line that fails to process is logged and skipped.
        """
        async for line in lines:
            try:
                self.feed_line(line)
            except Exception:
                logger.exception("sensor_line_failed", line=line)

    async def wait_for_driver(self) -> None:
        """Wait until the simulated-mode timer task has finished."""
        if self._timer is not None:
            await asyncio.gather(self._timer, return_exceptions=True)

    async def _run_timer(self, state: SimulationState, interval: float) -> None:
        while self.state is state and not state.is_finished:
            await asyncio.sleep(interval)
            if self.state is not state or self.source is None:
                break
            self._apply(state, self.source.advance(state))

    def _apply(self, state: SimulationState, tick: TickResult | None) -> TickResult | None:
        if tick is None or self.state is not state:
            return None

        if self.result is not None:
            self.result.record(tick)
        self._send("update", tick.to_payload())
        for event in tick.station_events:
            self._send("stationReached", event.to_payload())

        if tick.is_finished:
            self._complete(state)
        return tick

    def _complete(self, state: SimulationState) -> None:
        final_state = state.to_payload()
        self._end_run(announce=False)
        logger.info("run_completed", time=round(state.time, 4), stations=len(state.stations_reached))
        self._send("simulationComplete", {
            "message": "Simulation complete - all stations reached",
            "finalState": final_state,
        })

    def _end_run(self, announce: bool) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done() and timer is not _current_task():
            timer.cancel()

        state, self.state, self.source = self.state, None, None
        if state is None:
            return
        state.is_running = False
        if announce:
            logger.info("run_stopped", time=round(state.time, 4))
            self._send("simulationStopped", {"message": "Simulation stopped"})

    # =========================================================================
    # Message Dispatch
    # =========================================================================

    def handle_message(self, message: Mapping[str, Any], reply: Publisher | None = None) -> None:
        """Dispatch a client message ``{"type": ..., "payload": {...}}``.

        Args:
            message: Decoded client message
            reply: Sends an envelope back to the requesting client only;
                defaults to broadcasting
        """
        respond = reply or self._publish
        message_type = message.get("type")
        payload = message.get("payload")
        if not isinstance(payload, Mapping):
            payload = {}

        try:
            if message_type == "start":
                mode = payload.get("mode", RunMode.SIMULATED.value)
                params = {k: v for k, v in payload.items() if k != "mode"}
                self.start(params, mode=mode)
            elif message_type == "pause":
                self.pause()
            elif message_type == "resume":
                self.resume()
            elif message_type == "stop":
                self.stop()
            elif message_type == "setAcceleration":
                self.set_acceleration(payload.get("acceleration"))
            elif message_type == "setStationNames":
                self.set_station_names(payload.get("stationNames"))
            elif message_type == "getArrivalTimes":
                predictions = self.get_arrival_times()
                if predictions is None:
                    respond(make_envelope("noSimulation", {"message": "No active simulation"}, self._clock))
                else:
                    respond(make_envelope(
                        "arrivalTimes",
                        {"arrivalTimes": [p.to_payload() for p in predictions]},
                        self._clock,
                    ))
            elif message_type == "getState":
                snapshot = self.get_state()
                if snapshot is None:
                    respond(make_envelope("noSimulation", {"message": "No active simulation"}, self._clock))
                else:
                    respond(make_envelope("update", snapshot, self._clock))
            else:
                respond(make_envelope("error", {"error": f"Unknown message type: {message_type}"}, self._clock))
        except ValidationError as err:
            logger.warning("command_rejected", command=message_type, error=str(err))
            respond(make_envelope("error", {"error": str(err)}, self._clock))

    def inject_station_event(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Broadcast a hand-made arrival without touching any run state.

        Debug hook for exercising subscribers; missing fields get defaults.
        """
        index = payload.get("stationIndex", payload.get("station", 0))
        distance = payload.get("distance") or payload.get("position") or 0.0
        event = {
            "stationIndex": index,
            "stationName": payload.get("stationName") or f"Station {index}",
            "arrivalTime": payload.get("arrivalTime") or self._clock(),
            "travelTime": payload.get("travelTime") or payload.get("time") or 0.0,
            "distance": distance,
            "velocity": payload.get("velocity") or 0.0,
            "acceleration": payload.get("acceleration") or 0.0,
            "position": payload.get("position") or distance,
            "time": payload.get("time") or payload.get("travelTime") or 0.0,
        }
        self._send("stationReached", event)
        self._send("update", {
            "time": event["time"],
            "position": event["position"],
            "velocity": event["velocity"],
            "acceleration": event["acceleration"],
            "fromSensor": False,
            "stationEvent": event,
            "isFinished": False,
        })
        return event

    def _send(self, message_type: str, payload: Any) -> None:
        self._publish(make_envelope(message_type, payload, self._clock))


def _coerce_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid value for {name}: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as err:
        raise ValidationError(f"Invalid value for {name}: {value!r}") from err
    if not math.isfinite(number):
        raise ValidationError(f"Invalid value for {name}: {value!r}")
    return number


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
