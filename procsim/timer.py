from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from .engine import Simulation, SimulationEvent, SimulationStatus

logger = logging.getLogger(__name__)


class TickTimer:
    """
    Pump ``Simulation.tick`` at a fixed wall-clock interval.

    Ticks never overlap: the next one is only scheduled after the previous
    one returned. Each tick advances the simulation by exactly the interval,
    whatever the real drift was. Pausing the simulation (or a Ctrl+C)
    stops the loop after the current tick.
    """

    def __init__(
        self,
        simulation: Simulation,
        interval_ms: Optional[int] = None,
        on_tick: Optional[Callable[[List[SimulationEvent]], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.simulation = simulation
        self.interval_ms = interval_ms or simulation.config.tick_interval_ms
        self.on_tick = on_tick
        self._clock = clock
        self._sleep = sleep
        self.ticks = 0

    def run(self, max_ticks: Optional[int] = None) -> SimulationStatus:
        sim = self.simulation
        if sim.status is not SimulationStatus.RUNNING and not sim.start():
            return sim.status

        interval = self.interval_ms / 1000.0
        next_deadline = self._clock() + interval
        try:
            while sim.status is SimulationStatus.RUNNING:
                if max_ticks is not None and self.ticks >= max_ticks:
                    sim.pause()
                    break
                delay = next_deadline - self._clock()
                if delay > 0:
                    self._sleep(delay)
                events = sim.tick(self.interval_ms)
                self.ticks += 1
                if self.on_tick is not None:
                    self.on_tick(events)
                next_deadline += interval
        except KeyboardInterrupt:
            logger.info("Interrupted, pausing simulation")
            sim.pause()

        return sim.status
