from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Type

from .models import Process, ProcessState

logger = logging.getLogger(__name__)

DEFAULT_QUANTUM_MS = 50


class Scheduler:
    """
    Base class for the pluggable scheduling policies.

    A policy only chooses; the engine applies the choice. Implementations
    must not touch the processes or the ready queue they are given.
    """

    name = "base"

    def get_next_process(
        self, ready_queue: Sequence[Process], current: Optional[Process]
    ) -> Optional[Process]:
        raise NotImplementedError

    def on_tick(self, elapsed_ms: int) -> None:
        pass

    def reset(self) -> None:
        pass

    @property
    def algorithm_name(self) -> str:
        return self.name

    def __str__(self) -> str:
        return self.algorithm_name


def _ready(ready_queue: Sequence[Process]) -> List[Process]:
    return [p for p in ready_queue if p.state is ProcessState.READY]


def _still_running(current: Optional[Process]) -> bool:
    return current is not None and current.remaining_time > 0


class FCFSScheduler(Scheduler):
    """
    First-Come First-Serve (non-preemptive).
    """

    name = "FCFS"

    def get_next_process(self, ready_queue, current):
        if _still_running(current):
            return current
        ready = _ready(ready_queue)
        if not ready:
            return None
        # min() keeps the first of equal keys, so ties stay in queue order
        return min(ready, key=lambda p: p.arrival_ms)


class SJFScheduler(Scheduler):
    """
    Shortest Job First (non-preemptive).

    Among the ready processes, choose the smallest total burst time and
    break ties by arrival.
    """

    name = "SJF"

    def get_next_process(self, ready_queue, current):
        if _still_running(current):
            return current
        ready = _ready(ready_queue)
        if not ready:
            return None
        return min(ready, key=lambda p: (p.burst_time, p.arrival_ms))


class RoundRobinScheduler(Scheduler):
    """
    Round Robin with a fixed time quantum.

    The policy always offers the head of the ready queue once the quantum
    is spent; fairness comes from the engine putting the preempted
    process at the back of that queue.
    """

    def __init__(self, quantum: int = DEFAULT_QUANTUM_MS) -> None:
        if quantum is None or quantum <= 0:
            raise ValueError("Round Robin requires a positive quantum")
        self.quantum = quantum
        self.quantum_used = 0
        self.last_process: Optional[Process] = None

    @property
    def algorithm_name(self) -> str:
        return f"Round Robin (q={self.quantum}ms)"

    def get_next_process(self, ready_queue, current):
        ready = _ready(ready_queue)
        if not ready:
            return None

        if _still_running(current):
            if self.quantum_used < self.quantum:
                return current
            logger.debug("quantum of %d ms spent by P%d", self.quantum, current.pid)
            self.quantum_used = 0

        chosen = ready[0]
        if chosen is not self.last_process:
            self.quantum_used = 0
            self.last_process = chosen
        return chosen

    def on_tick(self, elapsed_ms: int) -> None:
        self.quantum_used += elapsed_ms

    def reset(self) -> None:
        self.quantum_used = 0
        self.last_process = None


ALGORITHMS: Dict[str, Type[Scheduler]] = {
    "fcfs": FCFSScheduler,
    "sjf": SJFScheduler,
    "rr": RoundRobinScheduler,
}


def create_scheduler(name: str, quantum: Optional[int] = None) -> Scheduler:
    """
    Build the scheduler registered under ``name``. The quantum is only
    used by round-robin.
    """
    key = name.lower()
    if key not in ALGORITHMS:
        raise ValueError(f"Unknown or unimplemented algorithm '{name}'")

    cls = ALGORITHMS[key]
    if cls is RoundRobinScheduler:
        return cls(quantum if quantum is not None else DEFAULT_QUANTUM_MS)
    return cls()
