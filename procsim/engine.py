"""
Tick engine for the process scheduler simulation.

The engine is an explicitly pumped step function: every call to
``Simulation.tick(elapsed_ms)`` asks the active scheduler who should own
the CPU, applies that decision, runs the chosen process for the tick and
recomputes the metrics. ``procsim.timer.TickTimer`` drives it against the
wall clock; tests drive it directly.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple

from .algorithms import Scheduler, create_scheduler
from .config import SimulationConfig
from .errors import SimulationError, TickError, ValidationError
from .metrics import MetricsSnapshot, compute_metrics
from .models import Process, ScheduledSlice
from .state import SystemState

logger = logging.getLogger(__name__)


class SimulationStatus(Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    PAUSED = "Paused"
    COMPLETED = "Completed"


class EventKind(Enum):
    INFO = "info"
    CREATED = "created"
    REJECTED = "rejected"
    STARTED = "started"
    PAUSED = "paused"
    DISPATCHED = "dispatched"
    PREEMPTED = "preempted"
    COMPLETED = "completed"
    FINISHED = "finished"
    ALGORITHM_CHANGED = "algorithm_changed"
    ERROR = "error"


@dataclass(frozen=True)
class SimulationEvent:
    kind: EventKind
    clock_ms: int
    message: str
    pid: Optional[int] = None


Observer = Callable[[List[SimulationEvent]], None]


def format_clock(ms: int) -> str:
    """HH:MM:SS for a millisecond count."""
    seconds = ms // 1000
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"


class ActivityLog:
    """
    Bounded, newest-first log of what happened in the simulation.
    """

    def __init__(self, capacity: int = 100) -> None:
        self.capacity = capacity
        self._entries: Deque[str] = deque(maxlen=capacity)

    def add(self, clock_ms: int, message: str) -> str:
        entry = f"[{format_clock(clock_ms)}] {message}"
        self._entries.appendleft(entry)
        return entry

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)


class Simulation:
    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        pid_source: Optional[Iterator[int]] = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.state = SystemState(total_memory_mb=self.config.total_memory_mb, pid_source=pid_source)
        self.status = SimulationStatus.IDLE
        self.status_text = "Ready to simulate"
        self.activity = ActivityLog(self.config.activity_log_capacity)
        self.timeline: List[ScheduledSlice] = []
        self.last_error: Optional[TickError] = None
        self.metrics: MetricsSnapshot = compute_metrics(self.state)

        self._schedulers: Dict[str, Scheduler] = {}
        self._observers: List[Observer] = []
        self._has_dispatched = False
        self.scheduler = self._scheduler_for(self.config.algorithm)

        self._publish([self._event(EventKind.INFO, "System initialized")])

    # -- observation -------------------------------------------------------

    @property
    def processes(self) -> Tuple[Process, ...]:
        return tuple(self.state.all_processes)

    @property
    def elapsed_display(self) -> str:
        return format_clock(self.state.elapsed_ms)

    def metric_strings(self) -> Dict[str, str]:
        return self.metrics.as_strings()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register ``observer`` to receive the events of every mutation.
        Returns a callable that removes it again.
        """
        self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # -- process creation ----------------------------------------------------

    def validate_process(self, burst_time: int, memory_mb: int = 0) -> None:
        if isinstance(burst_time, bool) or not isinstance(burst_time, int):
            raise ValidationError(f"Burst time must be an integer number of ms, got {burst_time!r}")
        if burst_time <= 0:
            raise ValidationError(f"Burst time must be positive, got {burst_time}")
        if isinstance(memory_mb, bool) or not isinstance(memory_mb, int) or memory_mb < 0:
            raise ValidationError(f"Memory must be a non-negative integer of MB, got {memory_mb!r}")
        if self.config.enforce_memory_limit and memory_mb > self.state.available_memory_mb:
            raise ValidationError(
                f"Not enough memory: {memory_mb} MB requested, "
                f"{self.state.available_memory_mb} MB available"
            )

    def create_process(
        self, name: str, burst_time: int, priority: int = 1, memory_mb: int = 0
    ) -> Optional[Process]:
        """
        Create a process, admit it and put it at the back of the ready queue.

        Invalid parameters are reported in the activity log and return
        ``None``; the system state is left untouched.
        """
        try:
            self.validate_process(burst_time, memory_mb)
        except ValidationError as exc:
            logger.warning("Rejected process %r: %s", name, exc)
            self._publish([self._event(EventKind.REJECTED, f"Error creating process: {exc}")])
            return None

        state = self.state
        if self.config.enforce_memory_limit:
            state.reserve_memory(memory_mb)
        else:
            state.used_memory_mb += memory_mb

        pid = state.next_pid()
        process = Process(
            pid=pid,
            name=name or f"P{pid}",
            burst_time=burst_time,
            priority=priority,
            memory_mb=memory_mb,
            arrival_ms=state.clock_ms,
            scheduler_label=self.scheduler.algorithm_name,
        )
        state.all_processes.append(process)
        process.admit()
        state.ready_queue.append(process)
        self.metrics = compute_metrics(state)

        logger.debug("Created %s burst=%d priority=%d memory=%d", process, burst_time, priority, memory_mb)
        self._publish([
            self._event(
                EventKind.CREATED,
                f"Created: {process.name} (Burst: {burst_time}ms, Priority: {priority})",
                pid,
            )
        ])
        return process

    # -- control ---------------------------------------------------------------

    def start(self) -> bool:
        if not self.state.all_processes:
            self._publish([self._event(EventKind.INFO, "No processes to simulate! Create some first.")])
            return False
        if self.status is SimulationStatus.RUNNING:
            return True
        if self.status is SimulationStatus.COMPLETED and self.state.is_idle:
            self._publish([self._event(EventKind.INFO, "Nothing left to simulate.")])
            return False

        if self.state.start_ms is None:
            self.state.start_ms = self.state.clock_ms
        self.status = SimulationStatus.RUNNING
        self.status_text = "Simulation running..."
        logger.info("Simulation started with %s", self.scheduler.algorithm_name)
        self._publish([self._event(EventKind.STARTED, "Simulation started")])
        return True

    def pause(self) -> bool:
        events: List[SimulationEvent] = []
        paused = self._pause(events)
        self._publish(events)
        return paused

    def _pause(self, events: List[SimulationEvent]) -> bool:
        if self.status is not SimulationStatus.RUNNING:
            return False
        self.status = SimulationStatus.PAUSED
        self.status_text = "Simulation paused"
        logger.info("Simulation paused at %d ms", self.state.clock_ms)
        events.append(self._event(EventKind.PAUSED, "Simulation paused"))
        return True

    def switch_algorithm(self, name: str, quantum: Optional[int] = None) -> Scheduler:
        """
        Make the scheduler registered under ``name`` the active one, starting
        from a clean slate. Allowed at any point of the simulation.
        """
        scheduler = self._scheduler_for(name, quantum)
        scheduler.reset()
        self.scheduler = scheduler
        for process in self.state.active_processes():
            process.scheduler_label = scheduler.algorithm_name
        self._publish([self._event(EventKind.ALGORITHM_CHANGED, f"Scheduler: {scheduler.algorithm_name}")])
        return scheduler

    def _scheduler_for(self, name: str, quantum: Optional[int] = None) -> Scheduler:
        key = name.lower()
        if quantum is not None:
            key = f"{key}:{quantum}"
        if key not in self._schedulers:
            self._schedulers[key] = create_scheduler(
                name, quantum=quantum if quantum is not None else self.config.round_robin_quantum_ms
            )
        return self._schedulers[key]

    # -- ticking ---------------------------------------------------------------

    def tick(self, elapsed_ms: Optional[int] = None) -> List[SimulationEvent]:
        """
        Advance the simulation by one tick. Does nothing unless running.

        Failures inside the tick never escape: they are logged, kept as
        ``last_error`` and pause the simulation.
        """
        if self.status is not SimulationStatus.RUNNING:
            return []

        elapsed = self.config.tick_interval_ms if elapsed_ms is None else elapsed_ms
        events: List[SimulationEvent] = []
        try:
            self._step(elapsed, events)
        except Exception as exc:
            self.last_error = TickError(self.state.clock_ms, exc)
            logger.exception("Simulation error at %d ms", self.state.clock_ms)
            events.append(self._event(EventKind.ERROR, f"Simulation error: {exc}"))
            self._pause(events)

        self._publish(events)
        return events

    def run_to_completion(self, elapsed_ms: Optional[int] = None, max_ticks: int = 1_000_000) -> int:
        """
        Start if needed and tick synchronously until the simulation stops.
        Returns the number of ticks taken.
        """
        if self.status is not SimulationStatus.RUNNING and not self.start():
            return 0
        ticks = 0
        while self.status is SimulationStatus.RUNNING and ticks < max_ticks:
            self.tick(elapsed_ms)
            ticks += 1
        return ticks

    def _step(self, elapsed_ms: int, events: List[SimulationEvent]) -> None:
        if elapsed_ms <= 0:
            raise ValueError(f"Tick duration must be positive, got {elapsed_ms}")

        state = self.state
        now = state.clock_ms
        self._apply_decision(now, events)

        running = state.running
        if running is not None:
            used = running.run_for(elapsed_ms)
            self.scheduler.on_tick(elapsed_ms)
            self._record_slice(running, now, now + used)

        for process in state.ready_queue:
            process.wait_for(elapsed_ms)

        state.clock_ms = now + elapsed_ms

        if running is not None and running.remaining_time == 0:
            running.terminate(state.clock_ms)
            state.terminated.append(running)
            state.running = None
            state.release_memory(running.memory_mb)
            logger.debug("%s completed at %d ms", running, state.clock_ms)
            events.append(
                self._event(
                    EventKind.COMPLETED,
                    f"Completed: {running.name} (Turnaround: {running.turnaround_time}ms)",
                    running.pid,
                )
            )

        self.metrics = compute_metrics(state)

        if state.is_idle:
            self.status = SimulationStatus.COMPLETED
            self.status_text = "All processes completed!"
            logger.info("All processes completed after %d ms", state.elapsed_ms)
            events.append(self._event(EventKind.FINISHED, "All processes completed!"))

    def _apply_decision(self, now: int, events: List[SimulationEvent]) -> None:
        state = self.state
        current = state.running
        chosen = self.scheduler.get_next_process(tuple(state.ready_queue), current)
        if chosen is None or chosen is current:
            return
        if chosen not in state.ready_queue:
            raise SimulationError(f"{self.scheduler} chose {chosen}, which is not in the ready queue")

        if current is not None:
            current.preempt()
            state.ready_queue.append(current)
            logger.debug("Preempted %s at %d ms", current, now)
            events.append(self._event(EventKind.PREEMPTED, f"Preempted: {current.name}", current.pid))

        state.ready_queue.remove(chosen)
        chosen.dispatch(now, self.scheduler.algorithm_name)
        state.running = chosen
        if self._has_dispatched:
            state.context_switches += 1
        self._has_dispatched = True
        logger.debug("Dispatched %s at %d ms", chosen, now)
        events.append(self._event(EventKind.DISPATCHED, f"Running: {chosen.name}", chosen.pid))

    def _record_slice(self, process: Process, start: int, end: int) -> None:
        if start >= end:
            return
        if self.timeline:
            last = self.timeline[-1]
            if last.pid == process.pid and last.end_time == start:
                last.end_time = end
                return
        self.timeline.append(ScheduledSlice(pid=process.pid, name=process.name, start_time=start, end_time=end))

    # -- events ------------------------------------------------------------------

    def _event(self, kind: EventKind, message: str, pid: Optional[int] = None) -> SimulationEvent:
        return SimulationEvent(kind=kind, clock_ms=self.state.clock_ms, message=message, pid=pid)

    def _publish(self, events: List[SimulationEvent]) -> None:
        if not events:
            return
        for event in events:
            self.activity.add(event.clock_ms, event.message)
        for observer in list(self._observers):
            observer(events)
