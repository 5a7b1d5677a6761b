from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Set

from .errors import InvalidTransitionError


class ProcessState(Enum):
    NEW = "New"
    READY = "Ready"
    RUNNING = "Running"
    BLOCKED = "Blocked"
    TERMINATED = "Terminated"


@dataclass(eq=False)
class Process:
    """
    Process control block for one simulated process.

    Times are simulated milliseconds. ``remaining_time`` starts at
    ``burst_time`` and only ever goes down while the process is running.
    Identity comparison is used on purpose: two processes with the same
    fields are still two processes.
    """

    pid: int
    name: str
    burst_time: int
    priority: int = 1
    memory_mb: int = 0
    arrival_ms: int = 0
    state: ProcessState = ProcessState.NEW
    remaining_time: int = field(init=False)
    first_run_ms: Optional[int] = None
    completion_ms: Optional[int] = None
    waiting_ms: int = 0
    quantum_used: int = 0
    scheduler_label: str = ""
    requested_resources: Set[str] = field(default_factory=set)
    allocated_resources: Set[str] = field(default_factory=set)
    page_count: int = 0

    def __post_init__(self) -> None:
        self.remaining_time = self.burst_time

    @property
    def turnaround_time(self) -> int:
        if self.completion_ms is None:
            return 0
        return self.completion_ms - self.arrival_ms

    @property
    def response_time(self) -> int:
        if self.first_run_ms is None:
            return 0
        return self.first_run_ms - self.arrival_ms

    @property
    def progress(self) -> float:
        if self.burst_time <= 0:
            return 1.0
        return 1.0 - self.remaining_time / self.burst_time

    @property
    def is_terminated(self) -> bool:
        return self.state is ProcessState.TERMINATED

    def _move(self, expected: ProcessState, target: ProcessState) -> None:
        if self.state is not expected:
            raise InvalidTransitionError(self.pid, self.state, target)
        self.state = target

    def admit(self) -> None:
        self._move(ProcessState.NEW, ProcessState.READY)

    def dispatch(self, now_ms: int, scheduler_label: str = "") -> None:
        self._move(ProcessState.READY, ProcessState.RUNNING)
        if self.first_run_ms is None:
            self.first_run_ms = now_ms
        self.quantum_used = 0
        if scheduler_label:
            self.scheduler_label = scheduler_label

    def preempt(self) -> None:
        self._move(ProcessState.RUNNING, ProcessState.READY)

    def run_for(self, elapsed_ms: int) -> int:
        """
        Consume up to ``elapsed_ms`` of CPU time and return what was used.
        """
        if self.state is not ProcessState.RUNNING:
            raise InvalidTransitionError(self.pid, self.state, ProcessState.RUNNING)
        used = min(elapsed_ms, self.remaining_time)
        self.remaining_time = max(0, self.remaining_time - elapsed_ms)
        self.quantum_used += used
        return used

    def wait_for(self, elapsed_ms: int) -> None:
        if self.state is ProcessState.READY:
            self.waiting_ms += elapsed_ms

    def terminate(self, now_ms: int) -> None:
        if self.remaining_time > 0:
            raise InvalidTransitionError(self.pid, self.state, ProcessState.TERMINATED)
        self._move(ProcessState.RUNNING, ProcessState.TERMINATED)
        self.completion_ms = now_ms

    def __str__(self) -> str:
        return f"P{self.pid} ({self.name})"


@dataclass
class Resource:
    """
    A pool of identical resource instances handed out one unit at a time.

    ``available + allocated == total_instances`` holds after every call.
    """

    name: str
    total_instances: int
    available: int = field(init=False)
    allocated: int = 0
    holding_processes: List[int] = field(default_factory=list)
    waiting_processes: Deque[int] = field(default_factory=deque)

    def __post_init__(self) -> None:
        self.available = self.total_instances

    @property
    def utilization(self) -> float:
        if self.total_instances <= 0:
            return 0.0
        return self.allocated / self.total_instances

    def allocate(self, pid: int) -> bool:
        if self.available <= 0:
            return False
        self.available -= 1
        self.allocated += 1
        self.holding_processes.append(pid)
        return True

    def release(self, pid: int) -> bool:
        if pid not in self.holding_processes:
            return False
        self.holding_processes.remove(pid)
        self.available += 1
        self.allocated -= 1
        return True

    def enqueue_waiter(self, pid: int) -> None:
        self.waiting_processes.append(pid)

    def __str__(self) -> str:
        return f"{self.name} ({self.available}/{self.total_instances} available)"


@dataclass
class ScheduledSlice:
    """
    One contiguous slice of execution for a process in the Gantt chart.
    """

    pid: int
    name: str
    start_time: int
    end_time: int
