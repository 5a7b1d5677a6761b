from __future__ import annotations

import itertools
from typing import Dict, Iterator, List, Optional

from .errors import ValidationError
from .models import Process, Resource

DEFAULT_TOTAL_MEMORY_MB = 1024


class SystemState:
    """
    Everything the simulated machine knows: queues, resources, memory and
    the counters derived from them.

    The aggregate owns every ``Process`` and ``Resource``. Schedulers only
    look at the ready queue; all mutation goes through the engine.
    """

    def __init__(
        self,
        total_memory_mb: int = DEFAULT_TOTAL_MEMORY_MB,
        pid_source: Optional[Iterator[int]] = None,
    ) -> None:
        self._pids = pid_source if pid_source is not None else itertools.count(1)

        self.all_processes: List[Process] = []
        self.ready_queue: List[Process] = []
        self.running: Optional[Process] = None
        self.blocked: List[Process] = []
        self.terminated: List[Process] = []
        self.resources: Dict[str, Resource] = {}

        self.total_memory_mb = total_memory_mb
        self.used_memory_mb = 0

        self.clock_ms = 0
        self.start_ms: Optional[int] = None

        self.context_switches = 0
        self.deadlocks_detected = 0
        self.deadlocks_resolved = 0

    def next_pid(self) -> int:
        return next(self._pids)

    @property
    def available_memory_mb(self) -> int:
        return self.total_memory_mb - self.used_memory_mb

    @property
    def elapsed_ms(self) -> int:
        if self.start_ms is None:
            return 0
        return self.clock_ms - self.start_ms

    @property
    def is_idle(self) -> bool:
        return not self.ready_queue and self.running is None

    def get_process(self, pid: int) -> Process:
        for process in self.all_processes:
            if process.pid == pid:
                return process
        raise KeyError(f"No process with pid {pid}")

    def active_processes(self) -> List[Process]:
        return [p for p in self.all_processes if not p.is_terminated]

    def reserve_memory(self, memory_mb: int) -> None:
        if memory_mb > self.available_memory_mb:
            raise ValidationError(
                f"Not enough memory: {memory_mb} MB requested, "
                f"{self.available_memory_mb} MB available"
            )
        self.used_memory_mb += memory_mb

    def release_memory(self, memory_mb: int) -> None:
        self.used_memory_mb = max(0, self.used_memory_mb - memory_mb)

    def add_resource(self, name: str, instances: int) -> Resource:
        if instances < 0:
            raise ValueError(f"Resource {name!r} needs a non-negative instance count")
        resource = Resource(name=name, total_instances=instances)
        self.resources[name] = resource
        return resource

    def allocate_resource(self, name: str, pid: int) -> bool:
        resource = self.resources[name]
        process = self.get_process(pid)
        process.requested_resources.add(name)
        if not resource.allocate(pid):
            return False
        process.allocated_resources.add(name)
        return True

    def release_resource(self, name: str, pid: int) -> bool:
        """
        Give back one unit of ``name`` held by ``pid``. A process may hold
        several units, so the name stays in its allocated set until the
        last one is released.
        """
        resource = self.resources[name]
        if not resource.release(pid):
            return False
        process = self.get_process(pid)
        if pid not in resource.holding_processes:
            process.allocated_resources.discard(name)
        return True

    def average_waiting_time(self) -> float:
        if not self.all_processes:
            return 0.0
        return sum(p.waiting_ms for p in self.all_processes) / len(self.all_processes)

    def average_turnaround_time(self) -> float:
        completed = [p for p in self.terminated if p.turnaround_time > 0]
        if not completed:
            return 0.0
        return sum(p.turnaround_time for p in completed) / len(completed)
