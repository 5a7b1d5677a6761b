from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from .models import Process
from .state import SystemState


@dataclass(frozen=True)
class MetricsSnapshot:
    cpu_utilization: float
    avg_waiting_ms: float
    avg_turnaround_ms: float
    throughput: float
    total_processes: int
    completed_processes: int
    context_switches: int

    def as_strings(self) -> Dict[str, str]:
        """
        The four display strings shown next to the process list.
        """
        return {
            "cpu_utilization": f"{self.cpu_utilization:.0f}%",
            "avg_wait": f"{self.avg_waiting_ms:.0f} ms",
            "throughput": f"{self.throughput:.2f}/s",
            "total_processes": str(self.total_processes),
        }


def cpu_utilization(state: SystemState) -> float:
    # Instantaneous: either the CPU is busy this tick or it is not.
    return 100.0 if state.running is not None else 0.0


def throughput(state: SystemState) -> float:
    """
    Completed processes per second of elapsed simulated time.
    """
    elapsed_seconds = state.elapsed_ms / 1000.0
    if elapsed_seconds <= 0:
        return 0.0
    return len(state.terminated) / elapsed_seconds


def compute_metrics(state: SystemState) -> MetricsSnapshot:
    """
    Recompute every derived metric from the current state.
    """
    return MetricsSnapshot(
        cpu_utilization=cpu_utilization(state),
        avg_waiting_ms=state.average_waiting_time(),
        avg_turnaround_ms=state.average_turnaround_time(),
        throughput=throughput(state),
        total_processes=len(state.all_processes),
        completed_processes=len(state.terminated),
        context_switches=state.context_switches,
    )


def summarize_process_metrics(processes: List[Process]) -> dict:
    """
    Return averages of the key per-process metrics for quick comparison.
    """
    if not processes:
        return {"avg_waiting": 0.0, "avg_turnaround": 0.0, "avg_response": 0.0}

    n = len(processes)
    return {
        "avg_waiting": sum(p.waiting_ms for p in processes) / n,
        "avg_turnaround": sum(p.turnaround_time for p in processes) / n,
        "avg_response": sum(p.response_time for p in processes) / n,
    }
