import pytest

from procsim.metrics import compute_metrics, summarize_process_metrics, throughput
from procsim.models import Process, ProcessState
from procsim.state import SystemState


def _finished(pid, arrival, first_run, completion, waiting=0):
    p = Process(pid=pid, name=f"P{pid}", burst_time=10, arrival_ms=arrival)
    p.state = ProcessState.TERMINATED
    p.remaining_time = 0
    p.first_run_ms = first_run
    p.completion_ms = completion
    p.waiting_ms = waiting
    return p


def test_empty_state_metrics_are_zero():
    m = compute_metrics(SystemState())
    assert m.cpu_utilization == 0.0
    assert m.avg_waiting_ms == 0.0
    assert m.avg_turnaround_ms == 0.0
    assert m.throughput == 0.0
    assert m.as_strings() == {
        "cpu_utilization": "0%",
        "avg_wait": "0 ms",
        "throughput": "0.00/s",
        "total_processes": "0",
    }


def test_cpu_utilization_is_instantaneous():
    state = SystemState()
    state.running = Process(pid=1, name="P1", burst_time=10)
    assert compute_metrics(state).cpu_utilization == 100.0


def test_throughput_uses_elapsed_simulated_seconds():
    state = SystemState()
    state.start_ms = 0
    state.clock_ms = 2000
    state.terminated.append(_finished(1, 0, 0, 1500))
    assert throughput(state) == pytest.approx(0.5)


def test_average_turnaround_skips_zero_turnaround():
    state = SystemState()
    state.terminated.extend([_finished(1, 0, 0, 100), _finished(2, 50, 50, 50), _finished(3, 0, 100, 300)])
    state.all_processes.extend(state.terminated)
    assert compute_metrics(state).avg_turnaround_ms == pytest.approx(200)


def test_average_waiting_covers_every_process():
    state = SystemState()
    state.all_processes.extend([_finished(1, 0, 0, 10, waiting=30), Process(pid=2, name="P2", burst_time=5)])
    assert compute_metrics(state).avg_waiting_ms == pytest.approx(15)


def test_summarize_process_metrics():
    procs = [_finished(1, 0, 0, 100, waiting=0), _finished(2, 0, 100, 150, waiting=100)]
    summary = summarize_process_metrics(procs)
    assert summary == {"avg_waiting": 50.0, "avg_turnaround": 125.0, "avg_response": 50.0}
    assert summarize_process_metrics([])["avg_response"] == 0.0
