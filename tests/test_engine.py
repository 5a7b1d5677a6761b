import pytest

from procsim.algorithms import RoundRobinScheduler, Scheduler
from procsim.config import SimulationConfig
from procsim.engine import ActivityLog, EventKind, Simulation, SimulationStatus, format_clock
from procsim.errors import TickError
from procsim.models import ProcessState


def _sim(bursts=(100, 50, 200), **config):
    sim = Simulation(SimulationConfig(**config))
    for i, burst in enumerate(bursts):
        sim.create_process(f"job{i}", burst, priority=i + 1, memory_mb=10)
    return sim


def _check_invariants(sim):
    for p in sim.processes:
        assert 0 <= p.remaining_time <= p.burst_time
        terminated = p.state is ProcessState.TERMINATED
        assert terminated == (p.remaining_time == 0) == (p.completion_ms is not None)


def test_create_process_admits_to_ready_queue():
    sim = Simulation()
    p = sim.create_process("editor", 100, priority=3, memory_mb=128)

    assert p.pid == 1
    assert p.state is ProcessState.READY
    assert p.arrival_ms == 0
    assert p.scheduler_label == "FCFS"
    assert sim.state.ready_queue == [p]
    assert sim.state.used_memory_mb == 128
    assert sim.metric_strings()["total_processes"] == "1"
    assert "Created: editor (Burst: 100ms, Priority: 3)" in sim.activity.entries[0]


def test_invalid_process_is_reported_without_state_change():
    sim = Simulation(SimulationConfig(total_memory_mb=100))
    for burst, memory in ((0, 10), (-5, 10), (100, -1), (100, 101)):
        assert sim.create_process("bad", burst, memory_mb=memory) is None

    assert sim.processes == ()
    assert sim.state.ready_queue == []
    assert sim.state.used_memory_mb == 0
    assert "Error creating process" in sim.activity.entries[0]
    assert sim.create_process("good", 10).pid == 1


def test_memory_limit_can_be_disabled():
    sim = Simulation(SimulationConfig(total_memory_mb=100, enforce_memory_limit=False))
    assert sim.create_process("big", 10, memory_mb=500) is not None
    assert sim.state.used_memory_mb == 500


def test_unnamed_process_gets_default_name():
    sim = Simulation()
    assert sim.create_process("", 10).name == "P1"


def test_simulations_have_independent_pids():
    a, b = Simulation(), Simulation()
    a.create_process("x", 10)
    a.create_process("y", 10)
    assert b.create_process("z", 10).pid == 1


def test_start_without_processes_is_reported_no_op():
    sim = Simulation()
    assert not sim.start()
    assert sim.status is SimulationStatus.IDLE
    assert "No processes to simulate" in sim.activity.entries[0]


def test_tick_does_nothing_unless_running():
    sim = _sim()
    assert sim.tick() == []
    assert sim.state.clock_ms == 0
    assert sim.processes[0].remaining_time == 100


def test_fcfs_end_to_end():
    sim = _sim()
    ticks = sim.run_to_completion(10)

    assert ticks == 35
    assert sim.status is SimulationStatus.COMPLETED
    assert sim.status_text == "All processes completed!"
    assert [p.name for p in sim.state.terminated] == ["job0", "job1", "job2"]
    assert [p.completion_ms for p in sim.state.terminated] == [100, 150, 350]
    assert [p.turnaround_time for p in sim.processes] == [100, 150, 350]
    assert [p.waiting_ms for p in sim.processes] == [0, 100, 150]
    assert sim.metrics.avg_turnaround_ms == pytest.approx(200)
    assert sim.metrics.avg_waiting_ms == pytest.approx(250 / 3)
    assert sim.metrics.context_switches == 2
    assert sim.state.used_memory_mb == 0
    assert [(s.pid, s.start_time, s.end_time) for s in sim.timeline] == [(1, 0, 100), (2, 100, 150), (3, 150, 350)]


def test_invariants_hold_and_completion_happens_exactly_when_idle():
    sim = _sim(bursts=(35, 20, 45), algorithm="rr", round_robin_quantum_ms=20)
    sim.start()
    while sim.status is SimulationStatus.RUNNING:
        sim.tick(10)
        _check_invariants(sim)
        idle = not sim.state.ready_queue and sim.state.running is None
        assert (sim.status is SimulationStatus.COMPLETED) == idle
    assert len(sim.state.terminated) == 3


def test_partial_last_tick_floors_remaining_time():
    sim = _sim(bursts=(25,))
    assert sim.run_to_completion(10) == 3
    p = sim.processes[0]
    assert p.remaining_time == 0
    assert p.completion_ms == 30
    assert sim.timeline[0].end_time == 25


def test_sjf_runs_shortest_job_first():
    sim = _sim(bursts=(300, 100), algorithm="sjf")
    sim.run_to_completion()
    assert [p.name for p in sim.state.terminated] == ["job1", "job0"]


def test_round_robin_rotates_through_ready_queue():
    sim = _sim(bursts=(100, 100), algorithm="rr")
    sim.run_to_completion(10)

    assert [(s.pid, s.start_time, s.end_time) for s in sim.timeline] == [
        (1, 0, 50),
        (2, 50, 100),
        (1, 100, 150),
        (2, 150, 200),
    ]
    a, b = sim.processes
    assert a.response_time == 0
    assert b.response_time == 50
    assert b.first_run_ms == 50
    assert sim.metrics.context_switches == 3
    assert a.waiting_ms == 50 and b.waiting_ms == 100


def test_round_robin_preempts_to_back_of_queue():
    sim = _sim(bursts=(200, 200, 200), algorithm="rr")
    sim.start()
    for _ in range(6):
        events = sim.tick(10)

    kinds = [e.kind for e in events]
    assert kinds == [EventKind.PREEMPTED, EventKind.DISPATCHED]
    assert sim.state.running.name == "job1"
    assert [p.name for p in sim.state.ready_queue] == ["job2", "job0"]


def test_pause_and_resume_keep_progress():
    sim = _sim()
    sim.start()
    for _ in range(3):
        sim.tick()
    assert sim.pause()
    assert sim.status is SimulationStatus.PAUSED
    assert sim.tick() == []
    assert sim.processes[0].remaining_time == 70

    assert sim.start()
    sim.tick()
    assert sim.processes[0].remaining_time == 60
    assert sim.state.start_ms == 0
    assert not Simulation().pause()


def test_start_after_completion_needs_new_work():
    sim = _sim(bursts=(20,))
    sim.run_to_completion()
    assert not sim.start()
    assert sim.status is SimulationStatus.COMPLETED

    late = sim.create_process("late", 30)
    assert late.arrival_ms == 20
    assert sim.start()
    sim.run_to_completion()
    assert late.completion_ms == 50
    assert late.turnaround_time == 30


def test_tick_error_pauses_instead_of_raising():
    class Broken(Scheduler):
        name = "broken"

        def get_next_process(self, ready_queue, current):
            raise RuntimeError("boom")

    sim = _sim()
    sim.scheduler = Broken()
    sim.start()
    events = sim.tick()

    assert sim.status is SimulationStatus.PAUSED
    assert isinstance(sim.last_error, TickError)
    assert isinstance(sim.last_error.cause, RuntimeError)
    assert [e.kind for e in events] == [EventKind.ERROR, EventKind.PAUSED]
    assert "Simulation error: boom" in sim.activity.entries[1]


def test_choosing_a_process_outside_the_ready_queue_is_a_tick_error():
    outsider = Simulation().create_process("outsider", 10)

    class Rogue(Scheduler):
        def get_next_process(self, ready_queue, current):
            return outsider

    sim = _sim()
    sim.scheduler = Rogue()
    sim.start()
    sim.tick()
    assert sim.status is SimulationStatus.PAUSED
    assert sim.state.running is None
    assert outsider.state is ProcessState.READY


def test_non_positive_tick_is_a_tick_error():
    sim = _sim()
    sim.start()
    sim.tick(0)
    assert sim.status is SimulationStatus.PAUSED
    assert sim.last_error is not None


def test_switch_algorithm_resets_and_relabels():
    sim = _sim(bursts=(100, 100))
    sim.start()
    sim.tick()

    rr = sim.switch_algorithm("rr")
    assert isinstance(rr, RoundRobinScheduler)
    assert rr.quantum == 50
    assert all(p.scheduler_label == "Round Robin (q=50ms)" for p in sim.processes)

    rr.on_tick(40)
    assert sim.switch_algorithm("fcfs").algorithm_name == "FCFS"
    assert sim.switch_algorithm("RR") is rr
    assert rr.quantum_used == 0
    assert "Scheduler: Round Robin (q=50ms)" in sim.activity.entries[0]

    with pytest.raises(ValueError):
        sim.switch_algorithm("lottery")


def test_switch_algorithm_mid_run_still_completes():
    sim = _sim(bursts=(100, 60, 80))
    sim.start()
    for _ in range(4):
        sim.tick()
    sim.switch_algorithm("sjf")
    sim.run_to_completion()
    assert [p.name for p in sim.state.terminated] == ["job0", "job1", "job2"]


def test_observers_receive_events_until_unsubscribed():
    sim = _sim(bursts=(20,))
    received = []
    unsubscribe = sim.subscribe(received.append)

    sim.start()
    sim.tick()
    assert [e.kind for batch in received for e in batch] == [EventKind.STARTED, EventKind.DISPATCHED]

    unsubscribe()
    sim.tick()
    assert len(received) == 2


def test_metric_strings_follow_cpu_state():
    sim = _sim(bursts=(20,))
    sim.start()
    sim.tick()
    assert sim.metric_strings()["cpu_utilization"] == "100%"
    sim.tick()
    strings = sim.metric_strings()
    assert strings["cpu_utilization"] == "0%"
    assert strings["throughput"] == "50.00/s"
    assert strings["avg_wait"] == "0 ms"


def test_activity_log_is_capped_and_newest_first():
    sim = Simulation(SimulationConfig(activity_log_capacity=5))
    for i in range(10):
        sim.create_process(f"job{i}", 10)
    entries = sim.activity.entries
    assert len(entries) == 5
    assert "job9" in entries[0]
    assert "job5" in entries[-1]


def test_activity_log_formats_clock():
    log = ActivityLog(capacity=2)
    log.add(0, "first")
    log.add(3_723_000, "second")
    log.add(5_000, "third")
    assert list(log) == ["[00:00:05] third", "[01:02:03] second"]
    assert format_clock(59_999) == "00:00:59"


def test_elapsed_display():
    sim = _sim(bursts=(2_000,))
    sim.run_to_completion(100)
    assert sim.elapsed_display == "00:00:02"
