from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .algorithms import ALGORITHMS
from .config import SimulationConfig, load_config
from .engine import Simulation, SimulationEvent
from .gantt import build_rich_gantt
from .metrics import summarize_process_metrics
from .timer import TickTimer
from .workload_io import ProcessSpec, generate_random_workload, load_workload, populate

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procsim",
        description="Tick-driven process scheduler simulator (FCFS, SJF, RR).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log scheduling decisions (-v for info, -vv for debug).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_simulation_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--config", "-c", default=None, help="JSON configuration file.")
        sub.add_argument("--tick", type=int, default=None, help="Tick length in ms (default: 10).")
        sub.add_argument(
            "--quantum",
            "-q",
            type=int,
            default=None,
            help="Round-robin quantum in ms (default: 50, ignored by FCFS and SJF).",
        )
        sub.add_argument("--memory", type=int, default=None, help="Total system memory in MB (default: 1024).")

    def add_run_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--algorithm",
            "-a",
            default=None,
            choices=sorted(ALGORITHMS),
            help="Scheduling algorithm (default: fcfs).",
        )
        sub.add_argument(
            "--realtime",
            action="store_true",
            help="Drive ticks from the wall clock and print events as they happen.",
        )
        sub.add_argument(
            "--log",
            type=int,
            default=10,
            help="Number of activity log entries to show (default: 10).",
        )

    run_parser = subparsers.add_parser("run", help="Simulate a workload file until every process completes.")
    run_parser.add_argument("--workload", "-w", required=True, help="Path to JSON or CSV workload file.")
    add_simulation_options(run_parser)
    add_run_options(run_parser)

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run several algorithms on the same workload and compare average metrics.",
    )
    compare_parser.add_argument("--workload", "-w", required=True, help="Path to JSON or CSV workload file.")
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=["fcfs", "sjf", "rr"],
        choices=sorted(ALGORITHMS),
        help="Algorithms to compare (default: fcfs sjf rr).",
    )
    add_simulation_options(compare_parser)

    demo_parser = subparsers.add_parser("demo", help="Simulate randomly generated processes.")
    demo_parser.add_argument("--count", "-n", type=int, default=10, help="Number of processes (default: 10).")
    demo_parser.add_argument("--seed", type=int, default=None, help="Random seed for a repeatable demo.")
    add_simulation_options(demo_parser)
    add_run_options(demo_parser)

    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _resolve_config(args: argparse.Namespace, algorithm: Optional[str] = None) -> SimulationConfig:
    config = load_config(args.config) if args.config else SimulationConfig()
    return config.with_overrides(
        tick_interval_ms=args.tick,
        round_robin_quantum_ms=args.quantum,
        total_memory_mb=args.memory,
        algorithm=algorithm,
    )


def _simulate(config: SimulationConfig, specs: List[ProcessSpec], realtime: bool, console: Console) -> Simulation:
    sim = Simulation(config)
    populate(sim, specs)

    if realtime:
        def print_events(events: List[SimulationEvent]) -> None:
            for event in events:
                console.print(f"[dim]{sim.elapsed_display}[/dim] {event.message}")

        console.print("[dim]Press Ctrl+C to pause.[/dim]")
        TickTimer(sim, on_tick=print_events).run()
    else:
        sim.run_to_completion()
    return sim


def _print_result(sim: Simulation, console: Console, log_entries: int) -> None:
    console.print(f"[bold]Algorithm:[/bold] {sim.scheduler.algorithm_name}")
    console.print(f"[bold]Status:[/bold] {sim.status_text}")
    console.print()

    panel, time_marks = build_rich_gantt(sim.timeline, unit_ms=sim.config.tick_interval_ms)
    console.print(panel)
    if time_marks:
        console.print(time_marks)

    console.print()

    headers = [
        "PID",
        "Name",
        "Burst",
        "Priority",
        "Memory",
        "First run",
        "Complete",
        "Wait",
        "Turnaround",
        "Response",
        "State",
    ]

    proc_table = Table(title="Per-process metrics (ms)", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "left" if h in {"Name", "State"} else "right"
        proc_table.add_column(h, justify=justify)

    for p in sim.processes:
        proc_table.add_row(
            str(p.pid),
            p.name,
            str(p.burst_time),
            str(p.priority),
            f"{p.memory_mb} MB",
            "" if p.first_run_ms is None else str(p.first_run_ms),
            "" if p.completion_ms is None else str(p.completion_ms),
            str(p.waiting_ms),
            str(p.turnaround_time),
            str(p.response_time),
            p.state.value,
        )

    console.print(proc_table)
    console.print()

    summary = summarize_process_metrics(list(sim.processes))
    metrics = sim.metrics
    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Processes", f"{metrics.completed_processes}/{metrics.total_processes} completed")
    sys_table.add_row("Elapsed", f"{sim.state.elapsed_ms} ms ({sim.elapsed_display})")
    sys_table.add_row("Avg waiting", f"{metrics.avg_waiting_ms:.2f} ms")
    sys_table.add_row("Avg turnaround", f"{metrics.avg_turnaround_ms:.2f} ms")
    sys_table.add_row("Avg response", f"{summary['avg_response']:.2f} ms")
    sys_table.add_row("Throughput", f"{metrics.throughput:.2f}/s")
    sys_table.add_row("Context switches", str(metrics.context_switches))
    console.print(sys_table)

    if log_entries > 0:
        console.print()
        console.print("[bold]Activity log[/bold] [dim](newest first)[/dim]")
        for entry in sim.activity.entries[:log_entries]:
            console.print(f"  {entry}", markup=False)


def _run_compare(config: SimulationConfig, specs: List[ProcessSpec], algorithms: List[str], console: Console) -> None:
    summary_table = Table(title="Algorithm comparison", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Avg response", justify="right")
    summary_table.add_column("Context switches", justify="right")
    summary_table.add_column("Elapsed", justify="right")

    for alg in algorithms:
        sim = _simulate(config.with_overrides(algorithm=alg), specs, realtime=False, console=console)
        summary = summarize_process_metrics(list(sim.processes))
        summary_table.add_row(
            sim.scheduler.algorithm_name,
            f"{summary['avg_waiting']:.2f}",
            f"{summary['avg_turnaround']:.2f}",
            f"{summary['avg_response']:.2f}",
            str(sim.metrics.context_switches),
            f"{sim.state.elapsed_ms} ms",
        )

    console.print(summary_table)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    console = Console()

    try:
        config = _resolve_config(args, getattr(args, "algorithm", None))
        if args.command == "demo":
            budget = config.total_memory_mb if config.enforce_memory_limit else None
            specs = generate_random_workload(args.count, seed=args.seed, memory_budget_mb=budget)
        else:
            specs = load_workload(Path(args.workload))
    except (OSError, ValueError) as exc:
        logger.debug("Could not prepare simulation", exc_info=True)
        console.print(f"[red]Error: {exc}[/red]")
        return 1

    if args.command in {"run", "demo"}:
        sim = _simulate(config, specs, realtime=args.realtime, console=console)
        _print_result(sim, console, args.log)
        return 0

    if args.command == "compare":
        _run_compare(config, specs, args.algorithms, console)
        return 0

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
