from __future__ import annotations

from typing import Dict, List

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import ScheduledSlice


def render_gantt(slices: List[ScheduledSlice], unit_ms: int = 10) -> str:
    """
    Plain-text Gantt chart, one column per ``unit_ms`` of simulated time.
    """
    if not slices:
        return "(no execution)"

    slices = sorted(slices, key=lambda s: (s.start_time, s.end_time))

    line = "|"
    labels = ""
    time_marks = "0"
    last_time = 0

    for sl in slices:
        idle_gap = _columns(sl.start_time - last_time, unit_ms)
        if idle_gap > 0:
            line += "." * idle_gap
            labels += " " * idle_gap
            time_marks += f" {sl.start_time}"

        width = max(1, _columns(sl.end_time - sl.start_time, unit_ms))
        line += "=" * width
        labels += _label(sl, width)
        last_time = sl.end_time
        time_marks += f" {last_time}"

    line += "|"

    return "\n".join(["Gantt Chart:", line, labels, time_marks])


def build_rich_gantt(slices: List[ScheduledSlice], unit_ms: int = 10) -> tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart and a string with time marks.
    """
    if not slices:
        panel = Panel("No execution", title="Gantt Chart")
        return panel, ""

    slices = sorted(slices, key=lambda s: (s.start_time, s.end_time))

    colors = ["red", "green", "yellow", "blue", "magenta", "cyan"]
    pid_to_color: Dict[int, str] = {}

    def pid_color(pid: int) -> str:
        if pid not in pid_to_color:
            idx = len(pid_to_color) % len(colors)
            pid_to_color[pid] = colors[idx]
        return pid_to_color[pid]

    timeline = Text()
    labels = Text()
    time_marks = ["0"]
    last_time = 0

    for sl in slices:
        idle_gap = _columns(sl.start_time - last_time, unit_ms)
        if idle_gap > 0:
            timeline.append(" " * idle_gap)
            labels.append(" " * idle_gap)
            time_marks.append(str(sl.start_time))

        width = max(1, _columns(sl.end_time - sl.start_time, unit_ms))
        timeline.append(" " * width, style=f"on {pid_color(sl.pid)}")
        labels.append(_label(sl, width), style="bold")

        last_time = sl.end_time
        time_marks.append(str(last_time))

    table = Table.grid(padding=(0, 0))
    table.add_row(timeline)
    table.add_row(labels)

    panel = Panel.fit(table, title=f"Gantt Chart (1 column = {unit_ms} ms)")
    return panel, " ".join(time_marks) + " ms"


def _columns(duration_ms: int, unit_ms: int) -> int:
    return -(-duration_ms // unit_ms) if duration_ms > 0 else 0


def _label(sl: ScheduledSlice, width: int) -> str:
    return f"P{sl.pid}"[:width].ljust(width)
