from __future__ import annotations


class SimulationError(Exception):
    """Base class for every error raised by the simulator core."""


class ValidationError(SimulationError, ValueError):
    """Invalid parameters for a new process (burst, memory, name)."""


class InvalidTransitionError(SimulationError):
    """A process was asked to move between two states that are not connected."""

    def __init__(self, pid: int, current, target) -> None:
        self.pid = pid
        self.current = current
        self.target = target
        super().__init__(f"P{pid}: cannot go from {current.value} to {target.value}")


class TickError(SimulationError):
    """
    Wraps an unexpected failure inside one tick of the simulation loop.

    The engine never lets it escape ``tick()``; it is kept as ``last_error``.
    """

    def __init__(self, clock_ms: int, cause: BaseException) -> None:
        self.clock_ms = clock_ms
        self.cause = cause
        super().__init__(f"tick at {clock_ms} ms failed: {cause}")
