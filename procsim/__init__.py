"""
Process scheduler simulator package.

Simulates a single CPU handing out time slices to processes under a
pluggable scheduling policy (FCFS, SJF, Round-Robin), one tick at a time.
"""

from .algorithms import ALGORITHMS, FCFSScheduler, RoundRobinScheduler, Scheduler, SJFScheduler, create_scheduler
from .config import SimulationConfig
from .engine import Simulation, SimulationEvent, SimulationStatus
from .errors import InvalidTransitionError, SimulationError, TickError, ValidationError
from .models import Process, ProcessState, Resource

__all__ = [
    "ALGORITHMS",
    "FCFSScheduler",
    "InvalidTransitionError",
    "Process",
    "ProcessState",
    "Resource",
    "RoundRobinScheduler",
    "SJFScheduler",
    "Scheduler",
    "Simulation",
    "SimulationConfig",
    "SimulationError",
    "SimulationEvent",
    "SimulationStatus",
    "TickError",
    "ValidationError",
    "cli",
    "create_scheduler",
]
