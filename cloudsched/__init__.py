"""Core package for population-based task-to-machine scheduling.

Exports the data structures, the optimizer entry points and the error kinds.
"""

from cloudsched.config import OptimizerConfig  # noqa: F401
from cloudsched.errors import (  # noqa: F401
    CheckpointCorrupt,
    CheckpointMissing,
    EmptyWorkload,
    InvalidAssignment,
    RepairExhausted,
)
from cloudsched.models import Machine, ScheduleResult, Task, Workload  # noqa: F401
from cloudsched.optimizer import Optimizer, schedule_tasks  # noqa: F401

__all__ = [
    "CheckpointCorrupt",
    "CheckpointMissing",
    "EmptyWorkload",
    "InvalidAssignment",
    "Machine",
    "Optimizer",
    "OptimizerConfig",
    "RepairExhausted",
    "ScheduleResult",
    "Task",
    "Workload",
    "schedule_tasks",
]
