"""Core data structures for task-to-machine scheduling runs.

This module defines:
    Task           -- single unit of work (id, length).
    Machine        -- processing resource (index, speed).
    Workload       -- immutable container with all tasks and machines of a run.
    Assignment     -- alias: one bucket of task ids per machine.
    Population     -- alias: list of candidate assignments.
    ScheduleResult -- final mapping plus objective value (makespan).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from cloudsched.errors import EmptyWorkload

Assignment = list[list[int]]  # assignment[machine_index] -> task ids
Population = list[Assignment]


def _integral(value: float) -> int | float:
    """Turn integral floats (5.0) into ints; anything else is left for validation."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass(frozen=True)
class Task:
    """Unit of work with a fixed length (abstract work units)."""

    task_id: int
    length: int


@dataclass(frozen=True)
class Machine:
    """Processing resource; ``index`` is the bucket slot in an assignment."""

    index: int
    speed: float


@dataclass(frozen=True)
class Workload:
    """Immutable description of one scheduling run.

    Attributes:
        tasks: Tasks sorted by ascending id.
        machines: Machines sorted by index (indices are exactly 0..M-1).

    Raises:
        EmptyWorkload: If there are no tasks or no machines.
        ValueError: On duplicate task ids, non-integer or non-positive lengths,
            non-positive or non-finite speeds, or machine indices that do not
            form the range 0..M-1.
    """

    tasks: tuple[Task, ...]
    machines: tuple[Machine, ...]
    _lengths: dict[int, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.tasks:
            raise EmptyWorkload("workload has no tasks")
        if not self.machines:
            raise EmptyWorkload("workload has no machines")
        tasks = tuple(sorted(self.tasks, key=lambda t: t.task_id))
        machines = tuple(sorted(self.machines, key=lambda m: m.index))
        lengths: dict[int, int] = {}
        for task in tasks:
            if task.task_id in lengths:
                raise ValueError(f"Duplicate task id: {task.task_id}")
            if isinstance(task.length, bool) or not isinstance(task.length, int):
                raise ValueError(
                    f"Task {task.task_id} length must be an integer, got {task.length!r}"
                )
            if task.length <= 0:
                raise ValueError(f"Task {task.task_id} has non-positive length {task.length}")
            lengths[task.task_id] = task.length
        for expected, machine in enumerate(machines):
            if machine.index != expected:
                raise ValueError(f"Machine indices must be 0..{len(machines) - 1}")
            if not (math.isfinite(machine.speed) and machine.speed > 0):
                raise ValueError(f"Machine {machine.index} has invalid speed {machine.speed}")
        object.__setattr__(self, "tasks", tasks)
        object.__setattr__(self, "machines", machines)
        object.__setattr__(self, "_lengths", lengths)

    @classmethod
    def from_lists(cls, lengths: Sequence[int], speeds: Sequence[float]) -> "Workload":
        """Build a workload with task ids 0..T-1 and machine indices 0..M-1.

        Integral floats such as ``5.0`` are accepted as lengths; ``2.7`` is not.
        """
        return cls(
            tasks=tuple(Task(task_id=i, length=_integral(x)) for i, x in enumerate(lengths)),
            machines=tuple(Machine(index=i, speed=float(s)) for i, s in enumerate(speeds)),
        )

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    @property
    def machine_count(self) -> int:
        return len(self.machines)

    @property
    def task_ids(self) -> list[int]:
        return [t.task_id for t in self.tasks]

    def has_task(self, task_id: int) -> bool:
        return task_id in self._lengths

    def length_of(self, task_id: int) -> int:
        return self._lengths[task_id]

    def speed_of(self, machine_index: int) -> float:
        return self.machines[machine_index].speed

    def total_length(self) -> int:
        return sum(self._lengths.values())


@dataclass
class ScheduleResult:
    """Outcome of one optimizer run.

    Fields:
        mapping: task id -> machine index, covering every task exactly once.
        makespan: Fitness of the best-known assignment.
        assignment: Best-known assignment (bucket form).
        algorithm: Name of the variation strategy used.
        generations: Number of generations actually completed.
        best_history: Best-known makespan after init and after each generation.
        evaluations: Number of fitness evaluations performed.
        repair_exhausted: How many tasks were placed above capacity.
        cancelled: True when the run stopped early (event or time limit).
        elapsed_ms: Wall time of the run.
    """

    mapping: dict[int, int]
    makespan: float
    assignment: Assignment
    algorithm: str
    generations: int
    best_history: list[float] = field(default_factory=list)
    evaluations: int = 0
    repair_exhausted: int = 0
    cancelled: bool = False
    elapsed_ms: int = 0
