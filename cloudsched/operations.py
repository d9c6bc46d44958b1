"""Assignment utilities: capacity bound, validation, initial assignments.

Concepts
--------
Assignment
    A list with one bucket per machine (``assignment[m]`` is the list of task
    ids processed by machine ``m``). A *valid* assignment contains every task
    id of the workload exactly once across all buckets. Bucket size is
    additionally bounded by ``capacity`` (a soft bound, see ``repair``).
"""

from __future__ import annotations

import math
import random
from typing import Optional

from cloudsched.errors import InvalidAssignment
from cloudsched.models import Assignment, Workload


def capacity(workload: Workload, slack: int = 1) -> int:
    """Maximum bucket size: even split rounded up plus ``slack``."""
    if slack < 0:
        raise ValueError(f"capacity slack must be >= 0, got {slack}")
    return math.ceil(workload.task_count / workload.machine_count) + slack


def empty_assignment(workload: Workload) -> Assignment:
    return [[] for _ in range(workload.machine_count)]


def copy_assignment(assignment: Assignment) -> Assignment:
    return [list(bucket) for bucket in assignment]


def validate_assignment(workload: Workload, assignment: Assignment) -> bool:
    """Validate bucket count and the single-assignment invariant.

    Args:
        workload: Run description supplying task ids and machine count.
        assignment: Candidate assignment to check.

    Returns:
        True if the assignment is valid (handy inside assertions).

    Raises:
        InvalidAssignment: If the number of buckets differs from the machine
            count, a task id is unknown, duplicated, or missing.
    """
    if len(assignment) != workload.machine_count:
        raise InvalidAssignment(
            f"Expected {workload.machine_count} buckets, got {len(assignment)}"
        )
    seen: set[int] = set()
    for machine_index, bucket in enumerate(assignment):
        for task_id in bucket:
            if not workload.has_task(task_id):
                raise InvalidAssignment(f"Unknown task id {task_id} on machine {machine_index}")
            if task_id in seen:
                raise InvalidAssignment(f"Task {task_id} assigned more than once")
            seen.add(task_id)
    if len(seen) != workload.task_count:
        missing = sorted(set(workload.task_ids) - seen)
        raise InvalidAssignment(f"Tasks not assigned: {missing}")
    return True


def create_round_robin_assignment(workload: Workload) -> Assignment:
    """Deal tasks to machines cyclically in ascending id order.

    This mirrors the simulator's default broker binding and is a trivial
    feasible baseline (bucket sizes differ by at most one).
    """
    assignment = empty_assignment(workload)
    for position, task_id in enumerate(workload.task_ids):
        assignment[position % workload.machine_count].append(task_id)
    return assignment


def create_random_assignment(
    workload: Workload,
    cap: int,
    *,
    rng: Optional[random.Random] = None,
) -> Assignment:
    """Generate a random valid assignment respecting ``cap``.

    Each task (ascending id) goes to a machine chosen uniformly among those
    whose bucket is still below ``cap``.

    Args:
        workload: Run description.
        cap: Bucket size bound, usually ``capacity(workload, slack)``.
        rng: Optional random.Random instance (for reproducibility). If None
            uses module-level random.

    Raises:
        ValueError: If ``cap * machine_count`` cannot hold every task.
    """
    if cap * workload.machine_count < workload.task_count:
        raise ValueError(
            f"capacity {cap} x {workload.machine_count} machines cannot hold "
            f"{workload.task_count} tasks"
        )
    if rng is None:
        rng = random
    assignment = empty_assignment(workload)
    open_machines = list(range(workload.machine_count))
    for task_id in workload.task_ids:
        machine_index = rng.choice(open_machines)
        assignment[machine_index].append(task_id)
        if len(assignment[machine_index]) >= cap:
            open_machines.remove(machine_index)
    return assignment


def to_task_mapping(assignment: Assignment) -> dict[int, int]:
    """Convert bucket form into ``task_id -> machine_index``."""
    mapping: dict[int, int] = {}
    for machine_index, bucket in enumerate(assignment):
        for task_id in bucket:
            mapping[task_id] = machine_index
    return dict(sorted(mapping.items()))
