"""Solution repair: restore the single-assignment invariant in place.

Segment recombination copies each parent's buckets independently, so a child
may hold a task twice (once from each parent) or not at all. ``repair`` fixes
both cases in two ordered passes:

1. Deduplication -- a task present in several buckets stays only in the
   bucket with the smallest current completion time (ties: lowest machine
   index); every other occurrence is removed.
2. Omission -- every missing task goes to the least-loaded machine whose
   bucket is still below ``capacity``. When all buckets are full a
   ``RepairExhausted`` warning is emitted and the task is placed on the
   least-loaded machine anyway, so no task is ever lost.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field

from cloudsched.errors import InvalidAssignment, RepairExhausted
from cloudsched.models import Assignment, Workload
from cloudsched.operations import validate_assignment

logger = logging.getLogger("cloudsched.repair")


@dataclass
class RepairReport:
    """What a single ``repair`` call changed."""

    duplicates_removed: int = 0
    omissions_filled: int = 0
    unknown_removed: int = 0
    exhausted: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.duplicates_removed or self.omissions_filled or self.unknown_removed)


def _bucket_time(workload: Workload, assignment: Assignment, machine_index: int) -> float:
    total = sum(workload.length_of(t) for t in assignment[machine_index])
    return total / workload.speed_of(machine_index)


def repair(workload: Workload, assignment: Assignment, capacity: int) -> RepairReport:
    """Repair ``assignment`` in place.

    Args:
        workload: Run description (lengths, speeds, the full task id set).
        assignment: Candidate with one bucket per machine; modified in place.
        capacity: Bucket size bound used by the omission pass.

    Returns:
        RepairReport with counters; ``exhausted`` lists the tasks placed on a
        machine that was already at capacity.

    Raises:
        InvalidAssignment: If the bucket count differs from the machine count,
            or the result is still inconsistent (never expected).
    """
    if len(assignment) != workload.machine_count:
        raise InvalidAssignment(
            f"Expected {workload.machine_count} buckets, got {len(assignment)}"
        )
    report = RepairReport()
    machine_count = workload.machine_count

    for machine_index, bucket in enumerate(assignment):
        known = [t for t in bucket if workload.has_task(t)]
        if len(known) != len(bucket):
            report.unknown_removed += len(bucket) - len(known)
            bucket[:] = known

    loads = [_bucket_time(workload, assignment, m) for m in range(machine_count)]

    occurrences: dict[int, list[int]] = {}
    for machine_index, bucket in enumerate(assignment):
        for task_id in bucket:
            occurrences.setdefault(task_id, []).append(machine_index)

    # pass 1: duplicates
    for task_id in workload.task_ids:
        holders = occurrences.get(task_id, [])
        if len(holders) < 2:
            continue
        keep = min(set(holders), key=lambda m: (loads[m], m))
        for machine_index in sorted(set(holders)):
            bucket = assignment[machine_index]
            kept_one = False
            filtered = []
            for t in bucket:
                if t != task_id:
                    filtered.append(t)
                elif machine_index == keep and not kept_one:
                    filtered.append(t)
                    kept_one = True
                else:
                    report.duplicates_removed += 1
            bucket[:] = filtered
            loads[machine_index] = _bucket_time(workload, assignment, machine_index)

    # pass 2: omissions
    for task_id in workload.task_ids:
        if task_id in occurrences:
            continue
        order = sorted(range(machine_count), key=lambda m: (loads[m], m))
        target = next((m for m in order if len(assignment[m]) < capacity), None)
        if target is None:
            target = order[0]
            report.exhausted.append(task_id)
            logger.warning(
                "repair exhausted: task %d placed on machine %d above capacity %d",
                task_id,
                target,
                capacity,
            )
            warnings.warn(
                f"No machine under capacity {capacity} for task {task_id}; "
                f"placed on machine {target}",
                RepairExhausted,
                stacklevel=2,
            )
        assignment[target].append(task_id)
        loads[target] = _bucket_time(workload, assignment, target)
        report.omissions_filled += 1

    validate_assignment(workload, assignment)
    return report
