"""Fitness evaluation (makespan) kept apart from the algorithms to avoid import cycles.

Contains ``machine_times`` (per-machine completion times), ``evaluate``
(makespan with an optional memo cache) and ``evaluate_many`` for scoring a
whole batch of candidates, optionally on a thread pool.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from cloudsched.models import Assignment, Workload

CacheType = dict[tuple[tuple[int, ...], ...], float]


def machine_times(workload: Workload, assignment: Assignment) -> list[float]:
    """Completion time of every machine: total task length / machine speed."""
    times = []
    for machine_index, bucket in enumerate(assignment):
        total = sum(workload.length_of(task_id) for task_id in bucket)
        times.append(total / workload.speed_of(machine_index))
    return times


def evaluate(
    workload: Workload,
    assignment: Assignment,
    cache: CacheType | None = None,
) -> float:
    """Makespan of ``assignment``: the largest per-machine completion time.

    ``cache`` is an optional memo keyed by the bucket contents, for callers
    that score the same assignment repeatedly. The optimizer does not use it.
    """
    key = None
    if cache is not None:
        key = tuple(tuple(bucket) for bucket in assignment)
        if key in cache:
            return cache[key]
    makespan = max(machine_times(workload, assignment), default=0.0)
    if cache is not None:
        cache[key] = makespan
    return makespan


def evaluate_many(
    workload: Workload,
    candidates: Sequence[Assignment],
    workers: int = 1,
) -> list[float]:
    """Score ``candidates`` and return fitness values in input order.

    Evaluation is a pure function over read-only data, so with ``workers > 1``
    the batch is mapped over a thread pool; results are collected before
    returning, i.e. before any selection step can observe them.
    """
    if workers <= 1 or len(candidates) < 2:
        return [evaluate(workload, c) for c in candidates]
    with ThreadPoolExecutor(max_workers=workers) as executor:

        def _score(candidate: Assignment) -> float:
            return evaluate(workload, candidate)

        return list(executor.map(_score, candidates))
