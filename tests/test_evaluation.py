import random

import pytest

from cloudsched.evaluation import CacheType, evaluate, evaluate_many, machine_times
from cloudsched.models import Workload
from cloudsched.operations import capacity, create_random_assignment


def test_machine_times_and_makespan() -> None:
    wl = Workload.from_lists([10, 20, 30], [1.0, 2.0])
    assignment = [[0, 1], [2]]
    assert machine_times(wl, assignment) == [30.0, 15.0]
    assert evaluate(wl, assignment) == 30.0


def test_empty_buckets_cost_nothing() -> None:
    wl = Workload.from_lists([8], [1.0, 4.0, 2.0])
    assert machine_times(wl, [[], [0], []]) == [0.0, 2.0, 0.0]
    assert evaluate(wl, [[], [0], []]) == 2.0


def test_evaluate_deterministic_and_non_negative(small_workload) -> None:
    rng = random.Random(5)
    cap = capacity(small_workload)
    for _ in range(20):
        assignment = create_random_assignment(small_workload, cap, rng=rng)
        first = evaluate(small_workload, assignment)
        assert first >= 0
        assert evaluate(small_workload, assignment) == first


@pytest.mark.parametrize("k", [0.5, 2.0, 7.0])
def test_speed_scaling_scales_fitness(small_workload, k: float) -> None:
    scaled = Workload.from_lists(
        [t.length for t in small_workload.tasks],
        [m.speed * k for m in small_workload.machines],
    )
    assignment = create_random_assignment(
        small_workload, capacity(small_workload), rng=random.Random(1)
    )
    assert evaluate(scaled, assignment) == pytest.approx(evaluate(small_workload, assignment) / k)


def test_evaluate_cache_reuses_value() -> None:
    wl = Workload.from_lists([3, 4], [1.0, 1.0])
    cache: CacheType = {}
    assert evaluate(wl, [[0], [1]], cache=cache) == 4.0
    assert evaluate(wl, [[0], [1]], cache=cache) == 4.0
    assert len(cache) == 1
    evaluate(wl, [[0, 1], []], cache=cache)
    assert len(cache) == 2


def test_evaluate_many_parallel_matches_serial(small_workload) -> None:
    rng = random.Random(11)
    cap = capacity(small_workload)
    candidates = [create_random_assignment(small_workload, cap, rng=rng) for _ in range(25)]
    serial = evaluate_many(small_workload, candidates)
    parallel = evaluate_many(small_workload, candidates, workers=4)
    assert parallel == serial
    assert serial == [evaluate(small_workload, c) for c in candidates]
