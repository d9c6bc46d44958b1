"""Seeded random workloads: task lengths and tiered machine speeds."""

import random
from typing import Sequence

from cloudsched.models import Workload

DEFAULT_SPEED_TIERS = (250.0, 500.0, 1000.0)


def generate_workload(
    task_count: int,
    machine_count: int,
    seed: int = 0,
    min_length: int = 1000,
    max_length: int = 20000,
    speed_tiers: Sequence[float] = DEFAULT_SPEED_TIERS,
) -> Workload:
    """Generate a random cloud-like workload (task lengths, machine speeds)."""
    if min_length <= 0 or max_length < min_length:
        raise ValueError(f"invalid length range [{min_length}, {max_length}]")
    if not speed_tiers:
        raise ValueError("speed_tiers must not be empty")
    rng = random.Random(seed)
    lengths = [rng.randint(min_length, max_length) for _ in range(task_count)]
    speeds = [rng.choice(list(speed_tiers)) for _ in range(machine_count)]
    return Workload.from_lists(lengths, speeds)
