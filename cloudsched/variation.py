"""Variation operators shared by the pollination and genetic strategies.

All operators take an explicit ``random.Random`` so runs are reproducible.
Children are always fresh lists; parents are never modified (except by
``swap_mutation``, which mutates its argument on purpose).

Children produced here usually violate the single-assignment invariant and
must go through ``cloudsched.repair.repair`` before being scored.
"""

from __future__ import annotations

import random
from typing import Optional

from cloudsched.models import Assignment


def draw_cut(rng: random.Random, machine_count: int) -> int:
    """Uniform cut index in ``[0, machine_count)``."""
    return rng.randrange(machine_count)


def segment_crossover(parent_a: Assignment, parent_b: Assignment, cut: int) -> Assignment:
    """Buckets ``0..cut`` from ``parent_a``, ``cut+1..end`` from ``parent_b``."""
    if len(parent_a) != len(parent_b):
        raise ValueError("Parents must have the same number of buckets")
    return [
        list(parent_a[i]) if i <= cut else list(parent_b[i]) for i in range(len(parent_a))
    ]


def pick_partner(rng: random.Random, index: int, population_size: int) -> Optional[int]:
    """Draw a second parent for local pollination.

    A draw equal to ``index`` is redrawn, except for slot 0 which takes the
    next slot (1) instead. Returns None when the population has no other
    member.
    """
    if population_size < 2:
        return None
    while True:
        other = rng.randrange(population_size)
        if other != index:
            return other
        if index == 0:
            return 1


def local_pollination(
    parent: Assignment, partner: Assignment, rng: random.Random
) -> Assignment:
    return segment_crossover(parent, partner, draw_cut(rng, len(parent)))


def global_pollination(parent: Assignment, best: Assignment, rng: random.Random) -> Assignment:
    return segment_crossover(parent, best, draw_cut(rng, len(parent)))


def swap_mutation(assignment: Assignment, rng: random.Random) -> bool:
    """Swap one random task between two distinct random machines, in place.

    Returns:
        True if a swap happened; False when there are fewer than two machines
        or one of the chosen buckets is empty.
    """
    if len(assignment) < 2:
        return False
    first, second = rng.sample(range(len(assignment)), 2)
    bucket_a, bucket_b = assignment[first], assignment[second]
    if not bucket_a or not bucket_b:
        return False
    pos_a = rng.randrange(len(bucket_a))
    pos_b = rng.randrange(len(bucket_b))
    bucket_a[pos_a], bucket_b[pos_b] = bucket_b[pos_b], bucket_a[pos_a]
    return True
