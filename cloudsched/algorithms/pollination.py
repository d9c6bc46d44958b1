"""Flower-pollination style strategy: segment recombination, replace-if-better."""

from __future__ import annotations

import logging

from cloudsched.algorithms.base import OptimizerState, VariationStrategy
from cloudsched.variation import global_pollination, local_pollination, pick_partner

logger = logging.getLogger("cloudsched.algorithms.pollination")


class PollinationStrategy(VariationStrategy):
    """Visit every slot once per generation and try to improve it.

    For slot ``i`` a Bernoulli trial with ``local_probability`` picks local
    pollination (partner drawn from the population) or global pollination
    (partner is the best-known solution). The child is repaired and scored;
    it replaces slot ``i`` only if strictly better than the resident and,
    independently, the best-known solution only if strictly better than it.
    """

    name = "pollination"

    def __init__(self, generations: int = 100, local_probability: float = 0.8) -> None:
        super().__init__(generations)
        self.local_probability = local_probability

    def run_generation(self, state: OptimizerState) -> None:
        rng = state.rng
        size = len(state.population)
        local_count = 0
        replaced = 0
        for i in range(size):
            parent = state.population[i]
            partner_index = None
            if rng.random() < self.local_probability:
                partner_index = pick_partner(rng, i, size)
            if partner_index is not None:
                child = local_pollination(parent, state.population[partner_index], rng)
                local_count += 1
            else:
                child = global_pollination(parent, state.best, rng)
            state.repair(child)
            (child_fitness,) = state.score([child])
            if child_fitness < state.fitness[i]:
                state.population[i] = child
                state.fitness[i] = child_fitness
                replaced += 1
            state.update_best(child, child_fitness)
        logger.debug(
            "[pollination] gen %d local=%d global=%d replaced=%d best=%.4f",
            state.generation + 1,
            local_count,
            size - local_count,
            replaced,
            state.best_fitness,
        )
