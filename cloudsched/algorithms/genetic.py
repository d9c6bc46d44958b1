"""Genetic strategy: all-pairs crossover, swap mutation, truncation elitism."""

from __future__ import annotations

import logging
from typing import List, Sequence

from cloudsched.algorithms.base import OptimizerState, VariationStrategy
from cloudsched.models import Population
from cloudsched.variation import draw_cut, segment_crossover, swap_mutation

logger = logging.getLogger("cloudsched.algorithms.genetic")


def fitness_ratios(fitness: Sequence[float]) -> List[float]:
    """Share of each candidate in the population's total fitness.

    Diagnostic only: survival is decided by truncation, never by these
    ratios.
    """
    total = sum(fitness)
    if total <= 0:
        return [0.0 for _ in fitness]
    return [f / total for f in fitness]


class GeneticStrategy(VariationStrategy):
    """One generation over the whole population.

    1. Crossover: every unordered pair ``(i, j)`` shares one random cut and
       yields two repaired children, ``cross(i, j)`` and ``cross(j, i)``.
       With N members the extended population has ``N + 2 * C(N, 2)``
       candidates.
    2. Mutation: every extended candidate undergoes ``swap_mutation`` with
       probability ``mutation_probability``.
    3. Selection: all candidates are scored, stably sorted by fitness and the
       best N survive.
    """

    name = "genetic"

    def __init__(self, generations: int = 40, mutation_probability: float = 0.5) -> None:
        super().__init__(generations)
        self.mutation_probability = mutation_probability
        self.last_ratios: List[float] = []

    def crossover(self, state: OptimizerState) -> Population:
        population = state.population
        size = len(population)
        machine_count = state.workload.machine_count
        extended: Population = list(population)
        for i in range(size):
            for j in range(i + 1, size):
                cut = draw_cut(state.rng, machine_count)
                extended.append(state.repair(segment_crossover(population[i], population[j], cut)))
                extended.append(state.repair(segment_crossover(population[j], population[i], cut)))
        return extended

    def mutate(self, state: OptimizerState, extended: Population) -> int:
        mutated = 0
        for candidate in extended:
            if state.rng.random() < self.mutation_probability:
                if swap_mutation(candidate, state.rng):
                    mutated += 1
        return mutated

    def run_generation(self, state: OptimizerState) -> None:
        size = len(state.population)
        self.last_ratios = fitness_ratios(state.fitness)
        logger.debug(
            "[genetic] gen %d fitness ratios: %s",
            state.generation + 1,
            " ".join(f"{r:.4f}" for r in self.last_ratios),
        )

        extended = self.crossover(state)
        mutated = self.mutate(state, extended)
        scores = state.score(extended)

        order = sorted(range(len(extended)), key=lambda k: scores[k])[:size]
        state.population = [extended[k] for k in order]
        state.fitness = [scores[k] for k in order]
        state.update_best(state.population[0], state.fitness[0])
        logger.debug(
            "[genetic] gen %d extended=%d mutated=%d best=%.4f",
            state.generation + 1,
            len(extended),
            mutated,
            state.best_fitness,
        )
