"""Common structures and helper functions for the population strategies."""

from __future__ import annotations

import abc
import logging
import random
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Sequence

from cloudsched.config import OptimizerConfig
from cloudsched.evaluation import evaluate_many
from cloudsched.models import Assignment, Population, Workload
from cloudsched.operations import copy_assignment
from cloudsched.repair import repair

logger = logging.getLogger("cloudsched.algorithms")


@dataclass
class OptimizerState:
    """Shared, generation-consistent state of one optimizer run.

    Only the optimizer's control thread mutates it; strategies receive it in
    ``run_generation`` and commit their selection decisions before returning.
    """

    workload: Workload
    config: OptimizerConfig
    rng: random.Random
    capacity: int
    population: Population = field(default_factory=list)
    fitness: List[float] = field(default_factory=list)
    best: Assignment = field(default_factory=list)
    best_fitness: float = float("inf")
    best_history: List[float] = field(default_factory=list)
    evaluations: int = 0
    repair_exhausted: int = 0
    generation: int = 0
    start_time: float = 0.0

    def update_best(self, candidate: Assignment, fitness: float) -> bool:
        """Replace the best-known solution on strict improvement."""
        if fitness < self.best_fitness:
            self.best_fitness = fitness
            self.best = copy_assignment(candidate)
            return True
        return False

    def repair(self, candidate: Assignment) -> Assignment:
        report = repair(self.workload, candidate, self.capacity)
        self.repair_exhausted += len(report.exhausted)
        return candidate

    def score(self, candidates: Sequence[Assignment]) -> list[float]:
        values = evaluate_many(self.workload, candidates, workers=self.config.eval_workers)
        self.evaluations += len(values)
        return values

    def mean_fitness(self) -> float:
        return sum(self.fitness) / len(self.fitness) if self.fitness else float("nan")

    def elapsed_ms(self) -> int:
        """Return elapsed time from start in ms."""
        return int((time.time() - self.start_time) * 1000)


class VariationStrategy(abc.ABC):
    """One generation of variation, repair, re-evaluation and selection."""

    name: str = "base"

    def __init__(self, generations: int) -> None:
        self.generations = generations

    @abc.abstractmethod
    def run_generation(self, state: OptimizerState) -> None:
        """Advance ``state`` by one generation (population, fitness, best)."""


@contextmanager
def open_trace_file(path: str | None, algo_name: str) -> Iterator[Any]:
    """Context manager for the per-generation CSV trace."""
    trace_file = None
    if path:
        try:
            trace_file = open(path, "w", encoding="utf-8")
            trace_file.write("generation,elapsed_ms,best_fitness,mean_fitness,evaluations\n")
        except OSError as e:
            logger.warning("[%s] Failed to open trace file %s: %s", algo_name, path, e)
            trace_file = None
    try:
        yield trace_file
    finally:
        if trace_file:
            trace_file.close()


def log_generation(trace_file: Any, state: OptimizerState) -> None:
    """Write one generation row to the trace file."""
    if trace_file:
        trace_file.write(
            f"{state.generation},{state.elapsed_ms()},{state.best_fitness:.6f},"
            f"{state.mean_fitness():.6f},{state.evaluations}\n"
        )
