"""Optimizer loop shared by both population strategies.

Runs ``Init -> Evaluate -> {Vary -> Repair -> Evaluate -> Select} x
generations -> Finalize``. The variation/selection part of a generation is
delegated to a ``VariationStrategy``; everything else (population seeding,
best-known tracking, cancellation, tracing, result assembly) lives here.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from pathlib import Path
from typing import Iterable, Optional, Protocol

from cloudsched.algorithms import GeneticStrategy, OptimizerState, PollinationStrategy
from cloudsched.algorithms.base import VariationStrategy, log_generation, open_trace_file
from cloudsched.checkpoint import load_population, save_population
from cloudsched.config import OptimizerConfig
from cloudsched.errors import CheckpointCorrupt
from cloudsched.models import Machine, Population, ScheduleResult, Task, Workload
from cloudsched.operations import (
    capacity,
    copy_assignment,
    create_random_assignment,
    create_round_robin_assignment,
    to_task_mapping,
)

logger = logging.getLogger("cloudsched.optimizer")

ALGORITHMS = ("pollination", "genetic")


class PopulationInitializer(Protocol):
    def __call__(
        self, workload: Workload, size: int, cap: int, rng: random.Random
    ) -> Population: ...


class CheckpointInitializer:
    """Seed the population from a checkpoint file; failures are fatal."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def __call__(
        self, workload: Workload, size: int, cap: int, rng: random.Random
    ) -> Population:
        population = load_population(self.path, size, workload.machine_count)
        for member_index, member in enumerate(population):
            for bucket in member:
                unknown = [t for t in bucket if not workload.has_task(t)]
                if unknown:
                    raise CheckpointCorrupt(
                        f"{self.path}: member {member_index} references unknown tasks {unknown}"
                    )
        return population


class RandomInitializer:
    """Cold start: every member is a random capacity-respecting assignment."""

    def __call__(
        self, workload: Workload, size: int, cap: int, rng: random.Random
    ) -> Population:
        return [create_random_assignment(workload, cap, rng=rng) for _ in range(size)]


class RoundRobinInitializer:
    """Deterministic baseline: every member is the round-robin assignment."""

    def __call__(
        self, workload: Workload, size: int, cap: int, rng: random.Random
    ) -> Population:
        base = create_round_robin_assignment(workload)
        return [copy_assignment(base) for _ in range(size)]


def build_strategy(name: str, config: OptimizerConfig) -> VariationStrategy:
    """Instantiate the strategy ``name`` with its generation budget from ``config``."""
    if name == "pollination":
        return PollinationStrategy(
            generations=config.pollination_generations,
            local_probability=config.local_probability,
        )
    if name == "genetic":
        return GeneticStrategy(
            generations=config.genetic_generations,
            mutation_probability=config.mutation_probability,
        )
    raise ValueError(f"Unknown algorithm: {name}")


class Optimizer:
    """Generation loop around a pluggable ``VariationStrategy``.

    Args:
        workload: Immutable run description.
        strategy: Pollination or genetic strategy (owns the generation count).
        config: Hyper-parameters (population size, slack, workers, limits).
        rng: Injected random source; all randomness of the run comes from it.
        initializer: Population seeding strategy; defaults to random.
    """

    def __init__(
        self,
        workload: Workload,
        strategy: VariationStrategy,
        config: Optional[OptimizerConfig] = None,
        rng: Optional[random.Random] = None,
        initializer: Optional[PopulationInitializer] = None,
    ) -> None:
        self.workload = workload
        self.strategy = strategy
        self.config = config if config is not None else OptimizerConfig()
        self.rng = rng if rng is not None else random.Random()
        self.initializer = initializer if initializer is not None else RandomInitializer()

    def initialize(self) -> OptimizerState:
        """Init + Evaluate: seed, repair and score the population."""
        cap = capacity(self.workload, self.config.capacity_slack)
        state = OptimizerState(
            workload=self.workload,
            config=self.config,
            rng=self.rng,
            capacity=cap,
            start_time=time.time(),
        )
        population = self.initializer(self.workload, self.config.population_size, cap, self.rng)
        for member in population:
            state.repair(member)
        state.population = population
        state.fitness = state.score(population)
        best_index = min(range(len(population)), key=lambda k: state.fitness[k])
        state.update_best(population[best_index], state.fitness[best_index])
        state.best_history.append(state.best_fitness)
        logger.info(
            "[%s] init tasks=%d machines=%d population=%d capacity=%d best=%.4f",
            self.strategy.name,
            self.workload.task_count,
            self.workload.machine_count,
            len(population),
            cap,
            state.best_fitness,
        )
        return state

    def _should_stop(self, state: OptimizerState, cancel_event: Optional[threading.Event]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("[%s] cancelled at generation %d", self.strategy.name, state.generation)
            return True
        limit = self.config.time_limit_ms
        if limit is not None and state.elapsed_ms() >= limit:
            logger.info(
                "[%s] stop time_limit reached at generation %d best=%.4f",
                self.strategy.name,
                state.generation,
                state.best_fitness,
            )
            return True
        return False

    def run(self, cancel_event: Optional[threading.Event] = None) -> ScheduleResult:
        state = self.initialize()
        total = self.strategy.generations
        cancelled = False
        log_every = max(1, self.config.log_every)
        with open_trace_file(self.config.trace_file, self.strategy.name) as trace_file:
            for _ in range(total):
                if self._should_stop(state, cancel_event):
                    cancelled = True
                    break
                self.strategy.run_generation(state)
                state.generation += 1
                state.best_history.append(state.best_fitness)
                log_generation(trace_file, state)
                if state.generation % log_every == 0 or state.generation == total:
                    logger.info(
                        "[%s] gen %d/%d best=%.4f mean=%.4f evals=%d",
                        self.strategy.name,
                        state.generation,
                        total,
                        state.best_fitness,
                        state.mean_fitness(),
                        state.evaluations,
                    )
        return self.finalize(state, cancelled)

    def finalize(self, state: OptimizerState, cancelled: bool = False) -> ScheduleResult:
        if self.config.checkpoint_out:
            save_population(state.population, self.config.checkpoint_out)
        if state.repair_exhausted:
            logger.warning(
                "[%s] %d task placement(s) exceeded capacity %d; consider a larger slack",
                self.strategy.name,
                state.repair_exhausted,
                state.capacity,
            )
        result = ScheduleResult(
            mapping=to_task_mapping(state.best),
            makespan=state.best_fitness,
            assignment=copy_assignment(state.best),
            algorithm=self.strategy.name,
            generations=state.generation,
            best_history=list(state.best_history),
            evaluations=state.evaluations,
            repair_exhausted=state.repair_exhausted,
            cancelled=cancelled,
            elapsed_ms=state.elapsed_ms(),
        )
        logger.info(
            "[%s] final makespan=%.4f generations=%d evals=%d",
            result.algorithm,
            result.makespan,
            result.generations,
            result.evaluations,
        )
        return result


def schedule_tasks(
    tasks: Iterable[Task],
    machines: Iterable[Machine],
    algorithm: str = "pollination",
    config: Optional[OptimizerConfig] = None,
    rng: Optional[random.Random] = None,
    initializer: Optional[PopulationInitializer] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ScheduleResult:
    """Build the workload, run the chosen algorithm and return its result.

    Raises:
        EmptyWorkload: If ``tasks`` or ``machines`` is empty.
        ValueError: On an unknown algorithm name or invalid inputs.
        CheckpointMissing / CheckpointCorrupt: From a checkpoint initializer.
    """
    config = config if config is not None else OptimizerConfig()
    workload = Workload(tasks=tuple(tasks), machines=tuple(machines))
    optimizer = Optimizer(
        workload,
        build_strategy(algorithm, config),
        config=config,
        rng=rng,
        initializer=initializer,
    )
    return optimizer.run(cancel_event=cancel_event)
