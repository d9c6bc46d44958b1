import logging
import random
import threading

import pytest

from cloudsched.algorithms import GeneticStrategy, PollinationStrategy
from cloudsched.algorithms.genetic import fitness_ratios
from cloudsched.checkpoint import save_population
from cloudsched.config import OptimizerConfig
from cloudsched.errors import (
    CheckpointCorrupt,
    CheckpointMissing,
    EmptyWorkload,
    RepairExhausted,
)
from cloudsched.evaluation import evaluate
from cloudsched.models import Machine, Task, Workload
from cloudsched.operations import validate_assignment
from cloudsched.optimizer import (
    CheckpointInitializer,
    Optimizer,
    RoundRobinInitializer,
    build_strategy,
    schedule_tasks,
)
from cloudsched.workload_gen import generate_workload


def _config(**overrides) -> OptimizerConfig:
    base = dict(population_size=6, pollination_generations=15, genetic_generations=5)
    base.update(overrides)
    return OptimizerConfig(**base)


@pytest.mark.parametrize("algorithm", ["pollination", "genetic"])
def test_balanced_instance_reaches_optimum(algorithm: str) -> None:
    result = schedule_tasks(
        [Task(i, 10) for i in range(4)],
        [Machine(0, 1.0), Machine(1, 1.0)],
        algorithm=algorithm,
        rng=random.Random(0),
    )
    assert result.makespan <= 20.0
    assert sorted(result.mapping) == [0, 1, 2, 3]


@pytest.mark.parametrize("algorithm", ["pollination", "genetic"])
def test_single_machine_gets_everything(algorithm: str) -> None:
    result = schedule_tasks(
        [Task(i, 5) for i in range(3)],
        [Machine(0, 1.0)],
        algorithm=algorithm,
        config=_config(),
        rng=random.Random(1),
    )
    assert result.makespan == 15.0
    assert result.assignment == [[0, 1, 2]]
    assert result.mapping == {0: 0, 1: 0, 2: 0}


@pytest.mark.parametrize("algorithm", ["pollination", "genetic"])
def test_result_is_valid_and_history_monotone(small_workload, algorithm: str) -> None:
    config = _config()
    optimizer = Optimizer(
        small_workload,
        build_strategy(algorithm, config),
        config=config,
        rng=random.Random(42),
    )
    result = optimizer.run()
    validate_assignment(small_workload, result.assignment)
    assert evaluate(small_workload, result.assignment) == pytest.approx(result.makespan)
    assert result.generations == config.generations_for(algorithm)
    assert len(result.best_history) == result.generations + 1
    assert all(b <= a for a, b in zip(result.best_history, result.best_history[1:]))
    assert result.best_history[-1] == result.makespan
    assert not result.cancelled
    assert result.evaluations > config.population_size


@pytest.mark.parametrize("algorithm", ["pollination", "genetic"])
def test_same_seed_same_result(small_workload, algorithm: str) -> None:
    config = _config()

    def _run():
        return Optimizer(
            small_workload,
            build_strategy(algorithm, config),
            config=config,
            rng=random.Random(123),
        ).run()

    first, second = _run(), _run()
    assert first.assignment == second.assignment
    assert first.best_history == second.best_history
    assert first.evaluations == second.evaluations


def test_parallel_evaluation_does_not_change_result(small_workload) -> None:
    serial = Optimizer(
        small_workload, GeneticStrategy(generations=4), _config(), random.Random(5)
    ).run()
    parallel = Optimizer(
        small_workload,
        GeneticStrategy(generations=4),
        _config(eval_workers=4),
        random.Random(5),
    ).run()
    assert serial.assignment == parallel.assignment
    assert serial.best_history == parallel.best_history


def test_genetic_extended_population_size(small_workload) -> None:
    config = _config(population_size=5)
    optimizer = Optimizer(
        small_workload, GeneticStrategy(generations=1), config, random.Random(0)
    )
    state = optimizer.initialize()
    extended = GeneticStrategy().crossover(state)
    assert len(extended) == 5 + 2 * 10
    for candidate in extended:
        validate_assignment(small_workload, candidate)


def test_pollination_evaluation_count(small_workload) -> None:
    config = _config(population_size=4)
    result = Optimizer(
        small_workload, PollinationStrategy(generations=3), config, random.Random(0)
    ).run()
    # initial scoring plus one child per slot per generation
    assert result.evaluations == 4 + 3 * 4


def test_single_member_population_uses_global_pollination(small_workload) -> None:
    config = _config(population_size=1)
    result = Optimizer(
        small_workload,
        PollinationStrategy(generations=5, local_probability=1.0),
        config,
        random.Random(0),
    ).run()
    validate_assignment(small_workload, result.assignment)
    assert result.generations == 5


def test_round_robin_initializer(small_workload) -> None:
    config = _config(population_size=3)
    optimizer = Optimizer(
        small_workload,
        PollinationStrategy(generations=0),
        config,
        random.Random(0),
        initializer=RoundRobinInitializer(),
    )
    result = optimizer.run()
    assert result.generations == 0
    assert result.assignment == [[0, 3, 6, 9], [1, 4, 7, 10], [2, 5, 8, 11]]
    assert result.best_history == [result.makespan]


def test_checkpoint_initializer_seeds_population(tmp_path) -> None:
    workload = Workload.from_lists([3, 3, 3, 3], [1.0, 1.0])
    seed = [[[0, 1], [2, 3]], [[0, 1, 2], [3]]]
    path = tmp_path / "pop.txt"
    save_population(seed, path)
    optimizer = Optimizer(
        workload,
        PollinationStrategy(generations=0),
        _config(population_size=2),
        random.Random(0),
        initializer=CheckpointInitializer(path),
    )
    state = optimizer.initialize()
    assert state.population == seed
    assert state.fitness == [6.0, 9.0]
    assert state.best == [[0, 1], [2, 3]]


def test_checkpoint_initializer_repairs_members(tmp_path) -> None:
    workload = Workload.from_lists([3, 3, 3], [1.0, 1.0])
    path = tmp_path / "pop.txt"
    save_population([[[0, 1], [0]]], path)
    optimizer = Optimizer(
        workload,
        PollinationStrategy(generations=0),
        _config(population_size=1),
        random.Random(0),
        initializer=CheckpointInitializer(path),
    )
    state = optimizer.initialize()
    validate_assignment(workload, state.population[0])


def test_checkpoint_initializer_missing_file(tmp_path, small_workload) -> None:
    optimizer = Optimizer(
        small_workload,
        PollinationStrategy(generations=1),
        _config(),
        random.Random(0),
        initializer=CheckpointInitializer(tmp_path / "missing.txt"),
    )
    with pytest.raises(CheckpointMissing):
        optimizer.run()


def test_checkpoint_initializer_unknown_task(tmp_path) -> None:
    workload = Workload.from_lists([1, 1], [1.0, 1.0])
    path = tmp_path / "pop.txt"
    save_population([[[0], [1, 7]]], path)
    optimizer = Optimizer(
        workload,
        PollinationStrategy(generations=1),
        _config(population_size=1),
        random.Random(0),
        initializer=CheckpointInitializer(path),
    )
    with pytest.raises(CheckpointCorrupt):
        optimizer.run()


def test_checkpoint_initializer_wrong_population_size(tmp_path, small_workload) -> None:
    path = tmp_path / "pop.txt"
    save_population([[[0, 1, 2, 3], [4, 5, 6, 7], [8, 9, 10, 11]]], path)
    with pytest.raises(CheckpointCorrupt):
        schedule_tasks(
            small_workload.tasks,
            small_workload.machines,
            config=_config(population_size=2),
            initializer=CheckpointInitializer(path),
        )


def test_pre_set_cancel_event_stops_before_first_generation(small_workload) -> None:
    event = threading.Event()
    event.set()
    result = schedule_tasks(
        small_workload.tasks,
        small_workload.machines,
        algorithm="genetic",
        config=_config(),
        rng=random.Random(0),
        cancel_event=event,
    )
    assert result.cancelled
    assert result.generations == 0
    assert len(result.best_history) == 1
    validate_assignment(small_workload, result.assignment)


def test_time_limit_stops_early() -> None:
    workload = generate_workload(200, 10, seed=1)
    config = OptimizerConfig(population_size=10, genetic_generations=1000, time_limit_ms=1)
    result = Optimizer(workload, GeneticStrategy(generations=1000), config, random.Random(0)).run()
    assert result.cancelled
    assert result.generations < 1000
    validate_assignment(workload, result.assignment)


def test_trace_and_checkpoint_out(tmp_path, small_workload) -> None:
    trace = tmp_path / "trace.csv"
    out = tmp_path / "ckpt" / "final.txt"
    config = _config(trace_file=str(trace), checkpoint_out=str(out))
    result = Optimizer(
        small_workload, PollinationStrategy(generations=4), config, random.Random(0)
    ).run()
    lines = trace.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "generation,elapsed_ms,best_fitness,mean_fitness,evaluations"
    assert len(lines) == 1 + result.generations
    assert lines[-1].startswith("4,")
    saved = out.read_text(encoding="utf-8").splitlines()
    assert saved.count("NEW") == config.population_size


def test_unknown_algorithm() -> None:
    with pytest.raises(ValueError):
        build_strategy("annealing", OptimizerConfig())
    with pytest.raises(ValueError):
        schedule_tasks([Task(0, 1)], [Machine(0, 1.0)], algorithm="annealing")


def test_empty_inputs() -> None:
    with pytest.raises(EmptyWorkload):
        schedule_tasks([], [Machine(0, 1.0)])
    with pytest.raises(EmptyWorkload):
        schedule_tasks([Task(0, 1)], [])


def test_fitness_ratios() -> None:
    assert fitness_ratios([1.0, 3.0]) == [0.25, 0.75]
    assert fitness_ratios([0.0, 0.0]) == [0.0, 0.0]
    assert sum(fitness_ratios([2.0, 5.0, 9.0])) == pytest.approx(1.0)


def test_exhausted_placements_are_counted_and_run_completes(
    tmp_path, monkeypatch, caplog
) -> None:
    workload = Workload.from_lists([1, 1, 1], [1.0, 1.0])
    path = tmp_path / "pop.txt"
    # task 2 is missing from both members
    save_population([[[0], [1]], [[1], [0]]], path)
    # a bound of one task per machine leaves no room for the missing task
    monkeypatch.setattr("cloudsched.optimizer.capacity", lambda wl, slack=1: 1)
    optimizer = Optimizer(
        workload,
        PollinationStrategy(generations=3),
        _config(population_size=2, capacity_slack=0),
        random.Random(0),
        initializer=CheckpointInitializer(path),
    )
    with caplog.at_level(logging.WARNING, logger="cloudsched"):
        with pytest.warns(RepairExhausted):
            result = optimizer.run()
    assert result.repair_exhausted >= 2
    assert result.generations == 3
    assert not result.cancelled
    validate_assignment(workload, result.assignment)
    assert any("exceeded capacity" in r.getMessage() for r in caplog.records)
