"""Optimizer hyper-parameters and YAML configuration loading.

``OptimizerConfig`` bundles every tunable constant of both strategies so that
the CLI, the experiment runner and tests can pass one object around instead
of a long list of keyword arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

import yaml


@dataclass(slots=True)
class OptimizerConfig:
    """Bundle of configurable hyper-parameters.

    Defaults: 20 candidates, 100 pollination generations, 40 genetic
    generations, local pollination with probability 0.8, mutation with
    probability 0.5 and a capacity of ``ceil(tasks / machines) + 1``.
    """

    population_size: int = 20
    pollination_generations: int = 100
    genetic_generations: int = 40
    local_probability: float = 0.8
    mutation_probability: float = 0.5
    capacity_slack: int = 1
    eval_workers: int = 1
    time_limit_ms: int | None = None
    trace_file: str | None = None
    checkpoint_out: str | None = None
    log_every: int = 10

    def __post_init__(self) -> None:
        if self.population_size < 1:
            raise ValueError(f"population_size must be >= 1, got {self.population_size}")
        for name in ("pollination_generations", "genetic_generations", "capacity_slack"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("local_probability", "mutation_probability"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1], got {value}")
        if self.eval_workers < 1:
            raise ValueError(f"eval_workers must be >= 1, got {self.eval_workers}")
        if self.time_limit_ms is not None and self.time_limit_ms <= 0:
            raise ValueError(f"time_limit_ms must be positive, got {self.time_limit_ms}")

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "OptimizerConfig":
        """Build from a mapping, ignoring keys that are not config fields."""
        if not raw:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in raw.items() if k in known})

    def generations_for(self, algorithm: str) -> int:
        if algorithm == "pollination":
            return self.pollination_generations
        if algorithm == "genetic":
            return self.genetic_generations
        raise ValueError(f"Unknown algorithm: {algorithm}")


def load_config(config_file: str = "config.yaml") -> dict:
    """Load configuration from YAML file."""
    with open(config_file, "r", encoding="utf-8") as file:
        config = yaml.safe_load(file)
    return config or {}
