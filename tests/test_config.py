from __future__ import annotations

import pytest

from cloudsched.config import OptimizerConfig, load_config


def test_defaults() -> None:
    cfg = OptimizerConfig()
    assert cfg.population_size == 20
    assert cfg.generations_for("pollination") == 100
    assert cfg.generations_for("genetic") == 40
    assert cfg.local_probability == 0.8
    assert cfg.mutation_probability == 0.5
    assert cfg.capacity_slack == 1


def test_from_dict_ignores_unknown_keys() -> None:
    cfg = OptimizerConfig.from_dict({"population_size": 4, "colour": "blue"})
    assert cfg.population_size == 4
    assert OptimizerConfig.from_dict(None) == OptimizerConfig()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"population_size": 0},
        {"genetic_generations": -1},
        {"capacity_slack": -2},
        {"local_probability": 1.5},
        {"mutation_probability": -0.1},
        {"eval_workers": 0},
        {"time_limit_ms": 0},
    ],
)
def test_invalid_values(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        OptimizerConfig(**kwargs)


def test_generations_for_unknown() -> None:
    with pytest.raises(ValueError):
        OptimizerConfig().generations_for("tabu")


def test_load_config(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "algorithm: genetic\noptimizer:\n  population_size: 8\n  time_limit_ms: 500\n",
        encoding="utf-8",
    )
    raw = load_config(str(path))
    assert raw["algorithm"] == "genetic"
    cfg = OptimizerConfig.from_dict(raw["optimizer"])
    assert cfg.population_size == 8
    assert cfg.time_limit_ms == 500


def test_load_empty_config(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)) == {}
