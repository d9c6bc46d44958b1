from __future__ import annotations

import json
import logging
import random
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Sequence

from cloudsched.config import OptimizerConfig
from cloudsched.models import Workload
from cloudsched.optimizer import ALGORITHMS, Optimizer, build_strategy

logger = logging.getLogger("cloudsched.experiments")


@dataclass(frozen=True)
class RunConfig:
    """Single run of one algorithm on one workload with one seed."""

    algorithm: str  # 'pollination' | 'genetic'
    seed: int
    workload_label: str


@dataclass
class RunResult:
    config: RunConfig
    makespan: float
    generations: int
    best_history: List[float]
    evaluations: int
    elapsed_ms: int
    repair_exhausted: int
    task_count: int
    machine_count: int
    lower_bound: float

    def gap_percent(self) -> float | None:
        if self.lower_bound <= 0:
            return None
        return (self.makespan - self.lower_bound) / self.lower_bound * 100.0

    def to_dict(self):
        d = asdict(self)
        d["gap_percent"] = self.gap_percent()
        d["config"] = asdict(self.config)
        return d


def lower_bound(workload: Workload) -> float:
    """Makespan if the total load could be split perfectly across machines."""
    return workload.total_length() / sum(m.speed for m in workload.machines)


class ExperimentRunner:
    def __init__(self, base_results_dir: str | Path = "results/experiments"):
        """Every batch gets its own timestamped directory; older ones are kept."""
        self.base_dir = Path(base_results_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.timestamp_dir = self.base_dir / datetime.now().strftime("%Y%m%d_%H%M%S")
        self.timestamp_dir.mkdir(parents=True, exist_ok=True)

    def run(
        self,
        workload: Workload,
        configs: Sequence[RunConfig],
        optimizer_config: OptimizerConfig | None = None,
    ) -> List[RunResult]:
        optimizer_config = optimizer_config or OptimizerConfig()
        results: List[RunResult] = []
        for idx, cfg in enumerate(configs, start=1):
            logger.info("[Experiment] (%d/%d) Running: %s", idx, len(configs), cfg)
            result = self._run_single(workload, cfg, optimizer_config)
            results.append(result)
            self._persist_result(result)
        return results

    def _run_single(
        self, workload: Workload, cfg: RunConfig, optimizer_config: OptimizerConfig
    ) -> RunResult:
        # per-run outputs would overwrite each other across the batch
        run_config = replace(optimizer_config, trace_file=None, checkpoint_out=None)
        optimizer = Optimizer(
            workload,
            build_strategy(cfg.algorithm, run_config),
            config=run_config,
            rng=random.Random(cfg.seed),
        )
        outcome = optimizer.run()
        return RunResult(
            config=cfg,
            makespan=outcome.makespan,
            generations=outcome.generations,
            best_history=outcome.best_history,
            evaluations=outcome.evaluations,
            elapsed_ms=outcome.elapsed_ms,
            repair_exhausted=outcome.repair_exhausted,
            task_count=workload.task_count,
            machine_count=workload.machine_count,
            lower_bound=lower_bound(workload),
        )

    def _persist_result(self, result: RunResult) -> Path:
        cfg = result.config
        filename = (
            f"algo={cfg.algorithm}_workload={cfg.workload_label}"
            f"_t{result.task_count}_m{result.machine_count}_seed={cfg.seed}.json"
        )
        path = self.timestamp_dir / filename
        with open(path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2)
        logger.info("[Experiment] Saved %s", path)
        return path


def generate_plan(
    workload_label: str,
    seeds: Iterable[int],
    algorithms: Iterable[str] | None = None,
) -> List[RunConfig]:
    """Cartesian product of algorithms and seeds (all algorithms by default)."""
    algorithms = tuple(algorithms) if algorithms else ALGORITHMS
    for algo in algorithms:
        if algo not in ALGORITHMS:
            raise ValueError(f"Unknown algorithm: {algo}")
    seeds = list(seeds)
    return [
        RunConfig(algorithm=algo, seed=seed, workload_label=workload_label)
        for algo in algorithms
        for seed in seeds
    ]
