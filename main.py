#!/usr/bin/env python3
"""Command line entry point: run the task scheduler from a YAML config."""

import argparse
import logging
import os
import random
from datetime import datetime
from typing import Any, Dict

from cloudsched.checkpoint import save_population
from cloudsched.config import OptimizerConfig, load_config
from cloudsched.experiments.aggregate import write_summary_csv
from cloudsched.experiments.runner import ExperimentRunner, generate_plan
from cloudsched.models import ScheduleResult, Workload
from cloudsched.optimizer import (
    ALGORITHMS,
    CheckpointInitializer,
    Optimizer,
    RandomInitializer,
    build_strategy,
)
from cloudsched.operations import capacity
from cloudsched.parser import load_workload
from cloudsched.visualization import (
    next_unique_path,
    save_convergence_plot,
    save_machine_load_chart,
)
from cloudsched.workload_gen import generate_workload

logger = logging.getLogger("cloudsched")


def build_workload(cfg: Dict[str, Any]) -> tuple[Workload, str]:
    """Load the workload file or generate one; returns it with a short label."""
    workload_cfg = cfg.get("workload") or {}
    gen_cfg = workload_cfg.get("generate") or {}
    if gen_cfg:
        tasks = gen_cfg.get("tasks")
        machines = gen_cfg.get("machines")
        seed = gen_cfg.get("seed", 0)
        if tasks is None or machines is None:
            raise ValueError("workload.generate needs 'tasks' and 'machines'")
        workload = generate_workload(int(tasks), int(machines), seed=int(seed))
        return workload, f"generated_t{tasks}_m{machines}_seed{seed}"
    path = workload_cfg.get("file")
    if not path:
        raise ValueError("Config needs workload.file or workload.generate")
    return load_workload(path), os.path.splitext(os.path.basename(path))[0]


def make_initializer(checkpoint_cfg: Dict[str, Any], workload: Workload, opt: OptimizerConfig):
    """Checkpoint seeding when configured; a missing file is created first if asked."""
    path = checkpoint_cfg.get("load")
    if not path:
        return RandomInitializer()
    if not os.path.isfile(path) and checkpoint_cfg.get("create_if_missing"):
        rng = random.Random(checkpoint_cfg.get("seed", 0))
        cap = capacity(workload, opt.capacity_slack)
        population = RandomInitializer()(workload, opt.population_size, cap, rng)
        save_population(population, path)
        logger.info("Created initial checkpoint %s", path)
    return CheckpointInitializer(path)


def run_algorithms(
    workload: Workload,
    algorithms: list[str],
    opt: OptimizerConfig,
    seed: Any,
    checkpoint_cfg: Dict[str, Any],
) -> Dict[str, ScheduleResult]:
    results: Dict[str, ScheduleResult] = {}
    for name in algorithms:
        rng = random.Random(seed) if seed is not None else random.Random()
        optimizer = Optimizer(
            workload,
            build_strategy(name, opt),
            config=opt,
            rng=rng,
            initializer=make_initializer(checkpoint_cfg, workload, opt),
        )
        results[name] = optimizer.run()
    return results


def save_charts(
    workload: Workload, results: Dict[str, ScheduleResult], charts_dir: str, label: str
) -> None:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    for name, result in results.items():
        path = next_unique_path(
            os.path.join(charts_dir, f"load_{name}_{label}_c{result.makespan:.0f}_{stamp}.png")
        )
        save_machine_load_chart(
            workload, result.assignment, path, title=f"{name}: {result.makespan:.2f}"
        )
    save_convergence_plot(
        {name: r.best_history for name, r in results.items()},
        next_unique_path(os.path.join(charts_dir, f"convergence_{label}_{stamp}.png")),
    )


def main(cfg: Dict[str, Any]) -> None:
    workload, label = build_workload(cfg)
    logger.info(
        "Workload %s: tasks=%d machines=%d", label, workload.task_count, workload.machine_count
    )
    opt_raw = dict(cfg.get("optimizer") or {})
    checkpoint_cfg = cfg.get("checkpoint") or {}
    if checkpoint_cfg.get("save"):
        opt_raw["checkpoint_out"] = checkpoint_cfg["save"]
    opt = OptimizerConfig.from_dict(opt_raw)
    seed = cfg.get("seed")

    exp_cfg = cfg.get("experiment") or {}
    if exp_cfg.get("enabled"):
        seeds = exp_cfg.get("seeds") or list(range(int(exp_cfg.get("repeats", 5))))
        plan = generate_plan(label, seeds, exp_cfg.get("algorithms"))
        runner = ExperimentRunner(exp_cfg.get("out_dir", "results/experiments"))
        runner.run(workload, plan, opt)
        write_summary_csv(runner.timestamp_dir)
        logger.info("Experiment batch completed: %s", runner.timestamp_dir)
        return

    algo = cfg.get("algorithm", "pollination")
    algorithms = list(ALGORITHMS) if algo == "both" else [algo]
    results = run_algorithms(workload, algorithms, opt, seed, checkpoint_cfg)
    for name, result in results.items():
        print(f"Final makespan for {name}: {result.makespan:.4f}")
        print(f"Task -> machine: {result.mapping}")

    charts_cfg = cfg.get("charts") or {}
    if charts_cfg.get("enabled", True):
        save_charts(workload, results, charts_cfg.get("dir", "charts"), label)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Population-based task scheduler (config only)")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file")
    args = parser.parse_args()

    if not os.path.isfile(args.config):
        raise FileNotFoundError(f"Config file not found: {args.config}")
    config = load_config(args.config)

    log_level = config.get("log_level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    main(config)
