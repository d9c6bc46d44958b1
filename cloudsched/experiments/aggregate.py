from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger("cloudsched.experiments")

SUMMARY_COLUMNS = [
    "algorithm",
    "workload",
    "seed",
    "tasks",
    "machines",
    "makespan",
    "lower_bound",
    "gap_percent",
    "generations",
    "evaluations",
    "elapsed_ms",
    "repair_exhausted",
]


def load_results_dir(timestamp_dir: Path) -> List[Dict[str, Any]]:
    """Load all JSON result files of one batch directory (sorted by name)."""
    results: List[Dict[str, Any]] = []
    for file in sorted(Path(timestamp_dir).glob("*.json")):
        try:
            with open(file, "r", encoding="utf-8") as f:
                results.append(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("[Aggregate] Failed to load %s: %s", file, e)
    return results


def write_summary_csv(timestamp_dir: Path) -> Path:
    timestamp_dir = Path(timestamp_dir)
    out_path = timestamp_dir / "summary.csv"
    rows = load_results_dir(timestamp_dir)
    if not rows:
        logger.info("[Aggregate] No result files found to summarize.")
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(SUMMARY_COLUMNS)
        for r in rows:
            cfg = r["config"]
            writer.writerow(
                [
                    cfg.get("algorithm"),
                    cfg.get("workload_label"),
                    cfg.get("seed"),
                    r.get("task_count"),
                    r.get("machine_count"),
                    r.get("makespan"),
                    r.get("lower_bound"),
                    r.get("gap_percent"),
                    r.get("generations"),
                    r.get("evaluations"),
                    r.get("elapsed_ms"),
                    r.get("repair_exhausted"),
                ]
            )
    logger.info("[Aggregate] Summary written to %s (%d rows)", out_path, len(rows))
    return out_path
