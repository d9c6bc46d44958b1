"""matplotlib charts: per-machine load bars and convergence curves."""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib

matplotlib.use("Agg")  # Must be set before importing pyplot
import matplotlib.pyplot as plt  # noqa: E402

from cloudsched.evaluation import machine_times  # noqa: E402
from cloudsched.models import Assignment, Workload  # noqa: E402

logger = logging.getLogger("cloudsched.visualization")


def save_machine_load_chart(
    workload: Workload,
    assignment: Assignment,
    filepath: str,
    title: Optional[str] = None,
    show_labels: Optional[bool] = None,
) -> str:
    """Stacked horizontal bars: one row per machine, one segment per task.

    Segment width is the task's processing time on that machine
    (length / speed), so the right end of every row is the machine's
    completion time. A dashed line marks the makespan.

    Labels inside segments are drawn automatically only for small instances
    (<= 40 tasks) unless forced.
    """
    m = workload.machine_count
    n = workload.task_count
    times = machine_times(workload, assignment)
    makespan = max(times, default=0.0)

    # Adaptive sizing: height grows with machines
    fig, ax = plt.subplots(
        figsize=(min(10 + n * 0.03, 18), min(0.5 * m + 2, 16)),
        constrained_layout=True,
    )
    cmap = plt.get_cmap("tab20")
    if show_labels is None:
        show_labels = n <= 40
    for machine_index, bucket in enumerate(assignment):
        speed = workload.speed_of(machine_index)
        left = 0.0
        for task_id in bucket:
            duration = workload.length_of(task_id) / speed
            ax.barh(
                machine_index,
                duration,
                left=left,
                height=0.8,
                color=cmap(task_id % 20),
                alpha=0.85,
                edgecolor="black",
                linewidth=0.6,
            )
            if show_labels:
                ax.text(
                    left + duration / 2,
                    machine_index,
                    f"T{task_id}",
                    ha="center",
                    va="center",
                    fontsize=7,
                )
            left += duration
    ax.axvline(x=makespan, color="red", linestyle="--", linewidth=1.2)
    ax.set_xlabel("Time", fontsize=12)
    ax.set_ylabel("Machine", fontsize=12)
    ax.set_title(
        title or f"Machine load - makespan = {makespan:.2f}", fontsize=14, fontweight="bold"
    )
    ax.set_yticks(range(m))
    ax.set_yticklabels([f"M{i}" for i in range(m)])
    ax.grid(True, alpha=0.25, axis="x", linestyle="--", linewidth=0.7)
    ax.set_ylim(-0.5, m - 0.5)

    _ensure_dir(os.path.dirname(filepath))
    fig.savefig(filepath, dpi=180)
    plt.close(fig)
    logger.info("Machine load chart saved as: %s", filepath)
    return filepath


def save_convergence_plot(
    histories: Dict[str, List[float]],
    filepath: str,
    labels: Optional[Dict[str, str]] = None,
    colors: Optional[Dict[str, str]] = None,
) -> str:
    """Draw best-known makespan per generation for several runs on one plot."""
    fig, ax = plt.subplots(figsize=(10, 6), constrained_layout=True)
    labels = labels or {}
    colors = colors or {}
    for key, values in histories.items():
        if not values:
            continue
        generations = list(range(len(values)))
        ax.plot(
            generations,
            values,
            label=labels.get(key, key),
            linewidth=2,
            marker="o",
            markersize=3,
            markerfacecolor="white",
            markeredgewidth=1.0,
            color=colors.get(key),
        )
        ax.annotate(
            f"{values[-1]:.2f}",
            xy=(generations[-1], values[-1]),
            xytext=(6, -10),
            textcoords="offset points",
            fontsize=9,
            bbox=dict(boxstyle="round,pad=0.2", facecolor="white", alpha=0.55),
        )
    ax.set_xlabel("Generation", fontsize=12)
    ax.set_ylabel("Makespan", fontsize=12)
    ax.set_title("Convergence comparison", fontsize=14, fontweight="bold")
    ax.grid(True, alpha=0.25, linestyle="--", linewidth=0.7)
    ax.legend(loc="upper right", frameon=False, fontsize=9)
    _ensure_dir(os.path.dirname(filepath))
    fig.savefig(filepath, dpi=180)
    plt.close(fig)
    logger.info("Convergence plot saved as: %s", filepath)
    return filepath


def _ensure_dir(path: str):
    if path:
        os.makedirs(path, exist_ok=True)


def next_unique_path(path: str | Path) -> str:
    """If the file exists, append suffix _1, _2 ... until a free name is found."""
    p = Path(path)
    if not p.exists():
        return str(p)
    stem = p.stem
    suffix = p.suffix
    parent = p.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}_{counter}{suffix}"
        if not candidate.exists():
            return str(candidate)
        counter += 1
