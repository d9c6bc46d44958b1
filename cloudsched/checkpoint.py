"""Population store: plain-text checkpoint load / save.

File grammar::

    <bucket 0 task ids separated by a single space>
    ...
    <bucket M-1 task ids>
    NEW
    <next member ...>
    NEW

One line per machine bucket (an empty line is an empty bucket), each
population member terminated by a literal ``NEW`` line.
"""

from __future__ import annotations

import logging
from pathlib import Path

from cloudsched.errors import CheckpointCorrupt, CheckpointMissing
from cloudsched.models import Population

SENTINEL = "NEW"

logger = logging.getLogger("cloudsched.checkpoint")


def save_population(population: Population, path: str | Path) -> None:
    """Write ``population`` to ``path`` (parent directories are created)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for member in population:
            for bucket in member:
                f.write(" ".join(str(task_id) for task_id in bucket))
                f.write("\n")
            f.write(f"{SENTINEL}\n")
    logger.info("Saved population of %d to %s", len(population), path)


def load_population(
    path: str | Path,
    population_size: int | None = None,
    machine_count: int | None = None,
) -> Population:
    """Read a population checkpoint.

    Args:
        path: Checkpoint file.
        population_size: Required number of blocks (None skips the check).
        machine_count: Required bucket lines per block (None skips the check,
            but all blocks must still agree with each other).

    Returns:
        List of assignments in file order.

    Raises:
        CheckpointMissing: If the file does not exist.
        CheckpointCorrupt: On a non-numeric token, a block with the wrong
            number of bucket lines, content after the last ``NEW`` line, or a
            wrong number of blocks.
    """
    path = Path(path)
    if not path.is_file():
        raise CheckpointMissing(f"Checkpoint not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()

    population: Population = []
    block: list[list[int]] = []
    expected_buckets = machine_count
    for lineno, line in enumerate(lines, start=1):
        text = line.strip()
        if text == SENTINEL:
            if expected_buckets is None:
                expected_buckets = len(block)
            if len(block) != expected_buckets:
                raise CheckpointCorrupt(
                    f"{path}:{lineno}: block {len(population)} has {len(block)} buckets, "
                    f"expected {expected_buckets}"
                )
            population.append(block)
            block = []
            continue
        try:
            block.append([int(token) for token in text.split()])
        except ValueError as e:
            raise CheckpointCorrupt(f"{path}:{lineno}: non-numeric token in {line!r}") from e

    if block:
        raise CheckpointCorrupt(f"{path}: {len(block)} bucket line(s) after the last {SENTINEL}")
    if population_size is not None and len(population) != population_size:
        raise CheckpointCorrupt(
            f"{path}: {len(population)} population blocks, expected {population_size}"
        )
    logger.info("Loaded population of %d from %s", len(population), path)
    return population
