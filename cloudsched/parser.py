"""Workload file loading / saving.

Format (blank lines and ``#`` comments ignored)::

    <task_count> <machine_count>
    <length_0> ... <length_{T-1}>     # may span several lines
    <speed_0> ... <speed_{M-1}>       # may span several lines

Task ids are the 0-based positions of the lengths, machine indices the
0-based positions of the speeds.
"""

from __future__ import annotations

from pathlib import Path

from cloudsched.models import Workload


def _tokens(file_path: str | Path) -> list[str]:
    tokens: list[str] = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if line:
                tokens.extend(line.split())
    return tokens


def load_workload(file_path: str | Path) -> Workload:
    """Parse a workload file.

    Raises:
        ValueError: On a malformed header, wrong number of values, a
            non-numeric token, or non-positive lengths / speeds.
        EmptyWorkload: If the header declares zero tasks or zero machines.
    """
    tokens = _tokens(file_path)
    if len(tokens) < 2:
        raise ValueError(f"{file_path}: header '<task_count> <machine_count>' missing")
    try:
        task_count, machine_count = int(tokens[0]), int(tokens[1])
    except ValueError as e:
        raise ValueError(f"{file_path}: invalid header {tokens[:2]}") from e
    if task_count < 0 or machine_count < 0:
        raise ValueError(f"{file_path}: negative counts in header")
    body = tokens[2:]
    if len(body) != task_count + machine_count:
        raise ValueError(
            f"{file_path}: expected {task_count} lengths and {machine_count} speeds, "
            f"got {len(body)} values"
        )
    try:
        lengths = [int(x) for x in body[:task_count]]
        speeds = [float(x) for x in body[task_count:]]
    except ValueError as e:
        raise ValueError(f"{file_path}: non-numeric value") from e
    return Workload.from_lists(lengths, speeds)


def save_workload(workload: Workload, file_path: str | Path) -> None:
    """Write ``workload`` in the format read by ``load_workload``.

    Task ids are renumbered by position (ascending id order).
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"{workload.task_count} {workload.machine_count}\n")
        f.write(" ".join(str(t.length) for t in workload.tasks) + "\n")
        f.write(" ".join(str(m.speed) for m in workload.machines) + "\n")
