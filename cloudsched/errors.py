"""Error kinds raised (or warned) by the scheduler.

EmptyWorkload      -- zero tasks or zero machines, rejected before any loop.
CheckpointMissing  -- population checkpoint file does not exist.
CheckpointCorrupt  -- checkpoint violates the block / bucket grammar.
RepairExhausted    -- warning category: no machine under capacity for a task.
InvalidAssignment  -- post-repair consistency check failed (a bug).
"""


class EmptyWorkload(ValueError):
    """Workload has no tasks or no machines."""


class CheckpointMissing(FileNotFoundError):
    """Checkpoint file required for seeding the population is absent."""


class CheckpointCorrupt(ValueError):
    """Checkpoint file exists but cannot be decoded into a population."""


class RepairExhausted(UserWarning):
    """Every machine is at capacity; a task was placed above the bound."""


class InvalidAssignment(AssertionError):
    """Assignment still has duplicates, omissions or unknown task ids."""
