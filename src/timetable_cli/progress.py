"""Progress of the active task against its estimate."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .schedule import ScheduledTask
from .utils.datetime import MILLISECONDS_IN_MINUTE, to_milliseconds

# Applied once when the clock appears to be behind the task's start,
# e.g. a task that started before midnight. Does not cover larger gaps.
DAY_ROLLOVER = timedelta(hours=24)


@dataclass(frozen=True)
class ProgressState:
    """Elapsed time on the active task versus its estimate."""
    elapsed_ms: int = 0
    estimate_ms: int = 0
    is_overdue: bool = False

    @property
    def ratio(self) -> float:
        """Completion ratio between 0.0 and 1.0."""
        if self.estimate_ms <= 0:
            return 1.0 if self.is_overdue else 0.0
        return min(self.elapsed_ms / self.estimate_ms, 1.0)

    @property
    def percent(self) -> float:
        return self.ratio * 100

    @property
    def elapsed_minutes(self) -> int:
        return self.elapsed_ms // MILLISECONDS_IN_MINUTE


def evaluate_progress(active: Optional[ScheduledTask], now: datetime) -> ProgressState:
    """Compute elapsed time and overdue state for the first uncompleted task.

    Args:
        active: The first uncompleted scheduled task, or None
        now: The current instant

    Returns:
        A zeroed state when there is no active task or it has no estimate
    """
    if active is None or active.estimate_minutes is None:
        return ProgressState()

    elapsed = now - active.effective_start
    if elapsed < timedelta(0):
        elapsed += DAY_ROLLOVER

    elapsed_ms = to_milliseconds(elapsed)
    estimate_ms = active.estimate_minutes * MILLISECONDS_IN_MINUTE
    return ProgressState(
        elapsed_ms=elapsed_ms,
        estimate_ms=estimate_ms,
        is_overdue=elapsed_ms >= estimate_ms,
    )
