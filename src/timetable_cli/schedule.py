"""Schedule derivation for parsed tasks.

The schedule is a single forward pass over the tasks in document order. Each
task starts at its explicit start time, or at the end of the last task that
had an estimate, or at "now" when nothing precedes it.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple, TypeVar, Union

from .config import TimetableConfig
from .parser import ParsedTask
from .utils.datetime import floor_minutes


class TimingStatus(Enum):
    """How an explicit start time relates to the preceding schedule."""
    UNKNOWN = "unknown"
    ON_TIME = "on_time"
    LATE = "late"


@dataclass(frozen=True)
class ScheduledTask:
    """A parsed task placed on the timeline."""
    task: ParsedTask
    effective_start: datetime
    computed_end: Optional[datetime] = None
    buffer_minutes: Optional[int] = None
    timing_status: TimingStatus = TimingStatus.UNKNOWN

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def start_time(self) -> Optional[datetime]:
        return self.task.start_time

    @property
    def estimate_minutes(self) -> Optional[int]:
        return self.task.estimate_minutes

    @property
    def is_checked(self) -> bool:
        return self.task.is_checked

    @property
    def is_late(self) -> bool:
        return self.timing_status is TimingStatus.LATE


class _Cursor(NamedTuple):
    previous_end: Optional[datetime]
    position: datetime


def _schedule_one(cursor: _Cursor, task: ParsedTask) -> Tuple[_Cursor, ScheduledTask]:
    explicit = task.start_time
    if explicit is not None:
        start = explicit
    elif cursor.previous_end is not None:
        start = cursor.previous_end
    else:
        start = cursor.position

    end = None
    if task.estimate_minutes is not None:
        end = start + timedelta(minutes=task.estimate_minutes)

    buffer_minutes = None
    status = TimingStatus.UNKNOWN
    if explicit is not None:
        if cursor.previous_end is not None:
            buffer_minutes = floor_minutes(explicit - cursor.previous_end)
        if cursor.previous_end is not None and explicit < cursor.previous_end:
            status = TimingStatus.LATE
        else:
            status = TimingStatus.ON_TIME

    scheduled = ScheduledTask(
        task=task,
        effective_start=start,
        computed_end=end,
        buffer_minutes=buffer_minutes,
        timing_status=status,
    )

    # A task without an estimate leaves the chain where it was
    if end is not None:
        cursor = _Cursor(previous_end=end, position=end)
    return cursor, scheduled


def build_schedule(tasks: Iterable[ParsedTask], now: datetime) -> List[ScheduledTask]:
    """Place every task on the timeline, in the order given."""
    cursor = _Cursor(previous_end=None, position=now)
    schedule: List[ScheduledTask] = []
    for task in tasks:
        cursor, scheduled = _schedule_one(cursor, task)
        schedule.append(scheduled)
    return schedule


T = TypeVar("T", ParsedTask, ScheduledTask)


def first_uncompleted(items: Iterable[T]) -> Optional[T]:
    """Return the first item that is not checked off, if any."""
    return next((item for item in items if not item.is_checked), None)


def backfill_first_start(tasks: Sequence[ParsedTask], anchor: datetime) -> List[ParsedTask]:
    """Seed the first task's start time with ``anchor`` when it has none.

    Used with the document's modification time so the chain has a fixed
    origin even when no task declares a time.
    """
    result = list(tasks)
    if result and result[0].start_time is None:
        result[0] = replace(result[0], start_time=anchor)
    return result


def shows_buffer_row(item: ScheduledTask, active: Optional[ScheduledTask],
                     config: TimetableConfig) -> bool:
    """Whether a buffer row should precede ``item`` in the rendered table."""
    if not config.show_buffer_time or item.buffer_minutes is None:
        return False
    if item.buffer_minutes <= 0:
        return False
    return not item.is_checked and item is not active


def format_buffer(minutes: Union[int, None]) -> str:
    """Format a buffer as ``1h5min``; negative buffers get a leading minus."""
    if minutes is None:
        return "0h0min"
    hours, remaining = divmod(abs(minutes), 60)
    sign = "-" if minutes < 0 else ""
    return f"{sign}{hours}h{remaining}min"
