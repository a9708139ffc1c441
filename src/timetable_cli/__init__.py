"""Timetable CLI - a live schedule derived from a markdown task list."""

__version__ = "0.1.0"
__author__ = "Timetable CLI Team"

from .config import TimetableConfig
from .parser import ParsedTask, TaskLineParser, parse_line, scan_document
from .schedule import ScheduledTask, TimingStatus, build_schedule, first_uncompleted
from .progress import ProgressState, evaluate_progress

__all__ = [
    "TimetableConfig",
    "ParsedTask",
    "TaskLineParser",
    "parse_line",
    "scan_document",
    "ScheduledTask",
    "TimingStatus",
    "build_schedule",
    "first_uncompleted",
    "ProgressState",
    "evaluate_progress",
    "__version__",
]
