"""Document source and timetable pipeline for Timetable CLI.

The document is a plain markdown file. ``DocumentSource`` reads and writes
it and reports whether it changed since the last read; ``load_timetable``
turns its current content into a schedule.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .config import TimetableConfig
from .parser import ParsedTask, TaskLineParser
from .progress import ProgressState, evaluate_progress
from .schedule import ScheduledTask, backfill_first_start, build_schedule, first_uncompleted
from .utils.datetime import from_timestamp

logger = logging.getLogger(__name__)


class DocumentNotFoundError(Exception):
    """Raised when the task document cannot be resolved."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class DocumentSource:
    """File-backed provider of the task document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(os.path.expanduser(str(path)))
        self._last_seen: Optional[Tuple[float, int]] = None

    @classmethod
    def from_config(cls, config: TimetableConfig, override: Optional[str] = None) -> "DocumentSource":
        """Resolve the document from an explicit path or the configured one."""
        path = override or config.file_path
        if not path:
            raise DocumentNotFoundError("No active document: pass --file or set file_path in the config")
        return cls(path)

    def _stat(self) -> os.stat_result:
        try:
            return self.path.stat()
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"No active document: {self.path} does not exist", self.path) from e

    def read(self) -> str:
        """Return the current text and remember its signature."""
        stat = self._stat()
        with self.path.open("r", encoding="utf-8", newline="") as f:
            text = f.read()
        self._last_seen = (stat.st_mtime, stat.st_size)
        return text

    def write(self, text: str) -> None:
        """Replace the document content."""
        self._stat()
        with self.path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)
        logger.debug(f"Wrote {len(text)} characters to {self.path}")

    def modified_at(self) -> datetime:
        """Last modification time of the document."""
        return from_timestamp(self._stat().st_mtime)

    def has_changed(self) -> bool:
        """Check whether the document changed since the last ``read``."""
        stat = self._stat()
        return self._last_seen != (stat.st_mtime, stat.st_size)


@dataclass
class Timetable:
    """Everything derived from one read of the document."""
    tasks: List[ParsedTask] = field(default_factory=list)
    schedule: List[ScheduledTask] = field(default_factory=list)
    active: Optional[ScheduledTask] = None
    progress: ProgressState = field(default_factory=ProgressState)

    def refresh_progress(self, now: datetime) -> ProgressState:
        """Re-evaluate progress of the active task at ``now``."""
        self.progress = evaluate_progress(self.active, now)
        return self.progress


def build_timetable(text: str, config: TimetableConfig, now: datetime,
                    anchor: Optional[datetime] = None) -> Timetable:
    """Run scan, backfill, schedule and progress over a document's text.

    Args:
        text: Document content
        config: Active configuration
        now: Reference instant for bare times, the schedule and progress
        anchor: Start time given to the first task when it declares none
    """
    tasks = TaskLineParser(config).scan(text, now)
    if anchor is not None:
        tasks = backfill_first_start(tasks, anchor)

    schedule = build_schedule(tasks, now)
    active = first_uncompleted(schedule)
    return Timetable(
        tasks=tasks,
        schedule=schedule,
        active=active,
        progress=evaluate_progress(active, now),
    )


def load_timetable(source: DocumentSource, config: TimetableConfig, now: datetime) -> Timetable:
    """Read the document and build its timetable, anchored at its mtime."""
    text = source.read()
    timetable = build_timetable(text, config, now, anchor=source.modified_at())
    logger.debug(f"Loaded {len(timetable.schedule)} task(s) from {source.path}")
    return timetable
