"""Task line parser and document scanner for Timetable CLI.

A task line is a markdown checkbox item carrying an estimate and/or a start
time, for example::

    - [ ] Write report @9:30 ; 45
    - [x] [[Inbox|Triage inbox]] ; 15
    - [ ] Standup @2024-05-02T0915 ; 10

Lines that do not look like that are ordinary prose and are skipped without
complaint.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from .config import TimetableConfig
from .utils.datetime import now_local, wall_clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedTask:
    """A task extracted from a single line of the document."""
    name: str
    start_time: Optional[datetime] = None
    estimate_minutes: Optional[int] = None
    is_checked: bool = False


def _split_clock(token: str) -> Optional[Tuple[int, int]]:
    """Split ``9:30``, ``930`` or ``0930`` into ``(hour, minute)``.

    Three digit runs read as ``h mm``, four digit runs as ``hh mm``.
    Out of range values yield None.
    """
    if ":" in token:
        hour_part, minute_part = token.split(":", 1)
    elif len(token) == 3:
        hour_part, minute_part = token[:1], token[1:]
    else:
        hour_part, minute_part = token[:2], token[2:]

    hour, minute = int(hour_part), int(minute_part)
    if hour > 23 or minute > 59:
        return None
    return hour, minute


class TaskLineParser:
    """Parses task lines according to a configuration.

    All patterns are compiled once here; delimiters are user supplied and are
    escaped before being embedded in a pattern.
    """

    CHECKBOX_REGEX = re.compile(r"^(?P<bullet>[-+*]) \[(?P<mark>[ xX])\]")
    LINK_REGEX = re.compile(r"\[\[([^\[\]]*\|)?([^\[\]]+)\]\]")
    MARKDOWN_LINK_REGEX = re.compile(r"\[([^\[\]]+)\]\(.+?\)")

    CLOCK = r"(\d{1,2}:\d{2}|\d{3,4})(?!\d)"

    def __init__(self, config: TimetableConfig):
        self.config = config
        self.estimate_delimiter = config.task_estimate_delimiter
        self.start_time_delimiter = config.start_time_delimiter

        estimate = re.escape(self.estimate_delimiter)
        start = re.escape(self.start_time_delimiter)

        self.patterns = {
            'estimate': re.compile(rf"{estimate}\s*(\d+)"),
            'estimate_token': re.compile(rf"{estimate}\s*\d+\s*"),
            'datetime': re.compile(rf"{start}\s*(\d{{4}})-(\d{{2}})-(\d{{2}})T{self.CLOCK}"),
            'time': re.compile(rf"{start}\s*{self.CLOCK}"),
            'start_token': re.compile(rf"{start}\s*(?:\d{{4}}-\d{{2}}-\d{{2}}T)?{self.CLOCK}"),
        }
        self.day_delimiter = re.compile(config.date_delimiter) if config.date_delimiter else None

    def is_day_delimiter(self, line: str) -> bool:
        """Check whether a trimmed line marks the start of the next day."""
        if self.day_delimiter is None:
            return False
        return self.day_delimiter.fullmatch(line) is not None

    def collapse_links(self, text: str) -> str:
        """Replace wiki links and markdown links with their visible text."""
        text = self.LINK_REGEX.sub(r"\2", text)
        return self.MARKDOWN_LINK_REGEX.sub(r"\1", text)

    def parse_line(self, raw_line: str, day_offset: int = 0,
                   reference: Optional[datetime] = None) -> Optional[ParsedTask]:
        """Parse one line, returning None when it is not a task line."""
        line = raw_line.strip()
        marker = self.CHECKBOX_REGEX.match(line)
        if not marker:
            return None

        body = self.collapse_links(line[marker.end():].strip())
        if self.estimate_delimiter not in body and self.start_time_delimiter not in body:
            return None

        if reference is None:
            reference = now_local()

        return ParsedTask(
            name=self.parse_name(body),
            start_time=self.parse_start_time(body, reference, day_offset),
            estimate_minutes=self.parse_estimate(body),
            is_checked=marker.group('mark') in ('x', 'X'),
        )

    def parse_name(self, body: str) -> str:
        """Build the display name from a link-collapsed task body."""
        delimiter = self.start_time_delimiter
        if self.config.show_start_time_in_task_name:
            name = self.patterns['start_token'].sub(lambda m: f"{delimiter}{m.group(1)}", body, count=1)
        else:
            name = self.patterns['start_token'].sub('', body, count=1)

        if not self.config.show_estimate_in_task_name:
            name = self.patterns['estimate_token'].sub('', name, count=1)

        return ' '.join(name.split())

    def parse_estimate(self, body: str) -> Optional[int]:
        match = self.patterns['estimate'].search(body)
        return int(match.group(1)) if match else None

    def parse_start_time(self, body: str, reference: datetime,
                         day_offset: int = 0) -> Optional[datetime]:
        """Resolve the start time token, preferring the full datetime form.

        A bare time is placed on the reference date advanced by ``day_offset``
        days. An invalid full datetime counts as absent.
        """
        full = self.patterns['datetime'].search(body)
        if full:
            parsed = self._parse_datetime(full, reference)
            if parsed is not None:
                return parsed
            body = body[:full.start()] + body[full.end():]

        bare = self.patterns['time'].search(body)
        if not bare:
            return None

        clock = _split_clock(bare.group(1))
        if clock is None:
            return None
        hour, minute = clock
        start_date = reference.date() + timedelta(days=day_offset)
        return wall_clock(start_date, hour, minute, reference)

    def _parse_datetime(self, match: "re.Match", reference: datetime) -> Optional[datetime]:
        year, month, day, time_token = match.groups()
        clock = _split_clock(time_token)
        if clock is None:
            return None
        try:
            return wall_clock(date(int(year), int(month), int(day)), clock[0], clock[1], reference)
        except ValueError:
            logger.debug(f"Ignoring invalid start datetime: {match.group(0)}")
            return None

    def scan(self, text: str, reference: datetime) -> List[ParsedTask]:
        """Parse every task line of a document, in document order."""
        tasks: List[ParsedTask] = []
        day_offset = 0

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if self.is_day_delimiter(line):
                day_offset += 1
                continue

            task = self.parse_line(line, day_offset, reference)
            if task is not None:
                tasks.append(task)

        logger.debug(f"Scanned {len(tasks)} task(s) across {day_offset + 1} day(s)")
        return tasks

    def format_line(self, name: str, estimate_minutes: Optional[int],
                    checked: bool = False, bullet: str = "-") -> str:
        """Render a task line that parses back to the same estimate and state."""
        mark = "x" if checked else " "
        line = f"{bullet} [{mark}] {name}"
        if estimate_minutes is not None:
            line += f" {self.estimate_delimiter} {estimate_minutes}"
        return line


def parse_line(raw_line: str, day_offset: int, config: TimetableConfig,
               reference: Optional[datetime] = None) -> Optional[ParsedTask]:
    """Parse a single line with a one-off parser."""
    return TaskLineParser(config).parse_line(raw_line, day_offset, reference)


def scan_document(text: str, reference: datetime, config: TimetableConfig) -> List[ParsedTask]:
    """Main function to turn a document into its ordered list of tasks."""
    return TaskLineParser(config).scan(text, reference)


def format_task_line(name: str, estimate_minutes: Optional[int], config: TimetableConfig,
                     checked: bool = False, bullet: str = "-") -> str:
    return TaskLineParser(config).format_line(name, estimate_minutes, checked, bullet)
