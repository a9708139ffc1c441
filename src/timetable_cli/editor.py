"""Rewrites task lines for the complete and interrupt actions.

The matched line is edited in place: only its checkbox mark and the digits
of its estimate change, so links, start times and anything else the user
wrote on the line survive.
"""

import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple

from .config import TimetableConfig
from .parser import ParsedTask, TaskLineParser

logger = logging.getLogger(__name__)


class TaskEditError(Exception):
    """Raised when a task line cannot be rewritten."""

    def __init__(self, message: str, task: Optional[ParsedTask] = None):
        self.task = task
        super().__init__(message)


class TaskLineNotFoundError(TaskEditError):
    """Raised when no unchecked line matches the task's name and estimate."""


def _line_ending(line: str) -> str:
    return line[len(line.rstrip("\r\n")):]


def _hidden_spans(parser: TaskLineParser, text: str) -> List[Tuple[int, int]]:
    """Spans of link syntax that never reaches the parsed body."""
    spans = []
    for match in parser.LINK_REGEX.finditer(text):
        spans.append((match.start(), match.start(2)))
        spans.append((match.end(2), match.end()))
    for match in parser.MARKDOWN_LINK_REGEX.finditer(text):
        spans.append((match.start(), match.start(1)))
        spans.append((match.end(1), match.end()))
    return spans


def _estimate_match(parser: TaskLineParser, text: str) -> Optional["re.Match"]:
    """The estimate token the parser reads, located in the raw line."""
    spans = _hidden_spans(parser, text)
    for match in parser.patterns['estimate'].finditer(text):
        if not any(start <= match.start() < end for start, end in spans):
            return match
    return None


def _retime_line(parser: TaskLineParser, line: str, mark: str, minutes: int) -> Optional[str]:
    """Set the checkbox mark and the estimate digits of a raw task line."""
    mark_at = len(line) - len(line.lstrip()) + 3
    line = line[:mark_at] + mark + line[mark_at + 1:]

    estimate = _estimate_match(parser, line)
    if estimate is None:
        return None
    return line[:estimate.start(1)] + str(minutes) + line[estimate.end(1):]


def _rewrite_task(content: str, task: ParsedTask, reference: datetime,
                  config: TimetableConfig, elapsed_minutes: int,
                  remaining_minutes: Optional[int] = None) -> str:
    if task.estimate_minutes is None:
        raise TaskEditError(f"Task '{task.name}' has no estimate", task)

    parser = TaskLineParser(config)
    lines = content.splitlines(keepends=True)
    day_offset = 0

    for index, line in enumerate(lines):
        stripped = line.strip()
        if parser.is_day_delimiter(stripped):
            day_offset += 1
            continue

        candidate = parser.parse_line(stripped, day_offset, reference)
        if (
            candidate is None
            or candidate.is_checked
            or candidate.name != task.name
            or candidate.estimate_minutes != task.estimate_minutes
        ):
            continue

        ending = _line_ending(line)
        body = line[:len(line) - len(ending)]

        done = _retime_line(parser, body, "x", elapsed_minutes)
        if done is None:
            continue
        if remaining_minutes is not None:
            done += (ending or "\n") + _retime_line(parser, body, " ", remaining_minutes)
        lines[index] = done + ending

        logger.debug(f"Rewrote line {index + 1} for task '{task.name}'")
        return "".join(lines)

    raise TaskLineNotFoundError(f"No unchecked line found for task '{task.name}'", task)


def complete_task(content: str, task: ParsedTask, elapsed_minutes: int,
                  reference: datetime, config: TimetableConfig) -> str:
    """Check off a task, recording the minutes actually spent as its estimate."""
    return _rewrite_task(content, task, reference, config, elapsed_minutes)


def interrupt_task(content: str, task: ParsedTask, elapsed_minutes: int,
                   reference: datetime, config: TimetableConfig) -> str:
    """Check off the part of a task done so far and queue the remainder.

    The remainder is a copy of the line right below, unchecked and estimated
    at the original estimate minus the elapsed minutes.
    """
    if task.estimate_minutes is None:
        raise TaskEditError(f"Task '{task.name}' has no estimate", task)
    remaining = task.estimate_minutes - elapsed_minutes
    return _rewrite_task(content, task, reference, config, elapsed_minutes, remaining)
