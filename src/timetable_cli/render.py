"""Rich rendering of the timetable."""

from typing import List, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from .config import TimetableConfig
from .progress import ProgressState
from .schedule import ScheduledTask, TimingStatus, format_buffer, shows_buffer_row
from .storage import Timetable
from .utils.datetime import format_clock

BUFFER_TIME_NAME = "Buffer Time"
OVERDUE_MESSAGE = "Are you finished?"

ROW_STYLES = {
    TimingStatus.LATE: "red",
    TimingStatus.ON_TIME: "green",
    TimingStatus.UNKNOWN: "",
}


def _headers(config: TimetableConfig) -> List[str]:
    task_header, estimate_header, start_header, end_header = config.header_names[:4]
    headers = [task_header]
    if config.show_estimate:
        headers.append(estimate_header)
    if config.show_start_time:
        headers.append(start_header)
    headers.append(end_header)
    return headers


def _task_cells(item: ScheduledTask, config: TimetableConfig) -> List[str]:
    cells = [item.name]
    if config.show_estimate:
        cells.append(f"{item.estimate_minutes}m" if item.estimate_minutes is not None else "")
    if config.show_start_time:
        cells.append(format_clock(item.effective_start))
    cells.append(format_clock(item.computed_end))
    return cells


def build_table(schedule: List[ScheduledTask], config: TimetableConfig,
                active: Optional[ScheduledTask] = None) -> Table:
    """Build the schedule table, including buffer rows between tasks."""
    headers = _headers(config)
    table = Table(show_header=True, header_style="bold")
    for header in headers:
        table.add_column(header)

    padding = [""] * (len(headers) - 2)
    for item in schedule:
        if shows_buffer_row(item, active, config):
            table.add_row(BUFFER_TIME_NAME, format_buffer(item.buffer_minutes), *padding,
                          style="dim italic")

        style = ROW_STYLES[item.timing_status]
        if item.is_checked:
            style = "dim strike"
        elif item is active:
            style = f"bold {style}".strip()
        table.add_row(*_task_cells(item, config), style=style)

    return table


def build_progress(progress: ProgressState, config: TimetableConfig) -> Optional[ProgressBar]:
    """Progress bar for the active task, or None when disabled."""
    if not config.show_progress_bar:
        return None
    color = "red" if progress.is_overdue else "green"
    return ProgressBar(total=100, completed=max(progress.percent, 0.0),
                       complete_style=color, finished_style=color)


def render_timetable(timetable: Timetable, config: TimetableConfig) -> RenderableType:
    """Group the progress bar, overdue notice and table for printing."""
    parts: List[RenderableType] = []

    bar = build_progress(timetable.progress, config)
    if bar is not None:
        parts.append(bar)

    if timetable.progress.is_overdue and config.enable_overdue_notice:
        parts.append(Panel(Text(OVERDUE_MESSAGE, style="bold red"), expand=False))

    if timetable.schedule:
        parts.append(build_table(timetable.schedule, config, timetable.active))
    else:
        parts.append(Text("No tasks found.", style="dim"))

    return Group(*parts)
