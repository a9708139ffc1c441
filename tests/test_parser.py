"""Tests for the task line parser and document scanner."""

import time
from datetime import datetime, timedelta, timezone

import pytest

from timetable_cli.config import TimetableConfig
from timetable_cli.parser import (
    ParsedTask, TaskLineParser, format_task_line, parse_line, scan_document
)


REFERENCE = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def at(hour, minute, days=0):
    return (REFERENCE + timedelta(days=days)).replace(hour=hour, minute=minute)


class TestTaskLineQualification:
    """Which lines count as task lines."""

    def setup_method(self):
        self.parser = TaskLineParser(TimetableConfig())

    def test_unchecked_task_with_estimate(self):
        task = self.parser.parse_line("- [ ] Write report ; 30", 0, REFERENCE)

        assert task == ParsedTask(name="Write report", start_time=None,
                                  estimate_minutes=30, is_checked=False)

    def test_checked_task(self):
        task = self.parser.parse_line("- [x] Email ; 15", 0, REFERENCE)

        assert task.is_checked is True
        assert task.estimate_minutes == 15

    def test_uppercase_check_and_other_bullets(self):
        assert self.parser.parse_line("* [X] Email ; 15", 0, REFERENCE).is_checked
        assert not self.parser.parse_line("+ [ ] Email ; 15", 0, REFERENCE).is_checked

    def test_surrounding_whitespace_is_trimmed(self):
        task = self.parser.parse_line("    - [ ] Indented ; 5   ", 0, REFERENCE)

        assert task.name == "Indented"
        assert task.estimate_minutes == 5

    @pytest.mark.parametrize("line", [
        "- [ ] No delimiters here",
        "Just prose ; 30 with an estimate",
        "- [/] In progress marker ; 10",
        "-[ ] Missing space ; 10",
        "",
    ])
    def test_non_task_lines_are_skipped(self, line):
        assert self.parser.parse_line(line, 0, REFERENCE) is None

    def test_start_time_delimiter_alone_qualifies(self):
        task = self.parser.parse_line("- [ ] Standup @9:30", 0, REFERENCE)

        assert task is not None
        assert task.estimate_minutes is None
        assert task.start_time == at(9, 30)

    def test_delimiter_only_in_link_target_does_not_qualify(self):
        assert self.parser.parse_line("- [ ] [[Team@Work|team]] sync", 0, REFERENCE) is None


class TestNameExtraction:
    """Display name handling."""

    def test_start_time_kept_in_name_by_default(self):
        task = parse_line("- [ ] Write report @ 9:30 ; 45", 0, TimetableConfig(), REFERENCE)

        assert task.name == "Write report @9:30"

    def test_start_time_stripped_from_name(self):
        config = TimetableConfig(show_start_time_in_task_name=False)
        task = parse_line("- [ ] Write report @9:30 ; 45", 0, config, REFERENCE)

        assert task.name == "Write report"

    def test_full_datetime_shown_as_time_only(self):
        task = parse_line("- [ ] Standup @2024-06-10T0915 ; 10", 0, TimetableConfig(), REFERENCE)

        assert task.name == "Standup @0915"

    def test_estimate_kept_in_name(self):
        config = TimetableConfig(show_estimate_in_task_name=True)
        task = parse_line("- [ ] Write ; 30", 0, config, REFERENCE)

        assert task.name == "Write ; 30"
        assert task.estimate_minutes == 30

    def test_wiki_link_with_alias(self):
        task = parse_line("- [ ] Read [[Notes/Book|the book]] ; 20", 0, TimetableConfig(), REFERENCE)

        assert task.name == "Read the book"

    def test_wiki_link_without_alias(self):
        task = parse_line("- [ ] Review [[Project Plan]] ; 20", 0, TimetableConfig(), REFERENCE)

        assert task.name == "Review Project Plan"

    def test_markdown_link_url_is_not_searched_for_delimiters(self):
        task = parse_line("- [ ] See [docs](https://example.com/page;1) ; 20", 0,
                          TimetableConfig(), REFERENCE)

        assert task.name == "See docs"
        assert task.estimate_minutes == 20

    def test_only_first_start_time_token_is_stripped(self):
        config = TimetableConfig(show_start_time_in_task_name=False)
        task = parse_line("- [ ] Sync @9:00 moved from @10:00 ; 15", 0, config, REFERENCE)

        assert task.name == "Sync moved from @10:00"

    def test_only_first_estimate_token_is_stripped(self):
        task = parse_line("- [ ] Batch ; 15 of ; 3", 0, TimetableConfig(), REFERENCE)

        assert task.name == "Batch of ; 3"
        assert task.estimate_minutes == 15


class TestStartTime:
    """Start time resolution."""

    def setup_method(self):
        self.parser = TaskLineParser(TimetableConfig())

    @pytest.mark.parametrize("token", ["930", "0930", "9:30", "09:30"])
    def test_bare_time_forms_are_equivalent(self, token):
        task = self.parser.parse_line(f"- [ ] Task @{token} ; 10", 0, REFERENCE)

        assert task.start_time == at(9, 30)

    def test_four_digit_afternoon_time(self):
        task = self.parser.parse_line("- [ ] Task @1415 ; 10", 0, REFERENCE)

        assert task.start_time == at(14, 15)

    def test_seconds_are_zeroed(self):
        reference = REFERENCE.replace(second=42, microsecond=1234)
        task = self.parser.parse_line("- [ ] Task @9:30 ; 10", 0, reference)

        assert task.start_time.second == 0
        assert task.start_time.microsecond == 0

    def test_day_offset_moves_date(self):
        task = self.parser.parse_line("- [ ] Task @9:30 ; 10", 2, REFERENCE)

        assert task.start_time == at(9, 30, days=2)

    def test_full_datetime(self):
        task = self.parser.parse_line("- [ ] Standup @2024-06-10T09:15 ; 10", 3, REFERENCE)

        assert task.start_time == datetime(2024, 6, 10, 9, 15, tzinfo=timezone.utc)

    def test_full_datetime_takes_precedence(self):
        task = self.parser.parse_line("- [ ] Meet @2024-06-10T14:00 ; 30", 0, REFERENCE)

        # A bare-time reading of "@2024" would give 20:24 on the reference date
        assert task.start_time == datetime(2024, 6, 10, 14, 0, tzinfo=timezone.utc)

    def test_invalid_full_datetime_is_absent(self):
        task = self.parser.parse_line("- [ ] Task @2024-13-45T09:30 ; 5", 0, REFERENCE)

        assert task is not None
        assert task.start_time is None
        assert task.estimate_minutes == 5

    @pytest.mark.parametrize("token", ["25:00", "9:75", "12345", "9"])
    def test_unusable_times_are_absent(self, token):
        task = self.parser.parse_line(f"- [ ] Task @{token} ; 5", 0, REFERENCE)

        assert task.start_time is None

    def test_missing_estimate_is_none(self):
        task = self.parser.parse_line("- [ ] Task @9:30", 0, REFERENCE)

        assert task.estimate_minutes is None


class TestDaylightSaving:
    """Bare times on later days follow the local UTC offset of that day."""

    @pytest.fixture(autouse=True)
    def new_york(self, monkeypatch):
        if not hasattr(time, "tzset"):
            pytest.skip("time.tzset is unavailable")
        monkeypatch.setenv("TZ", "America/New_York")
        time.tzset()
        yield
        monkeypatch.undo()
        time.tzset()

    def test_next_day_after_spring_forward(self):
        reference = datetime(2024, 3, 9, 12, 0).astimezone()
        task = TaskLineParser(TimetableConfig()).parse_line("- [ ] Walk @9:00 ; 30", 1, reference)

        assert reference.utcoffset() == timedelta(hours=-5)
        assert task.start_time.utcoffset() == timedelta(hours=-4)
        assert (task.start_time.month, task.start_time.day, task.start_time.hour) == (3, 10, 9)

    def test_full_datetime_uses_its_own_offset(self):
        reference = datetime(2024, 3, 9, 12, 0).astimezone()
        task = TaskLineParser(TimetableConfig()).parse_line(
            "- [ ] Walk @2024-07-01T09:00 ; 30", 0, reference)

        assert task.start_time.utcoffset() == timedelta(hours=-4)
        assert task.start_time.hour == 9


class TestCustomDelimiters:
    """Delimiters with regex meaning are matched literally."""

    def test_regex_characters(self):
        config = TimetableConfig(task_estimate_delimiter="+", start_time_delimiter="$")
        task = parse_line("- [ ] Pay bills $1015 +25", 0, config, REFERENCE)

        assert task.start_time == at(10, 15)
        assert task.estimate_minutes == 25
        assert task.name == "Pay bills $1015"

    def test_multi_character_delimiters(self):
        config = TimetableConfig(task_estimate_delimiter="::", start_time_delimiter="at ")
        task = parse_line("- [ ] Gym at 1830 :: 60", 0, config, REFERENCE)

        assert task.start_time == at(18, 30)
        assert task.estimate_minutes == 60


class TestRoundTrip:
    """Synthesised lines keep estimate and checked state."""

    @pytest.mark.parametrize("line", [
        "- [ ] Write report ; 30",
        "- [x] Email @9:00 ; 12",
        "* [ ] Read [[Book|the book]] ; 0",
        "+ [X] Gym @1830 ; 60",
    ])
    def test_estimate_and_checked_survive(self, line):
        config = TimetableConfig()
        parsed = parse_line(line, 0, config, REFERENCE)

        rebuilt = format_task_line(parsed.name, parsed.estimate_minutes, config,
                                   checked=parsed.is_checked)
        reparsed = parse_line(rebuilt, 0, config, REFERENCE)

        assert reparsed.estimate_minutes == parsed.estimate_minutes
        assert reparsed.is_checked == parsed.is_checked


class TestScanDocument:
    """Whole document scanning."""

    def test_empty_document(self):
        assert scan_document("", REFERENCE, TimetableConfig()) == []

    def test_prose_is_ignored_and_order_kept(self):
        text = "\n".join([
            "# Plan",
            "Some notes about the day.",
            "- [ ] Late item @15:00 ; 30",
            "- [ ] Early item @9:00 ; 30",
            "- plain bullet",
        ])
        tasks = scan_document(text, REFERENCE, TimetableConfig())

        assert [t.name for t in tasks] == ["Late item @15:00", "Early item @9:00"]

    def test_day_delimiter_advances_date(self):
        config = TimetableConfig(date_delimiter=r"---")
        text = "\n".join([
            "- [ ] Today @9:00 ; 30",
            "---",
            "- [ ] Tomorrow @9:00 ; 30",
            "  ---  ",
            "- [ ] Day after @9:00 ; 30",
        ])
        tasks = scan_document(text, REFERENCE, config)

        assert [t.start_time for t in tasks] == [at(9, 0), at(9, 0, 1), at(9, 0, 2)]

    def test_day_delimiter_must_match_whole_line(self):
        config = TimetableConfig(date_delimiter=r"---")
        text = "---- not a delimiter\n- [ ] Task @9:00 ; 30"
        tasks = scan_document(text, REFERENCE, config)

        assert tasks[0].start_time == at(9, 0)

    def test_day_delimiter_line_is_never_a_task(self):
        config = TimetableConfig(date_delimiter=r"- \[ \] Next day.*")
        text = "- [ ] Next day ; 5\n- [ ] Task @9:00 ; 30"
        tasks = scan_document(text, REFERENCE, config)

        assert len(tasks) == 1
        assert tasks[0].start_time == at(9, 0, 1)

    def test_empty_pattern_never_matches(self):
        text = "---\n\n- [ ] Task @9:00 ; 30"
        tasks = scan_document(text, REFERENCE, TimetableConfig(date_delimiter=""))

        assert tasks[0].start_time == at(9, 0)

    def test_windows_line_endings(self):
        text = "- [ ] One ; 10\r\n- [x] Two ; 20\r\n"
        tasks = scan_document(text, REFERENCE, TimetableConfig())

        assert [(t.name, t.is_checked) for t in tasks] == [("One", False), ("Two", True)]
