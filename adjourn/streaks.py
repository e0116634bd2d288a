from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

ONE_DAY = timedelta(days=1)
DATE_LABEL = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


@dataclass(frozen=True)
class StreakSnapshot:
    """Streak counters derived from an owner's entry dates. Never stored."""

    current_streak: int = 0
    longest_streak: int = 0
    total_entries: int = 0


def parse_entry_dates(values: Iterable[date | str]) -> set[date]:
    """Normalize entry dates to calendar days, rejecting anything else.

    Strings must be ``YYYY-MM-DD`` labels. Datetimes are rejected so that a
    timestamp is never silently truncated into a possibly different day.
    """
    dates: set[date] = set()
    for value in values:
        if isinstance(value, str):
            if not DATE_LABEL.fullmatch(value):
                raise ValueError(f"Not a YYYY-MM-DD date: {value!r}")
            dates.add(date.fromisoformat(value))
        elif type(value) is date:
            dates.add(value)
        else:
            raise ValueError(f"Not a calendar date: {value!r}")
    return dates


def current_streak(dates: set[date], today: date) -> int:
    if today in dates:
        day = today
    elif today - ONE_DAY in dates:
        # grace day: the streak is still open until today ends
        day = today - ONE_DAY
    else:
        return 0

    count = 0
    while day in dates:
        count += 1
        day -= ONE_DAY
    return count


def longest_streak(dates: Iterable[date]) -> int:
    ordered = sorted(dates)
    if not ordered:
        return 0

    longest = 1
    run = 1
    for previous, current in zip(ordered, ordered[1:]):
        if current - previous == ONE_DAY:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
    return longest


def compute_streaks(dates: Iterable[date | str], today: date) -> StreakSnapshot:
    day_set = parse_entry_dates(dates)
    if not day_set:
        return StreakSnapshot()
    return StreakSnapshot(
        current_streak=current_streak(day_set, today),
        longest_streak=longest_streak(day_set),
        total_entries=len(day_set),
    )
