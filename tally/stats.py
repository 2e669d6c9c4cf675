"""Streak and completion statistics for a single habit.

Everything here is a pure function of (today, completed dates). The caller
decides what "today" is and fetches the completed dates from the store, so
the same inputs always give the same numbers.

Dates may be given as "YYYY-MM-DD" strings or ``datetime.date`` objects.
A malformed string raises ValueError; validating input is the caller's job.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

# completion_rate divides by a fixed window, independent of habit age
COMPLETION_WINDOW_DAYS = 30

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class HabitStats:
    """Derived statistics for one habit."""
    total_completions: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    completion_rate: int = 0

    def to_dict(self) -> dict:
        """Wire format used by API consumers (camelCase keys)."""
        return {
            "totalCompletions": self.total_completions,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "completionRate": self.completion_rate,
        }


def _as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def normalize_dates(dates: Iterable[date | str]) -> set[date]:
    """Collapse an iterable of date strings/objects into a set of dates."""
    return {_as_date(d) for d in dates}


def current_streak(dates: Iterable[date | str], today: date | str) -> int:
    """Consecutive completed days ending on ``today``.

    Returns 0 if ``today`` itself has no completion.
    """
    completed = normalize_dates(dates)
    check = _as_date(today)
    streak = 0
    while check in completed:
        streak += 1
        check -= _ONE_DAY
    return streak


def longest_streak(dates: Iterable[date | str]) -> int:
    """Length of the longest run of consecutive completed days."""
    ordered = sorted(normalize_dates(dates))
    if not ordered:
        return 0

    longest = 1
    run = 1
    for prev, cur in zip(ordered, ordered[1:]):
        if cur - prev == _ONE_DAY:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
    return longest


def completion_rate(total_completions: int) -> int:
    """``round(100 * total / 30)``. Not capped at 100."""
    return round(100 * total_completions / COMPLETION_WINDOW_DAYS)


def compute_stats(dates: Iterable[date | str], today: date | str) -> HabitStats:
    """Compute all metrics for one habit's completed dates."""
    completed = normalize_dates(dates)
    total = len(completed)
    return HabitStats(
        total_completions=total,
        current_streak=current_streak(completed, today),
        longest_streak=longest_streak(completed),
        completion_rate=completion_rate(total),
    )
