"""Plain data records returned by the store.

Rows come out of SQLite as ``sqlite3.Row``; these dataclasses give the rest
of the code named fields instead of string keys.
"""

import sqlite3
from dataclasses import dataclass

GOAL_DAILY = "Daily"
GOAL_WEEKLY = "Weekly"

# Fields a user may change on an existing habit
EDITABLE_HABIT_FIELDS = ("name", "goal", "category", "color")


@dataclass
class User:
    id: int
    username: str
    created_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "User":
        return cls(id=row["id"], username=row["username"], created_at=row["created_at"])


@dataclass
class Habit:
    """A habit owned by one user. Deleting it deletes its records."""
    id: int
    owner_id: int
    name: str
    goal: str = GOAL_DAILY
    category: str = ""
    color: str = ""
    created_at: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Habit":
        return cls(
            id=row["id"],
            owner_id=row["user_id"],
            name=row["name"],
            goal=row["goal"],
            category=row["category"],
            color=row["color"],
            created_at=row["created_at"],
        )

    @property
    def label(self) -> str:
        return f"#{self.id} {self.name} ({self.goal})"


@dataclass
class CompletionRecord:
    """One dated entry for a habit. At most one per (habit, date)."""
    habit_id: int
    date: str               # YYYY-MM-DD
    completed: bool = True
    note: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "CompletionRecord":
        return cls(
            habit_id=row["habit_id"],
            date=row["date"],
            completed=bool(row["completed"]),
            note=row["note"] or "",
        )
