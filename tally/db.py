"""SQLite database layer — persistent storage for users, habits and habit logs.

Lightweight schema. Tables are created automatically on first run.

Not-found and already-exists are reported through the return value
(None / False); nothing here raises for those cases.
"""

import sqlite3
import logging
from datetime import date, datetime, timezone, timedelta

from tally.config import DB_PATH, TIMEZONE_OFFSET_HOURS
from tally.models import (
    GOAL_DAILY, EDITABLE_HABIT_FIELDS, User, Habit, CompletionRecord,
)

logger = logging.getLogger(__name__)

TZ = timezone(timedelta(hours=TIMEZONE_OFFSET_HOURS))


def _connect() -> sqlite3.Connection:
    """Return a connection with row_factory set."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def _day(value: date | str) -> str:
    """Normalize a date or YYYY-MM-DD string. Raises ValueError if malformed."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(value).isoformat()


def init_db() -> None:
    """Create tables if they don't exist."""
    conn = _connect()
    conn.executescript("""
        -- Users (identified by their chat-platform user id)
        CREATE TABLE IF NOT EXISTS users (
            id         INTEGER PRIMARY KEY,
            username   TEXT    NOT NULL DEFAULT '',
            created_at TEXT    NOT NULL
        );

        -- Habits (defined by user)
        CREATE TABLE IF NOT EXISTS habits (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id     INTEGER NOT NULL,
            name        TEXT    NOT NULL,
            goal        TEXT    NOT NULL DEFAULT 'Daily',
            category    TEXT    NOT NULL DEFAULT '',
            color       TEXT    NOT NULL DEFAULT '',
            created_at  TEXT    NOT NULL
        );
        CREATE UNIQUE INDEX IF NOT EXISTS idx_habits_user_name
            ON habits(user_id, name COLLATE NOCASE);
        CREATE INDEX IF NOT EXISTS idx_habits_goal
            ON habits(goal);

        -- Habit log entries (one per habit per calendar day)
        CREATE TABLE IF NOT EXISTS habit_logs (
            id         INTEGER PRIMARY KEY AUTOINCREMENT,
            habit_id   INTEGER NOT NULL REFERENCES habits(id) ON DELETE CASCADE,
            date       TEXT    NOT NULL,
            completed  INTEGER NOT NULL DEFAULT 1,
            note       TEXT
        );
        CREATE UNIQUE INDEX IF NOT EXISTS idx_habit_logs_habit_date
            ON habit_logs(habit_id, date);
    """)
    conn.close()
    logger.info("Database initialized at %s", DB_PATH)


# ═══════════════════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════════════════

def register_user(user_id: int, username: str = "") -> bool:
    """Create the user if new, refresh the username otherwise.

    Returns True if the user was newly created.
    """
    now = datetime.now(TZ).isoformat()
    conn = _connect()
    existing = conn.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
    if existing:
        conn.execute("UPDATE users SET username = ? WHERE id = ?", (username, user_id))
    else:
        conn.execute(
            "INSERT INTO users (id, username, created_at) VALUES (?, ?, ?)",
            (user_id, username, now),
        )
    conn.commit()
    conn.close()
    return existing is None


def get_user(user_id: int) -> User | None:
    conn = _connect()
    row = conn.execute(
        "SELECT id, username, created_at FROM users WHERE id = ?", (user_id,)
    ).fetchone()
    conn.close()
    return User.from_row(row) if row else None


# ═══════════════════════════════════════════════════════════════════════════
# Habits
# ═══════════════════════════════════════════════════════════════════════════

_HABIT_COLUMNS = "id, user_id, name, goal, category, color, created_at"


def create_habit(user_id: int, name: str, goal: str = GOAL_DAILY,
                 category: str = "", color: str = "") -> int | None:
    """Create a new habit. Returns habit id, or None if the name is taken."""
    now = datetime.now(TZ).isoformat()
    conn = _connect()
    cur = conn.execute(
        """INSERT OR IGNORE INTO habits (user_id, name, goal, category, color, created_at)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (user_id, name, goal or GOAL_DAILY, category, color, now),
    )
    conn.commit()
    hid = cur.lastrowid if cur.rowcount else None
    conn.close()
    return hid


def get_habit(user_id: int, habit_id: int) -> Habit | None:
    conn = _connect()
    row = conn.execute(
        f"SELECT {_HABIT_COLUMNS} FROM habits WHERE id = ? AND user_id = ?",
        (habit_id, user_id),
    ).fetchone()
    conn.close()
    return Habit.from_row(row) if row else None


def find_habit(user_id: int, name: str) -> Habit | None:
    """Look up a habit by name (case-insensitive)."""
    conn = _connect()
    row = conn.execute(
        f"SELECT {_HABIT_COLUMNS} FROM habits WHERE user_id = ? AND name = ? COLLATE NOCASE",
        (user_id, name),
    ).fetchone()
    conn.close()
    return Habit.from_row(row) if row else None


def get_habits(user_id: int) -> list[Habit]:
    conn = _connect()
    rows = conn.execute(
        f"SELECT {_HABIT_COLUMNS} FROM habits WHERE user_id = ? ORDER BY id",
        (user_id,),
    ).fetchall()
    conn.close()
    return [Habit.from_row(r) for r in rows]


def get_habits_by_goal(goal: str) -> list[Habit]:
    """All habits with the given goal, across every user."""
    conn = _connect()
    rows = conn.execute(
        f"SELECT {_HABIT_COLUMNS} FROM habits WHERE goal = ? COLLATE NOCASE ORDER BY user_id, id",
        (goal,),
    ).fetchall()
    conn.close()
    return [Habit.from_row(r) for r in rows]


def update_habit(user_id: int, habit_id: int, **fields) -> Habit | None:
    """Update name/goal/category/color. Unknown fields are ignored.

    Returns the updated habit, or None if it doesn't exist or the new
    name collides with another of the user's habits.
    """
    changes = {k: v for k, v in fields.items() if k in EDITABLE_HABIT_FIELDS and v is not None}
    if changes:
        assignments = ", ".join(f"{k} = ?" for k in changes)
        conn = _connect()
        try:
            conn.execute(
                f"UPDATE habits SET {assignments} WHERE id = ? AND user_id = ?",
                (*changes.values(), habit_id, user_id),
            )
            conn.commit()
        except sqlite3.IntegrityError:
            logger.info("Habit #%d rename rejected: name already in use", habit_id)
            return None
        finally:
            conn.close()
    return get_habit(user_id, habit_id)


def delete_habit(user_id: int, habit_id: int) -> bool:
    """Delete a habit and all of its log entries."""
    conn = _connect()
    cur = conn.execute(
        "DELETE FROM habits WHERE id = ? AND user_id = ?", (habit_id, user_id)
    )
    deleted = cur.rowcount > 0
    if deleted:
        # Explicit as well as ON DELETE CASCADE, for databases created without it
        conn.execute("DELETE FROM habit_logs WHERE habit_id = ?", (habit_id,))
    conn.commit()
    conn.close()
    return deleted


# ═══════════════════════════════════════════════════════════════════════════
# Habit Logs
# ═══════════════════════════════════════════════════════════════════════════

def log_completion(habit_id: int, day: date | str, completed: bool = True,
                   note: str = "") -> int | None:
    """Insert a log entry. Returns its id, or None if that date is already logged."""
    day = _day(day)
    conn = _connect()
    try:
        cur = conn.execute(
            "INSERT INTO habit_logs (habit_id, date, completed, note) VALUES (?, ?, ?, ?)",
            (habit_id, day, int(completed), note),
        )
        conn.commit()
        return cur.lastrowid
    except sqlite3.IntegrityError:
        return None
    finally:
        conn.close()


def set_completion(habit_id: int, day: date | str, completed: bool,
                   note: str | None = None) -> None:
    """Create or overwrite the entry for a date. note=None keeps the existing note."""
    day = _day(day)
    conn = _connect()
    conn.execute(
        """INSERT INTO habit_logs (habit_id, date, completed, note) VALUES (?, ?, ?, ?)
           ON CONFLICT(habit_id, date) DO UPDATE SET
               completed = excluded.completed,
               note = COALESCE(excluded.note, habit_logs.note)""",
        (habit_id, day, int(completed), note),
    )
    conn.commit()
    conn.close()


def get_log(habit_id: int, day: date | str) -> CompletionRecord | None:
    day = _day(day)
    conn = _connect()
    row = conn.execute(
        "SELECT habit_id, date, completed, note FROM habit_logs WHERE habit_id = ? AND date = ?",
        (habit_id, day),
    ).fetchone()
    conn.close()
    return CompletionRecord.from_row(row) if row else None


def toggle_completion(habit_id: int, day: date | str) -> bool:
    """Flip the completed flag for a date (creating it as done). Returns the new value."""
    existing = get_log(habit_id, day)
    completed = not existing.completed if existing else True
    set_completion(habit_id, day, completed)
    return completed


def delete_log(habit_id: int, day: date | str) -> bool:
    day = _day(day)
    conn = _connect()
    cur = conn.execute(
        "DELETE FROM habit_logs WHERE habit_id = ? AND date = ?", (habit_id, day)
    )
    conn.commit()
    deleted = cur.rowcount > 0
    conn.close()
    return deleted


def get_logs(habit_id: int) -> list[CompletionRecord]:
    """All entries for a habit, oldest first (completed or not)."""
    conn = _connect()
    rows = conn.execute(
        "SELECT habit_id, date, completed, note FROM habit_logs WHERE habit_id = ? ORDER BY date",
        (habit_id,),
    ).fetchall()
    conn.close()
    return [CompletionRecord.from_row(r) for r in rows]


def get_completed_dates(habit_id: int) -> set[str]:
    """Dates (YYYY-MM-DD) with a completed entry — input for tally.stats."""
    conn = _connect()
    rows = conn.execute(
        "SELECT date FROM habit_logs WHERE habit_id = ? AND completed = 1",
        (habit_id,),
    ).fetchall()
    conn.close()
    return {r["date"] for r in rows}


def is_completed_on(habit_id: int, day: date | str) -> bool:
    entry = get_log(habit_id, day)
    return bool(entry and entry.completed)
