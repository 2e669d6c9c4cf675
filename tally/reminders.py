"""Reminder job — nudges users about habits not yet done today.

One call of run_reminders() is one pass. Nothing here loops or sleeps:
the pass is triggered from outside, either by the daily scheduler in
tally.main or by cron / a systemd timer running:

    python -m tally.reminders
"""

import asyncio
import logging
from datetime import date, datetime, timezone, timedelta
from typing import Awaitable, Callable

from tally import db
from tally.config import (
    TELEGRAM_BOT_TOKEN,
    REMINDER_GOAL,
    TIMEZONE_OFFSET_HOURS,
    LOG_LEVEL,
)

log = logging.getLogger(__name__)

TZ = timezone(timedelta(hours=TIMEZONE_OFFSET_HOURS))

SendCallback = Callable[[int, str], Awaitable[None]]


def reminder_text(habit_name: str) -> str:
    return f"Reminder: Log {habit_name} today!"


def build_reminders(today: date, goal: str = REMINDER_GOAL) -> list[dict]:
    """Reminders for every habit with ``goal`` that isn't completed on ``today``.

    Each item: {user_id, habit_id, text}
    """
    reminders = []
    for habit in db.get_habits_by_goal(goal):
        if db.is_completed_on(habit.id, today):
            continue
        reminders.append({
            "user_id": habit.owner_id,
            "habit_id": habit.id,
            "text": reminder_text(habit.name),
        })
    return reminders


async def run_reminders(send: SendCallback, today: date | None = None,
                        goal: str = REMINDER_GOAL) -> int:
    """Send one round of reminders. Returns how many were delivered."""
    today = today or datetime.now(TZ).date()
    reminders = build_reminders(today, goal)
    sent = 0
    for r in reminders:
        try:
            await send(r["user_id"], r["text"])
            sent += 1
        except Exception as e:
            log.error("Failed to send reminder for habit #%d: %s", r["habit_id"], e)
    log.info("Reminder pass for %s (%s): %d/%d sent", today, goal, sent, len(reminders))
    return sent


async def _run_once() -> int:
    db.init_db()
    if not TELEGRAM_BOT_TOKEN:
        log.warning("TELEGRAM_BOT_TOKEN not set, reminders are only logged")

        async def send(user_id: int, text: str) -> None:
            log.info("[user %d] %s", user_id, text)

        return await run_reminders(send)

    from telegram import Bot

    async with Bot(TELEGRAM_BOT_TOKEN) as bot:
        async def send(user_id: int, text: str) -> None:
            await bot.send_message(chat_id=user_id, text=text)

        return await run_reminders(send)


if __name__ == "__main__":
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)-5s %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    asyncio.run(_run_once())
