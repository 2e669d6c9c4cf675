"""Tally — main entry point.

Starts all subsystems:
1. Database initialization
2. Action discovery
3. Transport (Telegram)
4. Daily reminder scheduler
"""

import asyncio
import logging
from datetime import datetime, timezone, timedelta

from tally.config import (
    LOG_LEVEL,
    REMINDER_HOUR,
    TIMEZONE_OFFSET_HOURS,
)
from tally.db import init_db
import tally.actions as registry
from tally.reminders import run_reminders
from tally.transport.telegram import TelegramTransport

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)-5s %(name)s — %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("tally")

TZ = timezone(timedelta(hours=TIMEZONE_OFFSET_HOURS))


def seconds_until(hour: int, now: datetime) -> float:
    """Seconds from ``now`` until the next occurrence of ``hour``:00."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if now >= target:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def reminder_scheduler(transport):
    """Trigger one reminder pass at REMINDER_HOUR every day."""
    while True:
        wait_seconds = seconds_until(REMINDER_HOUR, datetime.now(TZ))
        log.info("Next reminder pass in %.0f minutes", wait_seconds / 60)
        await asyncio.sleep(wait_seconds)

        try:
            await run_reminders(transport.send_message, today=datetime.now(TZ).date())
        except Exception as e:
            log.error("Reminder pass failed: %s", e, exc_info=True)


async def main():
    """Boot sequence."""
    log.info("Tally starting up...")

    # 1. Database
    init_db()
    log.info("Database ready")

    # 2. Actions
    actions = registry.discover()
    log.info("Actions loaded: %s", actions)

    # 3. Transport
    transport = TelegramTransport()
    await transport.start()
    log.info("Transport started: %s", transport.name)

    # 4. Reminders
    if REMINDER_HOUR >= 0:
        asyncio.create_task(reminder_scheduler(transport))
        log.info("Reminder scheduler started (daily at %02d:00)", REMINDER_HOUR)
    else:
        log.info("In-process reminders disabled (REMINDER_HOUR < 0)")

    # Keep running
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        log.info("Shutting down...")
        await transport.stop()


if __name__ == "__main__":
    asyncio.run(main())
