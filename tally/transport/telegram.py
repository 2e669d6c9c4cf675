"""Telegram transport — habit commands over the Telegram Bot API.

This is the default transport. Requires TELEGRAM_BOT_TOKEN in .env.

Each slash command is parsed into an args dict and dispatched to an action.
Parsing and routing are plain functions so they can be used without a bot.
"""

import logging
import re
from datetime import date, datetime, timezone, timedelta

from telegram import Update
from telegram.ext import (
    Application, CommandHandler, MessageHandler,
    ContextTypes, filters,
)

import tally.actions as registry
from tally import db
from tally.config import TELEGRAM_BOT_TOKEN, TIMEZONE_OFFSET_HOURS
from tally.models import EDITABLE_HABIT_FIELDS
from tally.transport import Transport, IncomingMessage

log = logging.getLogger(__name__)

TZ = timezone(timedelta(hours=TIMEZONE_OFFSET_HOURS))

MAX_MESSAGE_LENGTH = 4096

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

HELP_TEXT = (
    "Track your habits and keep your streaks alive.\n\n"
    "Commands:\n"
    "/habits — List habits (✅ = done today)\n"
    "/add name | goal | category | color — New habit (goal: Daily or Weekly)\n"
    "/edit habit | field=value | ... — Change name, goal, category or color\n"
    "/delete habit — Delete a habit and its history\n"
    "/done habit [YYYY-MM-DD] [note] — Mark done (default today)\n"
    "/toggle habit [YYYY-MM-DD] — Flip done / not done\n"
    "/undo habit [YYYY-MM-DD] — Remove an entry\n"
    "/history habit — All entries\n"
    "/stats [habit] — Streaks and completion rate\n\n"
    "Habits can be referred to by name or by #id."
)


# ── Argument parsing ──────────────────────────────────────────

def split_fields(text: str, sep: str = "|") -> list[str]:
    return [part.strip() for part in text.split(sep)]


def parse_add_args(text: str) -> dict:
    """'Read | Daily | Learning | blue' -> create args. Trailing fields optional."""
    fields = split_fields(text)
    args = {"action": "create", "name": fields[0]}
    for key, value in zip(("goal", "category", "color"), fields[1:]):
        if value:
            args[key] = value
    return args


def parse_edit_args(text: str) -> dict:
    """'Read | name=Read more | goal=Weekly' -> update args."""
    fields = split_fields(text)
    args = {"action": "update", "habit": fields[0]}
    for field in fields[1:]:
        if "=" not in field:
            continue
        key, value = field.split("=", 1)
        key = key.strip().lower()
        if key in EDITABLE_HABIT_FIELDS:
            args[key] = value.strip()
    return args


def parse_day_args(text: str, action: str) -> dict:
    """Split 'habit name [YYYY-MM-DD] [note]' into log args.

    A note can also be given after a '|': '/done Read | great chapter'.
    """
    note = ""
    if "|" in text:
        text, note = text.split("|", 1)
        note = note.strip()

    tokens = text.split()
    args = {"action": action}
    for i, token in enumerate(tokens):
        if _DATE_RE.match(token):
            args["habit"] = " ".join(tokens[:i])
            args["date"] = token
            if not note:
                note = " ".join(tokens[i + 1:])
            break
    else:
        args["habit"] = " ".join(tokens)

    if note:
        args["note"] = note
    return args


# command -> (action name, args builder)
COMMANDS = {
    "habits": ("habit", lambda t: {"action": "list"}),
    "add": ("habit", parse_add_args),
    "edit": ("habit", parse_edit_args),
    "delete": ("habit", lambda t: {"action": "delete", "habit": t}),
    "done": ("checkin", lambda t: parse_day_args(t, "done")),
    "toggle": ("checkin", lambda t: parse_day_args(t, "toggle")),
    "undo": ("checkin", lambda t: parse_day_args(t, "undo")),
    "history": ("checkin", lambda t: {"action": "history", "habit": t}),
    "stats": ("stats", lambda t: {"habit": t} if t else {}),
}


def local_today() -> date:
    return datetime.now(TZ).date()


async def handle_command(command: str, msg: IncomingMessage,
                         today: date | None = None) -> str:
    """Route one slash command to its action and return the reply text."""
    entry = COMMANDS.get(command)
    if entry is None:
        return f"Unknown command: /{command}. Try /help."

    if db.get_user(msg.user_id) is None:
        db.register_user(msg.user_id, msg.username)

    action_name, build_args = entry
    args = build_args(msg.text.strip())
    result = await registry.dispatch(
        action_name, args,
        user_id=msg.user_id,
        channel_id=msg.channel_id,
        today=today or local_today(),
    )
    return result.output


def _command_argument(text: str) -> str:
    """Strip '/cmd' or '/cmd@botname' from the message text."""
    parts = text.split(maxsplit=1)
    return parts[1] if len(parts) > 1 else ""


class TelegramTransport(Transport):
    """Telegram Bot API transport."""

    def __init__(self):
        self._app: Application | None = None

    @property
    def name(self) -> str:
        return "telegram"

    async def start(self) -> None:
        if not TELEGRAM_BOT_TOKEN:
            log.warning("TELEGRAM_BOT_TOKEN not set, Telegram transport disabled")
            return

        self._app = Application.builder().token(TELEGRAM_BOT_TOKEN).build()

        # Register handlers
        self._app.add_handler(CommandHandler("start", self._cmd_start))
        self._app.add_handler(CommandHandler("help", self._cmd_help))
        self._app.add_handler(CommandHandler(list(COMMANDS), self._cmd_habit))
        self._app.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message)
        )

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)
        log.info("Telegram transport started")

    async def stop(self) -> None:
        if self._app:
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
            log.info("Telegram transport stopped")

    async def send_message(self, user_id: int, text: str) -> None:
        """Send ``text`` in 4096-char chunks. Raises if delivery fails."""
        if not self._app:
            raise RuntimeError("Telegram transport not started")
        try:
            for i in range(0, len(text), MAX_MESSAGE_LENGTH):
                await self._app.bot.send_message(
                    chat_id=user_id,
                    text=text[i:i + MAX_MESSAGE_LENGTH],
                )
        except Exception as e:
            log.error("Failed to send Telegram message to %d: %s", user_id, e)
            raise

    # ── Handlers ──────────────────────────────────────────────

    async def _cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        created = db.register_user(user.id, user.username or user.first_name or "")
        if created:
            log.info("New user registered: user_id=%d", user.id)
        await update.message.reply_text(
            "Hi! I'll keep count of your habits. Start with /add, or see /help."
        )

    async def _cmd_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await update.message.reply_text(HELP_TEXT)

    async def _cmd_habit(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return
        text = update.message.text
        command = text.split(maxsplit=1)[0].lstrip("/").split("@", 1)[0].lower()
        user = update.effective_user

        msg = IncomingMessage(
            user_id=user.id,
            channel_id=update.effective_chat.id,
            text=_command_argument(text),
            transport="telegram",
            username=user.username or user.first_name or "",
        )
        response = await handle_command(command, msg)
        if response:
            await self.send_message(update.effective_chat.id, response)

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return
        await update.message.reply_text("I only understand commands. Try /help.")
