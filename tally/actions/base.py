"""Action base class and the request/response types shared by all actions.

Every action package must have:
  - handler.py     (an Action subclass)
  - __init__.py
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date

from tally import db
from tally.models import Habit

log = logging.getLogger(__name__)


@dataclass
class ActionContext:
    """Unified invocation context passed to Action.run().

    All callers (telegram commands, reminder job, scripts) build this
    and pass it in. ``today`` is decided by the caller, never read from
    the clock inside an action.
    """
    trigger: str                # "command" | "cron" | "script"
    today: date
    user_id: int = 0
    channel_id: int = 0
    args: dict = field(default_factory=dict)


@dataclass
class ActionResult:
    """Unified result returned by Action.run().

    - output: human-readable text for the user
    - data: structured payload (e.g. the stats dict)
    - success: whether the action executed without error
    """
    output: str = ""
    data: dict = field(default_factory=dict)
    success: bool = True


def resolve_habit(user_id: int, ref) -> Habit | None:
    """Find one of the user's habits by numeric id or by name."""
    if ref is None or ref == "":
        return None
    ref_str = str(ref).strip().lstrip("#")
    if ref_str.isdigit():
        habit = db.get_habit(user_id, int(ref_str))
        if habit:
            return habit
    return db.find_habit(user_id, str(ref).strip())


class Action(ABC):
    """Base class for all actions."""

    def __init__(self):
        self._name: str = ""

    @property
    def name(self) -> str:
        if self._name:
            return self._name
        # e.g., tally.actions.habit.handler -> habit
        parts = (self.__class__.__module__ or "").split(".")
        if len(parts) >= 3:
            self._name = parts[-2]
        else:
            self._name = self.__class__.__name__.lower()
        return self._name

    @abstractmethod
    async def execute(self, context: ActionContext) -> ActionResult:
        """Execute the action. Must be implemented by subclasses."""
        ...

    async def run(self, context: ActionContext) -> ActionResult:
        """Unified entry point. Wraps execute() with logging."""
        log.info("Action %s triggered by %s (user=%d, args=%s)",
                 self.name, context.trigger, context.user_id, context.args)
        try:
            return await self.execute(context)
        except Exception as e:
            log.error("Action %s failed: %s", self.name, e, exc_info=True)
            return ActionResult(output=f"Something went wrong: {e}", success=False)
