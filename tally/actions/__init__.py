"""Action registry — auto-discovery and dispatch of actions.

Actions are discovered by scanning the actions/ directory for subdirectories
containing handler.py.

Usage:
    import tally.actions as registry
    registry.discover()                          # scan and load all actions
    result = await registry.dispatch("stats", {"habit": "Read"}, user_id=uid, today=today)
"""

import importlib
import logging
from datetime import date
from pathlib import Path

from tally.actions.base import Action, ActionContext, ActionResult

log = logging.getLogger(__name__)

_ACTIONS_DIR = Path(__file__).parent

# name → action instance
_actions: dict[str, Action] = {}


def discover() -> list[str]:
    """Scan the actions directory and register all valid actions.

    Returns list of registered action names.
    """
    registered = []

    for entry in sorted(_ACTIONS_DIR.iterdir()):
        if not entry.is_dir():
            continue
        if entry.name.startswith("_"):
            continue
        if not (entry / "handler.py").exists():
            continue

        try:
            module = importlib.import_module(f"tally.actions.{entry.name}.handler")
            action_cls = None
            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if (isinstance(attr, type) and issubclass(attr, Action)
                        and attr is not Action):
                    action_cls = attr
                    break

            if action_cls is None:
                log.warning("No Action subclass found in %s", entry.name)
                continue

            action = action_cls()
            _actions[action.name] = action
            registered.append(action.name)
            log.info("Registered action: %s", action.name)

        except Exception as e:
            log.error("Failed to load action %s: %s", entry.name, e, exc_info=True)

    log.info("Action discovery complete: %d actions registered", len(registered))
    return registered


def get_action(name: str) -> Action | None:
    """Get an action by name."""
    return _actions.get(name)


def list_actions() -> list[str]:
    return sorted(_actions)


async def dispatch(name: str, args: dict, *, today: date, user_id: int = 0,
                   channel_id: int = 0, trigger: str = "command") -> ActionResult:
    """Dispatch a request to the named action.

    ``today`` is the caller's calendar date; actions never read the clock.
    """
    action = _actions.get(name)
    if not action:
        return ActionResult(output=f"Unknown action: {name}", success=False)

    context = ActionContext(
        trigger=trigger,
        today=today,
        user_id=user_id,
        channel_id=channel_id,
        args=args,
    )
    return await action.run(context)
