"""Habit action — create, list, update and delete habits."""

from tally import db
from tally.actions.base import Action, ActionContext, ActionResult, resolve_habit
from tally.models import GOAL_DAILY, GOAL_WEEKLY, EDITABLE_HABIT_FIELDS

_KNOWN_GOALS = {g.lower(): g for g in (GOAL_DAILY, GOAL_WEEKLY)}


def normalize_goal(goal: str | None) -> str | None:
    """Canonical spelling for Daily/Weekly; anything else is kept as typed."""
    if goal is None:
        return None
    goal = goal.strip()
    if not goal:
        return None
    return _KNOWN_GOALS.get(goal.lower(), goal)


class HabitAction(Action):

    async def execute(self, context: ActionContext) -> ActionResult:
        args = context.args
        action = args.get("action", "list")
        uid = context.user_id

        if action == "create":
            name = (args.get("name") or "").strip()
            if not name:
                return ActionResult(output="Need a habit name.", success=False)
            goal = normalize_goal(args.get("goal")) or GOAL_DAILY
            hid = db.create_habit(uid, name, goal,
                                  args.get("category", "") or "",
                                  args.get("color", "") or "")
            if hid is None:
                return ActionResult(output=f"You already have a habit called '{name}'.",
                                    success=False)
            habit = db.get_habit(uid, hid)
            return ActionResult(output=f"Habit {habit.label} created.",
                                data={"habit_id": hid})

        elif action == "list":
            habits = db.get_habits(uid)
            if not habits:
                return ActionResult(output="No habits yet. Add one with /add.")
            lines = []
            for h in habits:
                mark = "✅" if db.is_completed_on(h.id, context.today) else "⬜"
                extra = f" [{h.category}]" if h.category else ""
                lines.append(f"{mark} {h.label}{extra}")
            return ActionResult(output=f"{len(habits)} habits:\n" + "\n".join(lines),
                                data={"habit_ids": [h.id for h in habits]})

        elif action == "update":
            habit = resolve_habit(uid, args.get("habit"))
            if not habit:
                return ActionResult(output="Habit not found.", success=False)
            fields = {k: args[k] for k in EDITABLE_HABIT_FIELDS if k in args}
            if "goal" in fields:
                fields["goal"] = normalize_goal(fields["goal"])
            # a blank goal means "leave as is"
            fields = {k: v for k, v in fields.items() if v is not None}
            if "name" in fields and not (fields["name"] or "").strip():
                return ActionResult(output="Habit name can't be empty.", success=False)
            if not fields:
                return ActionResult(output="Nothing to update.", success=False)
            updated = db.update_habit(uid, habit.id, **fields)
            if updated is None:
                return ActionResult(output="Could not update: that name is already in use.",
                                    success=False)
            return ActionResult(output=f"Habit {updated.label} updated.",
                                data={"habit_id": updated.id})

        elif action == "delete":
            habit = resolve_habit(uid, args.get("habit"))
            if not habit:
                return ActionResult(output="Habit not found.", success=False)
            db.delete_habit(uid, habit.id)
            return ActionResult(output=f"Habit '{habit.name}' deleted.",
                                data={"habit_id": habit.id})

        return ActionResult(output=f"Unknown action: {action}", success=False)
