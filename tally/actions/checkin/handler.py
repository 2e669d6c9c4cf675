"""Checkin action — mark a habit done for a day, toggle it, undo it, list history."""

from datetime import date

from tally import db
from tally.actions.base import Action, ActionContext, ActionResult, resolve_habit


def _target_day(context: ActionContext) -> date:
    """Day from args["date"] (YYYY-MM-DD), defaulting to context.today."""
    raw = context.args.get("date")
    if not raw:
        return context.today
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw))


class CheckinAction(Action):

    async def execute(self, context: ActionContext) -> ActionResult:
        args = context.args
        action = args.get("action", "done")

        habit = resolve_habit(context.user_id, args.get("habit"))
        if not habit:
            return ActionResult(output="Habit not found.", success=False)

        if action == "history":
            entries = db.get_logs(habit.id)
            if not entries:
                return ActionResult(output=f"No entries for {habit.name} yet.")
            lines = []
            for e in entries:
                line = f"{'✅' if e.completed else '❌'} {e.date}"
                if e.note:
                    line += f" — {e.note}"
                lines.append(line)
            return ActionResult(
                output=f"{habit.name}: {len(entries)} entries\n" + "\n".join(lines),
                data={"logs": [{"date": e.date, "completed": e.completed, "note": e.note}
                               for e in entries]},
            )

        try:
            day = _target_day(context)
        except ValueError:
            return ActionResult(output="Dates look like YYYY-MM-DD.", success=False)
        day_str = day.isoformat()

        if action == "done":
            note = args.get("note", "") or ""
            lid = db.log_completion(habit.id, day, completed=True, note=note)
            if lid is None:
                return ActionResult(output=f"Log already exists for {day_str}.", success=False)
            return ActionResult(output=f"Logged {habit.name} for {day_str}.",
                                data={"habit_id": habit.id, "date": day_str})

        elif action == "toggle":
            completed = db.toggle_completion(habit.id, day)
            state = "done" if completed else "not done"
            return ActionResult(output=f"{habit.name} on {day_str}: {state}.",
                                data={"habit_id": habit.id, "date": day_str,
                                      "completed": completed})

        elif action == "undo":
            if not db.delete_log(habit.id, day):
                return ActionResult(output=f"Nothing logged for {habit.name} on {day_str}.",
                                    success=False)
            return ActionResult(output=f"Removed {habit.name} entry for {day_str}.",
                                data={"habit_id": habit.id, "date": day_str})

        return ActionResult(output=f"Unknown action: {action}", success=False)
