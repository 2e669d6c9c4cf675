"""Stats action — streaks and completion rate for one habit or all of them."""

from tally import db
from tally.actions.base import Action, ActionContext, ActionResult, resolve_habit
from tally.models import Habit
from tally.stats import HabitStats, compute_stats


def habit_stats(habit: Habit, context: ActionContext) -> HabitStats:
    return compute_stats(db.get_completed_dates(habit.id), context.today)


def format_stats(habit: Habit, stats: HabitStats) -> str:
    return (
        f"📊 {habit.name}\n"
        f"Current streak: {stats.current_streak} days\n"
        f"Longest streak: {stats.longest_streak} days\n"
        f"Total completions: {stats.total_completions}\n"
        f"Completion rate: {stats.completion_rate}%"
    )


class StatsAction(Action):

    async def execute(self, context: ActionContext) -> ActionResult:
        ref = context.args.get("habit")

        if ref:
            habit = resolve_habit(context.user_id, ref)
            if not habit:
                return ActionResult(output="Habit not found.", success=False)
            stats = habit_stats(habit, context)
            return ActionResult(output=format_stats(habit, stats), data=stats.to_dict())

        habits = db.get_habits(context.user_id)
        if not habits:
            return ActionResult(output="No habits yet. Add one with /add.")

        per_habit = {}
        lines = []
        for h in habits:
            stats = habit_stats(h, context)
            per_habit[h.id] = stats.to_dict()
            lines.append(
                f"- {h.name}: 🔥 {stats.current_streak} "
                f"(best {stats.longest_streak}, {stats.completion_rate}%)"
            )
        return ActionResult(output="📊 Your habits\n" + "\n".join(lines),
                            data={"habits": per_habit})
