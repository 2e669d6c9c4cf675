"""Tests for the action registry and the habit / checkin / stats actions."""

from datetime import date, timedelta

import pytest

import tally.actions as registry
from tally import db
from tally.actions.base import Action, ActionContext, ActionResult, resolve_habit
from tally.actions.habit.handler import HabitAction, normalize_goal
from tally.actions.checkin.handler import CheckinAction
from tally.actions.stats.handler import StatsAction

TODAY = date(2026, 3, 15)


@pytest.fixture(autouse=True)
def fresh_db(tmp_path, monkeypatch):
    import tally.db as db_module
    monkeypatch.setattr(db_module, "DB_PATH", tmp_path / "test.db")
    db_module.init_db()
    yield


def _ctx(**args) -> ActionContext:
    return ActionContext(trigger="command", today=TODAY, user_id=1, args=args)


class _BrokenAction(Action):
    async def execute(self, context: ActionContext) -> ActionResult:
        raise RuntimeError("intentional failure")


class TestRegistry:
    def setup_method(self):
        registry._actions.clear()

    def teardown_method(self):
        registry._actions.clear()

    def test_discover_built_in_actions(self):
        names = registry.discover()
        assert "habit" in names
        assert "checkin" in names
        assert "stats" in names
        assert registry.list_actions() == sorted(names)
        assert isinstance(registry.get_action("stats"), StatsAction)

    @pytest.mark.asyncio
    async def test_dispatch_unknown(self):
        result = await registry.dispatch("nope", {}, user_id=1, today=TODAY)
        assert not result.success
        assert "Unknown action" in result.output

    @pytest.mark.asyncio
    async def test_dispatch_builds_context(self):
        registry.discover()
        result = await registry.dispatch(
            "habit", {"action": "create", "name": "Read"}, user_id=7, today=TODAY,
        )
        assert result.success
        assert db.find_habit(7, "Read") is not None

    @pytest.mark.asyncio
    async def test_dispatch_uses_callers_today(self):
        registry.discover()
        hid = db.create_habit(7, "Read")
        day = date(2025, 12, 31)
        result = await registry.dispatch(
            "checkin", {"action": "done", "habit": "Read"}, user_id=7, today=day,
        )
        assert result.data["date"] == "2025-12-31"
        assert db.get_completed_dates(hid) == {"2025-12-31"}

    @pytest.mark.asyncio
    async def test_dispatch_requires_today(self):
        registry.discover()
        with pytest.raises(TypeError):
            await registry.dispatch("habit", {"action": "list"}, user_id=7)


class TestActionBase:
    def test_name_from_module(self):
        assert HabitAction().name == "habit"
        assert CheckinAction().name == "checkin"

    @pytest.mark.asyncio
    async def test_run_turns_exceptions_into_failed_result(self):
        result = await _BrokenAction().run(_ctx())
        assert result.success is False
        assert "intentional failure" in result.output

    def test_resolve_by_id_and_name(self):
        hid = db.create_habit(1, "Read")
        assert resolve_habit(1, hid).id == hid
        assert resolve_habit(1, f"#{hid}").id == hid
        assert resolve_habit(1, "read").id == hid
        assert resolve_habit(1, "") is None
        assert resolve_habit(2, hid) is None

    def test_resolve_numeric_name(self):
        hid = db.create_habit(1, "10000")
        assert resolve_habit(1, "10000").id == hid


class TestHabitAction:
    def test_normalize_goal(self):
        assert normalize_goal("daily") == "Daily"
        assert normalize_goal(" WEEKLY ") == "Weekly"
        assert normalize_goal("Monthly") == "Monthly"
        assert normalize_goal("") is None

    @pytest.mark.asyncio
    async def test_create_and_list(self):
        action = HabitAction()
        result = await action.execute(_ctx(action="create", name="Read", goal="weekly"))
        assert result.success
        hid = result.data["habit_id"]
        assert db.get_habit(1, hid).goal == "Weekly"

        db.log_completion(hid, TODAY)
        listing = await action.execute(_ctx(action="list"))
        assert "✅" in listing.output
        assert "Read" in listing.output

    @pytest.mark.asyncio
    async def test_create_requires_name(self):
        result = await HabitAction().execute(_ctx(action="create", name="  "))
        assert not result.success

    @pytest.mark.asyncio
    async def test_create_duplicate(self):
        action = HabitAction()
        await action.execute(_ctx(action="create", name="Read"))
        result = await action.execute(_ctx(action="create", name="Read"))
        assert not result.success
        assert "already" in result.output

    @pytest.mark.asyncio
    async def test_list_empty(self):
        result = await HabitAction().execute(_ctx(action="list"))
        assert result.success
        assert "No habits" in result.output

    @pytest.mark.asyncio
    async def test_update(self):
        hid = db.create_habit(1, "Read")
        result = await HabitAction().execute(
            _ctx(action="update", habit="Read", name="Read more", category="Learning")
        )
        assert result.success
        habit = db.get_habit(1, hid)
        assert habit.name == "Read more"
        assert habit.category == "Learning"

    @pytest.mark.asyncio
    async def test_update_nothing(self):
        db.create_habit(1, "Read")
        result = await HabitAction().execute(_ctx(action="update", habit="Read"))
        assert not result.success

    @pytest.mark.asyncio
    async def test_update_blank_goal_is_nothing_to_update(self):
        hid = db.create_habit(1, "Read", "Weekly")
        result = await HabitAction().execute(_ctx(action="update", habit="Read", goal=""))
        assert not result.success
        assert "Nothing to update" in result.output
        assert db.get_habit(1, hid).goal == "Weekly"

    @pytest.mark.asyncio
    async def test_update_blank_goal_keeps_other_changes(self):
        hid = db.create_habit(1, "Read", "Weekly")
        result = await HabitAction().execute(
            _ctx(action="update", habit="Read", goal=" ", category="Learning")
        )
        assert result.success
        habit = db.get_habit(1, hid)
        assert habit.goal == "Weekly"
        assert habit.category == "Learning"

    @pytest.mark.asyncio
    async def test_delete(self):
        hid = db.create_habit(1, "Read")
        db.log_completion(hid, TODAY)
        result = await HabitAction().execute(_ctx(action="delete", habit=str(hid)))
        assert result.success
        assert db.get_habit(1, hid) is None
        assert db.get_logs(hid) == []

    @pytest.mark.asyncio
    async def test_delete_missing(self):
        result = await HabitAction().execute(_ctx(action="delete", habit="Nope"))
        assert not result.success


class TestCheckinAction:
    @pytest.mark.asyncio
    async def test_done_defaults_to_today(self):
        hid = db.create_habit(1, "Read")
        result = await CheckinAction().execute(_ctx(action="done", habit="Read", note="ch. 1"))
        assert result.success
        assert result.data["date"] == TODAY.isoformat()
        entry = db.get_log(hid, TODAY)
        assert entry.completed and entry.note == "ch. 1"

    @pytest.mark.asyncio
    async def test_done_twice_fails(self):
        db.create_habit(1, "Read")
        action = CheckinAction()
        await action.execute(_ctx(action="done", habit="Read"))
        result = await action.execute(_ctx(action="done", habit="Read"))
        assert not result.success
        assert "already exists" in result.output

    @pytest.mark.asyncio
    async def test_done_explicit_date(self):
        hid = db.create_habit(1, "Read")
        await CheckinAction().execute(_ctx(action="done", habit="Read", date="2026-03-01"))
        assert db.get_completed_dates(hid) == {"2026-03-01"}

    @pytest.mark.asyncio
    async def test_bad_date(self):
        db.create_habit(1, "Read")
        result = await CheckinAction().execute(_ctx(action="done", habit="Read", date="yesterday"))
        assert not result.success
        assert "YYYY-MM-DD" in result.output

    @pytest.mark.asyncio
    async def test_toggle_and_undo(self):
        hid = db.create_habit(1, "Read")
        action = CheckinAction()
        r1 = await action.execute(_ctx(action="toggle", habit="Read"))
        assert r1.data["completed"] is True
        r2 = await action.execute(_ctx(action="toggle", habit="Read"))
        assert r2.data["completed"] is False
        r3 = await action.execute(_ctx(action="undo", habit="Read"))
        assert r3.success
        assert db.get_logs(hid) == []
        r4 = await action.execute(_ctx(action="undo", habit="Read"))
        assert not r4.success

    @pytest.mark.asyncio
    async def test_history(self):
        hid = db.create_habit(1, "Read")
        db.log_completion(hid, "2026-03-01", note="good")
        db.log_completion(hid, "2026-03-02", completed=False)
        result = await CheckinAction().execute(_ctx(action="history", habit="Read"))
        assert result.success
        assert [e["date"] for e in result.data["logs"]] == ["2026-03-01", "2026-03-02"]
        assert "good" in result.output

    @pytest.mark.asyncio
    async def test_unknown_habit(self):
        result = await CheckinAction().execute(_ctx(action="done", habit="Nope"))
        assert not result.success


class TestStatsAction:
    @pytest.mark.asyncio
    async def test_single_habit(self):
        hid = db.create_habit(1, "Read")
        for n in (0, 1, 2, 5, 6, 7):
            db.log_completion(hid, TODAY - timedelta(days=n))
        # Not-completed entries don't count
        db.log_completion(hid, TODAY - timedelta(days=3), completed=False)

        result = await StatsAction().execute(_ctx(habit="Read"))
        assert result.success
        assert result.data == {
            "totalCompletions": 6,
            "currentStreak": 3,
            "longestStreak": 3,
            "completionRate": 20,
        }
        assert "Current streak: 3" in result.output

    @pytest.mark.asyncio
    async def test_empty_habit(self):
        db.create_habit(1, "Read")
        result = await StatsAction().execute(_ctx(habit="Read"))
        assert result.data == {
            "totalCompletions": 0,
            "currentStreak": 0,
            "longestStreak": 0,
            "completionRate": 0,
        }

    @pytest.mark.asyncio
    async def test_all_habits(self):
        a = db.create_habit(1, "Read")
        b = db.create_habit(1, "Run")
        db.log_completion(a, TODAY)
        result = await StatsAction().execute(_ctx())
        assert result.success
        assert result.data["habits"][a]["currentStreak"] == 1
        assert result.data["habits"][b]["currentStreak"] == 0
        assert "Read" in result.output and "Run" in result.output

    @pytest.mark.asyncio
    async def test_unknown_habit(self):
        result = await StatsAction().execute(_ctx(habit="Nope"))
        assert not result.success
