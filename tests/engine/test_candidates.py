"""Unit tests for candidate derivation and set fingerprints."""

from datetime import datetime

import pytest

from taskalarm.engine.candidates import derive, eligible, fingerprint, is_eligible, trigger_instant
from taskalarm.engine.schema import Task, format_offset

NOW = datetime(2025, 6, 10, 8, 0, 0)


# ============================================================================
# Task parsing
# ============================================================================


class TestTaskParsing:
    def test_store_row_columns(self):
        """Task store rows use reminder_time for the offset."""
        task = Task.model_validate(
            {
                "id": "t1",
                "title": "X",
                "description": None,
                "due_date": "2025-06-10",
                "due_time": "09:00:00",
                "completed": False,
                "reminder_enabled": True,
                "reminder_time": 30,
                "priority": "high",
            }
        )
        assert task.reminder_offset == 30
        assert task.due_time.hour == 9

    def test_camel_case_names(self):
        task = Task.model_validate(
            {"id": "t1", "title": "X", "dueDate": "2025-06-10", "dueTime": "09:00",
             "reminderEnabled": True, "reminderTime": 15}
        )
        assert task.reminder_enabled is True
        assert task.reminder_offset == 15

    def test_datetime_due_date_keeps_date(self):
        task = Task.model_validate({"id": "t1", "title": "X", "due_date": "2025-06-10T15:00:00Z"})
        assert task.due_date.isoformat() == "2025-06-10"

    def test_empty_due_time_is_none(self):
        task = Task.model_validate({"id": "t1", "title": "X", "due_date": "2025-06-10", "due_time": ""})
        assert task.due_time is None

    def test_integer_id_coerced(self):
        task = Task.model_validate({"id": 7, "title": "X", "due_date": "2025-06-10"})
        assert task.id == "7"

    def test_negative_offset_rejected(self):
        with pytest.raises(ValueError):
            Task.model_validate({"id": "t1", "title": "X", "due_date": "2025-06-10", "reminder_offset": -5})


# ============================================================================
# derive()
# ============================================================================


class TestDerive:
    def test_due_0900_offset_30_triggers_0830(self, make_task):
        """09:00 due, 30 min offset -> 08:30 trigger."""
        [c] = derive([make_task("t1", title="X")], NOW)
        assert c.task_id == "t1"
        assert c.trigger_at == datetime(2025, 6, 10, 8, 30)

    def test_no_due_time_uses_midnight(self, make_task):
        task = make_task(due_time=None, reminder_offset=60)
        assert trigger_instant(task) == datetime(2025, 6, 9, 23, 0)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"completed": True},
            {"reminder_enabled": False},
            {"reminder_offset": None},
            {"reminder_offset": 0},
        ],
    )
    def test_membership_filter(self, make_task, overrides):
        assert derive([make_task(**overrides)], NOW) == []

    def test_past_trigger_is_still_candidate(self, make_task):
        """Membership ignores time; eligibility is separate."""
        task = make_task(due_time=None, reminder_offset=60)
        candidates = derive([task], NOW)
        assert len(candidates) == 1
        assert eligible(candidates, NOW) == []

    def test_trigger_at_now_is_not_eligible(self, make_task):
        [c] = derive([make_task(due_time="08:30")], NOW)
        assert c.trigger_at == NOW
        assert is_eligible(c, NOW) is False
        assert eligible([c], NOW) == []

    def test_sorted_by_task_id(self, make_task):
        tasks = [make_task("c"), make_task("a"), make_task("b")]
        assert [c.task_id for c in derive(tasks, NOW)] == ["a", "b", "c"]

    def test_candidate_carries_source_fields(self, make_task):
        [c] = derive([make_task(description="Bring slides")], NOW)
        assert c.description == "Bring slides"
        assert c.offset_minutes == 30
        assert c.reminder_enabled is True
        assert c.completed is False


# ============================================================================
# fingerprint()
# ============================================================================


class TestFingerprint:
    def test_identical_input_identical_fingerprint(self, make_task):
        a = derive([make_task("t1"), make_task("t2")], NOW)
        b = derive([make_task("t1"), make_task("t2")], NOW)
        assert fingerprint(a) == fingerprint(b)

    def test_order_independent(self, make_task):
        a = derive([make_task("t1"), make_task("t2")], NOW)
        b = derive([make_task("t2"), make_task("t1")], NOW)
        assert fingerprint(a) == fingerprint(b)

    def test_independent_of_now(self, make_task):
        tasks = [make_task("t1")]
        later = datetime(2025, 6, 10, 8, 20)
        assert fingerprint(derive(tasks, NOW)) == fingerprint(derive(tasks, later))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": "Renamed"},
            {"due_date": "2025-06-11"},
            {"due_time": "10:00"},
            {"reminder_offset": 15},
            {"reminder_enabled": False},
            {"completed": True},
        ],
    )
    def test_user_editable_change_alters_fingerprint(self, make_task, overrides):
        base = fingerprint(derive([make_task("t1")], NOW))
        changed = fingerprint(derive([make_task("t1", **overrides)], NOW))
        assert base != changed

    def test_empty_set_is_stable(self):
        assert fingerprint([]) == fingerprint([])


# ============================================================================
# format_offset()
# ============================================================================


class TestFormatOffset:
    @pytest.mark.parametrize(
        "minutes,label",
        [
            (1, "1 minute before"),
            (30, "30 minutes before"),
            (60, "1 hour before"),
            (150, "2 hours before"),
            (1440, "1 day before"),
            (10080, "7 days before"),
        ],
    )
    def test_labels(self, minutes, label):
        assert format_offset(minutes) == label
