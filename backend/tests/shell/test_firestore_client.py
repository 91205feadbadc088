"""Unit tests for Firestore document conversion and batched writes."""

from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest

from sammy.core.errors import AtomicWriteFailure, ValidationError
from sammy.core.models import DailyLog, GoalSource, ProjectionResult, WeeklyPlanTemplate
from sammy.shell.firestore_client import (
    FirestoreConfig,
    SammyFirestoreClient,
    document_to_log,
    document_to_profile,
    increment_in_transaction,
    log_to_document,
    profile_fields_to_document,
)


USER = "u" * 32
WEEK = dict(monday=2, tuesday=2, wednesday=2, thursday=2, friday=3, saturday=3, sunday=1)


def _client_with_mock() -> tuple[SammyFirestoreClient, MagicMock]:
    db = SammyFirestoreClient(FirestoreConfig(project_id="test"))
    mock = MagicMock()
    db._client = mock
    return db, mock


def _projection(logs: list[DailyLog]) -> ProjectionResult:
    return ProjectionResult(
        updated_logs=logs,
        days_projected=len(logs),
        week_total=15,
        week_start=date(2024, 1, 1),
        template=WeeklyPlanTemplate(**WEEK, last_applied=date(2024, 1, 1)),
    )


class TestLogConversion:
    """Tests for log_to_document and document_to_log."""

    def test_goal_only_document(self):
        """Unset fields are left out so a merge keeps the stored count."""
        log = DailyLog(
            log_date=date(2024, 1, 3),
            goal=2,
            goal_source=GoalSource.WEEKLY_PLAN,
            goal_set_at=datetime(2024, 1, 3, 9, 0),
        )
        data = log_to_document(USER, log)

        assert data["date"] == "2024-01-03"
        assert data["userId"] == USER
        assert data["habits"]["drinking"] == {
            "goal": 2,
            "goalSource": "weekly_plan",
            "goalSetAt": datetime(2024, 1, 3, 9, 0),
        }

    def test_count_only_document(self):
        data = log_to_document(USER, DailyLog(log_date=date(2024, 1, 3), count=0))
        assert data["habits"]["drinking"] == {"count": 0}

    def test_read_nested(self):
        log = document_to_log({
            "date": "2024-01-03",
            "habits": {"drinking": {"goal": 2, "goalSource": "manual", "count": 1}},
        })
        assert log.log_date == date(2024, 1, 3)
        assert log.goal_source == GoalSource.MANUAL
        assert log.count == 1

    def test_read_legacy_count(self):
        """Older documents keep the count at the top level."""
        log = document_to_log({"date": "2024-01-03", "count": 4})
        assert log.count == 4
        assert log.goal is None


class TestProfileConversion:
    """Tests for document_to_profile."""

    def test_empty_document(self):
        profile = document_to_profile({})
        assert profile.daily_goal == 2
        assert profile.unlocked_milestones == {}

    def test_full_document(self):
        unlocked_at = datetime(2024, 1, 7, 12, 0)
        profile = document_to_profile({
            "dailyGoal": 3,
            "avgDrinkCost": 12.5,
            "registeredDate": "2023-12-01T08:00:00Z",
            "weeklyPlanTemplate": {**WEEK, "isActive": True, "lastApplied": "2024-01-01"},
            "typicalWeek": WEEK,
            "achievements": {"unlockedMilestones": [{"id": "streak_7", "unlockedAt": unlocked_at}]},
        })

        assert profile.daily_goal == 3
        assert profile.avg_drink_cost == 12.5
        assert profile.registered_date == date(2023, 12, 1)
        assert profile.weekly_plan_template.last_applied == date(2024, 1, 1)
        assert profile.typical_week.friday == 3
        assert profile.unlocked_milestones == {"streak_7": unlocked_at}

    def test_null_fields_use_defaults(self):
        profile = document_to_profile({"dailyGoal": None, "typicalWeek": None})
        assert profile.daily_goal == 2
        assert profile.typical_week is None


class TestCommitProjection:
    """Tests for SammyFirestoreClient.commit_projection."""

    def test_single_batch(self):
        """Template and every projected log go into one committed batch."""
        db, mock = _client_with_mock()
        logs = [DailyLog(log_date=date(2024, 1, d), goal=2) for d in (3, 4, 5)]

        db.commit_projection(USER, _projection(logs))

        batch = mock.batch.return_value
        assert batch.set.call_count == 4
        batch.commit.assert_called_once()
        template_doc = batch.set.call_args_list[0].args[1]
        assert template_doc["weeklyPlanTemplate"]["lastApplied"] == "2024-01-01"

    def test_commit_failure(self):
        db, mock = _client_with_mock()
        mock.batch.return_value.commit.side_effect = RuntimeError("deadline exceeded")

        with pytest.raises(AtomicWriteFailure):
            db.commit_projection(USER, _projection([DailyLog(log_date=date(2024, 1, 3), goal=2)]))


class TestReads:
    """Tests for read paths."""

    def test_missing_profile_defaults(self):
        db, mock = _client_with_mock()
        mock.collection.return_value.document.return_value.get.return_value.exists = False
        assert db.get_profile(USER).daily_goal == 2

    def test_profile_read_error_defaults(self):
        db, mock = _client_with_mock()
        mock.collection.return_value.document.return_value.get.side_effect = RuntimeError("down")
        assert db.get_profile(USER).daily_goal == 2

    def test_missing_log(self):
        db, mock = _client_with_mock()
        log_doc = mock.collection.return_value.document.return_value.collection.return_value
        log_doc.document.return_value.get.return_value.exists = False
        assert db.get_log(USER, date(2024, 1, 3)) is None

    def test_logs_range(self):
        db, mock = _client_with_mock()
        doc = MagicMock()
        doc.to_dict.return_value = {"date": "2024-01-03", "habits": {"drinking": {"count": 1}}}
        logs_ref = mock.collection.return_value.document.return_value.collection.return_value
        query = logs_ref.where.return_value.where.return_value.order_by.return_value
        query.stream.return_value = [doc]

        logs = db.get_logs_range(USER, date(2024, 1, 1), date(2024, 1, 7))

        assert [log.count for log in logs] == [1]
        logs_ref.where.assert_called_with("date", ">=", "2024-01-01")

    def test_save_log_failure(self):
        db, mock = _client_with_mock()
        log_ref = mock.collection.return_value.document.return_value.collection.return_value
        log_ref.document.return_value.set.side_effect = RuntimeError("down")
        assert db.save_log(USER, DailyLog(log_date=date(2024, 1, 3), count=1)) is False


def _log_snapshot(data: dict | None) -> MagicMock:
    snapshot = MagicMock()
    snapshot.exists = data is not None
    snapshot.to_dict.return_value = data
    return snapshot


class TestIncrementInTransaction:
    """Tests for increment_in_transaction, the body of the increment transaction."""

    def test_adds_to_stored_count(self):
        transaction = MagicMock()
        log_ref = MagicMock()
        log_ref.get.return_value = _log_snapshot(
            {"date": "2024-01-03", "habits": {"drinking": {"goal": 2, "count": 1}}}
        )

        log = increment_in_transaction(transaction, log_ref, USER, date(2024, 1, 3), 2)

        assert log.count == 3
        assert log.goal == 2
        log_ref.get.assert_called_once_with(transaction=transaction)
        ref, data = transaction.set.call_args.args
        assert ref is log_ref
        assert data["habits"]["drinking"]["count"] == 3
        assert transaction.set.call_args.kwargs == {"merge": True}

    def test_missing_log_takes_default_goal(self):
        transaction = MagicMock()
        log_ref = MagicMock()
        log_ref.get.return_value = _log_snapshot(None)

        log = increment_in_transaction(
            transaction, log_ref, USER, date(2024, 1, 3), 1, default_goal=4
        )

        assert log.count == 1
        assert log.goal == 4
        assert transaction.set.call_args.args[1]["habits"]["drinking"]["goal"] == 4

    def test_below_zero_writes_nothing(self):
        transaction = MagicMock()
        log_ref = MagicMock()
        log_ref.get.return_value = _log_snapshot(
            {"date": "2024-01-03", "habits": {"drinking": {"count": 1}}}
        )

        with pytest.raises(ValidationError):
            increment_in_transaction(transaction, log_ref, USER, date(2024, 1, 3), -2)
        transaction.set.assert_not_called()


class TestIncrementLog:
    """Tests for SammyFirestoreClient.increment_log."""

    def test_runs_in_client_transaction(self):
        db, mock = _client_with_mock()
        log_ref = mock.collection.return_value.document.return_value.collection.return_value
        log_ref.document.return_value.get.return_value = _log_snapshot(None)

        with patch(
            "sammy.shell.firestore_client.firestore.transactional", side_effect=lambda fn: fn
        ) as transactional:
            log = db.increment_log(USER, date(2024, 1, 3), 2, default_goal=2)

        transactional.assert_called_once_with(increment_in_transaction)
        assert log.count == 2
        mock.transaction.return_value.set.assert_called_once()

    def test_transaction_failure(self):
        db, mock = _client_with_mock()
        mock.transaction.side_effect = RuntimeError("aborted")
        assert db.increment_log(USER, date(2024, 1, 3), 1) is None


class TestProfileWrites:
    """Tests for profile updates and log deletion."""

    def test_profile_fields_to_document(self):
        data = profile_fields_to_document({
            "daily_goal": 3,
            "avg_drink_cals": 180,
            "registered_date": date(2024, 2, 10),
        })
        assert data == {"dailyGoal": 3, "avgDrinkCals": 180, "registeredDate": "2024-02-10"}

    def test_update_profile_merges(self):
        db, mock = _client_with_mock()
        assert db.update_profile(USER, {"avg_drink_cost": 9.0}) is True

        user_ref = mock.collection.return_value.document.return_value
        data = user_ref.set.call_args.args[0]
        assert data["avgDrinkCost"] == 9.0
        assert "updatedAt" in data
        assert user_ref.set.call_args.kwargs == {"merge": True}

    def test_update_profile_failure(self):
        db, mock = _client_with_mock()
        mock.collection.return_value.document.return_value.set.side_effect = RuntimeError("down")
        assert db.update_profile(USER, {"daily_goal": 1}) is False

    def test_delete_log(self):
        db, mock = _client_with_mock()
        assert db.delete_log(USER, date(2024, 1, 3)) is True
        log_ref = mock.collection.return_value.document.return_value.collection.return_value
        log_ref.document.assert_called_with("2024-01-03")
        log_ref.document.return_value.delete.assert_called_once()

    def test_delete_log_failure(self):
        db, mock = _client_with_mock()
        log_ref = mock.collection.return_value.document.return_value.collection.return_value
        log_ref.document.return_value.delete.side_effect = RuntimeError("down")
        assert db.delete_log(USER, date(2024, 1, 3)) is False
