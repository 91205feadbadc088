"""Firestore Client - Persistence for drink logs, plans and user profiles.

This module handles all database I/O for the engine.
All I/O is contained here; business logic is in the core module.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from google.cloud import firestore
from pydantic import ValidationError as PydanticValidationError

from ..core import logbook
from ..core.errors import AtomicWriteFailure, SammyError
from ..core.models import (
    DailyLog,
    ProjectionResult,
    TypicalWeekBaseline,
    UserProfile,
)


logger = logging.getLogger(__name__)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """

    project_id: str | None = None
    database: str | None = None


def log_to_document(user_id: str, log: DailyLog) -> dict[str, Any]:
    """Convert a DailyLog to its Firestore document shape.

    Only fields that are set are written, so a merge never clears a count
    that a goal-only write did not mention.
    """
    drinking: dict[str, Any] = {}
    if log.goal is not None:
        drinking["goal"] = log.goal
    if log.goal_source is not None:
        drinking["goalSource"] = log.goal_source.value
    if log.goal_set_at is not None:
        drinking["goalSetAt"] = log.goal_set_at
    if log.count is not None:
        drinking["count"] = log.count

    return {
        "userId": user_id,
        "date": log.log_date.isoformat(),
        "habits": {"drinking": drinking},
    }


def document_to_log(data: dict[str, Any]) -> DailyLog:
    """Convert a Firestore log document to a DailyLog.

    Older documents keep the count at the top level instead of under
    habits.drinking.
    """
    drinking = (data.get("habits") or {}).get("drinking") or {}
    count = drinking.get("count")
    if count is None:
        count = data.get("count")

    return DailyLog(
        log_date=data["date"],
        goal=drinking.get("goal"),
        goal_source=drinking.get("goalSource"),
        goal_set_at=drinking.get("goalSetAt"),
        count=count,
    )


def document_to_profile(data: dict[str, Any]) -> UserProfile:
    """Convert a Firestore user document to a UserProfile."""
    fields = {
        key: data[key]
        for key in (
            "dailyGoal",
            "avgDrinkCost",
            "avgDrinkCals",
            "registeredDate",
            "weeklyPlanTemplate",
            "typicalWeek",
        )
        if data.get(key) is not None
    }
    achievements = data.get("achievements") or {}
    fields["unlockedMilestones"] = {
        m["id"]: m["unlockedAt"]
        for m in achievements.get("unlockedMilestones", [])
        if m.get("id") and m.get("unlockedAt")
    }
    return UserProfile.model_validate(fields)


def profile_fields_to_document(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert UserProfile attribute values to user document fields."""
    data: dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, date):
            value = value.isoformat()
        data[UserProfile.model_fields[name].alias] = value
    return data


def increment_in_transaction(
    transaction: firestore.Transaction,
    log_ref: firestore.DocumentReference,
    user_id: str,
    log_date: date,
    amount: int,
    default_goal: int | None = None,
) -> DailyLog:
    """Read a log, add drinks and write it back within one transaction."""
    snapshot = log_ref.get(transaction=transaction)
    current = document_to_log(snapshot.to_dict()) if snapshot.exists else None

    updated = logbook.add_drinks(current, log_date, amount)
    if updated.goal is None and default_goal is not None:
        updated = updated.model_copy(update={"goal": default_goal})

    data = log_to_document(user_id, updated)
    data["timestamp"] = firestore.SERVER_TIMESTAMP
    transaction.set(log_ref, data, merge=True)
    return updated


class SammyFirestoreClient:
    """Client for persisting drink logs and profiles to Firestore.

    Document structure per user:
        users/{user_id}: { dailyGoal, avgDrinkCost, weeklyPlanTemplate, typicalWeek, ... }
            logs/{YYYY-MM-DD}: { userId, date, habits: { drinking: { goal, count, ... } } }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _user_ref(self, user_id: str) -> firestore.DocumentReference:
        """Get reference to user document."""
        return self.client.collection("users").document(user_id)

    def _log_ref(self, user_id: str, log_date: date) -> firestore.DocumentReference:
        """Get reference to daily log document."""
        return self._user_ref(user_id).collection("logs").document(log_date.isoformat())

    # ==================== Profile Operations ====================

    def get_profile(self, user_id: str) -> UserProfile:
        """Fetch the user's profile.

        Args:
            user_id: The user's ID

        Returns:
            UserProfile, with defaults if the document is missing or unreadable
        """
        logger.debug("Fetching profile for user: %s", user_id[:8])
        try:
            doc = self._user_ref(user_id).get()
            if not doc.exists:
                return UserProfile()
            return document_to_profile(doc.to_dict())
        except PydanticValidationError as e:
            logger.error("Stored profile is invalid for %s: %s", user_id[:8], str(e))
            return UserProfile()
        except Exception as e:
            logger.error("Failed to fetch profile: %s", str(e))
            return UserProfile()

    def update_profile(self, user_id: str, fields: dict[str, Any]) -> bool:
        """Merge validated profile fields into the user document.

        Args:
            user_id: The user's ID
            fields: Values keyed by UserProfile attribute name

        Returns:
            True if successful
        """
        logger.info("Updating profile for user: %s", user_id[:8])
        try:
            data = profile_fields_to_document(fields)
            data["updatedAt"] = datetime.utcnow()
            self._user_ref(user_id).set(data, merge=True)
            return True
        except Exception as e:
            logger.error("Failed to update profile: %s", str(e))
            return False

    def save_typical_week(self, user_id: str, baseline: TypicalWeekBaseline | None) -> bool:
        """Save or clear the user's typical week.

        Args:
            user_id: The user's ID
            baseline: The baseline, or None to clear it

        Returns:
            True if successful
        """
        logger.info("Saving typical week for user: %s", user_id[:8])
        try:
            value = baseline.model_dump(by_alias=True) if baseline is not None else None
            self._user_ref(user_id).set(
                {"typicalWeek": value, "updatedAt": datetime.utcnow()}, merge=True
            )
            return True
        except Exception as e:
            logger.error("Failed to save typical week: %s", str(e))
            return False

    def save_unlocked_milestones(self, user_id: str, unlocked: dict[str, datetime]) -> bool:
        """Persist the full set of unlocked milestone ids.

        Args:
            user_id: The user's ID
            unlocked: Milestone id to unlock time

        Returns:
            True if successful
        """
        logger.info("Saving %d unlocked milestones for %s", len(unlocked), user_id[:8])
        try:
            self._user_ref(user_id).set(
                {
                    "achievements": {
                        "unlockedMilestones": [
                            {"id": milestone_id, "unlockedAt": unlocked_at}
                            for milestone_id, unlocked_at in unlocked.items()
                        ]
                    }
                },
                merge=True,
            )
            return True
        except Exception as e:
            logger.error("Failed to save milestones: %s", str(e))
            return False

    # ==================== Daily Log Operations ====================

    def get_log(self, user_id: str, log_date: date) -> DailyLog | None:
        """Fetch a daily log.

        Args:
            user_id: The user's ID
            log_date: Date of the log

        Returns:
            DailyLog if found, None otherwise
        """
        logger.debug("Fetching log for %s on %s", user_id[:8], log_date)
        try:
            doc = self._log_ref(user_id, log_date).get()
            if not doc.exists:
                return None
            return document_to_log(doc.to_dict())
        except Exception as e:
            logger.error("Failed to fetch log: %s", str(e))
            return None

    def save_log(self, user_id: str, log: DailyLog) -> bool:
        """Merge a daily log into its document.

        Args:
            user_id: The user's ID
            log: The log to save

        Returns:
            True if successful
        """
        logger.info("Saving log for %s on %s", user_id[:8], log.log_date)
        try:
            data = log_to_document(user_id, log)
            data["timestamp"] = firestore.SERVER_TIMESTAMP
            self._log_ref(user_id, log.log_date).set(data, merge=True)
            return True
        except Exception as e:
            logger.error("Failed to save log: %s", str(e))
            return False

    def increment_log(
        self, user_id: str, log_date: date, amount: int, default_goal: int | None = None
    ) -> DailyLog | None:
        """Add drinks to a day's count inside a transaction.

        Firestore retries the transaction if the log changes between the
        read and the write, so concurrent increments are never lost.

        Args:
            user_id: The user's ID
            log_date: Date of the log
            amount: Drinks to add (negative to correct)
            default_goal: Goal written when the day has none yet

        Returns:
            The updated log, or None if the transaction failed

        Raises:
            ValidationError: If the count would drop below zero
        """
        logger.info("Incrementing log for %s on %s by %d", user_id[:8], log_date, amount)
        try:
            apply = firestore.transactional(increment_in_transaction)
            return apply(
                self.client.transaction(),
                self._log_ref(user_id, log_date),
                user_id,
                log_date,
                amount,
                default_goal,
            )
        except SammyError:
            raise
        except Exception as e:
            logger.error("Failed to increment log: %s", str(e))
            return None

    def delete_log(self, user_id: str, log_date: date) -> bool:
        """Delete a day's log document.

        Returns:
            True if successful (deleting a missing log also succeeds)
        """
        logger.info("Deleting log for %s on %s", user_id[:8], log_date)
        try:
            self._log_ref(user_id, log_date).delete()
            return True
        except Exception as e:
            logger.error("Failed to delete log: %s", str(e))
            return False

    def get_logs_range(self, user_id: str, start_date: date, end_date: date) -> list[DailyLog]:
        """Fetch logs for a date range.

        Args:
            user_id: The user's ID
            start_date: Start of range (inclusive)
            end_date: End of range (inclusive)

        Returns:
            List of DailyLogs found (may be empty)
        """
        logger.debug("Fetching logs for %s from %s to %s", user_id[:8], start_date, end_date)
        try:
            query = (
                self._user_ref(user_id)
                .collection("logs")
                .where("date", ">=", start_date.isoformat())
                .where("date", "<=", end_date.isoformat())
                .order_by("date")
            )
            logs = [document_to_log(doc.to_dict()) for doc in query.stream()]
            logger.debug("Found %d logs in range", len(logs))
            return logs
        except Exception as e:
            logger.error("Failed to fetch logs range: %s", str(e))
            return []

    def get_all_logs(self, user_id: str) -> list[DailyLog]:
        """Fetch every log for a user, oldest first (used for all-time streaks)."""
        logger.debug("Fetching all logs for %s", user_id[:8])
        try:
            query = self._user_ref(user_id).collection("logs").order_by("date")
            return [document_to_log(doc.to_dict()) for doc in query.stream()]
        except Exception as e:
            logger.error("Failed to fetch all logs: %s", str(e))
            return []

    # ==================== Plan Operations ====================

    def commit_projection(self, user_id: str, result: ProjectionResult) -> None:
        """Write a projected template and its logs in a single batch.

        Args:
            user_id: The user's ID
            result: Projection to persist

        Raises:
            AtomicWriteFailure: If the batch could not be committed; nothing was written
        """
        logger.info(
            "Committing projection for %s: %d days from %s",
            user_id[:8],
            result.days_projected,
            result.week_start,
        )
        try:
            batch = self.client.batch()
            batch.set(
                self._user_ref(user_id),
                {"weeklyPlanTemplate": result.template.model_dump(mode="json", by_alias=True)},
                merge=True,
            )
            for log in result.updated_logs:
                data = log_to_document(user_id, log)
                data["timestamp"] = firestore.SERVER_TIMESTAMP
                batch.set(self._log_ref(user_id, log.log_date), data, merge=True)
            batch.commit()
        except Exception as e:
            logger.error("Failed to commit projection: %s", str(e))
            raise AtomicWriteFailure("Failed to save weekly plan") from e
