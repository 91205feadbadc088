"""Logbook - Pure functions for recording counts and manual goals on a day."""

from datetime import date, datetime

from .errors import ValidationError
from .models import DailyLog, GoalSource


def _base_log(log: DailyLog | None, log_date: date) -> DailyLog:
    if log is None:
        return DailyLog(log_date=log_date)
    if log.log_date != log_date:
        raise ValidationError(f"Log is for {log.log_date}, not {log_date}")
    return log


def add_drinks(log: DailyLog | None, log_date: date, amount: int) -> DailyLog:
    """Add drinks to a day's count. An unlogged day starts from zero.

    Args:
        log: Existing log for the day, if any
        log_date: The day
        amount: Drinks to add (negative to correct a mistake)

    Returns:
        A new DailyLog with the updated count

    Raises:
        ValidationError: If the count would drop below zero
    """
    base = _base_log(log, log_date)
    new_count = (base.count or 0) + amount
    if new_count < 0:
        raise ValidationError("Drink count cannot go below zero")
    return base.model_copy(update={"count": new_count})


def set_count(log: DailyLog | None, log_date: date, count: int) -> DailyLog:
    """Overwrite a day's count (editing a past day)."""
    if count < 0:
        raise ValidationError("Drink count cannot be negative")
    return _base_log(log, log_date).model_copy(update={"count": count})


def set_manual_goal(
    log: DailyLog | None, log_date: date, goal: int, now: datetime | None = None
) -> DailyLog:
    """Set a one-off goal for a day, overriding any projected plan goal."""
    if goal < 0:
        raise ValidationError("Goal cannot be negative")
    return _base_log(log, log_date).model_copy(
        update={
            "goal": goal,
            "goal_source": GoalSource.MANUAL,
            "goal_set_at": now or datetime.utcnow(),
        }
    )
