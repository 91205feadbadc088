"""Weekly Plan Projection - Pure functions for writing plan goals onto days.

All functions are pure: same input always produces same output, no side effects.
The caller persists the returned logs and template in one atomic batch.
"""

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError

from .dates import DAY_ORDER, date_range, resolve_date, week_start_for
from .errors import ValidationError
from .models import DailyLog, GoalSource, ProjectionResult, WeeklyPlanTemplate


def projection_window(today: date) -> list[date]:
    """Days a plan is projected onto when applied on `today`.

    On a Monday this is the whole week. Mid-week it runs from today through
    Sunday; earlier days of the week are never touched.

    Args:
        today: The anchor date

    Returns:
        Dates in ascending order
    """
    sunday = week_start_for(today) + timedelta(days=6)
    return list(date_range(today, sunday))


def check_week_values(
    values: Mapping[str, Any] | None, max_value: int, label: str = "Target"
) -> dict[str, int]:
    """Check that a raw mapping holds a valid integer for every weekday.

    Args:
        values: Mapping with an entry for each of monday..sunday
        max_value: Largest allowed value for a single day
        label: Noun used in error messages

    Returns:
        The seven values, Monday first

    Raises:
        ValidationError: On a missing day or a negative, non-integer or oversized value
    """
    if not isinstance(values, Mapping):
        raise ValidationError(f"{label}s object is required")

    checked: dict[str, int] = {}
    for day in DAY_ORDER:
        if values.get(day) is None:
            raise ValidationError(f"{label} for {day} is required")
        value = values[day]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"{label} for {day} must be a non-negative integer")
        if value > max_value:
            raise ValidationError(f"{label} for {day} exceeds maximum ({max_value})")
        checked[day] = value
    return checked


def build_template(
    targets: Mapping[str, Any] | None,
    is_recurring: bool = True,
    max_daily_target: int = 50,
) -> WeeklyPlanTemplate:
    """Validate raw weekday targets and build a fresh template.

    Args:
        targets: Mapping with an integer for each of monday..sunday
        is_recurring: Whether the template auto-projects onto future weeks
        max_daily_target: Largest allowed value for a single day

    Returns:
        WeeklyPlanTemplate with last_applied unset

    Raises:
        ValidationError: On a missing day or a negative, non-integer or oversized value
    """
    targets = check_week_values(targets, max_daily_target)
    try:
        return WeeklyPlanTemplate(
            **{day: targets[day] for day in DAY_ORDER},
            is_active=is_recurring,
        )
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


def project_weekly_plan(
    template: WeeklyPlanTemplate,
    today: date | str,
    existing_logs: Iterable[DailyLog] = (),
    now: datetime | None = None,
    overwrite_logged_days: bool = False,
) -> ProjectionResult:
    """Project a template's goals onto the rest of the week containing today.

    A template whose last_applied already equals this week's Monday is not
    re-projected; the result then has days_projected == 0 and no logs.

    Args:
        template: The weekly plan template
        today: Anchor date (date or YYYY-MM-DD)
        existing_logs: Logs already stored for the window; counts are preserved
        now: Timestamp written to goal_set_at (defaults to utcnow)
        overwrite_logged_days: Also retarget days that already have a count

    Returns:
        ProjectionResult with the logs to write and the updated template

    Raises:
        ValidationError: If today is not a valid date
    """
    today = resolve_date(today)
    if now is None:
        now = datetime.utcnow()

    week_start = week_start_for(today)

    if template.last_applied == week_start:
        return ProjectionResult(
            updated_logs=[],
            days_projected=0,
            week_total=template.total,
            week_start=week_start,
            template=template,
        )

    existing = {log.log_date: log for log in existing_logs}
    updated_logs: list[DailyLog] = []

    for day in projection_window(today):
        current = existing.get(day)
        if current is not None and current.is_logged and not overwrite_logged_days:
            continue

        goal_fields = {
            "goal": template.for_weekday(day),
            "goal_source": GoalSource.WEEKLY_PLAN,
            "goal_set_at": now,
        }
        if current is None:
            updated_logs.append(DailyLog(log_date=day, **goal_fields))
        else:
            updated_logs.append(current.model_copy(update=goal_fields))

    return ProjectionResult(
        updated_logs=updated_logs,
        days_projected=len(updated_logs),
        week_total=template.total,
        week_start=week_start,
        template=template.model_copy(update={"last_applied": week_start}),
    )


def set_weekly_plan(
    targets: Mapping[str, Any] | None,
    today: date | str,
    existing_logs: Iterable[DailyLog] = (),
    is_recurring: bool = True,
    now: datetime | None = None,
    overwrite_logged_days: bool = False,
    max_daily_target: int = 50,
) -> ProjectionResult:
    """Replace the user's plan and project it onto the current week.

    A new plan always starts with last_applied unset, so setting a plan
    mid-week retargets the remaining days even if an older plan was
    already applied this week.
    """
    template = build_template(targets, is_recurring, max_daily_target)
    return project_weekly_plan(
        template,
        today,
        existing_logs=existing_logs,
        now=now,
        overwrite_logged_days=overwrite_logged_days,
    )


def apply_recurring_plan(
    template: WeeklyPlanTemplate | None,
    today: date | str,
    existing_logs: Iterable[DailyLog] = (),
    now: datetime | None = None,
    overwrite_logged_days: bool = False,
) -> ProjectionResult | None:
    """Carry an active template forward onto the week containing today.

    A template already applied to a later week (a plan saved ahead for next
    week) is left alone so it does not retarget the current week.

    Returns:
        None when there is no template, it is inactive or it starts in a
        later week; otherwise the projection result (a no-op if the week was
        already applied)
    """
    if template is None or not template.is_active:
        return None
    today = resolve_date(today)
    if template.last_applied is not None and template.last_applied > week_start_for(today):
        return None
    return project_weekly_plan(
        template,
        today,
        existing_logs=existing_logs,
        now=now,
        overwrite_logged_days=overwrite_logged_days,
    )
