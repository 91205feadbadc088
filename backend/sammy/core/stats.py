"""Stats Aggregation - Pure functions for week views, range summaries and streaks.

All functions are pure: same input always produces same output, no side effects.

A day without a count is a no-record day. It breaks dry streaks; it is never
treated as an implicit zero here (the cumulative series does the opposite,
see cumulative.py).
"""

from datetime import date, timedelta
from typing import Iterable

from .dates import date_range, day_name, resolve_date
from .models import (
    DailyLog,
    DayStatus,
    RangeDay,
    RangeSummary,
    Savings,
    WeekDay,
    WeeklyPlanTemplate,
    WeekView,
)


def _index_logs(logs: Iterable[DailyLog]) -> dict[date, DailyLog]:
    return {log.log_date: log for log in logs}


def resolve_goal(
    log: DailyLog | None,
    log_date: date,
    template: WeeklyPlanTemplate | None = None,
    default_goal: int | None = None,
) -> int:
    """Goal for a day: the log's own goal, then the template, then the default.

    Args:
        log: The day's log, if any
        log_date: The day
        template: Weekly plan template to fall back to
        default_goal: Global daily goal to fall back to

    Returns:
        The goal (0 when nothing applies)
    """
    if log is not None and log.goal is not None:
        return log.goal
    if template is not None:
        return template.for_weekday(log_date)
    return default_goal or 0


def classify_day(log_date: date, goal: int, count: int | None, today: date) -> DayStatus:
    """Status of a day relative to today.

    A logged day is under/over regardless of where it falls; an unlogged day
    is future, today or no_record depending on its date.
    """
    if count is not None:
        return DayStatus.UNDER if count <= goal else DayStatus.OVER
    if log_date > today:
        return DayStatus.FUTURE
    if log_date == today:
        return DayStatus.TODAY
    return DayStatus.NO_RECORD


def get_week_view(
    week_start: date | str,
    logs: Iterable[DailyLog],
    today: date | str,
    template: WeeklyPlanTemplate | None = None,
    default_goal: int | None = None,
) -> WeekView:
    """Build the seven-day view starting at week_start.

    Args:
        week_start: First day of the view (normally a Monday)
        logs: Logs covering the week (others are ignored)
        today: Anchor date used for status classification
        template: Weekly plan used for days without a goal
        default_goal: Global daily goal used when neither log nor template has one

    Returns:
        WeekView with exactly seven days and their totals
    """
    week_start = resolve_date(week_start)
    today = resolve_date(today)
    week_end = week_start + timedelta(days=6)
    by_date = _index_logs(logs)

    days: list[WeekDay] = []
    for d in date_range(week_start, week_end):
        log = by_date.get(d)
        goal = resolve_goal(log, d, template, default_goal)
        count = log.count if log is not None else None
        days.append(
            WeekDay(
                log_date=d,
                day=day_name(d),
                goal=goal,
                count=count,
                status=classify_day(d, goal, count, today),
            )
        )

    return WeekView(
        start_date=week_start,
        end_date=week_end,
        days=days,
        total_goal=sum(day.goal for day in days),
        total_count=sum(day.count for day in days if day.count is not None),
        days_logged=sum(1 for day in days if day.count is not None),
    )


def dry_streak_ending(by_date: dict[date, DailyLog], end: date, limit: int | None = None) -> int:
    """Consecutive dry days counting backward from end.

    Stops at the first day with drinks or with no record.

    Args:
        by_date: Logs indexed by date
        end: Most recent day to consider
        limit: Maximum number of days to scan back

    Returns:
        Length of the streak
    """
    streak = 0
    current = end
    while limit is None or streak < limit:
        log = by_date.get(current)
        if log is None or log.count != 0:
            break
        streak += 1
        current -= timedelta(days=1)
    return streak


def current_dry_streak(logs: Iterable[DailyLog], today: date | str) -> int:
    """Dry streak ending today."""
    return dry_streak_ending(_index_logs(logs), resolve_date(today))


def longest_dry_streak(logs: Iterable[DailyLog]) -> int:
    """Longest run of consecutive calendar days logged as dry.

    A no-record day between two dry days splits the run.
    """
    dry_dates = sorted(log.log_date for log in logs if log.count == 0)

    longest = 0
    current = 0
    previous: date | None = None
    for d in dry_dates:
        if previous is not None and d - previous == timedelta(days=1):
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = d
    return longest


def get_range_summary(
    start_date: date | str,
    end_date: date | str,
    logs: Iterable[DailyLog],
    default_goal: int | None = None,
) -> RangeSummary:
    """Summarize an inclusive date range ("last 7 days", "last 30 days").

    Args:
        start_date: First day of the range
        end_date: Last day of the range (the streak is counted back from here)
        logs: Logs covering the range (others are ignored)
        default_goal: Goal for days that carry none

    Returns:
        RangeSummary with per-day rows and totals; all zeros for an empty log set
    """
    start_date = resolve_date(start_date)
    end_date = resolve_date(end_date)
    by_date = _index_logs(logs)

    days: list[RangeDay] = []
    for d in date_range(start_date, end_date):
        log = by_date.get(d)
        count = log.count if log is not None else None
        days.append(
            RangeDay(
                log_date=d,
                count=count,
                goal=resolve_goal(log, d, default_goal=default_goal),
                is_dry=count == 0,
            )
        )

    logged = [day for day in days if day.count is not None]
    span = (end_date - start_date).days + 1 if end_date >= start_date else 0

    return RangeSummary(
        start_date=start_date,
        end_date=end_date,
        days=days,
        total_drinks=sum(day.count for day in logged),
        total_target=sum(day.goal for day in days),
        dry_days=sum(1 for day in days if day.is_dry),
        days_logged=len(logged),
        days_under_target=sum(1 for day in logged if day.count <= day.goal),
        dry_streak=dry_streak_ending(by_date, end_date, limit=span),
    )


def calculate_money_saved(total_target: int, total_drinks: int, drink_cost: float) -> float:
    """Money saved by staying under target. Never negative.

    Args:
        total_target: Sum of goals over the period
        total_drinks: Sum of counts over the period
        drink_cost: Average cost of one drink

    Returns:
        (target - drinks) * cost, floored at zero
    """
    return max(0, total_target - total_drinks) * drink_cost


def calculate_savings(
    logs: Iterable[DailyLog],
    default_goal: int | None = None,
    drink_cost: float = 10.0,
    drink_cals: int = 150,
) -> Savings:
    """Drinks, money and calories saved on logged days that came in under goal.

    Days over goal contribute nothing rather than a negative amount.
    """
    drinks_saved = 0
    for log in logs:
        if log.count is None:
            continue
        goal = log.goal if log.goal is not None else (default_goal or 0)
        drinks_saved += max(0, goal - log.count)

    return Savings(
        drinks_saved=drinks_saved,
        money_saved=round(drinks_saved * drink_cost, 2),
        calories_cut=drinks_saved * drink_cals,
    )
