"""Cumulative Savings - Pure functions for the running drinks-saved series.

All functions are pure: same input always produces same output, no side effects.

Unlike the dry streak, a day without a count is treated here as zero drinks
(the reference was met), which keeps the running total continuous.
"""

import math
from datetime import date, timedelta
from typing import Any, Iterable, Mapping

from .dates import date_range, resolve_date
from .errors import UnsupportedModeError, ValidationError
from .plan import check_week_values
from .models import (
    CumulativeMode,
    CumulativePoint,
    CumulativeRange,
    CumulativeSeries,
    CumulativeSummary,
    DailyLog,
    TypicalWeekBaseline,
)


def _parse_mode(mode: CumulativeMode | str) -> CumulativeMode:
    try:
        return CumulativeMode(mode)
    except ValueError as e:
        raise ValidationError(f"Unknown mode '{mode}'. Use 'target' or 'benchmark'.") from e


def _parse_range(range_name: CumulativeRange | str) -> CumulativeRange:
    try:
        return CumulativeRange(range_name)
    except ValueError as e:
        raise ValidationError(f"Unknown range '{range_name}'. Use '90d' or 'all'.") from e


def round_half_up(value: float, digits: int = 1) -> float:
    """Round halves upward (0.25 -> 0.3, -0.25 -> -0.2), unlike built-in round()."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def build_baseline(values: Mapping[str, Any] | None, max_value: int = 100) -> TypicalWeekBaseline:
    """Validate raw weekday values and build a typical week baseline.

    Raises:
        ValidationError: On a missing day or a negative, non-integer or oversized value
    """
    return TypicalWeekBaseline(**check_week_values(values, max_value, label="Value"))


def window_start(
    range_name: CumulativeRange,
    today: date,
    logs: list[DailyLog],
    registered_date: date | None = None,
    max_days: int = 180,
    default_days: int = 90,
) -> date:
    """First day of the cumulative window (the window always ends today).

    "90d" covers the last default_days days including today. "all" starts at
    the registration date, or the earliest log when that is unknown, and is
    capped at max_days days. With neither known "all" behaves like "90d".
    """
    default_start = today - timedelta(days=default_days - 1)
    if range_name == CumulativeRange.NINETY_DAYS:
        return default_start

    start = registered_date
    if start is None and logs:
        start = min(log.log_date for log in logs)
    if start is None:
        return default_start

    earliest_allowed = today - timedelta(days=max_days - 1)
    return min(max(start, earliest_allowed), today)


def compute_cumulative_series(
    mode: CumulativeMode | str,
    range_name: CumulativeRange | str,
    logs: Iterable[DailyLog],
    baseline: TypicalWeekBaseline | None,
    today: date | str,
    default_goal: int | None = None,
    registered_date: date | None = None,
    max_days: int = 180,
    default_days: int = 90,
) -> CumulativeSeries:
    """Compute the daily and cumulative drinks-saved series.

    daily(d) = reference(d) - count(d), where reference is the day's goal in
    target mode or the baseline weekday value in benchmark mode.

    Args:
        mode: "target" or "benchmark"
        range_name: "90d" or "all"
        logs: Logs covering the window (others are ignored)
        baseline: Typical week, required for benchmark mode
        today: Last day of the window
        default_goal: Goal for days that carry none (target mode)
        registered_date: Start of the "all" range, when known
        max_days: Cap on the "all" range
        default_days: Size of the "90d" range

    Returns:
        CumulativeSeries ordered oldest first, with the full unsampled series

    Raises:
        UnsupportedModeError: Benchmark mode without a baseline
        ValidationError: Unknown mode or range, or an invalid date
    """
    mode = _parse_mode(mode)
    range_name = _parse_range(range_name)
    today = resolve_date(today)

    if mode == CumulativeMode.BENCHMARK and baseline is None:
        raise UnsupportedModeError("Set your typical week first to compare against it.")

    logs = list(logs)
    by_date = {log.log_date: log for log in logs}
    start = window_start(range_name, today, logs, registered_date, max_days, default_days)

    series: list[CumulativePoint] = []
    cumulative = 0
    for d in date_range(start, today):
        log = by_date.get(d)

        if mode == CumulativeMode.BENCHMARK:
            reference = baseline.for_weekday(d)
        elif log is not None and log.goal is not None:
            reference = log.goal
        else:
            reference = default_goal or 0

        actual = log.count if log is not None and log.count is not None else 0
        daily = reference - actual
        cumulative += daily
        series.append(CumulativePoint(log_date=d, daily=daily, cumulative=cumulative))

    total_days = len(series)
    weeks = total_days / 7
    avg_per_week = round_half_up(cumulative / weeks) if weeks > 0 else 0.0

    return CumulativeSeries(
        series=series,
        summary=CumulativeSummary(
            total_saved=cumulative,
            total_days=total_days,
            avg_per_week=avg_per_week,
        ),
        mode=mode,
        range_name=range_name,
        has_typical_week=baseline is not None,
    )


def downsample_series(
    series: list[CumulativePoint], max_points: int = 90
) -> list[CumulativePoint]:
    """Thin a series for display, keeping every ceil(n/max_points)-th point.

    The final point is always kept so the chart ends on the current total.
    """
    if max_points <= 0:
        raise ValidationError("max_points must be positive")
    if len(series) <= max_points:
        return list(series)

    step = math.ceil(len(series) / max_points)
    sampled = series[::step]
    if sampled[-1] is not series[-1]:
        sampled.append(series[-1])
    return sampled
