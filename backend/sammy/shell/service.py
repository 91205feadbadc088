"""Service Layer - Fetch, compute, persist.

Each operation loads what the core needs from Firestore, runs the pure core
function and writes any result back. Shared by the REST handlers and the
MCP tools.
"""

import logging
from contextvars import ContextVar
from datetime import date, timedelta
from typing import Any, Mapping

from ..core import logbook
from ..core.config import EngineConfig
from ..core.cumulative import build_baseline, compute_cumulative_series
from ..core.dates import resolve_date, week_start_for
from ..core.milestones import evaluate_milestones
from ..core.models import (
    CumulativeRange,
    CumulativeSeries,
    DailyLog,
    MilestoneReport,
    ProjectionResult,
    RangeSummary,
    TypicalWeekBaseline,
    UserProfile,
    WeeklyPlanTemplate,
    WeekView,
)
from ..core.plan import apply_recurring_plan, set_weekly_plan
from ..core.profile import apply_profile_update, parse_profile_update
from ..core.stats import (
    calculate_money_saved,
    calculate_savings,
    current_dry_streak,
    get_range_summary,
    get_week_view,
    longest_dry_streak,
)
from .auth import AuthClient
from .config import load_engine_config, load_firestore_config
from .firestore_client import SammyFirestoreClient


logger = logging.getLogger(__name__)

# Context variable to store current user_id per request
current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)

# Lazy-initialized clients
_firestore_client: SammyFirestoreClient | None = None
_auth_client: AuthClient | None = None
_engine_config: EngineConfig | None = None


def get_firestore_client() -> SammyFirestoreClient:
    """Get or create Firestore client."""
    global _firestore_client
    if _firestore_client is None:
        _firestore_client = SammyFirestoreClient(load_firestore_config())
    return _firestore_client


def get_auth_client() -> AuthClient:
    """Get or create Auth client."""
    global _auth_client
    if _auth_client is None:
        _auth_client = AuthClient(get_firestore_client().client)
    return _auth_client


def get_engine_config() -> EngineConfig:
    """Get engine configuration, read once from the environment."""
    global _engine_config
    if _engine_config is None:
        _engine_config = load_engine_config()
    return _engine_config


def get_user_id() -> str:
    """Get current authenticated user ID.

    Raises:
        RuntimeError: If no user is authenticated
    """
    user_id = current_user_id.get()
    if user_id is None:
        raise RuntimeError("No authenticated user. Ensure API key is provided.")
    return user_id


def _merge_logs(logs: list[DailyLog], updates: list[DailyLog]) -> list[DailyLog]:
    by_date = {log.log_date: log for log in logs}
    by_date.update({log.log_date: log for log in updates})
    return [by_date[d] for d in sorted(by_date)]


# ==================== Profile ====================


def load_profile(db: SammyFirestoreClient, user_id: str) -> UserProfile:
    """The user's profile, with defaults for anything never set."""
    return db.get_profile(user_id)


def update_profile(
    db: SammyFirestoreClient,
    user_id: str,
    values: Mapping[str, Any] | None,
    config: EngineConfig | None = None,
) -> UserProfile:
    """Update daily goal, drink cost, drink calories or registration date.

    Raises:
        ValidationError: Bad field values
        RuntimeError: The write failed
    """
    config = config or get_engine_config()
    fields = parse_profile_update(values, max_daily_goal=config.max_daily_target)
    if fields and not db.update_profile(user_id, fields):
        raise RuntimeError("Failed to update profile")
    logger.info(
        "Profile updated for %s: %s", user_id[:8], ", ".join(sorted(fields)) or "no changes"
    )
    return apply_profile_update(db.get_profile(user_id), fields)


# ==================== Weekly Plan ====================


def save_weekly_plan(
    db: SammyFirestoreClient,
    user_id: str,
    targets: Mapping[str, Any] | None,
    today: date | str | None = None,
    is_recurring: bool = True,
    week_start_date: date | str | None = None,
    config: EngineConfig | None = None,
) -> ProjectionResult:
    """Replace the user's weekly plan and project it.

    A week_start_date in a later week projects the whole of that week;
    otherwise projection starts today.

    Raises:
        ValidationError: Bad targets or dates
        AtomicWriteFailure: The batch could not be committed
    """
    config = config or get_engine_config()
    today = resolve_date(today)
    anchor = today
    if week_start_date:
        anchor = max(today, week_start_for(resolve_date(week_start_date)))

    sunday = week_start_for(anchor) + timedelta(days=6)
    existing = db.get_logs_range(user_id, anchor, sunday)

    result = set_weekly_plan(
        targets,
        anchor,
        existing_logs=existing,
        is_recurring=is_recurring,
        overwrite_logged_days=config.overwrite_logged_days,
        max_daily_target=config.max_daily_target,
    )
    db.commit_projection(user_id, result)

    logger.info(
        "Weekly plan saved for %s: %d days projected, week total %d",
        user_id[:8],
        result.days_projected,
        result.week_total,
    )
    return result


def load_weekly_plan(
    db: SammyFirestoreClient,
    user_id: str,
    today: date | str | None = None,
    config: EngineConfig | None = None,
) -> tuple[WeeklyPlanTemplate | None, WeekView]:
    """Current week view, carrying an active recurring plan forward first.

    Raises:
        AtomicWriteFailure: The carried-forward plan could not be committed
    """
    config = config or get_engine_config()
    today = resolve_date(today)
    profile = db.get_profile(user_id)
    template = profile.weekly_plan_template

    monday = week_start_for(today)
    logs = db.get_logs_range(user_id, monday, monday + timedelta(days=6))

    projection = apply_recurring_plan(
        template,
        today,
        existing_logs=logs,
        overwrite_logged_days=config.overwrite_logged_days,
    )
    if projection is not None and projection.template.last_applied != template.last_applied:
        db.commit_projection(user_id, projection)
        logger.info(
            "Recurring plan carried into week of %s for %s (%d days)",
            projection.week_start,
            user_id[:8],
            projection.days_projected,
        )
        template = projection.template
        logs = _merge_logs(logs, projection.updated_logs)

    fallback = template
    if template is not None and template.last_applied is not None and template.last_applied > monday:
        # Saved ahead for a later week; this week keeps its own goals
        fallback = None

    view = get_week_view(monday, logs, today, template=fallback, default_goal=profile.daily_goal)
    return template, view


def save_typical_week(
    db: SammyFirestoreClient,
    user_id: str,
    values: Mapping[str, Any] | None,
    config: EngineConfig | None = None,
) -> TypicalWeekBaseline | None:
    """Set the typical week baseline, or clear it when values is empty.

    Raises:
        ValidationError: Bad weekday values
        RuntimeError: The write failed
    """
    config = config or get_engine_config()
    baseline = build_baseline(values, config.max_typical_value) if values else None
    if not db.save_typical_week(user_id, baseline):
        raise RuntimeError("Failed to save typical week")
    return baseline


# ==================== Logging ====================


def record_drinks(
    db: SammyFirestoreClient, user_id: str, log_date: date | str, amount: int, replace: bool = False
) -> DailyLog | None:
    """Add drinks to a day, or replace its count when replace is True.

    Increments run in a Firestore transaction so concurrent logs for the
    same day are not lost. A day with no goal gets the user's daily goal so
    later views compare against the goal that applied when it was logged.

    Returns:
        The updated log, or None if the write failed

    Raises:
        ValidationError: Bad date or a count below zero
    """
    log_date = resolve_date(log_date)
    daily_goal = db.get_profile(user_id).daily_goal

    if not replace:
        return db.increment_log(user_id, log_date, amount, default_goal=daily_goal)

    updated = logbook.set_count(db.get_log(user_id, log_date), log_date, amount)
    if updated.goal is None:
        updated = updated.model_copy(update={"goal": daily_goal})

    if db.save_log(user_id, updated):
        return updated
    return None


def delete_log(db: SammyFirestoreClient, user_id: str, log_date: date | str) -> bool:
    """Remove a day's log entirely, returning it to no record.

    Raises:
        ValidationError: Bad date
    """
    log_date = resolve_date(log_date)
    deleted = db.delete_log(user_id, log_date)
    if deleted:
        logger.info("Deleted log for %s on %s", user_id[:8], log_date)
    return deleted


def set_day_goal(
    db: SammyFirestoreClient, user_id: str, log_date: date | str, goal: int
) -> DailyLog | None:
    """Set a manual goal for one day.

    Returns:
        The updated log, or None if the write failed
    """
    log_date = resolve_date(log_date)
    updated = logbook.set_manual_goal(db.get_log(user_id, log_date), log_date, goal)
    if db.save_log(user_id, updated):
        return updated
    return None


# ==================== Stats ====================


def load_range_summary(
    db: SammyFirestoreClient, user_id: str, start_date: date | str, end_date: date | str
) -> RangeSummary:
    """Range summary using the user's daily goal for days without one."""
    start_date = resolve_date(start_date)
    end_date = resolve_date(end_date)
    profile = db.get_profile(user_id)
    logs = db.get_logs_range(user_id, start_date, end_date)
    return get_range_summary(start_date, end_date, logs, default_goal=profile.daily_goal)


def load_weekly_summary(
    db: SammyFirestoreClient, user_id: str, today: date | str | None = None
) -> tuple[RangeSummary, float]:
    """Last seven days including today, with money saved against target."""
    today = resolve_date(today)
    profile = db.get_profile(user_id)
    start = today - timedelta(days=6)
    logs = db.get_logs_range(user_id, start, today)

    summary = get_range_summary(start, today, logs, default_goal=profile.daily_goal)
    money_saved = calculate_money_saved(
        summary.total_target, summary.total_drinks, profile.avg_drink_cost
    )
    return summary, money_saved


def load_cumulative_series(
    db: SammyFirestoreClient,
    user_id: str,
    mode: str,
    range_name: str,
    today: date | str | None = None,
    config: EngineConfig | None = None,
) -> CumulativeSeries:
    """Cumulative drinks-saved series for the chart.

    Raises:
        UnsupportedModeError: Benchmark mode without a typical week
        ValidationError: Unknown mode or range, or a bad date
    """
    config = config or get_engine_config()
    today = resolve_date(today)
    profile = db.get_profile(user_id)

    days = (
        config.all_range_max_days
        if range_name == CumulativeRange.ALL.value
        else config.default_range_days
    )
    logs = db.get_logs_range(user_id, today - timedelta(days=days - 1), today)

    return compute_cumulative_series(
        mode,
        range_name,
        logs,
        profile.typical_week,
        today,
        default_goal=profile.daily_goal,
        registered_date=profile.registered_date,
        max_days=config.all_range_max_days,
        default_days=config.default_range_days,
    )


def load_milestones(
    db: SammyFirestoreClient, user_id: str, today: date | str | None = None
) -> MilestoneReport:
    """Evaluate milestones over all logs and persist any newly unlocked."""
    today = resolve_date(today)
    profile = db.get_profile(user_id)
    logs = [log for log in db.get_all_logs(user_id) if log.log_date <= today]

    savings = calculate_savings(
        logs,
        default_goal=profile.daily_goal,
        drink_cost=profile.avg_drink_cost,
        drink_cals=profile.avg_drink_cals,
    )
    report = evaluate_milestones(
        longest_streak=longest_dry_streak(logs),
        current_streak=current_dry_streak(logs, today),
        savings=savings,
        unlocked=profile.unlocked_milestones,
    )

    if report.newly_unlocked:
        unlocked = dict(profile.unlocked_milestones)
        unlocked.update({m.id: m.unlocked_at for m in report.newly_unlocked})
        db.save_unlocked_milestones(user_id, unlocked)
        logger.info(
            "Unlocked %d milestones for %s", len(report.newly_unlocked), user_id[:8]
        )

    return report
