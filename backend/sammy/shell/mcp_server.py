"""MCP Server - Tool definitions for the assistant.

Lets the assistant set weekly plans, log drinks and read stats on the
user's behalf. Authentication happens in the HTTP middleware.
"""

import logging

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from ..core.errors import SammyError
from .service import (
    get_firestore_client,
    get_user_id,
    load_cumulative_series,
    load_milestones,
    load_weekly_plan,
    load_weekly_summary,
    record_drinks,
    save_weekly_plan,
)


logger = logging.getLogger(__name__)

transport_security = TransportSecuritySettings(
    enable_dns_rebinding_protection=True,
    allowed_hosts=[
        "localhost:*",
        "127.0.0.1:*",
        "*.run.app:*",
        "*.run.app",
    ],
)

# Initialize FastMCP server with stateless HTTP for cloud deployments
mcp = FastMCP(
    "sammy",
    instructions="""Sammy - Supportive drinking-reduction companion.

Use these tools to help users plan their week, log drinks and reflect on progress.

When the user describes a weekly target, call set_weekly_plan with a value for
every day. Before commenting on progress, read get_weekly_plan or
get_weekly_summary rather than guessing.""",
    stateless_http=True,
    transport_security=transport_security,
)


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


# ==================== Plan Tools ====================


@mcp.tool()
def set_weekly_plan(
    monday: int,
    tuesday: int,
    wednesday: int,
    thursday: int,
    friday: int,
    saturday: int,
    sunday: int,
    is_recurring: bool = True,
) -> dict:
    """Set the user's drink targets for each day of the week.

    Targets are applied from today through Sunday; earlier days this week
    keep their goals. Values are rounded to whole drinks.

    Args:
        monday..sunday: Target drinks for that weekday (0-50)
        is_recurring: Repeat this plan every week

    Returns:
        Week total and how many days were updated, or an error
    """
    user_id = get_user_id()
    db = get_firestore_client()

    targets = {
        "monday": round(monday),
        "tuesday": round(tuesday),
        "wednesday": round(wednesday),
        "thursday": round(thursday),
        "friday": round(friday),
        "saturday": round(saturday),
        "sunday": round(sunday),
    }

    try:
        result = save_weekly_plan(db, user_id, targets, is_recurring=is_recurring)
    except SammyError as e:
        logger.warning("Weekly plan via assistant failed for %s: %s", user_id[:8], str(e))
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "weekTotal": result.week_total,
        "daysProjected": result.days_projected,
        "weekStartDate": result.week_start.isoformat(),
    }


@mcp.tool()
def get_weekly_plan() -> dict:
    """Get this week's goals, counts and day statuses plus the recurring plan.

    Returns:
        Dictionary with template, currentWeek and hasPlan
    """
    user_id = get_user_id()
    try:
        template, view = load_weekly_plan(get_firestore_client(), user_id)
    except SammyError as e:
        return {"error": str(e)}

    return {
        "template": _dump(template) if template is not None else None,
        "currentWeek": _dump(view),
        "hasPlan": template is not None and template.is_active,
    }


# ==================== Logging Tools ====================


@mcp.tool()
def log_drinks(count: int, date_str: str | None = None) -> dict:
    """Add drinks to a day's count.

    Args:
        count: Drinks to add (use a negative number to correct a mistake)
        date_str: Date in YYYY-MM-DD format (defaults to today)

    Returns:
        The updated day, or an error
    """
    user_id = get_user_id()
    try:
        log = record_drinks(get_firestore_client(), user_id, date_str, count)
    except SammyError as e:
        return {"error": str(e)}

    if log is None:
        return {"error": "Failed to log drinks. Please try again."}
    return {"success": True, "log": _dump(log)}


# ==================== Stats Tools ====================


@mcp.tool()
def get_weekly_summary() -> dict:
    """Summarize the last 7 days: totals, dry days, streak and money saved."""
    user_id = get_user_id()
    try:
        summary, money_saved = load_weekly_summary(get_firestore_client(), user_id)
    except SammyError as e:
        return {"error": str(e)}

    data = _dump(summary)
    data["moneySaved"] = money_saved
    return data


@mcp.tool()
def get_cumulative_stats(mode: str = "target", range_name: str = "90d") -> dict:
    """Running total of drinks saved.

    Args:
        mode: "target" compares to daily goals, "benchmark" to the typical week
        range_name: "90d" or "all"

    Returns:
        Summary (total saved, average per week) and the last 14 days of the series
    """
    user_id = get_user_id()
    try:
        result = load_cumulative_series(get_firestore_client(), user_id, mode, range_name)
    except SammyError as e:
        return {"error": str(e)}

    data = _dump(result)
    data["series"] = data["series"][-14:]
    return data


@mcp.tool()
def get_milestones() -> dict:
    """List milestones with progress and any that were just unlocked."""
    user_id = get_user_id()
    try:
        report = load_milestones(get_firestore_client(), user_id)
    except SammyError as e:
        return {"error": str(e)}
    return _dump(report)
