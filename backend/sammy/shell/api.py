"""REST Handlers - JSON endpoints under /api.

Every handler resolves the user set by the auth middleware, delegates to the
service layer and maps engine errors to HTTP statuses.
"""

import json
import logging
from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import JSONResponse

from ..core.cumulative import downsample_series
from ..core.errors import AtomicWriteFailure, UnsupportedModeError, ValidationError
from . import service


logger = logging.getLogger(__name__)

Handler = Callable[[Request, str], Awaitable[JSONResponse]]


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() == "true"


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def authenticated(handler: Handler) -> Callable[[Request], Awaitable[JSONResponse]]:
    """Wrap a handler: require a user and translate engine errors."""

    async def endpoint(request: Request) -> JSONResponse:
        user_id = service.current_user_id.get()
        if user_id is None:
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        try:
            return await handler(request, user_id)
        except ValidationError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except UnsupportedModeError as e:
            return JSONResponse(
                {"error": str(e), "code": "typical_week_required"}, status_code=409
            )
        except AtomicWriteFailure as e:
            return JSONResponse({"error": str(e)}, status_code=500)
        except Exception as e:
            logger.error("Request to %s failed: %s", request.url.path, str(e))
            return JSONResponse({"error": "Internal error"}, status_code=500)

    endpoint.__name__ = handler.__name__
    return endpoint


# ==================== Profile ====================


def _profile_response(profile) -> dict:
    data = _dump(profile)
    data.pop("unlockedMilestones", None)
    return data


@authenticated
async def get_profile(request: Request, user_id: str) -> JSONResponse:
    """GET /api/user/profile"""
    profile = service.load_profile(service.get_firestore_client(), user_id)
    return JSONResponse(_profile_response(profile))


@authenticated
async def update_profile(request: Request, user_id: str) -> JSONResponse:
    """POST /api/user/profile - dailyGoal, avgDrinkCost, avgDrinkCals, registeredDate"""
    body = await _json_body(request)
    profile = service.update_profile(service.get_firestore_client(), user_id, body)
    return JSONResponse({"success": True, "profile": _profile_response(profile)})


# ==================== Weekly Plan ====================


@authenticated
async def set_weekly_plan(request: Request, user_id: str) -> JSONResponse:
    """POST /api/user/weekly-plan"""
    body = await _json_body(request)
    result = service.save_weekly_plan(
        service.get_firestore_client(),
        user_id,
        body.get("targets"),
        today=body.get("date"),
        is_recurring=body.get("isRecurring", True) is not False,
        week_start_date=body.get("weekStartDate"),
    )
    return JSONResponse({
        "success": True,
        "weekTotal": result.week_total,
        "daysProjected": result.days_projected,
        "weekStartDate": result.week_start.isoformat(),
    })


@authenticated
async def get_weekly_plan(request: Request, user_id: str) -> JSONResponse:
    """GET /api/user/weekly-plan"""
    template, view = service.load_weekly_plan(
        service.get_firestore_client(), user_id, today=request.query_params.get("date")
    )
    return JSONResponse({
        "template": _dump(template) if template is not None else None,
        "currentWeek": _dump(view),
        "hasPlan": template is not None and template.is_active,
    })


@authenticated
async def set_typical_week(request: Request, user_id: str) -> JSONResponse:
    """POST /api/user/typical-week"""
    body = await _json_body(request)
    baseline = service.save_typical_week(
        service.get_firestore_client(), user_id, body.get("typicalWeek")
    )
    return JSONResponse({
        "success": True,
        "typicalWeek": _dump(baseline) if baseline is not None else None,
    })


# ==================== Logging ====================


async def _record(request: Request, user_id: str, replace: bool) -> JSONResponse:
    body = await _json_body(request)
    count = body.get("count")
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError("Date and integer count are required")
    if not body.get("date"):
        raise ValidationError("Date and integer count are required")

    log = service.record_drinks(
        service.get_firestore_client(), user_id, body["date"], count, replace=replace
    )
    if log is None:
        return JSONResponse({"error": "Failed to log drink"}, status_code=500)
    return JSONResponse({"success": True, "log": _dump(log)})


@authenticated
async def log_drink(request: Request, user_id: str) -> JSONResponse:
    """POST /api/log - add to a day's count"""
    return await _record(request, user_id, replace=False)


@authenticated
async def update_log(request: Request, user_id: str) -> JSONResponse:
    """PUT /api/log - replace a day's count"""
    return await _record(request, user_id, replace=True)


@authenticated
async def delete_log(request: Request, user_id: str) -> JSONResponse:
    """DELETE /api/log?date=YYYY-MM-DD"""
    log_date = request.query_params.get("date")
    if not log_date:
        raise ValidationError("Date is required")

    if not service.delete_log(service.get_firestore_client(), user_id, log_date):
        return JSONResponse({"error": "Failed to delete log"}, status_code=500)
    return JSONResponse({"success": True})


@authenticated
async def set_day_goal(request: Request, user_id: str) -> JSONResponse:
    """POST /api/log/goal"""
    body = await _json_body(request)
    goal = body.get("goal")
    if isinstance(goal, bool) or not isinstance(goal, int) or not body.get("date"):
        raise ValidationError("Date and integer goal are required")

    log = service.set_day_goal(service.get_firestore_client(), user_id, body["date"], goal)
    if log is None:
        return JSONResponse({"error": "Failed to set goal"}, status_code=500)
    return JSONResponse({"success": True, "log": _dump(log)})


# ==================== Stats ====================


@authenticated
async def weekly_summary(request: Request, user_id: str) -> JSONResponse:
    """GET /api/stats/weekly-summary

    includeAI is accepted for compatibility; the summary text comes from a
    separate assistant service and is never generated here.
    """
    if _parse_bool(request.query_params.get("includeAI")):
        logger.debug("AI summary requested; not generated by this service")

    summary, money_saved = service.load_weekly_summary(
        service.get_firestore_client(), user_id, today=request.query_params.get("date")
    )
    data = _dump(summary)
    return JSONResponse({
        "days": data["days"],
        "totalDrinks": summary.total_drinks,
        "totalTarget": summary.total_target,
        "dryDays": summary.dry_days,
        "daysUnderTarget": summary.days_under_target,
        "dryStreak": summary.dry_streak,
        "moneySaved": money_saved,
    })


@authenticated
async def range_summary(request: Request, user_id: str) -> JSONResponse:
    """GET /api/stats/range?start=YYYY-MM-DD&end=YYYY-MM-DD"""
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    if not start or not end:
        raise ValidationError("start and end are required")

    summary = service.load_range_summary(service.get_firestore_client(), user_id, start, end)
    return JSONResponse(_dump(summary))


@authenticated
async def cumulative_stats(request: Request, user_id: str) -> JSONResponse:
    """GET /api/stats/cumulative?mode=target|benchmark&range=90d|all"""
    params = request.query_params
    series = service.load_cumulative_series(
        service.get_firestore_client(),
        user_id,
        mode=params.get("mode", "target"),
        range_name=params.get("range", "90d"),
        today=params.get("date"),
    )

    points = params.get("points")
    if points:
        try:
            max_points = int(points)
        except ValueError as e:
            raise ValidationError("points must be an integer") from e
        series = series.model_copy(
            update={"series": downsample_series(series.series, max_points)}
        )

    return JSONResponse(_dump(series))


@authenticated
async def milestones(request: Request, user_id: str) -> JSONResponse:
    """GET /api/stats/milestones"""
    report = service.load_milestones(
        service.get_firestore_client(), user_id, today=request.query_params.get("date")
    )
    return JSONResponse(_dump(report))
