"""Profile Settings - Validation of user-editable profile fields.

Pure functions: the shell merges the returned fields into the stored profile.
"""

from typing import Any, Mapping

from .dates import resolve_date
from .errors import ValidationError
from .models import UserProfile


def _non_negative_int(value: Any, message: str, max_value: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(message)
    if max_value is not None and value > max_value:
        raise ValidationError(f"{message} (maximum {max_value})")
    return value


def _non_negative_number(value: Any, message: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError(message)
    return float(value)


def parse_profile_update(values: Mapping[str, Any] | None, max_daily_goal: int = 50) -> dict[str, Any]:
    """Validate a partial profile update given with wire (camelCase) names.

    Only dailyGoal, avgDrinkCost, avgDrinkCals and registeredDate are
    editable here; other keys are ignored. A key present with null is
    treated as absent.

    Args:
        values: Raw request body
        max_daily_goal: Largest allowed daily goal

    Returns:
        Validated fields keyed by UserProfile attribute name

    Raises:
        ValidationError: On a negative, non-numeric or oversized value or a bad date
    """
    if not isinstance(values, Mapping):
        raise ValidationError("Profile object is required")

    fields: dict[str, Any] = {}
    if values.get("dailyGoal") is not None:
        fields["daily_goal"] = _non_negative_int(
            values["dailyGoal"], "Invalid daily goal", max_daily_goal
        )
    if values.get("avgDrinkCost") is not None:
        fields["avg_drink_cost"] = _non_negative_number(values["avgDrinkCost"], "Invalid drink cost")
    if values.get("avgDrinkCals") is not None:
        fields["avg_drink_cals"] = _non_negative_int(values["avgDrinkCals"], "Invalid calories")
    if values.get("registeredDate") is not None:
        raw = values["registeredDate"]
        if raw == "":
            raise ValidationError("Invalid registered date")
        if isinstance(raw, str) and len(raw) > 10:
            # Stored as a full ISO timestamp by older clients
            raw = raw[:10]
        fields["registered_date"] = resolve_date(raw)
    return fields


def apply_profile_update(profile: UserProfile, fields: Mapping[str, Any]) -> UserProfile:
    """Profile with validated fields merged in."""
    return profile.model_copy(update=dict(fields))
