"""Core Data Models - Pydantic models for type safety.

Fields are snake_case in Python and camelCase on the wire and in Firestore.
All models are value objects with no behavior beyond validation and lookups.
"""

from datetime import datetime
from datetime import date as DateType
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .dates import DAY_ORDER


class CamelModel(BaseModel):
    """Base model serializing to camelCase, accepting either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GoalSource(str, Enum):
    """Where a day's goal came from."""

    WEEKLY_PLAN = "weekly_plan"
    MANUAL = "manual"


class DayStatus(str, Enum):
    """Classification of a day in the week view."""

    FUTURE = "future"
    TODAY = "today"
    UNDER = "under"
    OVER = "over"
    NO_RECORD = "no_record"


class CumulativeMode(str, Enum):
    """Reference used for drinks saved: daily goals or the typical week."""

    TARGET = "target"
    BENCHMARK = "benchmark"


class CumulativeRange(str, Enum):
    """Window of the cumulative series."""

    NINETY_DAYS = "90d"
    ALL = "all"


class DailyLog(CamelModel):
    """Drinking record for one calendar date.

    A log with a count is "logged". A log with only a goal is a projected
    day that has not been logged yet.
    """

    log_date: DateType = Field(alias="date", description="Date of this log (YYYY-MM-DD)")
    goal: Optional[int] = Field(default=None, ge=0, description="Target drink count")
    goal_source: Optional[GoalSource] = Field(default=None)
    goal_set_at: Optional[datetime] = Field(default=None)
    count: Optional[int] = Field(default=None, ge=0, description="None until the day is logged")

    @property
    def is_logged(self) -> bool:
        return self.count is not None


class WeekPattern(CamelModel):
    """Seven per-weekday drink counts."""

    monday: int = Field(ge=0, strict=True)
    tuesday: int = Field(ge=0, strict=True)
    wednesday: int = Field(ge=0, strict=True)
    thursday: int = Field(ge=0, strict=True)
    friday: int = Field(ge=0, strict=True)
    saturday: int = Field(ge=0, strict=True)
    sunday: int = Field(ge=0, strict=True)

    @property
    def total(self) -> int:
        return sum(self.targets().values())

    def targets(self) -> dict[str, int]:
        """Weekday name to value, Monday first."""
        return {day: getattr(self, day) for day in DAY_ORDER}

    def for_weekday(self, d: DateType) -> int:
        """Value for the weekday of the given date."""
        return getattr(self, DAY_ORDER[d.weekday()])


class WeeklyPlanTemplate(WeekPattern):
    """Recurring weekly target pattern, one per user."""

    is_active: bool = Field(default=True, description="Auto-project onto future weeks")
    last_applied: Optional[DateType] = Field(
        default=None, description="Monday of the last week this template was projected onto"
    )


class TypicalWeekBaseline(WeekPattern):
    """Reference pattern of a user's typical week. Never a target."""


class UserProfile(CamelModel):
    """Per-user document holding settings and the plan/baseline singletons."""

    daily_goal: int = Field(default=2, ge=0)
    avg_drink_cost: float = Field(default=10.0, ge=0)
    avg_drink_cals: int = Field(default=150, ge=0)
    registered_date: Optional[DateType] = Field(default=None)
    weekly_plan_template: Optional[WeeklyPlanTemplate] = Field(default=None)
    typical_week: Optional[TypicalWeekBaseline] = Field(default=None)
    unlocked_milestones: dict[str, datetime] = Field(default_factory=dict)

    # registeredDate is stored as a full ISO timestamp
    @field_validator("registered_date", mode="before")
    @classmethod
    def _timestamp_to_date(cls, v):
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v


class ProjectionResult(CamelModel):
    """Outcome of projecting a template onto a week."""

    updated_logs: list[DailyLog]
    days_projected: int = Field(ge=0)
    week_total: int = Field(ge=0)
    week_start: DateType
    template: WeeklyPlanTemplate


class WeekDay(CamelModel):
    """One day of the week view with its resolved goal and status."""

    log_date: DateType = Field(alias="date")
    day: str
    goal: int
    count: Optional[int]
    status: DayStatus


class WeekView(CamelModel):
    """Monday-to-Sunday view of goals, counts and statuses."""

    start_date: DateType
    end_date: DateType
    days: list[WeekDay]
    total_goal: int
    total_count: int
    days_logged: int


class RangeDay(CamelModel):
    """One day of a range summary. count is None for a no-record day."""

    log_date: DateType = Field(alias="date")
    count: Optional[int]
    goal: int
    is_dry: bool


class RangeSummary(CamelModel):
    """Aggregates over an arbitrary inclusive date range."""

    start_date: DateType
    end_date: DateType
    days: list[RangeDay]
    total_drinks: int
    total_target: int
    dry_days: int
    days_logged: int
    days_under_target: int
    dry_streak: int


class Savings(CamelModel):
    """Drinks, money and calories saved on days under goal."""

    drinks_saved: int
    money_saved: float
    calories_cut: int


class CumulativePoint(CamelModel):
    """Drinks saved on one day and the running total up to it."""

    log_date: DateType = Field(alias="date")
    daily: int
    cumulative: int


class CumulativeSummary(CamelModel):
    """Totals over the whole cumulative window."""

    total_saved: int
    total_days: int
    avg_per_week: float


class CumulativeSeries(CamelModel):
    """Running drinks-saved series, oldest first, never downsampled."""

    series: list[CumulativePoint]
    summary: CumulativeSummary
    mode: CumulativeMode
    range_name: CumulativeRange = Field(alias="range")
    has_typical_week: bool


class Milestone(CamelModel):
    """A milestone with the user's progress toward it."""

    id: str
    type: str
    threshold: int
    label: str
    icon: str
    current_value: float
    progress: int = Field(ge=0, le=100)
    is_unlocked: bool
    unlocked_at: Optional[datetime] = None


class MilestoneStats(CamelModel):
    """All-time values milestones are measured against."""

    current_streak: int
    longest_streak: int
    drinks_saved: int
    money_saved: float
    calories_cut: int


class MilestoneReport(CamelModel):
    """Every milestone, those unlocked by this evaluation, and the stats behind them."""

    milestones: list[Milestone]
    newly_unlocked: list[Milestone]
    stats: MilestoneStats
