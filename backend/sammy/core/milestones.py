"""Milestones - Pure functions for achievement progress.

Unlock status is sticky: a milestone unlocked once stays unlocked even if the
underlying value later drops below its threshold.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from .models import Milestone, MilestoneReport, MilestoneStats, Savings


@dataclass(frozen=True)
class MilestoneDefinition:
    """One entry in the milestone catalogue: unlocks when the stat reaches threshold."""

    type: str
    threshold: int
    label: str
    icon: str


MILESTONES: dict[str, MilestoneDefinition] = {
    # Dry streaks
    "streak_7": MilestoneDefinition("dry_streak", 7, "1 Week Dry", "flame"),
    "streak_14": MilestoneDefinition("dry_streak", 14, "2 Weeks Dry", "flame"),
    "streak_30": MilestoneDefinition("dry_streak", 30, "1 Month Dry", "trophy"),
    "streak_60": MilestoneDefinition("dry_streak", 60, "2 Months Dry", "trophy"),
    "streak_90": MilestoneDefinition("dry_streak", 90, "3 Months Dry", "crown"),
    # Drinks saved
    "drinks_10": MilestoneDefinition("drinks_saved", 10, "10 Drinks Saved", "star"),
    "drinks_50": MilestoneDefinition("drinks_saved", 50, "50 Drinks Saved", "star"),
    "drinks_100": MilestoneDefinition("drinks_saved", 100, "100 Drinks Saved", "medal"),
    "drinks_500": MilestoneDefinition("drinks_saved", 500, "500 Drinks Saved", "medal"),
    "drinks_1000": MilestoneDefinition("drinks_saved", 1000, "1K Drinks Saved", "crown"),
    # Money saved
    "money_100": MilestoneDefinition("money_saved", 100, "$100 Saved", "wallet"),
    "money_500": MilestoneDefinition("money_saved", 500, "$500 Saved", "wallet"),
    "money_1000": MilestoneDefinition("money_saved", 1000, "$1K Saved", "piggy-bank"),
}


def calculate_progress(value: float, threshold: int) -> int:
    """Percent of the way to a threshold, capped at 100."""
    if threshold <= 0:
        return 100
    return min(round(value / threshold * 100), 100)


def evaluate_milestones(
    longest_streak: int,
    current_streak: int,
    savings: Savings,
    unlocked: Mapping[str, datetime] | None = None,
    now: datetime | None = None,
) -> MilestoneReport:
    """Evaluate every milestone against the user's current stats.

    Streak milestones use the longest streak ever achieved so a broken
    streak does not lock them again.

    Args:
        longest_streak: Longest dry streak ever
        current_streak: Dry streak ending today (reported, not used for unlocks)
        savings: All-time savings
        unlocked: Previously unlocked milestone ids with their unlock time
        now: Unlock timestamp for milestones reached on this evaluation

    Returns:
        MilestoneReport; newly_unlocked lists milestones the caller should persist
    """
    unlocked = dict(unlocked or {})
    if now is None:
        now = datetime.utcnow()

    values = {
        "dry_streak": longest_streak,
        "drinks_saved": savings.drinks_saved,
        "money_saved": savings.money_saved,
    }

    milestones: list[Milestone] = []
    newly_unlocked: list[Milestone] = []

    for milestone_id, definition in MILESTONES.items():
        value = values[definition.type]
        reached = value >= definition.threshold
        was_unlocked = milestone_id in unlocked

        milestone = Milestone(
            id=milestone_id,
            type=definition.type,
            threshold=definition.threshold,
            label=definition.label,
            icon=definition.icon,
            current_value=value,
            progress=calculate_progress(value, definition.threshold),
            is_unlocked=reached or was_unlocked,
            unlocked_at=unlocked[milestone_id] if was_unlocked else (now if reached else None),
        )
        milestones.append(milestone)
        if reached and not was_unlocked:
            newly_unlocked.append(milestone)

    return MilestoneReport(
        milestones=milestones,
        newly_unlocked=newly_unlocked,
        stats=MilestoneStats(
            current_streak=current_streak,
            longest_streak=longest_streak,
            drinks_saved=savings.drinks_saved,
            money_saved=savings.money_saved,
            calories_cut=savings.calories_cut,
        ),
    )
