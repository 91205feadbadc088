"""Engine configuration - plain values passed into the pure functions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for projection and aggregation.

    Attributes:
        overwrite_logged_days: Re-projecting a plan also retargets days that already have a count
        max_daily_target: Upper bound for a single weekly plan day
        max_typical_value: Upper bound for a single typical week day
        default_range_days: Window size of the "90d" cumulative range
        all_range_max_days: Cap on the "all" cumulative range
    """

    overwrite_logged_days: bool = False
    max_daily_target: int = 50
    max_typical_value: int = 100
    default_range_days: int = 90
    all_range_max_days: int = 180
