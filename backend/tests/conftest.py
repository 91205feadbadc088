"""Shared fixtures: fake log sources standing in for Firestore data."""

import random
from datetime import date, timedelta

import pytest

from sammy.core import logbook
from sammy.core.errors import AtomicWriteFailure
from sammy.core.models import DailyLog, ProjectionResult, UserProfile, WeeklyPlanTemplate


# 2024-01-01 is a Monday
MONDAY = date(2024, 1, 1)


def logs_from_counts(end: date, counts: list[int | None], goal: int | None = 2) -> list[DailyLog]:
    """Logs for consecutive days ending at `end`, most recent count first.

    None means no record for that day (no log at all).
    """
    logs = []
    for offset, count in enumerate(counts):
        if count is None:
            continue
        logs.append(DailyLog(log_date=end - timedelta(days=offset), goal=goal, count=count))
    return logs


@pytest.fixture
def monday() -> date:
    return MONDAY


@pytest.fixture
def template() -> WeeklyPlanTemplate:
    return WeeklyPlanTemplate(
        monday=2, tuesday=2, wednesday=2, thursday=2, friday=3, saturday=3, sunday=1
    )


@pytest.fixture
def random_logs():
    """Factory for a seeded random trend of logged days, with occasional gaps."""

    def make(end: date, days: int, seed: int = 7, gap_rate: float = 0.15) -> list[DailyLog]:
        rng = random.Random(seed)
        logs = []
        for offset in range(days):
            if rng.random() < gap_rate:
                continue
            logs.append(
                DailyLog(
                    log_date=end - timedelta(days=offset),
                    goal=rng.randint(0, 4),
                    count=rng.randint(0, 5),
                )
            )
        return logs

    return make


@pytest.fixture
def counts_to_logs():
    return logs_from_counts


class InMemoryStore:
    """Stands in for SammyFirestoreClient with plain dicts."""

    def __init__(self, profile: UserProfile | None = None, fail_commits: bool = False):
        self.profiles: dict[str, UserProfile] = {}
        self.logs: dict[str, dict[date, DailyLog]] = {}
        self.default_profile = profile or UserProfile()
        self.fail_commits = fail_commits
        self.commits: list[ProjectionResult] = []

    def get_profile(self, user_id):
        return self.profiles.get(user_id, self.default_profile)

    def _update_profile(self, user_id, **fields):
        self.profiles[user_id] = self.get_profile(user_id).model_copy(update=fields)

    def save_typical_week(self, user_id, baseline):
        self._update_profile(user_id, typical_week=baseline)
        return True

    def save_unlocked_milestones(self, user_id, unlocked):
        self._update_profile(user_id, unlocked_milestones=dict(unlocked))
        return True

    def get_log(self, user_id, log_date):
        return self.logs.get(user_id, {}).get(log_date)

    def save_log(self, user_id, log):
        self.logs.setdefault(user_id, {})[log.log_date] = log
        return True

    def update_profile(self, user_id, fields):
        self._update_profile(user_id, **fields)
        return True

    def increment_log(self, user_id, log_date, amount, default_goal=None):
        updated = logbook.add_drinks(self.get_log(user_id, log_date), log_date, amount)
        if updated.goal is None and default_goal is not None:
            updated = updated.model_copy(update={"goal": default_goal})
        self.save_log(user_id, updated)
        return updated

    def delete_log(self, user_id, log_date):
        self.logs.get(user_id, {}).pop(log_date, None)
        return True

    def get_logs_range(self, user_id, start_date, end_date):
        user_logs = self.logs.get(user_id, {})
        return [user_logs[d] for d in sorted(user_logs) if start_date <= d <= end_date]

    def get_all_logs(self, user_id):
        user_logs = self.logs.get(user_id, {})
        return [user_logs[d] for d in sorted(user_logs)]

    def commit_projection(self, user_id, result):
        if self.fail_commits:
            raise AtomicWriteFailure("Failed to save weekly plan")
        self.commits.append(result)
        self._update_profile(user_id, weekly_plan_template=result.template)
        for log in result.updated_logs:
            self.save_log(user_id, log)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def failing_store() -> InMemoryStore:
    """Store whose batch commits always fail."""
    return InMemoryStore(fail_commits=True)
