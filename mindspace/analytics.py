"""
Mood analytics over a user's mood log.

Every figure is computed from the full, immutable entry log by its own
function, so the parts can be recomputed independently and in any order.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta

from pydantic import Field

from .models import CamelModel, MoodEntry, MoodLabel
from .store import Database
from .utils import ensure_utc, round_half_up, utcnow

TREND_WINDOW = timedelta(days=30)


class FactorStats(CamelModel):
    count: int
    average_score: float


class TrendPoint(CamelModel):
    date: str = Field(..., description="Calendar day, YYYY-MM-DD")
    score: int
    mood: MoodLabel


class MoodAnalytics(CamelModel):
    total_entries: int
    average_score: float
    mood_distribution: dict[str, int]
    factor_analysis: dict[str, FactorStats]
    trend: list[TrendPoint]


class PlatformSummary(CamelModel):
    """Platform-wide usage figures."""

    users_tracking_mood: int
    total_mood_entries: int
    total_journal_entries: int
    total_appointments: int
    pending_appointments: int
    average_mood_score: float | None
    resource_views: int


def average_score(entries: Sequence[MoodEntry]) -> float | None:
    """Mean score rounded to 2 decimals, or None for an empty log."""
    if not entries:
        return None
    return round_half_up(sum(entry.score for entry in entries) / len(entries), 2)


def mood_distribution(entries: Sequence[MoodEntry]) -> dict[str, int]:
    """Occurrences per mood label. Labels never reported are left out."""
    return dict(Counter(entry.mood for entry in entries))


def factor_analysis(entries: Sequence[MoodEntry]) -> dict[str, FactorStats]:
    """
    Per-factor entry count and mean score.

    An entry contributes its score to every factor it lists. Duplicate
    factors within one entry count once.
    """
    counts: Counter[str] = Counter()
    totals: Counter[str] = Counter()
    for entry in entries:
        for factor in dict.fromkeys(entry.factors):
            counts[factor] += 1
            totals[factor] += entry.score

    return {
        factor: FactorStats(
            count=count, average_score=round_half_up(totals[factor] / count, 2)
        )
        for factor, count in counts.items()
    }


def mood_trend(
    entries: Sequence[MoodEntry], now: datetime | None = None
) -> list[TrendPoint]:
    """Entries from the last 30 days, oldest first."""
    since = (ensure_utc(now) if now else utcnow()) - TREND_WINDOW
    recent = sorted(
        (entry for entry in entries if ensure_utc(entry.timestamp) >= since),
        key=lambda entry: ensure_utc(entry.timestamp),
    )
    return [
        TrendPoint(
            date=ensure_utc(entry.timestamp).date().isoformat(),
            score=entry.score,
            mood=entry.mood,
        )
        for entry in recent
    ]


def compute_mood_analytics(
    entries: Sequence[MoodEntry], now: datetime | None = None
) -> MoodAnalytics | None:
    """
    Summarise one user's mood log.

    Args:
        entries: All mood entries owned by the user
        now: Reference time for the trend window (defaults to the current time)

    Returns:
        The analytics, or None when the log is empty
    """
    score = average_score(entries)
    if score is None:
        return None

    return MoodAnalytics(
        total_entries=len(entries),
        average_score=score,
        mood_distribution=mood_distribution(entries),
        factor_analysis=factor_analysis(entries),
        trend=mood_trend(entries, now),
    )


def compute_platform_summary(database: Database) -> PlatformSummary:
    return PlatformSummary(
        users_tracking_mood=len({entry.user_id for entry in database.mood_entries}),
        total_mood_entries=len(database.mood_entries),
        total_journal_entries=len(database.journal_entries),
        total_appointments=len(database.appointments),
        pending_appointments=sum(
            1 for appointment in database.appointments
            if appointment.status == "pending"
        ),
        average_mood_score=average_score(database.mood_entries),
        resource_views=sum(resource.views for resource in database.resources),
    )
