"""
Record builders shared by the Mindspace test suites.
"""

from datetime import datetime, timedelta, timezone

from mindspace.models import (
    Counselor,
    CounselorAvailability,
    Feedback,
    Location,
    MoodEntry,
    Resource,
)

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


def build_mood(
    id: str,
    score: int,
    mood: str = "okay",
    factors: list[str] | None = None,
    user_id: str = "student-1",
    timestamp: datetime | None = None,
) -> MoodEntry:
    return MoodEntry(
        id=id,
        user_id=user_id,
        mood=mood,
        score=score,
        factors=factors or [],
        timestamp=timestamp or NOW,
    )


def build_resource(id: str, **overrides) -> Resource:
    fields = {
        "title": f"Resource {id}",
        "description": "Coping strategies for students",
        "type": "article",
        "category": "anxiety",
        "tags": ["self-help"],
        "rating": 4.0,
        "publish_date": NOW,
    }
    fields.update(overrides)
    return Resource(id=id, **fields)


def build_counselor(id: str, **overrides) -> Counselor:
    fields = {
        "name": f"Counselor {id}",
        "title": "Psychologist",
        "specialties": ["anxiety"],
        "experience": 5,
        "location": Location(city="Pune", state="Maharashtra"),
        "availability": CounselorAvailability(next_available=NOW + timedelta(days=3)),
        "session_types": ["individual", "online"],
        "rating": 4.0,
    }
    fields.update(overrides)
    return Counselor(id=id, **fields)


def build_feedback(
    id: str,
    rating: int,
    type: str = "resource",
    target_id: str | None = "r1",
    user_id: str = "student-1",
) -> Feedback:
    return Feedback(
        id=id,
        user_id=user_id,
        type=type,
        target_id=target_id,
        rating=rating,
        created_at=NOW,
    )
