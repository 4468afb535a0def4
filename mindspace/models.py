"""
Shared data models for the Mindspace service.

This module defines the record types kept in the store and served by the API.
Records are frozen: aggregates such as ratings are updated by replacing a
record with a modified copy inside a store transaction.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MoodLabel = Literal["excellent", "good", "okay", "not-great", "struggling"]
ResourceCategory = Literal["anxiety", "depression", "stress", "wellness", "academic"]
ResourceType = Literal["article", "video", "guide", "interactive"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
Specialty = Literal["anxiety", "depression", "stress", "academic", "career"]
SessionType = Literal["individual", "group", "online"]
Availability = Literal["today", "week", "month"]
Urgency = Literal["low", "medium", "high", "emergency"]
AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled"]
FeedbackType = Literal["resource", "counselor", "platform"]
FeedbackCategory = Literal["bug", "feature", "content", "usability"]


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Record(CamelModel):
    """A stored record. Immutable once created."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str = Field(..., description="Opaque record id")


class MoodEntry(Record):
    """One self-reported mood check-in."""

    user_id: str
    mood: MoodLabel
    score: int = Field(..., ge=1, le=5)
    factors: list[str] = Field(default_factory=list)
    notes: str = ""
    timestamp: datetime


class JournalEntry(Record):
    """A private journal entry. Only its author can list or export it."""

    user_id: str
    title: str
    content: str
    mood: MoodLabel | None = None
    tags: list[str] = Field(default_factory=list)
    is_private: bool = True
    created_at: datetime
    updated_at: datetime


class Resource(Record):
    """An article, video or guide in the resource library."""

    title: str
    description: str
    content: str = ""
    type: ResourceType
    category: ResourceCategory
    tags: list[str] = Field(default_factory=list)
    author: str = ""
    difficulty: Difficulty = "beginner"
    estimated_read_time: str = ""
    rating: float = Field(0.0, ge=0, le=5)
    views: int = Field(0, ge=0)
    publish_date: datetime
    is_published: bool = True


class Location(CamelModel):
    """Where a counselor practises."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    city: str
    state: str


class CounselorAvailability(CamelModel):
    """Next open slot and whether emergency sessions are offered."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    next_available: datetime
    emergency_available: bool = False


class Counselor(Record):
    """A counselor listed in the directory."""

    name: str
    title: str = ""
    bio: str = ""
    specialties: list[str] = Field(default_factory=list)
    qualifications: list[str] = Field(default_factory=list)
    experience: int = Field(0, ge=0, description="Years of practice")
    languages: list[str] = Field(default_factory=list)
    location: Location
    availability: CounselorAvailability
    session_types: list[SessionType] = Field(default_factory=list)
    fees: dict[str, int] = Field(default_factory=dict)
    rating: float = Field(0.0, ge=0, le=5)
    reviews: int = Field(0, ge=0)
    is_active: bool = True


class Feedback(Record):
    """A rating of a resource, a counselor or the platform itself."""

    user_id: str
    type: FeedbackType
    target_id: str | None = None
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    category: FeedbackCategory | None = None
    status: str = "pending"
    created_at: datetime


class Appointment(Record):
    """A booking request. Status changes belong to the counselor workflow."""

    user_id: str
    counselor_id: str
    session_type: SessionType
    preferred_date: date
    preferred_time: str
    reason: str
    urgency: Urgency = "medium"
    status: AppointmentStatus = "pending"
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class EmergencyContact(Record):
    """A crisis helpline shown to students in distress."""

    name: str
    phone: str
    type: str
    available: str
    description: str = ""
    website: str | None = None
    is_active: bool = True
