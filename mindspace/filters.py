"""
Predicate-based filtering over record collections.

Each listing has a criteria model whose fields are all optional. Building a
criteria object validates the raw query values, so malformed input is
rejected before any record is looked at. A criteria object then turns into a
list of predicates, one per supplied field, and a record is kept only if it
satisfies every predicate.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta
from typing import Annotated, Any, Literal, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import (
    AppointmentStatus,
    Availability,
    Counselor,
    Difficulty,
    JournalEntry,
    MoodEntry,
    Resource,
    ResourceCategory,
    ResourceType,
    SessionType,
    Specialty,
)
from .utils import ensure_utc, utcnow

T = TypeVar("T")
C = TypeVar("C", bound="Criteria")

Predicate = Callable[[T], bool]

AVAILABILITY_WINDOWS = {"week": timedelta(days=7), "month": timedelta(days=30)}


# MARK: - Generic helpers


def filter_records(records: Iterable[T], predicates: Iterable[Predicate[T]]) -> list[T]:
    """Keep the records satisfying every predicate. No predicates keeps all."""
    checks = list(predicates)
    return [record for record in records if all(check(record) for check in checks)]


def text_matches(query: str, *fields: str | Sequence[str] | None) -> bool:
    """
    Case-insensitive substring search across several fields.

    A field may be a string or a list of strings (tags, specialties). The
    record matches if any of them contains the query.
    """
    needle = query.lower()
    for value in fields:
        if value is None:
            continue
        if isinstance(value, str):
            if needle in value.lower():
                return True
        elif any(needle in item.lower() for item in value):
            return True
    return False


def within_range(
    value: datetime, start: datetime | None = None, end: datetime | None = None
) -> bool:
    """Inclusive range check; either bound may be omitted."""
    value = ensure_utc(value)
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def available_within(
    next_available: datetime, window: Availability, now: datetime
) -> bool:
    """Whether a counselor's next slot falls in the requested window."""
    next_available = ensure_utc(next_available)
    if window == "today":
        return next_available.date() == now.date()
    return next_available <= now + AVAILABILITY_WINDOWS[window]


# MARK: - Criteria


class Criteria(BaseModel):
    """Base for validated filter criteria."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @classmethod
    def parse(cls: type[C], **raw: Any) -> C:
        """
        Validate raw query values. `None` means the criterion is absent.

        Raises:
            ValidationError: Any value is unknown or out of range
        """
        supplied = {key: value for key, value in raw.items() if value is not None}
        try:
            return cls.model_validate(supplied)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

    def predicates(self, now: datetime | None = None) -> list[Predicate[Any]]:
        raise NotImplementedError


def _day_start(value: Any) -> Any:
    # Bare dates mean midnight UTC
    if isinstance(value, str) and len(value) == 10:
        return f"{value}T00:00:00+00:00"
    return value


DayStart = Annotated[datetime, BeforeValidator(_day_start), AfterValidator(ensure_utc)]


class MoodCriteria(Criteria):
    start: DayStart | None = Field(None, alias="from")
    end: DayStart | None = Field(None, alias="to")

    @model_validator(mode="after")
    def _ordered(self) -> "MoodCriteria":
        if self.start and self.end and self.start > self.end:
            raise ValueError("'from' must not be later than 'to'")
        return self

    def predicates(self, now: datetime | None = None) -> list[Predicate[MoodEntry]]:
        if self.start is None and self.end is None:
            return []
        return [lambda entry: within_range(entry.timestamp, self.start, self.end)]


class JournalCriteria(Criteria):
    search: str | None = Field(None, min_length=1, max_length=100)

    def predicates(self, now: datetime | None = None) -> list[Predicate[JournalEntry]]:
        if self.search is None:
            return []
        query = self.search
        return [
            lambda entry: text_matches(query, entry.title, entry.content, entry.tags)
        ]


class ResourceCriteria(Criteria):
    category: ResourceCategory | None = None
    type: ResourceType | None = None
    difficulty: Difficulty | None = None
    search: str | None = Field(None, min_length=1, max_length=100)

    def predicates(self, now: datetime | None = None) -> list[Predicate[Resource]]:
        checks: list[Predicate[Resource]] = [lambda r: r.is_published]
        if self.category is not None:
            checks.append(lambda r: r.category == self.category)
        if self.type is not None:
            checks.append(lambda r: r.type == self.type)
        if self.difficulty is not None:
            checks.append(lambda r: r.difficulty == self.difficulty)
        if self.search is not None:
            query = self.search
            checks.append(lambda r: text_matches(query, r.title, r.description, r.tags))
        return checks


class CounselorCriteria(Criteria):
    specialty: Specialty | None = None
    location: str | None = Field(None, min_length=2, max_length=50)
    availability: Availability | None = None
    session_type: SessionType | None = Field(None, alias="sessionType")

    def predicates(self, now: datetime | None = None) -> list[Predicate[Counselor]]:
        checks: list[Predicate[Counselor]] = [lambda c: c.is_active]
        if self.specialty is not None:
            checks.append(lambda c: self.specialty in c.specialties)
        if self.location is not None:
            place = self.location
            checks.append(
                lambda c: text_matches(place, c.location.city, c.location.state)
            )
        if self.session_type is not None:
            checks.append(lambda c: self.session_type in c.session_types)
        if self.availability is not None:
            reference = ensure_utc(now) if now else utcnow()
            window = self.availability
            checks.append(
                lambda c: available_within(
                    c.availability.next_available, window, reference
                )
            )
        return checks


class AppointmentCriteria(Criteria):
    status: AppointmentStatus | None = None

    def predicates(self, now: datetime | None = None) -> list[Predicate[Any]]:
        if self.status is None:
            return []
        return [lambda appointment: appointment.status == self.status]


class SearchCriteria(Criteria):
    """Cross-catalogue search over resources and counselors."""

    q: str = Field(..., min_length=1, max_length=100)
    type: Literal["all", "resources", "counselors"] = "all"


# MARK: - Search


class SearchHit(BaseModel):
    """A resource or counselor as it appears in search results."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["resource", "counselor"]
    title: str
    description: str
    rating: float
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    location: dict[str, str] | None = None


def search_catalogue(
    resources: Iterable[Resource],
    counselors: Iterable[Counselor],
    criteria: SearchCriteria,
) -> list[SearchHit]:
    """Match the query against published resources and active counselors."""
    query = criteria.q
    hits: list[SearchHit] = []

    if criteria.type in ("all", "resources"):
        matched = filter_records(
            resources,
            [
                lambda r: r.is_published,
                lambda r: text_matches(query, r.title, r.description, r.tags),
            ],
        )
        hits.extend(
            SearchHit(
                id=r.id,
                type="resource",
                title=r.title,
                description=r.description,
                rating=r.rating,
                category=r.category,
                tags=r.tags,
            )
            for r in matched
        )

    if criteria.type in ("all", "counselors"):
        matched = filter_records(
            counselors,
            [
                lambda c: c.is_active,
                lambda c: text_matches(query, c.name, c.title, c.bio, c.specialties),
            ],
        )
        hits.extend(
            SearchHit(
                id=c.id,
                type="counselor",
                title=c.name,
                description=f"{c.title} - {c.bio[:100]}",
                rating=c.rating,
                specialties=c.specialties,
                location=c.location.model_dump(),
            )
            for c in matched
        )

    return hits
