"""
FastAPI server for the Mindspace service.

This module implements the HTTP API for the mood tracker, journal, resource
library, counselor directory, appointments and feedback. Every listing runs
the same pipeline: validate criteria and window, filter, sort, paginate.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from . import __version__
from .analytics import (
    MoodAnalytics,
    PlatformSummary,
    compute_mood_analytics,
    compute_platform_summary,
)
from .config import Settings
from .errors import (
    AuthError,
    MindspaceError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .filters import (
    AppointmentCriteria,
    CounselorCriteria,
    JournalCriteria,
    MoodCriteria,
    ResourceCriteria,
    SearchCriteria,
    SearchHit,
    filter_records,
    search_catalogue,
)
from .models import (
    Appointment,
    CamelModel,
    Counselor,
    EmergencyContact,
    Feedback,
    FeedbackCategory,
    FeedbackType,
    JournalEntry,
    MoodEntry,
    MoodLabel,
    Resource,
    SessionType,
    Urgency,
)
from .pagination import Pagination, paginate, validate_window
from .ratings import record_feedback
from .ranking import (
    by_rating,
    newest_first,
    rank_by_relevance,
    sort_counselors,
    sort_resources,
)
from .seed import default_catalogue
from .store import JsonFileStore, RecordStore
from .utils import generate_id, utcnow

logger = logging.getLogger(__name__)

LOG_MAX_LIMIT = 100
CATALOGUE_MAX_LIMIT = 50
STAFF_ROLES = {"admin", "counselor"}


# API Request/Response Schemas
class RequestModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class MoodCreate(RequestModel):
    """Payload for a mood check-in."""

    mood: MoodLabel
    score: int = Field(..., ge=1, le=5)
    factors: list[str] = Field(default_factory=list)
    notes: str = Field("", max_length=1000)


class JournalCreate(RequestModel):
    title: str | None = Field(None, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)
    mood: MoodLabel | None = None
    tags: list[str] = Field(default_factory=list)


class AppointmentCreate(RequestModel):
    counselor_id: str
    session_type: SessionType
    preferred_date: date
    preferred_time: str = Field(..., pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
    reason: str = Field(..., min_length=10, max_length=500)
    urgency: Urgency = "medium"


class FeedbackCreate(RequestModel):
    """Payload for rating a resource, a counselor or the platform."""

    type: FeedbackType
    target_id: str | None = None
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=1000)
    category: FeedbackCategory | None = None


class MoodEntryResponse(CamelModel):
    message: str
    entry: MoodEntry


class MoodListResponse(CamelModel):
    entries: list[MoodEntry]
    pagination: Pagination


class JournalEntryResponse(CamelModel):
    message: str
    entry: JournalEntry


class JournalListResponse(CamelModel):
    entries: list[JournalEntry]
    pagination: Pagination


class ResourceListResponse(CamelModel):
    resources: list[Resource]
    pagination: Pagination


class ResourceResponse(CamelModel):
    resource: Resource


class CounselorListResponse(CamelModel):
    counselors: list[Counselor]
    pagination: Pagination


class CounselorResponse(CamelModel):
    counselor: Counselor


class AppointmentView(Appointment):
    """An appointment with the counselor's display details attached."""

    counselor_name: str
    counselor_title: str


class AppointmentResponse(CamelModel):
    message: str
    appointment: AppointmentView


class AppointmentListResponse(CamelModel):
    appointments: list[AppointmentView]
    pagination: Pagination


class FeedbackResponse(CamelModel):
    message: str
    feedback_id: str


class SearchResponse(CamelModel):
    query: str
    results: list[SearchHit]
    pagination: Pagination


class EmergencyContactsResponse(CamelModel):
    contacts: list[EmergencyContact]


class UserDataExport(CamelModel):
    export_date: str
    user_id: str
    mood_entries: list[MoodEntry]
    journal_entries: list[JournalEntry]
    appointments: list[Appointment]
    feedback: list[Feedback]


class SummaryResponse(CamelModel):
    analytics: PlatformSummary


# Caller identity, supplied by the authentication layer in front of the API
async def current_user(x_user_id: str | None = Header(None)) -> str:
    if x_user_id is None or not x_user_id.strip():
        raise AuthError("Access token required")
    return x_user_id.strip()


async def staff_user(
    user_id: str = Depends(current_user),
    x_user_role: str | None = Header(None),
) -> str:
    if x_user_role not in STAFF_ROLES:
        raise AuthError("Access denied", status_code=403)
    return user_id


def _appointment_view(
    appointment: Appointment, counselor: Counselor | None
) -> AppointmentView:
    return AppointmentView(
        **appointment.model_dump(),
        counselor_name=counselor.name if counselor else "Unknown",
        counselor_title=counselor.title if counselor else "Unknown",
    )


def create_app(record_store: RecordStore, settings: Settings | None = None) -> FastAPI:
    """
    Create a FastAPI application with the given record store.

    Args:
        record_store: The RecordStore instance to use for the application
        settings: Service settings (defaults when omitted)

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Load the store, run scheduled backups, flush on shutdown."""
        backup_task: asyncio.Task[None] | None = None
        if isinstance(record_store, JsonFileStore):
            await record_store.load(seed=default_catalogue())
            if settings.backup_interval > 0:
                backup_task = asyncio.create_task(
                    record_store.run_backups(settings.backup_interval)
                )
        yield
        if backup_task is not None:
            backup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await backup_task
        try:
            await record_store.flush()
        except PersistenceError:
            logger.exception("Final flush failed")
        else:
            logger.info("Store flushed, shutting down")

    app = FastAPI(
        title="Mindspace",
        description="Records and analytics API for a student wellbeing platform",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # MARK: - Error handlers

    @app.exception_handler(MindspaceError)
    async def handle_service_error(
        request: Request, exc: MindspaceError
    ) -> JSONResponse:
        if isinstance(exc, PersistenceError):
            logger.error(
                "Persistence failure on %s %s: %s",
                request.method,
                request.url.path,
                exc.message,
                exc_info=exc,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError.from_pydantic(exc)
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    # MARK: - Health

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "mindspace"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "OK",
            "timestamp": utcnow().isoformat(),
            "version": __version__,
        }

    # MARK: - Mood

    @app.post("/mood", status_code=201)
    async def create_mood_entry(
        payload: MoodCreate, user_id: str = Depends(current_user)
    ) -> MoodEntryResponse:
        """Record a mood check-in for the caller."""
        entry = MoodEntry(
            id=generate_id(),
            user_id=user_id,
            mood=payload.mood,
            score=payload.score,
            factors=payload.factors,
            notes=payload.notes,
            timestamp=utcnow(),
        )
        async with record_store.transaction() as database:
            database.mood_entries.append(entry)
        logger.info("Mood entry %s saved for user %s", entry.id, user_id)
        return MoodEntryResponse(message="Mood entry saved successfully", entry=entry)

    @app.get("/mood")
    async def list_mood_entries(
        limit: int = 50,
        offset: int = 0,
        start: str | None = Query(None, alias="from"),
        end: str | None = Query(None, alias="to"),
        user_id: str = Depends(current_user),
    ) -> MoodListResponse:
        """
        List the caller's mood entries, newest first.

        Args:
            limit: Page size (1-100)
            offset: Number of entries to skip
            start: Inclusive lower bound on the entry timestamp (ISO 8601)
            end: Inclusive upper bound on the entry timestamp (ISO 8601)
        """
        criteria = MoodCriteria.parse(**{"from": start, "to": end})
        validate_window(limit, offset, LOG_MAX_LIMIT)

        database = await record_store.read()
        owned = (entry for entry in database.mood_entries if entry.user_id == user_id)
        entries = filter_records(owned, criteria.predicates())
        page = paginate(
            newest_first(entries, lambda entry: entry.timestamp),
            limit,
            offset,
            LOG_MAX_LIMIT,
        )
        return MoodListResponse(entries=page.items, pagination=page.pagination)

    @app.get("/mood/analytics")
    async def get_mood_analytics(
        user_id: str = Depends(current_user),
    ) -> dict[str, Any]:
        """
        Summarise the caller's mood log.

        Returns:
            The analytics, or a "no data" message with null analytics
        """
        database = await record_store.read()
        owned = [entry for entry in database.mood_entries if entry.user_id == user_id]
        analytics: MoodAnalytics | None = compute_mood_analytics(owned)
        if analytics is None:
            return {"message": "no data", "analytics": None}
        return {"analytics": analytics.model_dump(mode="json", by_alias=True)}

    # MARK: - Journal

    @app.post("/journal", status_code=201)
    async def create_journal_entry(
        payload: JournalCreate, user_id: str = Depends(current_user)
    ) -> JournalEntryResponse:
        now = utcnow()
        entry = JournalEntry(
            id=generate_id(),
            user_id=user_id,
            title=payload.title or f"Journal Entry - {now.date().isoformat()}",
            content=payload.content,
            mood=payload.mood,
            tags=payload.tags,
            created_at=now,
            updated_at=now,
        )
        async with record_store.transaction() as database:
            database.journal_entries.append(entry)
        logger.info("Journal entry %s saved for user %s", entry.id, user_id)
        return JournalEntryResponse(
            message="Journal entry saved successfully", entry=entry
        )

    @app.get("/journal")
    async def list_journal_entries(
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
        user_id: str = Depends(current_user),
    ) -> JournalListResponse:
        criteria = JournalCriteria.parse(search=search)
        validate_window(limit, offset, LOG_MAX_LIMIT)

        database = await record_store.read()
        owned = (
            entry for entry in database.journal_entries if entry.user_id == user_id
        )
        entries = filter_records(owned, criteria.predicates())
        page = paginate(
            newest_first(entries, lambda entry: entry.created_at),
            limit,
            offset,
            LOG_MAX_LIMIT,
        )
        return JournalListResponse(entries=page.items, pagination=page.pagination)

    # MARK: - Resources

    @app.get("/resources")
    async def list_resources(
        category: str | None = None,
        type: str | None = None,
        difficulty: str | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> ResourceListResponse:
        """List published resources, best rated first."""
        criteria = ResourceCriteria.parse(
            category=category, type=type, difficulty=difficulty, search=search
        )
        validate_window(limit, offset, CATALOGUE_MAX_LIMIT)

        database = await record_store.read()
        resources = filter_records(database.resources, criteria.predicates())
        ranked = rank_by_relevance(sort_resources(resources), criteria.search)
        page = paginate(ranked, limit, offset, CATALOGUE_MAX_LIMIT)
        return ResourceListResponse(resources=page.items, pagination=page.pagination)

    @app.get("/resources/{resource_id}")
    async def get_resource(resource_id: str) -> ResourceResponse:
        """Fetch one published resource and count the view."""
        async with record_store.transaction() as database:
            resource = database.find("resources", resource_id)
            if resource is None or not resource.is_published:
                raise NotFoundError("Resource not found")
            resource = resource.model_copy(update={"views": resource.views + 1})
            database.replace("resources", resource)
        return ResourceResponse(resource=resource)

    # MARK: - Counselors

    @app.get("/counselors")
    async def list_counselors(
        specialty: str | None = None,
        location: str | None = None,
        availability: str | None = None,
        session_type: str | None = Query(None, alias="sessionType"),
        limit: int = 20,
        offset: int = 0,
    ) -> CounselorListResponse:
        """List active counselors, best rated first."""
        criteria = CounselorCriteria.parse(
            specialty=specialty,
            location=location,
            availability=availability,
            sessionType=session_type,
        )
        validate_window(limit, offset, CATALOGUE_MAX_LIMIT)

        database = await record_store.read()
        counselors = filter_records(database.counselors, criteria.predicates(utcnow()))
        page = paginate(sort_counselors(counselors), limit, offset, CATALOGUE_MAX_LIMIT)
        return CounselorListResponse(counselors=page.items, pagination=page.pagination)

    @app.get("/counselors/{counselor_id}")
    async def get_counselor(counselor_id: str) -> CounselorResponse:
        database = await record_store.read()
        counselor = database.find("counselors", counselor_id)
        if counselor is None or not counselor.is_active:
            raise NotFoundError("Counselor not found")
        return CounselorResponse(counselor=counselor)

    # MARK: - Appointments

    @app.post("/appointments", status_code=201)
    async def book_appointment(
        payload: AppointmentCreate, user_id: str = Depends(current_user)
    ) -> AppointmentResponse:
        """Request an appointment with an active counselor."""
        now = utcnow()
        async with record_store.transaction() as database:
            counselor = database.find("counselors", payload.counselor_id)
            if counselor is None or not counselor.is_active:
                raise NotFoundError("Counselor not found")
            if payload.session_type not in counselor.session_types:
                raise ValidationError.for_field(
                    "sessionType", "Counselor does not offer this session type"
                )
            appointment = Appointment(
                id=generate_id(),
                user_id=user_id,
                counselor_id=counselor.id,
                session_type=payload.session_type,
                preferred_date=payload.preferred_date,
                preferred_time=payload.preferred_time,
                reason=payload.reason,
                urgency=payload.urgency,
                created_at=now,
                updated_at=now,
            )
            database.appointments.append(appointment)

        logger.info(
            "Appointment %s requested with counselor %s (%s urgency)",
            appointment.id,
            counselor.id,
            appointment.urgency,
        )
        return AppointmentResponse(
            message="Appointment request submitted successfully",
            appointment=_appointment_view(appointment, counselor),
        )

    @app.get("/appointments")
    async def list_appointments(
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
        user_id: str = Depends(current_user),
    ) -> AppointmentListResponse:
        criteria = AppointmentCriteria.parse(status=status)
        validate_window(limit, offset, LOG_MAX_LIMIT)

        database = await record_store.read()
        owned = (item for item in database.appointments if item.user_id == user_id)
        appointments = filter_records(owned, criteria.predicates())
        page = paginate(
            newest_first(appointments, lambda item: item.created_at),
            limit,
            offset,
            LOG_MAX_LIMIT,
        )
        views = [
            _appointment_view(item, database.find("counselors", item.counselor_id))
            for item in page.items
        ]
        return AppointmentListResponse(appointments=views, pagination=page.pagination)

    # MARK: - Feedback

    @app.post("/feedback", status_code=201)
    async def submit_feedback(
        payload: FeedbackCreate, user_id: str = Depends(current_user)
    ) -> FeedbackResponse:
        """
        Store feedback and refresh the rating of the resource or counselor it
        targets.
        """
        feedback = Feedback(
            id=generate_id(),
            user_id=user_id,
            type=payload.type,
            target_id=payload.target_id,
            rating=payload.rating,
            comment=payload.comment,
            category=payload.category,
            created_at=utcnow(),
        )
        await record_feedback(record_store, feedback)
        return FeedbackResponse(
            message="Feedback submitted successfully", feedback_id=feedback.id
        )

    # MARK: - Search

    @app.get("/search")
    async def search(
        q: str | None = None,
        type: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResponse:
        """Search resources and counselors; title matches rank first."""
        criteria = SearchCriteria.parse(q=q, type=type)
        validate_window(limit, offset, CATALOGUE_MAX_LIMIT)

        database = await record_store.read()
        hits = search_catalogue(database.resources, database.counselors, criteria)
        ranked = rank_by_relevance(by_rating(hits), criteria.q)
        page = paginate(ranked, limit, offset, CATALOGUE_MAX_LIMIT)
        return SearchResponse(
            query=criteria.q, results=page.items, pagination=page.pagination
        )

    # MARK: - Misc

    @app.get("/emergency-contacts")
    async def list_emergency_contacts() -> EmergencyContactsResponse:
        database = await record_store.read()
        return EmergencyContactsResponse(
            contacts=[
                contact for contact in database.emergency_contacts if contact.is_active
            ]
        )

    @app.get("/export/user-data")
    async def export_user_data(user_id: str = Depends(current_user)) -> JSONResponse:
        """Download everything the caller has recorded."""
        database = await record_store.read()
        export = UserDataExport(
            export_date=utcnow().isoformat(),
            user_id=user_id,
            mood_entries=[e for e in database.mood_entries if e.user_id == user_id],
            journal_entries=[
                e for e in database.journal_entries if e.user_id == user_id
            ],
            appointments=[a for a in database.appointments if a.user_id == user_id],
            feedback=[f for f in database.feedback if f.user_id == user_id],
        )
        return JSONResponse(
            content=export.model_dump(mode="json", by_alias=True),
            headers={
                "Content-Disposition": "attachment; filename=mental-health-data.json"
            },
        )

    @app.get("/analytics/summary")
    async def platform_summary(user_id: str = Depends(staff_user)) -> SummaryResponse:
        """Platform-wide usage figures for counselors and admins."""
        database = await record_store.read()
        return SummaryResponse(analytics=compute_platform_summary(database))

    return app


def _default_app() -> FastAPI:
    settings = Settings.from_env()
    store = JsonFileStore(
        settings.db_path,
        backup_dir=settings.backup_dir,
        backup_keep=settings.backup_keep,
        io_timeout=settings.io_timeout,
    )
    return create_app(store, settings)


# Default app instance served by uvicorn
app = _default_app()


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "mindspace.server:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
