"""Starter catalogue written when a new database file is created."""

from datetime import datetime, timedelta

from .models import (
    Counselor,
    CounselorAvailability,
    EmergencyContact,
    Location,
    Resource,
)
from .store import Database
from .utils import utcnow


def default_catalogue(now: datetime | None = None) -> Database:
    now = now or utcnow()

    resources = [
        Resource(
            id="1",
            title="Managing Anxiety & Stress",
            description=(
                "Comprehensive guide on coping strategies, breathing exercises, "
                "and mindfulness techniques."
            ),
            content="Detailed content about anxiety management...",
            type="guide",
            category="anxiety",
            tags=["anxiety", "stress", "self-help"],
            author="Dr. Mental Health Expert",
            difficulty="beginner",
            estimated_read_time="10 minutes",
            rating=4.5,
            publish_date=now,
        ),
        Resource(
            id="2",
            title="Understanding Depression",
            description=(
                "Educational material about depression symptoms, treatment "
                "options, and recovery strategies."
            ),
            content="Detailed content about depression...",
            type="article",
            category="depression",
            tags=["depression", "education", "recovery"],
            author="Dr. Clinical Psychologist",
            difficulty="intermediate",
            estimated_read_time="15 minutes",
            rating=4.7,
            publish_date=now,
        ),
    ]

    counselors = [
        Counselor(
            id="1",
            name="Dr. Priya Sharma",
            title="Clinical Psychologist",
            bio=(
                "Licensed clinical psychologist specializing in anxiety, "
                "depression, and student mental health."
            ),
            specialties=["anxiety", "depression", "student-support"],
            qualifications=[
                "Ph.D. in Clinical Psychology",
                "Licensed Clinical Psychologist",
            ],
            experience=8,
            languages=["English", "Hindi", "Kannada"],
            location=Location(city="Bangalore", state="Karnataka"),
            availability=CounselorAvailability(
                next_available=now + timedelta(days=1), emergency_available=True
            ),
            session_types=["individual", "group", "online"],
            fees={"consultation": 2000, "followUp": 1500, "emergency": 3000},
            rating=4.8,
            reviews=156,
        ),
        Counselor(
            id="2",
            name="Dr. Rahul Mehta",
            title="Psychiatrist",
            bio=(
                "Board-certified psychiatrist with expertise in stress management, "
                "academic pressure, and medication management."
            ),
            specialties=["stress", "academic-pressure", "medication-management"],
            qualifications=[
                "M.D. Psychiatry",
                "Fellowship in Child and Adolescent Psychiatry",
            ],
            experience=12,
            languages=["English", "Hindi", "Marathi"],
            location=Location(city="Mumbai", state="Maharashtra"),
            availability=CounselorAvailability(next_available=now + timedelta(days=2)),
            session_types=["individual", "online"],
            fees={"consultation": 2500, "followUp": 2000, "emergency": 4000},
            rating=4.9,
            reviews=203,
        ),
    ]

    emergency_contacts = [
        EmergencyContact(
            id="1",
            name="KIRAN Mental Health Helpline",
            phone="1800-599-0019",
            type="national",
            available="24/7",
            description="National toll-free mental health helpline",
        ),
        EmergencyContact(
            id="2",
            name="Vandrevala Foundation",
            phone="9999-666-555",
            type="crisis",
            available="24/7",
            description="Crisis support and counseling helpline",
            website="https://www.vandrevalafoundation.com/",
        ),
        EmergencyContact(
            id="3",
            name="Snehi Helpline",
            phone="91-20-6570-9090",
            type="emotional",
            available="10 AM to 10 PM",
            description="Emotional support and crisis intervention",
            website="http://snehifoundation.com/",
        ),
    ]

    return Database(
        resources=resources,
        counselors=counselors,
        emergency_contacts=emergency_contacts,
    )
