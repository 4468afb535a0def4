"""
Tests for criteria validation, predicate filtering and search.
"""

from datetime import timedelta

import pytest

from mindspace.errors import ValidationError
from mindspace.filters import (
    CounselorCriteria,
    MoodCriteria,
    ResourceCriteria,
    SearchCriteria,
    filter_records,
    search_catalogue,
    text_matches,
    within_range,
)
from mindspace.models import CounselorAvailability, Location


class TestHelpers:
    """Test suite for the filtering helpers."""

    def test_text_matches_any_field_case_insensitive(self):
        """Test that any field may match, ignoring case."""
        assert text_matches("breath", "Managing Stress", "Breathing exercises")
        assert text_matches("CALM", "Title", ["sleep", "calm-down"])
        assert not text_matches("yoga", "Title", None, ["sleep"])

    def test_within_range_is_inclusive(self, now):
        """Test that both range bounds are inclusive and optional."""
        assert within_range(now, now, now)
        assert within_range(now, start=now - timedelta(days=1))
        assert within_range(now, end=now + timedelta(seconds=1))
        assert not within_range(now, end=now - timedelta(seconds=1))

    def test_filter_records_requires_all_predicates(self):
        """Test that predicates combine with AND."""
        records = [1, 2, 3, 4, 5, 6]
        assert filter_records(records, []) == records
        kept = filter_records(records, [lambda n: n % 2 == 0, lambda n: n > 2])
        assert kept == [4, 6]


class TestCriteriaValidation:
    """Test suite for criteria parsing and validation."""

    def test_unknown_enum_value_fails_fast(self):
        """Test that an unknown category is rejected with its field."""
        with pytest.raises(ValidationError) as excinfo:
            ResourceCriteria.parse(category="sadness")
        assert excinfo.value.details[0]["field"] == "category"

    def test_absent_criteria_are_ignored(self):
        """Test that missing criteria add no predicate."""
        criteria = ResourceCriteria.parse(category=None, type=None, search=None)
        assert criteria.category is None
        assert len(criteria.predicates()) == 1  # published only

    def test_empty_search_rejected(self):
        """Test that an empty search string is rejected."""
        with pytest.raises(ValidationError):
            ResourceCriteria.parse(search="")

    def test_location_length_checked(self):
        """Test that a one-letter location is rejected."""
        with pytest.raises(ValidationError) as excinfo:
            CounselorCriteria.parse(location="x")
        assert excinfo.value.details[0]["field"] == "location"

    def test_reversed_date_range_rejected(self):
        """Test that from after to is rejected."""
        with pytest.raises(ValidationError):
            MoodCriteria.parse(**{"from": "2024-05-10", "to": "2024-05-01"})

    def test_invalid_date_rejected(self):
        """Test that an unparseable date names its field."""
        with pytest.raises(ValidationError) as excinfo:
            MoodCriteria.parse(**{"from": "yesterday"})
        assert excinfo.value.details[0]["field"] == "from"

    def test_search_requires_query(self):
        """Test that search needs a query."""
        with pytest.raises(ValidationError):
            SearchCriteria.parse(q=None)


class TestMoodFiltering:
    """Test suite for mood date-range filtering."""

    def test_date_range_bounds(self, make_mood, now):
        """Test inclusive from/to bounds on mood timestamps."""
        entries = [
            make_mood("old", 2, timestamp=now - timedelta(days=10)),
            make_mood("edge", 3, timestamp=now - timedelta(days=5)),
            make_mood("new", 4, timestamp=now),
        ]
        start = (now - timedelta(days=5)).isoformat()

        criteria = MoodCriteria.parse(**{"from": start})
        kept = filter_records(entries, criteria.predicates())
        assert [entry.id for entry in kept] == ["edge", "new"]

        criteria = MoodCriteria.parse(**{"from": start, "to": start})
        kept = filter_records(entries, criteria.predicates())
        assert [entry.id for entry in kept] == ["edge"]

    def test_bare_date_means_midnight_utc(self, make_mood, now):
        """Test that a bare date is read as midnight UTC."""
        entries = [make_mood("m1", 3, timestamp=now)]
        criteria = MoodCriteria.parse(**{"to": now.date().isoformat()})
        assert filter_records(entries, criteria.predicates()) == []


class TestCatalogueFiltering:
    """Test suite for resource and counselor filters."""

    def test_resource_criteria_combine_with_and(self, make_resource):
        """Test that resource criteria combine and hide unpublished items."""
        resources = [
            make_resource("r1", category="anxiety", type="video"),
            make_resource("r2", category="anxiety", type="article"),
            make_resource("r3", category="stress", type="video"),
            make_resource("r4", category="anxiety", type="video", is_published=False),
        ]
        criteria = ResourceCriteria.parse(category="anxiety", type="video")
        kept = filter_records(resources, criteria.predicates())
        assert [r.id for r in kept] == ["r1"]

    def test_resource_search_fields(self, make_resource):
        """Test that search covers title, description and tags."""
        resources = [
            make_resource("title", title="Sleep Hygiene"),
            make_resource("desc", description="Better SLEEP for exams"),
            make_resource("tag", tags=["sleep"]),
            make_resource("none", title="Exam stress"),
        ]
        criteria = ResourceCriteria.parse(search="sleep")
        kept = filter_records(resources, criteria.predicates())
        assert [r.id for r in kept] == ["title", "desc", "tag"]

    def test_counselor_specialty_location_session(self, make_counselor):
        """Test specialty, location and session type together."""
        counselors = [
            make_counselor("c1"),
            make_counselor("c2", specialties=["career"]),
            make_counselor("c3", location=Location(city="Delhi", state="Delhi")),
            make_counselor("c4", session_types=["group"]),
            make_counselor("c5", is_active=False),
        ]
        criteria = CounselorCriteria.parse(
            specialty="anxiety", location="maha", sessionType="online"
        )
        kept = filter_records(counselors, criteria.predicates())
        assert [c.id for c in kept] == ["c1"]

    def test_counselor_availability_windows(self, make_counselor, now):
        """Test the today, week and month availability windows."""
        def slot(delta):
            return CounselorAvailability(next_available=now + delta)

        counselors = [
            make_counselor("today", availability=slot(timedelta(hours=2))),
            make_counselor("week", availability=slot(timedelta(days=6))),
            make_counselor("month", availability=slot(timedelta(days=20))),
            make_counselor("later", availability=slot(timedelta(days=45))),
        ]

        def ids(window):
            criteria = CounselorCriteria.parse(availability=window)
            return [c.id for c in filter_records(counselors, criteria.predicates(now))]

        assert ids("today") == ["today"]
        assert ids("week") == ["today", "week"]
        assert ids("month") == ["today", "week", "month"]


class TestSearchCatalogue:
    """Test suite for cross-catalogue search."""

    def test_searches_both_catalogues(self, make_resource, make_counselor):
        """Test that search spans both catalogues unless narrowed."""
        resources = [make_resource("r1", title="Anxiety toolkit")]
        counselors = [
            make_counselor("c1", bio="Works with anxiety and panic"),
            make_counselor("c2", specialties=["career"], bio="Career coaching"),
        ]

        criteria = SearchCriteria.parse(q="anxiety")
        hits = search_catalogue(resources, counselors, criteria)
        assert [(hit.type, hit.id) for hit in hits] == [
            ("resource", "r1"),
            ("counselor", "c1"),
        ]

        hits = search_catalogue(
            resources, counselors, SearchCriteria.parse(q="anxiety", type="resources")
        )
        assert [hit.id for hit in hits] == ["r1"]
