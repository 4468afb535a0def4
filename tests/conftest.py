"""
Shared fixtures for the Mindspace test suite.
"""

from datetime import datetime

import pytest

from factories import (
    NOW,
    build_counselor,
    build_feedback,
    build_mood,
    build_resource,
)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_mood():
    return build_mood


@pytest.fixture
def make_resource():
    return build_resource


@pytest.fixture
def make_counselor():
    return build_counselor


@pytest.fixture
def make_feedback():
    return build_feedback
