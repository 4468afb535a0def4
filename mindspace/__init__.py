"""
Mindspace - records and analytics service for a student wellbeing platform.

This package provides the REST backend behind the mood tracker, resource
library and counselor directory: a persisted record store, filtered and
paginated listings, mood analytics and feedback-driven ratings.
"""

__version__ = "0.1.0"
