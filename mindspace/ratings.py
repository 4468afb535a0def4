"""
Aggregate ratings for resources and counselors.

A target's rating is always rebuilt from the whole feedback log rather than
adjusted incrementally, so recomputing any number of times gives the same
result.
"""

import logging

from .errors import NotFoundError
from .models import Counselor, Feedback, FeedbackType, Resource
from .store import Database, RecordStore
from .utils import round_half_up

logger = logging.getLogger(__name__)

_COLLECTIONS = {"resource": "resources", "counselor": "counselors"}


def feedback_for(
    feedback: list[Feedback], target_type: FeedbackType, target_id: str
) -> list[Feedback]:
    return [
        item
        for item in feedback
        if item.type == target_type and item.target_id == target_id
    ]


def aggregate_rating(ratings: list[int]) -> float | None:
    """Mean rating rounded half-up to one decimal, None without ratings."""
    if not ratings:
        return None
    return round_half_up(sum(ratings) / len(ratings), 1)


def recompute_target_rating(
    database: Database, target_type: FeedbackType, target_id: str
) -> Resource | Counselor:
    """
    Rebuild one target's rating (and review count for counselors).

    The updated record replaces the stored one in `database`, which should be
    a draft inside a store transaction.

    Raises:
        NotFoundError: The target type is not rateable or no such record exists
    """
    collection = _COLLECTIONS.get(target_type)
    if collection is None:
        raise NotFoundError(f"{target_type} feedback has no rating target")

    target = database.find(collection, target_id)
    if target is None:
        raise NotFoundError(f"{target_type.capitalize()} {target_id} not found")

    matching = feedback_for(database.feedback, target_type, target_id)
    ratings = [item.rating for item in matching]
    rating = aggregate_rating(ratings)
    if rating is None:
        return target

    update: dict[str, float | int] = {"rating": rating}
    if isinstance(target, Counselor):
        update["reviews"] = len(ratings)

    updated = target.model_copy(update=update)
    database.replace(collection, updated)
    logger.debug(
        "Recomputed %s %s rating: %.1f from %d reviews",
        target_type,
        target_id,
        rating,
        len(ratings),
    )
    return updated


def recompute_all_ratings(database: Database) -> int:
    """
    Rebuild every target that has feedback. Targets without any feedback
    keep their catalogue rating.

    Returns:
        Number of targets updated
    """
    targets = {
        (item.type, item.target_id)
        for item in database.feedback
        if item.type in _COLLECTIONS and item.target_id
    }
    updated = 0
    for target_type, target_id in sorted(targets):
        try:
            recompute_target_rating(database, target_type, target_id)
        except NotFoundError as e:
            logger.warning("Skipping feedback target: %s", e.message)
            continue
        updated += 1
    return updated


async def record_feedback(store: RecordStore, feedback: Feedback) -> Feedback:
    """
    Append feedback and refresh its target's rating in one transaction.

    A missing target does not reject the feedback: it is stored and the
    rating update is skipped.
    """
    async with store.transaction() as database:
        database.feedback.append(feedback)
        if feedback.type in _COLLECTIONS and feedback.target_id:
            try:
                recompute_target_rating(database, feedback.type, feedback.target_id)
            except NotFoundError as e:
                logger.warning(
                    "Feedback %s stored without rating update: %s",
                    feedback.id,
                    e.message,
                )
    logger.info("Feedback %s recorded (%s)", feedback.id, feedback.type)
    return feedback
