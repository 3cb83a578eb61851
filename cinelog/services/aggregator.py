"""
cinelog/services/aggregator.py

Rating statistics of a media item. Nothing is maintained incrementally: every call
loads all ratings of the item and recomputes count, average, band distribution and
the list of newest ratings.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from cinelog.api.schemas import MediaRatingStatsResponse, RatingDistribution
from cinelog.db.models.ratings import Rating
from cinelog.services.errors import NotFoundError
from cinelog.services.media_resolver import find_media
from cinelog.services.rating_store import to_rating_response


N_RECENT_RATINGS = 5

logger = logging.getLogger(__name__)


def average_score(scores: List[Decimal]) -> float:
    '''
    Arithmetic mean rounded half up to one decimal (5.25 -> 5.3). Returns 0.0 for
    an empty list.
    '''
    if not scores:
        return 0.0
    mean = sum(Decimal(s) for s in scores) / len(scores)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def score_distribution(scores: Iterable[Decimal]) -> RatingDistribution:
    """Counts scores in the five bands <3, [3,5), [5,7), [7,9) and >=9."""
    distribution = RatingDistribution()
    for score in scores:
        if score >= 9:
            distribution.five_star += 1
        elif score >= 7:
            distribution.four_star += 1
        elif score >= 5:
            distribution.three_star += 1
        elif score >= 3:
            distribution.two_star += 1
        else:
            distribution.one_star += 1
    return distribution


def stats_for(db: Session, tmdb_id: int, media_type) -> MediaRatingStatsResponse:
    '''
    Computes the rating statistics of a catalog item.

    Parameters
    ----------
    db: Session
        DB session.
    tmdb_id: int
        TMDb id of the item.
    media_type: str | MediaType
        "movie" or "tv".

    Returns
    -------
    MediaRatingStatsResponse
        Count, average, distribution and the five newest ratings.

    Raises
    ------
    NotFoundError
        If the item was never cached locally.
    InvalidMediaKindError
        If media_type is unknown.
    '''
    media = find_media(db, tmdb_id, media_type)
    if media is None:
        raise NotFoundError(f"Media not found: TMDb ID {tmdb_id}")

    # Full load, there is no pagination of ratings per media
    ratings = list(db.scalars(select(Rating).where(Rating.media_id == media.id)))
    scores = [Decimal(r.rating) for r in ratings]

    recent = sorted(ratings, key=lambda r: r.created_at, reverse=True)[:N_RECENT_RATINGS]

    logger.info("Computed stats for %s/%s over %d ratings", media.media_type.value, tmdb_id, len(ratings))

    return MediaRatingStatsResponse(
        media_id=media.id,
        tmdb_id=media.tmdb_id,
        media_title=media.title,
        media_type=media.media_type.value,
        average_rating=average_score(scores),
        total_ratings=len(ratings),
        distribution=score_distribution(scores),
        recent_ratings=[to_rating_response(r) for r in recent],
    )
