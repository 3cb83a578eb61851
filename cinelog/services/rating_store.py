"""
cinelog/services/rating_store.py

Ratings of users for movies and tv shows. A user has at most one rating per media
item: submitting again updates the existing row in place. The acting user id is
always passed in explicitly by the API layer.
"""
import uuid
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinelog.api.schemas import RatingResponse
from cinelog.db.models.ratings import Rating
from cinelog.db.models.users import utc_now
from cinelog.services.errors import ForbiddenError, ValidationError
from cinelog.services.media_resolver import find_media, resolve_media


MIN_SCORE = Decimal("0.5")
MAX_SCORE = Decimal("10.0")
SCORE_STEP = Decimal("0.5")
MAX_REVIEW_LENGTH = 2000
MAX_PAGE_SIZE = 100

# Attempts of the find-or-insert cycle. The second one runs after a concurrent insert won the race.
UPSERT_ATTEMPTS = 2

logger = logging.getLogger(__name__)


def validate_score(score) -> Decimal:
    '''
    Checks that the score is a number between 0.5 and 10.0 in steps of 0.5.

    Returns
    -------
    The score as Decimal with one decimal place.

    Raises
    ------
    ValidationError
        Naming the violated rule.
    '''
    if isinstance(score, bool):
        raise ValidationError("Rating must be a number.")
    try:
        value = score if isinstance(score, Decimal) else Decimal(str(score))
    except (InvalidOperation, ValueError):
        raise ValidationError("Rating must be a number.") from None

    if not value.is_finite():
        raise ValidationError("Rating must be a number.")
    if value < MIN_SCORE or value > MAX_SCORE:
        raise ValidationError("Rating must be between 0.5 and 10.")
    if value % SCORE_STEP != 0:
        raise ValidationError("Rating must be in increments of 0.5.")

    return value.quantize(Decimal("0.1"))


def validate_review(review: Optional[str]) -> Optional[str]:
    if review is None:
        return None
    review = review.strip()
    if len(review) > MAX_REVIEW_LENGTH:
        raise ValidationError(f"Review cannot exceed {MAX_REVIEW_LENGTH} characters.")
    return review


def to_rating_response(rating: Rating) -> RatingResponse:
    '''
    Maps a rating to its response shape. User and media display fields are read
    through the relationships at this point, they are not stored on the rating.
    '''
    user = rating.user
    media = rating.media

    return RatingResponse(
        id=rating.id,
        user_id=rating.user_id,
        media_id=rating.media_id,
        rating=float(rating.rating),
        review=rating.review,
        is_spoiler=rating.is_spoiler,
        created_at=rating.created_at,
        updated_at=rating.updated_at,
        username=user.username if user else "Unknown User",
        user_avatar_url=user.avatar_url if user else None,
        media_title=media.title if media else "Unknown Media",
        media_poster_url=media.poster_path if media else None,
        media_type=media.media_type.value if media else "unknown",
        tmdb_id=media.tmdb_id if media else 0,
        star_rating=rating.star_rating(),
        has_review=rating.has_review,
    )


def find_rating(db: Session, user_id: uuid.UUID, media_id: uuid.UUID) -> Optional[Rating]:
    stmt = select(Rating).where(Rating.user_id == user_id, Rating.media_id == media_id)
    return db.scalars(stmt).first()


def upsert_rating(
        db: Session,
        catalog,
        user_id: uuid.UUID,
        tmdb_id: int,
        media_type,
        score,
        review: Optional[str] = None,
        is_spoiler: bool = False,
) -> RatingResponse:
    '''
    Creates the rating of a user for a movie or tv show, or updates it if the user
    already rated the item. The media row is resolved (and created from the catalog
    if needed) first; media insert and rating write are committed together.

    Parameters
    ----------
    db: Session
        Request scoped DB session.
    catalog: TmdbClient
        Catalog used by the media resolver on a cache miss.
    user_id: UUID
        The acting user.
    tmdb_id, media_type:
        The rated catalog item.
    score:
        0.5 - 10.0 in steps of 0.5.
    review: str
        Optional review, at most 2000 chars.
    is_spoiler: bool
        Marks the review as spoiler.

    Returns
    -------
    RatingResponse
        The stored rating with user and media display fields.

    Raises
    ------
    ValidationError
        Bad score, review, id or media type. Checked before the catalog is called.
    UnsupportedOperationError, ExternalDependencyError
        From the media resolver.
    '''
    score = validate_score(score)
    review = validate_review(review)

    for attempt in range(1, UPSERT_ATTEMPTS + 1):
        media = resolve_media(db, catalog, tmdb_id, media_type)

        # Check if user has already rated this media
        rating = find_rating(db, user_id, media.id)
        if rating is not None:
            logger.info("Updating existing rating %s", rating.id)
            rating.update(score, review, is_spoiler)
        else:
            logger.info("Creating new rating for user %s and media %s", user_id, media.id)
            now = utc_now()
            rating = Rating(
                id=uuid.uuid4(),
                user_id=user_id,
                media_id=media.id,
                rating=score,
                review=review,
                is_spoiler=is_spoiler,
                created_at=now,
                updated_at=now,
            )
            db.add(rating)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt == UPSERT_ATTEMPTS:
                raise
            # Parallel request of the same user inserted first -> update his row instead
            logger.info("Rating of user %s for %s was created concurrently, retrying", user_id, tmdb_id)
            continue
        break

    logger.info("Saved rating %s for '%s'", rating.id, rating.media.title)
    return to_rating_response(rating)


def delete_rating(db: Session, rating_id: uuid.UUID, requesting_user_id: uuid.UUID) -> bool:
    '''
    Deletes a rating of the requesting user.

    Returns
    -------
    True if the rating got deleted, False if it doesn't exist.

    Raises
    ------
    ForbiddenError
        If the rating belongs to another user.
    '''
    rating = db.get(Rating, rating_id)
    if rating is None:
        return False

    if rating.user_id != requesting_user_id:
        raise ForbiddenError("You can only delete your own ratings.")

    db.delete(rating)
    db.commit()

    logger.info("Deleted rating %s by user %s", rating_id, requesting_user_id)
    return True


def get_rating_for_user_and_media(db: Session, user_id: uuid.UUID, tmdb_id: int, media_type) -> Optional[RatingResponse]:
    '''
    Returns the user's rating of a catalog item or None. A media item that isn't
    cached locally has no ratings, so it yields None as well (the catalog is not called).
    '''
    media = find_media(db, tmdb_id, media_type)
    if media is None:
        return None

    rating = find_rating(db, user_id, media.id)
    if rating is None:
        return None

    return to_rating_response(rating)


def list_ratings_for_user(db: Session, user_id: uuid.UUID, page: int = 1, page_size: int = 20) -> List[RatingResponse]:
    """Ratings of a user, newest first."""
    if page < 1:
        raise ValidationError("page must be >= 1.")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}.")

    stmt = (
        select(Rating)
        .where(Rating.user_id == user_id)
        .order_by(Rating.created_at.desc(), Rating.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return [to_rating_response(rating) for rating in db.scalars(stmt)]
