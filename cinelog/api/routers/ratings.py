import uuid
from typing import List

from fastapi import APIRouter, HTTPException, Query, status, Depends

from sqlalchemy.orm import Session

from cinelog.db.models.users import User
from cinelog.db.database_session import get_db
from cinelog.api.schemas import (
    CreateRatingRequest,
    DeleteRatingResponse,
    MediaRatingStatsResponse,
    RatingResponse,
)
from cinelog.api.security import get_current_user
from cinelog.catalog.tmdb_client import TmdbClient, get_catalog
from cinelog.observability.metrics import RATING_REQUESTS
from cinelog.services.aggregator import stats_for
from cinelog.services.rating_store import (
    delete_rating,
    get_rating_for_user_and_media,
    list_ratings_for_user,
    upsert_rating,
)


router = APIRouter(prefix="/api/ratings", tags=["ratings"])


@router.post(
    "",
    response_model=RatingResponse,
)
def create_or_update_rating(
    request: CreateRatingRequest,
    db: Session = Depends(get_db),
    catalog: TmdbClient = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    '''
    Rates a movie or tv show for the logged in user. Rating the same item again
    overwrites score, review and spoiler flag of the existing rating.

    **Parameters:**\n
    `request` (CreateRatingRequest): tmdb_id, media_type, rating, review, is_spoiler\n

    **Returns:**\n
    `RatingResponse`(response_model): the stored rating with user and media display fields.
    '''
    try:
        result = upsert_rating(
            db,
            catalog,
            user_id=current_user.id,
            tmdb_id=request.tmdb_id,
            media_type=request.media_type,
            score=request.rating,
            review=request.review,
            is_spoiler=request.is_spoiler,
        )
    except Exception:
        RATING_REQUESTS.labels(operation="upsert", result="failure").inc()
        raise

    RATING_REQUESTS.labels(operation="upsert", result="success").inc()
    return result


@router.get(
    "/my-ratings",
    response_model=List[RatingResponse],
)
def get_my_ratings(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Returns the ratings of the logged in user, newest first."""
    RATING_REQUESTS.labels(operation="list", result="success").inc()
    return list_ratings_for_user(db, current_user.id, page=page, page_size=page_size)


@router.get(
    "/my-rating/{media_type}/{tmdb_id}",
    response_model=RatingResponse,
)
def get_my_rating_for_media(
    media_type: str,
    tmdb_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Returns the logged in user's rating of a movie or tv show, 404 if he didn't rate it."""
    rating = get_rating_for_user_and_media(db, current_user.id, tmdb_id, media_type)
    if rating is None:
        RATING_REQUESTS.labels(operation="get", result="failure").inc()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You haven't rated this media yet.",
        )

    RATING_REQUESTS.labels(operation="get", result="success").inc()
    return rating


@router.get(
    "/media/{media_type}/{tmdb_id}",
    response_model=MediaRatingStatsResponse,
)
def get_media_rating_stats(
    media_type: str,
    tmdb_id: int,
    db: Session = Depends(get_db),
):
    '''
    Rating statistics of a movie or tv show: number of ratings, average, distribution
    over five score bands and the five newest ratings. No login required.
    '''
    try:
        stats = stats_for(db, tmdb_id, media_type)
    except Exception:
        RATING_REQUESTS.labels(operation="stats", result="failure").inc()
        raise

    RATING_REQUESTS.labels(operation="stats", result="success").inc()
    return stats


@router.delete(
    "/{rating_id}",
    response_model=DeleteRatingResponse,
)
def delete_my_rating(
    rating_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Deletes a rating of the logged in user. 404 if it doesn't exist, 403 if it isn't his."""
    try:
        deleted = delete_rating(db, rating_id, current_user.id)
    except Exception:
        RATING_REQUESTS.labels(operation="delete", result="failure").inc()
        raise

    if not deleted:
        RATING_REQUESTS.labels(operation="delete", result="failure").inc()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rating not found.")

    RATING_REQUESTS.labels(operation="delete", result="success").inc()
    return DeleteRatingResponse(deleted=True, message="Rating deleted successfully.")
