from fastapi import APIRouter, Depends

from sqlalchemy.orm import Session

from cinelog.db.database_session import get_db
from cinelog.db.models.media import Media
from cinelog.db.models.users import User
from cinelog.api.schemas import MediaResponse
from cinelog.api.security import get_current_user
from cinelog.catalog.tmdb_client import TmdbClient, get_catalog
from cinelog.services.media_resolver import load_json_list, refresh_media, resolve_media


router = APIRouter(prefix="/api/media", tags=["media"])


def to_media_response(media: Media) -> MediaResponse:
    return MediaResponse(
        id=media.id,
        tmdb_id=media.tmdb_id,
        media_type=media.media_type.value,
        title=media.title,
        display_title=media.display_title(),
        original_title=media.original_title,
        overview=media.overview,
        release_date=media.release_date,
        poster_path=media.poster_path,
        backdrop_path=media.backdrop_path,
        genres=load_json_list(media.genres),
        runtime=media.runtime,
        tmdb_vote_average=float(media.tmdb_vote_average) if media.tmdb_vote_average is not None else None,
        tmdb_vote_count=media.tmdb_vote_count,
        popularity=float(media.popularity) if media.popularity is not None else None,
        original_language=media.original_language,
        production_countries=load_json_list(media.production_countries),
        imdb_id=media.imdb_id,
        adult=media.adult,
        budget=media.budget,
        revenue=media.revenue,
        tagline=media.tagline,
        homepage=media.homepage,
        status=media.status,
        number_of_seasons=media.number_of_seasons,
        number_of_episodes=media.number_of_episodes,
        created_at=media.created_at,
        updated_at=media.updated_at,
    )


@router.get("/{media_type}/{tmdb_id}", response_model=MediaResponse)
def get_media(
    media_type: str,
    tmdb_id: int,
    db: Session = Depends(get_db),
    catalog: TmdbClient = Depends(get_catalog),
):
    '''
    Returns the cached copy of a catalog item. On the first request for an item
    its details are fetched from TMDb and stored.
    '''
    media = resolve_media(db, catalog, tmdb_id, media_type)
    db.commit()
    return to_media_response(media)


@router.post("/{media_type}/{tmdb_id}/refresh", response_model=MediaResponse)
def refresh_cached_media(
    media_type: str,
    tmdb_id: int,
    db: Session = Depends(get_db),
    catalog: TmdbClient = Depends(get_catalog),
    _: User = Depends(get_current_user),
):
    '''
    Re-fetches the details of a catalog item and overwrites the cached copy.

    `Requires:` Login
    '''
    media = refresh_media(db, catalog, tmdb_id, media_type)
    db.commit()
    return to_media_response(media)
