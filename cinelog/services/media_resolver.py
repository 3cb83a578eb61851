"""
cinelog/services/media_resolver.py

Get-or-create of local media rows. The media table is the cache of the external
catalog: a row is created from the catalog details on the first request for a
(tmdb_id, media_type) pair and returned unchanged afterwards. Refreshing a row is
an explicit, separate operation (`refresh_media`).
"""
import json
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinelog.api.media_type import MediaType
from cinelog.db.models.media import Media
from cinelog.db.models.users import utc_now
from cinelog.observability.metrics import MEDIA_CACHE
from cinelog.services.errors import ValidationError


UNKNOWN_TITLES = {
    MediaType.MOVIE: "Unknown Title",
    MediaType.TV: "Unknown Series",
}

logger = logging.getLogger(__name__)


def parse_catalog_date(value: Optional[str]) -> Optional[date]:
    '''
    Parses a catalog date ("2008-07-16", sometimes with a time part) leniently.
    Empty or unparsable values become None instead of an error.
    '''
    if not value or not str(value).strip():
        return None

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _dump_genres(genres) -> Optional[str]:
    if not genres:
        return None
    return json.dumps([{"id": g.id, "name": g.name} for g in genres])


def _dump_countries(countries) -> Optional[str]:
    if not countries:
        return None
    return json.dumps([{"iso_3166_1": c.iso_3166_1, "name": c.name} for c in countries])


def load_json_list(blob: Optional[str]) -> List[dict]:
    """Decodes a genres / production_countries blob back into a list."""
    if not blob:
        return []
    try:
        value = json.loads(blob)
    except ValueError:
        logger.warning("Stored media blob is not valid JSON: %r", blob[:100])
        return []
    return value if isinstance(value, list) else []


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


def apply_details(media: Media, details, media_type: MediaType) -> Media:
    '''
    Overwrites all catalog fields of the media row with the given details. Fields
    that only exist for one media type (budget for movies, seasons for tv) are read
    with getattr so both detail models can be applied.

    Parameters
    ----------
    media: Media
        Row to fill, new or existing.
    details: TmdbMovieDetails | TmdbTvDetails
        Details as returned by the catalog.
    media_type: MediaType
        Decides which source fields feed title, original title and release date.
    '''
    if media_type == MediaType.TV:
        title = details.name or details.title
        original_title = details.original_name or details.original_title
        release_date = details.first_air_date or details.release_date
        run_times = getattr(details, "episode_run_time", None) or []
        runtime = run_times[0] if run_times else None
    else:
        title = details.title or details.name
        original_title = details.original_title or details.original_name
        release_date = details.release_date
        runtime = getattr(details, "runtime", None)

    media.title = (_strip(title) or UNKNOWN_TITLES[media_type])
    media.original_title = _strip(original_title)
    media.overview = _strip(details.overview)
    media.release_date = parse_catalog_date(release_date)
    media.poster_path = _strip(details.poster_path)
    media.backdrop_path = _strip(details.backdrop_path)
    media.genres = _dump_genres(getattr(details, "genres", None))
    media.runtime = runtime
    media.tmdb_vote_average = details.vote_average
    media.tmdb_vote_count = details.vote_count
    media.popularity = details.popularity
    media.original_language = _strip(details.original_language)
    media.production_countries = _dump_countries(getattr(details, "production_countries", None))
    media.imdb_id = _strip(getattr(details, "imdb_id", None))
    media.adult = bool(details.adult)
    media.budget = getattr(details, "budget", None)
    media.revenue = getattr(details, "revenue", None)
    media.tagline = _strip(getattr(details, "tagline", None))
    media.homepage = _strip(getattr(details, "homepage", None))
    media.status = _strip(getattr(details, "status", None))
    media.number_of_seasons = getattr(details, "number_of_seasons", None)
    media.number_of_episodes = getattr(details, "number_of_episodes", None)
    media.updated_at = utc_now()
    return media


def media_from_details(details, tmdb_id: int, media_type: MediaType) -> Media:
    """Builds a new (not yet persisted) media row from catalog details."""
    now = utc_now()
    media = Media(tmdb_id=tmdb_id, media_type=media_type, created_at=now)
    return apply_details(media, details, media_type)


def _check_tmdb_id(tmdb_id: int) -> int:
    if isinstance(tmdb_id, bool) or not isinstance(tmdb_id, int) or tmdb_id <= 0:
        raise ValidationError("TMDb ID must be a positive integer.")
    return tmdb_id


def find_media(db: Session, tmdb_id: int, media_type) -> Optional[Media]:
    '''
    Looks up the cached media row of a catalog item. Never calls the catalog.

    Raises
    ------
    InvalidMediaKindError
        If media_type is not a known media type.
    '''
    media_type = MediaType.parse(media_type)
    stmt = select(Media).where(Media.tmdb_id == tmdb_id, Media.media_type == media_type)
    return db.scalars(stmt).first()


def resolve_media(db: Session, catalog, tmdb_id: int, media_type) -> Media:
    '''
    Returns the local media row of a catalog item and creates it from the catalog
    details if it doesn't exist yet. The new row is flushed but not committed, the
    caller owns the transaction.

    If two requests miss at the same time, the unique index on (tmdb_id, media_type)
    rejects the second insert. The loser rolls back and returns the row of the winner.
    The insert is the first write of every workflow that resolves media, so the
    rollback only discards this insert.

    Parameters
    ----------
    db: Session
        Request scoped DB session.
    catalog: TmdbClient
        Any object with a `fetch_details(tmdb_id, media_type)` method.
    tmdb_id: int
        Positive catalog id.
    media_type: str | MediaType
        "movie" or "tv" (aliases "film", "series").

    Raises
    ------
    ValidationError / InvalidMediaKindError
        Bad id or media type.
    UnsupportedOperationError, ExternalDependencyError
        Raised by the catalog; nothing is persisted in that case.
    '''
    media_type = MediaType.parse(media_type)
    _check_tmdb_id(tmdb_id)

    # Check if media already exists in DB
    existing = find_media(db, tmdb_id, media_type)
    if existing is not None:
        MEDIA_CACHE.labels(result="hit").inc()
        logger.info("Media found in DB: %s (TMDb ID: %s)", existing.title, tmdb_id)
        return existing

    logger.info("Fetching media from catalog: ID %s, type %s", tmdb_id, media_type.value)
    details = catalog.fetch_details(tmdb_id, media_type)
    media = media_from_details(details, tmdb_id, media_type)

    db.add(media)
    try:
        db.flush()
    except IntegrityError:
        # Someone else inserted the same catalog item in the meantime -> use his row
        db.rollback()
        winner = find_media(db, tmdb_id, media_type)
        if winner is None:
            raise
        MEDIA_CACHE.labels(result="race").inc()
        logger.info("Media %s/%s was created concurrently, using existing row %s", media_type.value, tmdb_id, winner.id)
        return winner

    MEDIA_CACHE.labels(result="miss").inc()
    logger.info("Created new media in DB: %s (TMDb ID: %s)", media.title, tmdb_id)
    return media


def refresh_media(db: Session, catalog, tmdb_id: int, media_type) -> Media:
    '''
    Re-syncs a cached media row with the catalog: all catalog fields get overwritten
    (not merged). Creates the row if it is not cached yet. Flushes, the caller commits.
    '''
    media_type = MediaType.parse(media_type)
    _check_tmdb_id(tmdb_id)

    media = find_media(db, tmdb_id, media_type)
    if media is None:
        return resolve_media(db, catalog, tmdb_id, media_type)

    details = catalog.fetch_details(tmdb_id, media_type)
    apply_details(media, details, media_type)
    db.flush()

    logger.info("Refreshed media %s (TMDb ID: %s)", media.title, tmdb_id)
    return media
