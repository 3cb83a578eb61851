from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from cinelog.api.media_type import MediaType
from cinelog.catalog.schemas import TmdbMovieDetails, TmdbSearchResponse, TmdbTvDetails
from cinelog.catalog.tmdb_client import TIME_WINDOWS, TmdbClient, get_catalog


# Pass-through endpoints to the TMDb catalog. Nothing is stored here.
movies_router = APIRouter(prefix="/api/movies", tags=["movies"])
tv_router = APIRouter(prefix="/api/tvshows", tags=["tvshows"])


def _require_query(query: str) -> str:
    if not query or not query.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Search query is required.",
        )
    return query.strip()


def _check_time_window(time_window: str) -> str:
    if time_window not in TIME_WINDOWS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"time_window must be one of {', '.join(TIME_WINDOWS)}.",
        )
    return time_window


#___________________________________________________________________________________________________
# Movies
#___________________________________________________________________________________________________

@movies_router.get("/search", response_model=TmdbSearchResponse)
def search_movies(
    query: str = Query("", description="Search text"),
    page: int = Query(1, ge=1, le=500),
    catalog: TmdbClient = Depends(get_catalog),
):
    """Searches TMDb movies by title."""
    return catalog.search_movies(_require_query(query), page=page)


@movies_router.get("/trending", response_model=TmdbSearchResponse)
def trending_movies(
    time_window: str = Query("week", description="'day' or 'week'"),
    catalog: TmdbClient = Depends(get_catalog),
):
    """Trending movies of the day or week."""
    return catalog.get_trending(MediaType.MOVIE, _check_time_window(time_window))


@movies_router.get("/discover", response_model=TmdbSearchResponse)
def discover_movies(
    year: Optional[int] = Query(None, ge=1870, le=2100),
    genre: Optional[str] = Query(None, description="TMDb genre id(s), comma separated"),
    page: int = Query(1, ge=1, le=500),
    catalog: TmdbClient = Depends(get_catalog),
):
    """Discovers movies filtered by year and genre."""
    return catalog.discover_movies(year=year, genre=genre, page=page)


@movies_router.get("/{movie_id}", response_model=TmdbMovieDetails)
def get_movie_details(
    movie_id: int,
    catalog: TmdbClient = Depends(get_catalog),
):
    """Full TMDb details of a movie."""
    return catalog.get_movie_details(movie_id)


#___________________________________________________________________________________________________
# TV shows
#___________________________________________________________________________________________________

@tv_router.get("/search", response_model=TmdbSearchResponse)
def search_tv_shows(
    query: str = Query("", description="Search text"),
    page: int = Query(1, ge=1, le=500),
    catalog: TmdbClient = Depends(get_catalog),
):
    """Searches TMDb tv shows by name."""
    return catalog.search_tv(_require_query(query), page=page)


@tv_router.get("/trending", response_model=TmdbSearchResponse)
def trending_tv_shows(
    time_window: str = Query("week", description="'day' or 'week'"),
    catalog: TmdbClient = Depends(get_catalog),
):
    """Trending tv shows of the day or week."""
    return catalog.get_trending(MediaType.TV, _check_time_window(time_window))


@tv_router.get("/discover", response_model=TmdbSearchResponse)
def discover_tv_shows(
    year: Optional[int] = Query(None, ge=1920, le=2100),
    genre: Optional[str] = Query(None, description="TMDb genre id(s), comma separated"),
    page: int = Query(1, ge=1, le=500),
    catalog: TmdbClient = Depends(get_catalog),
):
    """Discovers tv shows filtered by first air year and genre."""
    return catalog.discover_tv(year=year, genre=genre, page=page)


@tv_router.get("/{tv_id}", response_model=TmdbTvDetails)
def get_tv_details(
    tv_id: int,
    catalog: TmdbClient = Depends(get_catalog),
):
    """Full TMDb details of a tv show."""
    return catalog.get_tv_details(tv_id)
