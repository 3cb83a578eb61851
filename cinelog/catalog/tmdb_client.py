"""
cinelog/catalog/tmdb_client.py

Thin client for the TMDb v3 API. It is the only place in the application that talks
to the external catalog: the catalog routers proxy search/trending/discover calls
through it and the media resolver uses `fetch_details` to fill the local media cache.
"""
import os
import logging
from typing import Any, Callable, Dict, Optional

import requests
from dotenv import load_dotenv
from fastapi import HTTPException, Request, status
from pydantic import ValidationError as PydanticValidationError

from cinelog.api.media_type import MediaType
from cinelog.catalog.schemas import (
    TmdbMediaItem,
    TmdbMovieDetails,
    TmdbSearchResponse,
    TmdbTvDetails,
)
from cinelog.observability.metrics import CATALOG_REQUESTS
from cinelog.services.errors import ExternalDependencyError, UnsupportedOperationError


DEFAULT_BASE_URL = "https://api.themoviedb.org/3/"
DEFAULT_TIMEOUT = 10.0
TIME_WINDOWS = ("day", "week")

logger = logging.getLogger(__name__)


class TmdbClient:
    '''
    Wraps a pooled `requests.Session` (reuses TCP connections) configured for the
    TMDb API. Every failed call (transport error, non 2xx status or an answer that
    doesn't match the expected schema) is raised as ExternalDependencyError.
    '''

    def __init__(
            self,
            api_key: str,
            base_url: str = DEFAULT_BASE_URL,
            timeout: float = DEFAULT_TIMEOUT,
            session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ValueError("TMDb API key is required.")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        })

        # Media types the resolver can fetch details for
        self._detail_handlers: Dict[MediaType, Callable[[int], Any]] = {
            MediaType.MOVIE: self.get_movie_details,
            MediaType.TV: self.get_tv_details,
        }

    @classmethod
    def from_env(cls) -> Optional["TmdbClient"]:
        '''
        Builds a client from TMDB_API_KEY, TMDB_BASE_URL and TMDB_TIMEOUT. Returns None if
        no api key is configured, so the API can still start without catalog access.
        '''
        load_dotenv()
        api_key = os.getenv("TMDB_API_KEY")
        if not api_key:
            logger.warning("No TMDB_API_KEY found in env. Catalog endpoints are disabled.")
            return None

        return cls(
            api_key=api_key,
            base_url=os.getenv("TMDB_BASE_URL", DEFAULT_BASE_URL),
            timeout=float(os.getenv("TMDB_TIMEOUT", str(DEFAULT_TIMEOUT))),
        )

    def close(self) -> None:
        self.session.close()

    # _____________________________________________________________________________________________
    # Low level request
    # _____________________________________________________________________________________________

    def _get(self, endpoint: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = {"api_key": self.api_key}
        query.update({k: v for k, v in (params or {}).items() if v is not None})

        try:
            response = self.session.get(self.base_url + path, params=query, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            CATALOG_REQUESTS.labels(endpoint=endpoint, result="failure").inc()
            logger.error("TMDb request '%s' (%s) failed: %s", endpoint, path, exc)
            raise ExternalDependencyError(f"Catalog request '{endpoint}' failed.") from exc

        CATALOG_REQUESTS.labels(endpoint=endpoint, result="success").inc()
        return payload

    def _parse(self, endpoint: str, model, payload: Dict[str, Any]):
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            logger.error("TMDb answer of '%s' doesn't match %s: %s", endpoint, model.__name__, exc)
            raise ExternalDependencyError(f"Catalog returned an invalid answer for '{endpoint}'.") from exc

    # _____________________________________________________________________________________________
    # Search / lists
    # _____________________________________________________________________________________________

    def search_movies(self, query: str, page: int = 1) -> TmdbSearchResponse:
        logger.info("Searching movies with query: %s, page: %s", query, page)
        payload = self._get("search_movies", "search/movie", {"query": query, "page": page})
        return self._parse("search_movies", TmdbSearchResponse, payload)

    def search_tv(self, query: str, page: int = 1) -> TmdbSearchResponse:
        logger.info("Searching TV shows with query: %s, page: %s", query, page)
        payload = self._get("search_tv", "search/tv", {"query": query, "page": page})
        return self._parse("search_tv", TmdbSearchResponse, payload)

    def get_trending(self, media_type: MediaType, time_window: str = "week") -> TmdbSearchResponse:
        if time_window not in TIME_WINDOWS:
            raise ValueError(f"time_window must be one of {', '.join(TIME_WINDOWS)}.")

        media_type = MediaType.parse(media_type)
        payload = self._get("trending", f"trending/{media_type.value}/{time_window}")
        return self._parse("trending", TmdbSearchResponse, payload)

    def discover_movies(self, year: Optional[int] = None, genre: Optional[str] = None, page: int = 1) -> TmdbSearchResponse:
        params = {"page": page, "year": year, "with_genres": genre or None}
        payload = self._get("discover_movies", "discover/movie", params)
        return self._parse("discover_movies", TmdbSearchResponse, payload)

    def discover_tv(self, year: Optional[int] = None, genre: Optional[str] = None, page: int = 1) -> TmdbSearchResponse:
        params = {"page": page, "first_air_date_year": year, "with_genres": genre or None}
        payload = self._get("discover_tv", "discover/tv", params)
        return self._parse("discover_tv", TmdbSearchResponse, payload)

    # _____________________________________________________________________________________________
    # Details
    # _____________________________________________________________________________________________

    def get_movie_details(self, movie_id: int) -> TmdbMovieDetails:
        logger.info("Getting movie details for ID: %s", movie_id)
        payload = self._get("movie_details", f"movie/{movie_id}")
        return self._parse("movie_details", TmdbMovieDetails, payload)

    def get_tv_details(self, tv_id: int) -> TmdbTvDetails:
        logger.info("Getting TV show details for ID: %s", tv_id)
        payload = self._get("tv_details", f"tv/{tv_id}")
        return self._parse("tv_details", TmdbTvDetails, payload)

    def fetch_details(self, external_id: int, media_type: MediaType) -> TmdbMediaItem:
        '''
        Fetches the full details of one catalog item.

        Raises
        ------
        UnsupportedOperationError
            If there is no detail handler for the media type.
        ExternalDependencyError
            If the catalog call fails.
        '''
        handler = self._detail_handlers.get(MediaType.parse(media_type))
        if handler is None:
            raise UnsupportedOperationError(f"Fetching details for media type '{media_type}' is not supported.")
        return handler(external_id)


# _________________________________________________________________________________________________
# FastAPI dependency
# _________________________________________________________________________________________________

def get_catalog(request: Request) -> TmdbClient:
    '''
    Reads the catalog client from the api app.state.
    '''
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog not configured (TMDB_API_KEY missing).",
        )
    return catalog
