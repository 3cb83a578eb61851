import os
import tempfile

# Point the app at a throw-away SQLite DB before any cinelog module creates the engine
_TEST_DIR = tempfile.mkdtemp(prefix="cinelog-tests-")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'cinelog_test.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("TMDB_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from cinelog.api.main import app
from cinelog.api.media_type import MediaType
from cinelog.api.security import create_access_token
from cinelog.catalog.schemas import TmdbMovieDetails, TmdbSearchResponse, TmdbTvDetails
from cinelog.catalog.tmdb_client import get_catalog
from cinelog.db.database_session import Base, SessionLocal, engine, init_db
from cinelog.services.accounts import register_user
from cinelog.services.errors import UnsupportedOperationError


def movie_details(tmdb_id: int, title="Fight Club", **fields) -> TmdbMovieDetails:
    data = {
        "id": tmdb_id,
        "title": title,
        "original_title": title,
        "overview": "An insomniac office worker and a soap maker form an underground fight club.",
        "release_date": "1999-10-15",
        "poster_path": "/poster.jpg",
        "backdrop_path": "/backdrop.jpg",
        "vote_average": 8.4,
        "vote_count": 27000,
        "popularity": 61.4,
        "original_language": "en",
        "imdb_id": "tt0137523",
        "runtime": 139,
        "budget": 63000000,
        "revenue": 100853753,
        "genres": [{"id": 18, "name": "Drama"}],
        "production_countries": [{"iso_3166_1": "US", "name": "United States of America"}],
        "tagline": "Mischief. Mayhem. Soap.",
        "homepage": "http://www.foxmovies.com/movies/fight-club",
        "status": "Released",
    }
    data.update(fields)
    return TmdbMovieDetails.model_validate(data)


def tv_details(tmdb_id: int, name="Breaking Bad", **fields) -> TmdbTvDetails:
    data = {
        "id": tmdb_id,
        "name": name,
        "original_name": name,
        "overview": "A chemistry teacher turns to making meth.",
        "first_air_date": "2008-01-20",
        "poster_path": "/bb.jpg",
        "vote_average": 8.9,
        "vote_count": 13000,
        "number_of_seasons": 5,
        "number_of_episodes": 62,
        "episode_run_time": [45, 47],
        "genres": [{"id": 18, "name": "Drama"}, {"id": 80, "name": "Crime"}],
        "status": "Ended",
    }
    data.update(fields)
    return TmdbTvDetails.model_validate(data)


class FakeCatalog:
    '''
    Stands in for TmdbClient. Details are registered per (tmdb_id, media_type);
    unknown ids get generated details. Every detail call is recorded.
    '''

    def __init__(self):
        self.details = {}
        self.calls = []
        self.error = None
        self.supported = {MediaType.MOVIE, MediaType.TV}
        self.before_return = None

    def add(self, tmdb_id, media_type, details):
        self.details[(tmdb_id, MediaType.parse(media_type))] = details

    def fetch_details(self, tmdb_id, media_type):
        media_type = MediaType.parse(media_type)
        self.calls.append((tmdb_id, media_type))
        if media_type not in self.supported:
            raise UnsupportedOperationError(f"Fetching details for media type '{media_type.value}' is not supported.")
        if self.error is not None:
            raise self.error

        details = self.details.get((tmdb_id, media_type))
        if details is None:
            details = movie_details(tmdb_id, title=f"Movie {tmdb_id}") if media_type == MediaType.MOVIE \
                else tv_details(tmdb_id, name=f"Show {tmdb_id}")

        if self.before_return is not None:
            self.before_return(tmdb_id, media_type)
        return details

    def search_movies(self, query, page=1):
        self.calls.append(("search_movies", query, page))
        return TmdbSearchResponse(page=page, results=[movie_details(550)], total_pages=1, total_results=1)

    def search_tv(self, query, page=1):
        self.calls.append(("search_tv", query, page))
        return TmdbSearchResponse(page=page, results=[tv_details(1396)], total_pages=1, total_results=1)

    def get_trending(self, media_type, time_window="week"):
        self.calls.append(("trending", MediaType.parse(media_type), time_window))
        return TmdbSearchResponse(page=1, results=[], total_pages=0, total_results=0)

    def discover_movies(self, year=None, genre=None, page=1):
        self.calls.append(("discover_movies", year, genre, page))
        return TmdbSearchResponse(page=page)

    def discover_tv(self, year=None, genre=None, page=1):
        self.calls.append(("discover_tv", year, genre, page))
        return TmdbSearchResponse(page=page)

    def get_movie_details(self, movie_id):
        return self.fetch_details(movie_id, MediaType.MOVIE)

    def get_tv_details(self, tv_id):
        return self.fetch_details(tv_id, MediaType.TV)


@pytest.fixture(autouse=True)
def db_tables():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)
    # Pooled connections would otherwise keep the schema of the dropped tables cached
    engine.dispose()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def make_user(db):
    def _make_user(username="alice", email=None, password="secret-password"):
        return register_user(db, username=username, email=email or f"{username}@example.com", password=password)
    return _make_user


@pytest.fixture
def client(catalog):
    app.dependency_overrides[get_catalog] = lambda: catalog
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token, _ = create_access_token(user)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers
