from cinelog.api.main import app
from cinelog.api.media_type import MediaType
from cinelog.catalog.tmdb_client import get_catalog


def test_search_movies_proxies_to_catalog(client, catalog):
    response = client.get("/api/movies/search", params={"query": "fight club", "page": 2})

    assert response.status_code == 200
    assert response.json()["results"][0]["title"] == "Fight Club"
    assert ("search_movies", "fight club", 2) in catalog.calls


def test_search_requires_query(client):
    assert client.get("/api/movies/search").status_code == 422
    assert client.get("/api/tvshows/search", params={"query": "  "}).status_code == 422


def test_trending_checks_time_window(client, catalog):
    assert client.get("/api/tvshows/trending", params={"time_window": "day"}).status_code == 200
    assert ("trending", MediaType.TV, "day") in catalog.calls
    assert client.get("/api/movies/trending", params={"time_window": "year"}).status_code == 422


def test_discover_and_details(client, catalog):
    assert client.get("/api/movies/discover", params={"year": 1999, "genre": "18"}).status_code == 200
    assert ("discover_movies", 1999, "18", 1) in catalog.calls

    details = client.get("/api/tvshows/1396")
    assert details.status_code == 200
    assert details.json()["name"] == "Show 1396"


def test_media_endpoint_caches_item(client, catalog):
    first = client.get("/api/media/movie/550")
    second = client.get("/api/media/film/550")

    assert first.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["genres"] == [{"id": 18, "name": "Drama"}]
    assert len([c for c in catalog.calls if c == (550, MediaType.MOVIE)]) == 1


def test_refresh_requires_login(client, catalog, make_user, auth_headers):
    assert client.post("/api/media/movie/550/refresh").status_code == 401

    response = client.post("/api/media/movie/550/refresh", headers=auth_headers(make_user("alice")))
    assert response.status_code == 200
    assert response.json()["tmdb_id"] == 550


def test_catalog_missing_returns_503(client):
    # Remove the fake catalog -> the app.state catalog (None without api key) is used
    app.dependency_overrides.pop(get_catalog)

    assert client.get("/api/movies/search", params={"query": "x"}).status_code == 503


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "reachable"
    assert response.json()["catalog"] == "not configured"
