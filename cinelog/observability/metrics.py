"""
cinelog/observability/metrics.py

This module contains Prometheus metrics definitions.
Keeping metrics in a dedicated module prevents circular imports
between FastAPI app startup (main.py), the routers and the services.
"""

from prometheus_client import Counter


"""
Counter for rating operations.
Labels:
    operation: upsert, get, list, stats or delete
    result: success or failure
"""
RATING_REQUESTS = Counter(
    name="cinelog_rating_requests_total",
    documentation="Total number of rating requests.",
    labelnames=["operation", "result"],
)


"""
Counter for outbound calls to the TMDb catalog.
Labels:
    endpoint: Name of the catalog call (search_movies, movie_details, ...)
    result: success or failure
"""
CATALOG_REQUESTS = Counter(
    name="cinelog_catalog_requests_total",
    documentation="Total number of requests sent to the external catalog.",
    labelnames=["endpoint", "result"],
)


"""
Counter for media lookups by the resolver.
Labels:
    result: hit (row existed), miss (row created) or race (row created concurrently by another request)
"""
MEDIA_CACHE = Counter(
    name="cinelog_media_cache_total",
    documentation="Media resolver lookups by outcome.",
    labelnames=["result"],
)
