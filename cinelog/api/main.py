from __future__ import annotations
import logging
from datetime import datetime, timezone

from sqlalchemy import text

from fastapi import FastAPI, HTTPException, status
from fastapi.responses import JSONResponse, Response
from fastapi.requests import Request
from contextlib import asynccontextmanager

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from cinelog.db.database_session import engine, init_db
from cinelog.api.routers import auth, ratings, media, catalog
from cinelog.catalog.tmdb_client import TmdbClient
from cinelog.services.errors import (
    CineLogError,
    ConflictError,
    ExternalDependencyError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    UnsupportedOperationError,
    ValidationError,
)


# _________________________________________________________________________________________________________
# API Endpoints
# _________________________________________________________________________________________________________

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

# Domain error -> HTTP status. Looked up along the class hierarchy.
ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    ConflictError: status.HTTP_409_CONFLICT,
    ExternalDependencyError: status.HTTP_502_BAD_GATEWAY,
    UnsupportedOperationError: status.HTTP_501_NOT_IMPLEMENTED,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan handler: runs once at startup and once at shutdown.
    Ensures that the tables exist and that the catalog client is available
    in app.state.catalog when the API starts.
    """
    # Create tables and unique indexes
    init_db()
    logger.info("[startup] Database tables ready")

    # Catalog client (None if no api key is configured)
    app.state.catalog = TmdbClient.from_env()
    if app.state.catalog is not None:
        logger.info("[startup] Stored TMDb client in app.state.catalog")

    yield                                       # app runs while yielded
    logger.info("[shutdown] App shutting down")
    if app.state.catalog is not None:
        app.state.catalog.close()
    app.state.catalog = None


app = FastAPI(
    title="CineLog API",
    description="Track and rate movies and tv shows. Catalog data is proxied from TMDb.",
    lifespan=lifespan
)

# Include router endpoints
app.include_router(auth.router)
app.include_router(ratings.router)
app.include_router(media.router)
app.include_router(catalog.movies_router)
app.include_router(catalog.tv_router)


@app.get("/health", tags=["System"])
def health_check(request: Request):
    """
    Lightweight healthcheck endpoint.
    Verifies connectivity to the database and reports whether the catalog is configured.
    Returns 200 OK if the database is reachable, else 500.
    """
    status_report = {"timestamp": datetime.now(timezone.utc).isoformat()}

    # Check database connectivity
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        status_report["database"] = "reachable"
    except Exception as e:
        logger.exception("Health check could not reach the database")
        status_report["database"] = f"unreachable ({type(e).__name__})"

    # Check catalog configuration
    configured = getattr(request.app.state, "catalog", None) is not None
    status_report["catalog"] = "configured" if configured else "not configured"

    if status_report["database"] != "reachable":
        raise HTTPException(status_code=500, detail=status_report)
    return status_report


@app.exception_handler(CineLogError)
async def domain_error_handler(request: Request, exc: CineLogError):
    '''
    Every time a domain error occurs Fast API routes it to this handler, which picks
    the status code of its class. Errors of the external catalog only return a
    generic message, the details end up in the logs.
    '''
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

    if isinstance(exc, ExternalDependencyError):
        logger.warning("Catalog failure on %s %s: %s", request.method, request.url.path, exc)
        detail = "The movie catalog is currently unavailable. Please try again later."
    else:
        detail = str(exc)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


@app.exception_handler(ValueError)
async def value_error_handler(_: Request, exc: ValueError):
    '''
    Every time a value error occurs Fast API routes this error to this handler instead of crashing.
    '''
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    '''
    Catches any other exception that wasn’t explicitly handled and returns a 500 JSON response instead.
    '''
    logger.exception("Unhandled error in %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error."},
    )


@app.get("/metrics")
def metrics():
    """
    Prometheus scrape endpoint.
    Returns all registered metrics in Prometheus text format.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
