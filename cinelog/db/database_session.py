import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from dotenv import load_dotenv


def get_db_url() -> str:
    load_dotenv()
    DB_URL = os.getenv("DB_URL")
    if not DB_URL:
        raise RuntimeError("Database connection URL not found in environment variables (DB_URL).")
    return DB_URL


def _build_engine(db_url: str):
    '''
    Creates the global engine. SQLite needs two tweaks to behave like the production
    store: connections are shared across the threadpool of FastAPI and foreign keys
    (cascade deletes of ratings) are off by default.
    '''
    if db_url.startswith("sqlite"):
        sqlite_engine = create_engine(db_url, connect_args={"check_same_thread": False})

        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(db_url, pool_pre_ping=True)


# Create global DB engine
engine = _build_engine(get_db_url())

# Create Session factory
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# Base class for models
class Base(DeclarativeBase):
    pass


def init_db() -> None:
    '''
    Creates all tables (users, media, ratings) including their unique indexes, if they
    don't exist yet.
    '''
    # Import models so they are registered on the metadata
    from cinelog.db.models import users, media, ratings  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    # Create  DB session
    db: Session = SessionLocal()
    try:
        # Return session
        yield db
    except Exception:
        # Request failed or got cancelled -> nothing uncommitted may survive
        db.rollback()
        raise
    finally:
        # Close session on second call
        db.close()
