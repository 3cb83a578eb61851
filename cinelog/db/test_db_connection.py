import os

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from cinelog.api.media_type import MediaType
from cinelog.db.database_session import SessionLocal, engine, get_db, get_db_url
from cinelog.db.models.media import Media


def test_db_connection():
    assert get_db_url() == os.environ["DB_URL"]
    with engine.connect() as connection:
        assert connection.execute(text("SELECT 1")).scalar() == 1


def test_unique_indexes_exist():
    with engine.connect() as connection:
        inspector = inspect(connection)
        media_uniques = {tuple(c["column_names"]) for c in inspector.get_unique_constraints("media")}
        rating_uniques = {tuple(c["column_names"]) for c in inspector.get_unique_constraints("ratings")}

    assert ("tmdb_id", "media_type") in media_uniques
    assert ("user_id", "media_id") in rating_uniques


def test_duplicate_media_insert_is_rejected():
    session = SessionLocal()
    try:
        session.add(Media(tmdb_id=5, media_type=MediaType.MOVIE, title="A"))
        session.commit()
        session.add(Media(tmdb_id=5, media_type=MediaType.MOVIE, title="B"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()
    finally:
        session.close()


def test_get_db_rolls_back_on_error():
    generator = get_db()
    session = next(generator)
    session.add(Media(tmdb_id=6, media_type=MediaType.TV, title="Pending"))
    session.flush()

    with pytest.raises(RuntimeError):
        generator.throw(RuntimeError("request cancelled"))

    check = SessionLocal()
    try:
        assert check.query(Media).filter(Media.tmdb_id == 6).first() is None
    finally:
        check.close()
