import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinelog.db.database_session import Base
from cinelog.db.models.users import utc_now
from cinelog.api.media_type import MediaType


class Media(Base):
    """
    ORM model for 'media' table. A row is a local, lazily created copy of one
    TMDb movie or tv show.

    Columns
    -------
    tmdb_id : int
        Id of the item in the external catalog.
    media_type : MediaType
        movie or tv. Together with tmdb_id the natural key of the row.
    genres : str
        JSON list of {"id", "name"} objects.
    production_countries : str
        JSON list of {"iso_3166_1", "name"} objects.
    """

    __tablename__ = "media"
    __table_args__ = (
        # At most one row per catalog item. A second concurrent insert fails here
        UniqueConstraint("tmdb_id", "media_type", name="uq_media_tmdb_id_media_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tmdb_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    media_type: Mapped[MediaType] = mapped_column(
        # Store "movie"/"tv" instead of the enum names
        Enum(MediaType, values_callable=lambda e: [m.value for m in e], name="media_type"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    original_title: Mapped[Optional[str]] = mapped_column(String(1000))
    overview: Mapped[Optional[str]] = mapped_column(Text)
    release_date: Mapped[Optional[date]] = mapped_column(Date)
    poster_path: Mapped[Optional[str]] = mapped_column(String(500))
    backdrop_path: Mapped[Optional[str]] = mapped_column(String(500))
    genres: Mapped[Optional[str]] = mapped_column(Text)
    runtime: Mapped[Optional[int]] = mapped_column(Integer)
    tmdb_vote_average: Mapped[Optional[float]] = mapped_column(Numeric(3, 1))
    tmdb_vote_count: Mapped[Optional[int]] = mapped_column(Integer)
    popularity: Mapped[Optional[float]] = mapped_column(Numeric(10, 3))
    original_language: Mapped[Optional[str]] = mapped_column(String(10))
    production_countries: Mapped[Optional[str]] = mapped_column(Text)
    imdb_id: Mapped[Optional[str]] = mapped_column(String(15))
    adult: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    budget: Mapped[Optional[int]] = mapped_column(BigInteger)
    revenue: Mapped[Optional[int]] = mapped_column(BigInteger)
    tagline: Mapped[Optional[str]] = mapped_column(String(1000))
    homepage: Mapped[Optional[str]] = mapped_column(String(2000))
    status: Mapped[Optional[str]] = mapped_column(String(50))
    number_of_seasons: Mapped[Optional[int]] = mapped_column(Integer)
    number_of_episodes: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    ratings: Mapped[List["Rating"]] = relationship(
        back_populates="media",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def display_title(self) -> str:
        if self.original_title and self.original_title != self.title:
            return f"{self.title} ({self.original_title})"
        return self.title
