import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import (
    Mapped,
    mapped_column,
    relationship
)

from cinelog.db.database_session import Base
from cinelog.db.models.users import utc_now


class Rating(Base):
    """
    ORM model for 'ratings' table.

    Columns
    -------
    user_id : UUID
        Owner of the rating, foreign key referencing users.id.
    media_id : UUID
        Rated item, foreign key referencing media.id.
    rating : Decimal
        Score between 0.5 and 10.0 in steps of 0.5.
    review : str
        Optional free text, at most 2000 chars.
    is_spoiler : bool
        Marks reviews that reveal the plot.
    """

    __tablename__ = "ratings"
    __table_args__ = (
        # One rating per user and media
        UniqueConstraint("user_id", "media_id", name="uq_ratings_user_id_media_id"),
        Index("ix_ratings_media_id_created_at", "media_id", "created_at"),
        Index("ix_ratings_user_id_created_at", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    media_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("media.id", ondelete="CASCADE"),
        nullable=False
    )

    rating: Mapped[Decimal] = mapped_column(
        Numeric(3, 1),
        nullable=False
    )

    review: Mapped[Optional[str]] = mapped_column(String(2000))

    is_spoiler: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    user: Mapped["User"] = relationship(back_populates="ratings")
    media: Mapped["Media"] = relationship(back_populates="ratings")

    def update(self, rating: Decimal, review: Optional[str], is_spoiler: bool) -> None:
        self.rating = rating
        self.review = review.strip() if review is not None else None
        self.is_spoiler = is_spoiler
        self.updated_at = utc_now()

    @property
    def has_review(self) -> bool:
        return bool(self.review and self.review.strip())

    def star_rating(self) -> str:
        '''
        Renders the 10 point score as five stars, e.g. 7.5 -> "★★★☆☆".
        A remainder of at least one point shows up as an extra hollow star.
        '''
        score = Decimal(self.rating)
        full_stars = int(score // 2)
        has_half_star = score % 2 >= 1
        empty_stars = 5 - full_stars - (1 if has_half_star else 0)
        return "★" * full_stars + ("☆" if has_half_star else "") + "☆" * empty_stars
