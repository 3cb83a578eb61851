import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import String, Boolean, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinelog.db.database_session import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Table definition for table called "users".
    """
    # Define table name
    __tablename__ = "users"

    # UUID primary key, generated on the python side
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(
        String(50),         # 3-50 chars, checked before insert
        unique=True,        # Usernames are public handles -> must be unique
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),        # Stored lower cased
        unique=True,
        index=True,
        nullable=False,
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),        # Never the raw password
        nullable=False,
    )
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    bio: Mapped[Optional[str]] = mapped_column(String(500))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500))
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    # Deleting a user removes all of his ratings (ORM side and FK side)
    ratings: Mapped[List["Rating"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def change_password(self, new_hashed_password: str) -> None:
        self.hashed_password = new_hashed_password
        self.updated_at = utc_now()

    def verify_email(self) -> None:
        self.is_email_verified = True
        self.updated_at = utc_now()
