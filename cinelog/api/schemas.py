import uuid
from datetime import date, datetime
from decimal import Decimal
from pydantic import AliasChoices, BaseModel, EmailStr, Field
from typing import Optional, List


#___________________________________________________________________________________________________
# General schemas
#___________________________________________________________________________________________________

class MessageResponse(BaseModel):
    """Plain informational answer."""
    message: str = Field(..., description="Informational message")


class RatingDistribution(BaseModel):
    """Ratings of one media item counted in five fixed score bands (10 point scale).

    Fields:
    - five_star: score >= 9
    - four_star: 7 <= score < 9
    - three_star: 5 <= score < 7
    - two_star: 3 <= score < 5
    - one_star: score < 3
    """
    five_star: int = Field(0, description="Ratings >= 9")
    four_star: int = Field(0, description="Ratings in [7, 9)")
    three_star: int = Field(0, description="Ratings in [5, 7)")
    two_star: int = Field(0, description="Ratings in [3, 5)")
    one_star: int = Field(0, description="Ratings < 3")


#___________________________________________________________________________________________________
# Request schemas
#___________________________________________________________________________________________________

class RegisterRequest(BaseModel):
    """Request model used when registering a new user.

    Fields:
    - username: public handle, 3-50 chars of letters, digits, '_' and '-'
    - email: user's email address (stored lower cased)
    - password: plain-text password (will be hashed before storage)
    """
    username: str = Field(..., description="Public user name")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, max_length=128, description="Plain-text password (will be hashed)")
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class ChangePasswordRequest(BaseModel):
    """Request model to change the password of the logged in user."""
    current_password: str = Field(..., description="Password currently in use")
    new_password: str = Field(..., min_length=8, max_length=128, description="New plain-text password")


class VerifyEmailRequest(BaseModel):
    """Request model to confirm an email address."""
    token: str = Field(..., min_length=1, description="Email verification token")


class CreateRatingRequest(BaseModel):
    """Input schema for creating or updating the current user's rating of a movie or tv show.

    Fields:
    - tmdb_id: TMDb id of the rated item
    - media_type: "movie" or "tv"
    - rating: score between 0.5 and 10.0 in steps of 0.5
    - review: optional review text
    - is_spoiler: marks the review as spoiler
    """
    tmdb_id: int = Field(
        ...,
        validation_alias=AliasChoices("tmdb_id", "tmdbId", "external_id", "externalId"),
        description="TMDb id of the movie or tv show.",
        examples=[550],
    )
    media_type: str = Field(
        "movie",
        validation_alias=AliasChoices("media_type", "mediaType", "kind"),
        description="Media type: 'movie' or 'tv'.",
    )
    rating: Decimal = Field(
        ...,
        validation_alias=AliasChoices("rating", "score"),
        description="Score between 0.5 and 10.0 in steps of 0.5.",
        examples=[8.5],
    )
    review: Optional[str] = Field(None, description="Optional review text, at most 2000 chars after trimming.")
    is_spoiler: bool = Field(
        False,
        validation_alias=AliasChoices("is_spoiler", "isSpoiler"),
        description="True if the review contains spoilers.",
    )


#___________________________________________________________________________________________________
# Response schemas
#___________________________________________________________________________________________________

class UserResponse(BaseModel):
    """Public user representation.

    Fields:
    - id: user identifier
    - username: public handle
    - email: user's email address
    - is_email_verified: whether the email got verified
    """
    id: uuid.UUID = Field(..., description="User ID")
    username: str = Field(..., description="User name")
    email: EmailStr = Field(..., description="User email address")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_email_verified: bool = Field(..., description="Whether the email address is verified")
    created_at: datetime


class Token(BaseModel):
    """Authentication token response.

    Fields:
    - access_token: the JWT access token
    - token_type: token type (usually "bearer")
    - expires_at: expiry of the access token
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (usually 'bearer')")
    expires_at: Optional[datetime] = Field(None, description="Expiry of the access token (UTC)")


class AuthResponse(Token):
    """Token plus the user it was issued for, returned after registration."""
    user: UserResponse


class RatingResponse(BaseModel):
    """A rating enriched with display fields of its user and media.

    The user and media fields are joined at read time, they are not stored on the rating.
    """
    id: uuid.UUID
    user_id: uuid.UUID
    media_id: uuid.UUID
    rating: float = Field(..., description="Score between 0.5 and 10.0")
    review: Optional[str] = None
    is_spoiler: bool = False
    created_at: datetime
    updated_at: datetime

    # User information
    username: str = Field(..., description="Name of the rating user")
    user_avatar_url: Optional[str] = None

    # Media information
    media_title: str
    media_poster_url: Optional[str] = None
    media_type: str
    tmdb_id: int

    # Display helpers
    star_rating: str = Field(..., description="Score rendered as five stars")
    has_review: bool = False


class MediaRatingStatsResponse(BaseModel):
    """Aggregate rating statistics of one media item, recomputed on every request."""
    media_id: uuid.UUID
    tmdb_id: int
    media_title: str
    media_type: str
    average_rating: float = Field(0.0, description="Mean score rounded to one decimal, 0 without ratings")
    total_ratings: int = Field(0, description="Number of ratings")
    distribution: RatingDistribution = Field(default_factory=RatingDistribution)
    recent_ratings: List[RatingResponse] = Field(default_factory=list, description="Five newest ratings")


class DeleteRatingResponse(BaseModel):
    """Output schema for deleting a rating."""
    deleted: bool
    message: str


class MediaResponse(BaseModel):
    """Cached projection of a catalog item."""
    id: uuid.UUID
    tmdb_id: int
    media_type: str
    title: str
    display_title: str
    original_title: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[date] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    genres: List[dict] = Field(default_factory=list)
    runtime: Optional[int] = None
    tmdb_vote_average: Optional[float] = None
    tmdb_vote_count: Optional[int] = None
    popularity: Optional[float] = None
    original_language: Optional[str] = None
    production_countries: List[dict] = Field(default_factory=list)
    imdb_id: Optional[str] = None
    adult: bool = False
    budget: Optional[int] = None
    revenue: Optional[int] = None
    tagline: Optional[str] = None
    homepage: Optional[str] = None
    status: Optional[str] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    created_at: datetime
    updated_at: datetime
