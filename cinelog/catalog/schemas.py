from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


#___________________________________________________________________________________________________
# TMDb payloads
#___________________________________________________________________________________________________

class TmdbModel(BaseModel):
    """Base for TMDb payloads. Unknown keys of the catalog answer are ignored."""
    model_config = ConfigDict(extra="ignore")


class TmdbGenre(TmdbModel):
    id: int
    name: str = ""


class TmdbProductionCountry(TmdbModel):
    iso_3166_1: str = ""
    name: str = ""


class TmdbMediaItem(TmdbModel):
    """One entry of a search, trending or discover result list (movies use title, tv uses name)."""
    id: int
    title: Optional[str] = None
    name: Optional[str] = None
    original_title: Optional[str] = None
    original_name: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    first_air_date: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    popularity: Optional[float] = None
    genre_ids: List[int] = Field(default_factory=list)
    adult: bool = False
    original_language: Optional[str] = None
    media_type: Optional[str] = None


class TmdbMovieDetails(TmdbMediaItem):
    """Response of `GET movie/{id}`."""
    imdb_id: Optional[str] = None
    runtime: Optional[int] = None
    budget: Optional[int] = None
    revenue: Optional[int] = None
    genres: List[TmdbGenre] = Field(default_factory=list)
    production_countries: List[TmdbProductionCountry] = Field(default_factory=list)
    tagline: Optional[str] = None
    homepage: Optional[str] = None
    status: Optional[str] = None


class TmdbTvDetails(TmdbMediaItem):
    """Response of `GET tv/{id}`."""
    number_of_episodes: Optional[int] = None
    number_of_seasons: Optional[int] = None
    episode_run_time: List[int] = Field(default_factory=list)
    last_air_date: Optional[str] = None
    genres: List[TmdbGenre] = Field(default_factory=list)
    production_countries: List[TmdbProductionCountry] = Field(default_factory=list)
    tagline: Optional[str] = None
    homepage: Optional[str] = None
    status: Optional[str] = None
    in_production: bool = False
    type: Optional[str] = None


class TmdbSearchResponse(TmdbModel):
    """Paged result list returned by search, trending and discover calls."""
    page: int = 1
    results: List[TmdbMediaItem] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0
