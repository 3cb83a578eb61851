from enum import Enum

from cinelog.services.errors import InvalidMediaKindError


class MediaType(str, Enum):
    """
    Discriminator between the two catalog namespaces. A TMDb id is only unique
    together with its media type.
    """
    MOVIE = "movie"
    TV = "tv"

    @classmethod
    def parse(cls, value) -> "MediaType":
        '''
        Parses a media type string case-insensitively. Besides "movie" and "tv" the
        aliases "film" and "series" are accepted.

        Raises
        ------
        InvalidMediaKindError
            If the string does not name a known media type.
        '''
        if isinstance(value, cls):
            return value

        normalized = str(value or "").strip().lower()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidMediaKindError(f"Invalid media type: {value}") from None


_ALIASES = {
    "film": MediaType.MOVIE.value,
    "series": MediaType.TV.value,
}
