from decimal import Decimal

import pytest

from cinelog.api.media_type import MediaType
from cinelog.db.models.media import Media
from cinelog.db.models.ratings import Rating
from cinelog.services.errors import InvalidMediaKindError


@pytest.mark.parametrize(
    "score, stars",
    [
        ("10.0", "★★★★★"),
        ("9.5", "★★★★☆"),
        ("7.0", "★★★☆☆"),
        ("5.5", "★★☆☆☆"),
        ("1.0", "☆☆☆☆☆"),
        ("0.5", "☆☆☆☆☆"),
    ],
)
def test_star_rating(score, stars):
    assert Rating(rating=Decimal(score)).star_rating() == stars


def test_has_review_ignores_whitespace():
    assert Rating(review="  ").has_review is False
    assert Rating(review="Nice").has_review is True
    assert Rating(review=None).has_review is False


def test_display_title_shows_original_title():
    assert Media(title="Spirited Away", original_title="千と千尋の神隠し").display_title() == \
        "Spirited Away (千と千尋の神隠し)"
    assert Media(title="Heat", original_title="Heat").display_title() == "Heat"


@pytest.mark.parametrize(
    "value, expected",
    [("movie", MediaType.MOVIE), ("TV", MediaType.TV), (" Film ", MediaType.MOVIE), ("series", MediaType.TV)],
)
def test_media_type_parse(value, expected):
    assert MediaType.parse(value) is expected


@pytest.mark.parametrize("value", ["", None, "anime", "1"])
def test_media_type_parse_rejects_unknown(value):
    with pytest.raises(InvalidMediaKindError):
        MediaType.parse(value)
