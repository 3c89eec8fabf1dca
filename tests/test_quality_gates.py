import pytest

from rentradar.domain.errors import ValidationError
from rentradar.domain.policies import ensure_valid, is_valid, validation_errors
from rentradar.domain.types import Location


def test_good_listing_passes(make_property):
    p = make_property()
    assert validation_errors(p) == []
    assert is_valid(p)
    assert ensure_valid(p) is p


def test_short_title_is_rejected(make_property):
    # punctuation does not count towards the title length
    assert "title_too_short" in validation_errors(make_property(title="Ap.!"))


def test_non_positive_price(make_property):
    assert "non_positive_price" in validation_errors(make_property(price=0))


def test_needs_location_or_size(make_property):
    bare = Location(address="", city="Bogotá", neighborhood=None)
    assert "no_location_or_size" in validation_errors(make_property(location=bare, area=0.0, rooms=0))
    # size alone is enough
    assert "no_location_or_size" not in validation_errors(make_property(location=bare, area=55.0, rooms=0))


def test_implausible_values(make_property):
    reasons = validation_errors(make_property(area=250_000.0, rooms=45))
    assert "implausible_area" in reasons
    assert "implausible_rooms" in reasons


def test_ensure_valid_raises_with_reasons(make_property):
    with pytest.raises(ValidationError) as exc:
        ensure_valid(make_property(price=0, title=""))
    assert "non_positive_price" in exc.value.reasons
    assert "title_too_short" in exc.value.reasons
