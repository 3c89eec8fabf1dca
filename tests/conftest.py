# tests/conftest.py
from datetime import datetime, timezone

import pytest

from rentradar.connectors.registry import build_source
from rentradar.domain.types import Location, Property

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock that only moves when sleep() is awaited."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_source():
    def _make(source_id: str = "demo", **overrides):
        record = {
            "id": source_id,
            "name": source_id.title(),
            "base_url": f"https://www.{source_id}.example",
            "search_url_template": "{base}/{operation}/{property_type}/{city}",
            "priority": 1,
            "rate_limit": {"requests_per_minute": 600, "delay_between_requests_s": 0.0, "max_concurrent_requests": 4},
            "pagination": {"style": "query", "param": "page"},
            "extraction": {
                "card_selectors": [".card"],
                "next_page_selectors": [".next"],
            },
        }
        record.update(overrides)
        return build_source(record)

    return _make


@pytest.fixture
def make_property():
    def _make(**kw) -> Property:
        loc = kw.pop("location", None) or Location(
            address=kw.pop("address", "Calle 140 # 12-30, Cedritos"),
            city=kw.pop("city", "Bogotá"),
            neighborhood=kw.pop("neighborhood", "Cedritos"),
        )
        base = dict(
            id=kw.pop("id", "demo_000000000001"),
            source=kw.pop("source", "Demo"),
            source_id=kw.pop("source_id", "demo"),
            title="Apartamento en arriendo en Cedritos",
            price=2_500_000,
            admin_fee=0,
            area=80.0,
            rooms=3,
            location=loc,
            url="https://www.demo.example/inmueble/1",
            scraped_date=FIXED_NOW,
            first_seen_at=FIXED_NOW,
        )
        base.update(kw)
        return Property(**base)

    return _make
