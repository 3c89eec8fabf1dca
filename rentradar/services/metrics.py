# rentradar/services/metrics.py
from __future__ import annotations

from typing import Sequence

from ..domain.types import PriceBucket, Property, SearchSummary

UNSPECIFIED_NEIGHBORHOOD = "Sin especificar"

# (label, lower bound inclusive, upper bound exclusive); bounds on total price
PRICE_BUCKETS: tuple[tuple[str, int, int | None], ...] = (
    ("Menos de $2M", 0, 2_000_000),
    ("$2M - $3M", 2_000_000, 3_000_000),
    ("$3M - $4M", 3_000_000, 4_000_000),
    ("$4M - $5M", 4_000_000, 5_000_000),
    ("Más de $5M", 5_000_000, None),
)


def _bucket(total_price: int) -> str:
    for label, lo, hi in PRICE_BUCKETS:
        if total_price >= lo and (hi is None or total_price < hi):
            return label
    return PRICE_BUCKETS[0][0]


def _avg(values: Sequence[float]) -> int:
    return round(sum(values) / len(values)) if values else 0


def price_distribution(props: Sequence[Property]) -> list[PriceBucket]:
    n = len(props)
    if n == 0:
        return []
    counts = {label: 0 for label, _, _ in PRICE_BUCKETS}
    for p in props:
        counts[_bucket(p.total_price)] += 1
    # empty buckets are omitted; order follows PRICE_BUCKETS
    return [
        PriceBucket(range=label, count=c, percentage=round(c / n * 100))
        for label, c in counts.items()
        if c > 0
    ]


def summarize(props: Sequence[Property], *, total_found: int = 0, hard_matches: int = 0) -> SearchSummary:
    source_breakdown: dict[str, int] = {}
    neighborhood_breakdown: dict[str, int] = {}
    for p in props:
        source_breakdown[p.source] = source_breakdown.get(p.source, 0) + 1
        nb = (p.location.neighborhood or "").strip() or UNSPECIFIED_NEIGHBORHOOD
        neighborhood_breakdown[nb] = neighborhood_breakdown.get(nb, 0) + 1

    return SearchSummary(
        average_price=_avg([p.total_price for p in props]),
        average_price_per_m2=_avg([p.price_per_m2 for p in props if p.price_per_m2 > 0]),
        average_area=_avg([p.area for p in props if p.area > 0]),
        source_breakdown=source_breakdown,
        neighborhood_breakdown=neighborhood_breakdown,
        price_distribution=price_distribution(props),
        total_found=total_found,
        hard_matches=hard_matches,
    )
