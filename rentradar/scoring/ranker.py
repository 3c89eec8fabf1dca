# rentradar/scoring/ranker.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from ..config import settings
from ..domain.criteria import Preference, PreferenceLevel, SearchCriteria
from ..domain.locations import PREMIUM_NEIGHBORHOODS, matches_any, real_terms
from ..domain.parsing import fold
from ..domain.types import Property

LEVEL_MULTIPLIER = {
    PreferenceLevel.essential: 2.0,
    PreferenceLevel.nice: 1.0,
}
# caps the inverse price-per-m2 term so one absurdly cheap listing can't dominate
PRICE_PER_M2_CAP = 2.0
AREA_BONUS_CAP = 0.5
QUALITY_BONUS = 0.1


@dataclass(frozen=True)
class ScoreBreakdown:
    preferences: float
    location: float
    price: float
    area: float
    quality: float
    matches: tuple[str, ...]

    @property
    def total(self) -> float:
        return round(self.preferences + self.location + self.price + self.area + self.quality, 2)


def _corpus(p: Property) -> list[str]:
    return [fold(a) for a in p.amenities] + [fold(p.title), fold(p.description)]


def _matched(prefs: Iterable[Preference], corpus: list[str]) -> list[Preference]:
    out: list[Preference] = []
    for pref in prefs:
        needle = fold(pref.name)
        if needle and any(needle in item for item in corpus):
            out.append(pref)
    return out


def score_breakdown(p: Property, criteria: SearchCriteria, *, market_price_per_m2: float | None = None) -> ScoreBreakdown:
    prefs = criteria.preferences
    w = prefs.weights
    corpus = _corpus(p)

    pref_score = 0.0
    matches: list[str] = []
    for category, weight in ((prefs.wet_areas, w.wet_areas), (prefs.sports, w.sports), (prefs.amenities, w.amenities)):
        for pref in _matched(category, corpus):
            pref_score += weight * LEVEL_MULTIPLIER.get(PreferenceLevel(pref.level), 1.0)
            if pref.name not in matches:
                matches.append(pref.name)

    loc_score = 0.0
    where = [p.location.neighborhood, p.location.address]
    hard_terms = real_terms(criteria.hard_requirements.location.neighborhoods)
    if hard_terms and matches_any(hard_terms, where):
        loc_score += 1.5 * w.location
    opt_terms = real_terms(criteria.optional_filters.neighborhoods)
    if opt_terms and matches_any(opt_terms, where):
        loc_score += 1.0 * w.location
    nb = fold(p.location.neighborhood)
    if nb and any(prem in nb for prem in PREMIUM_NEIGHBORHOODS):
        loc_score += 0.3 * w.location

    market = float(market_price_per_m2 or settings.MARKET_PRICE_PER_M2)
    price_score = 0.0
    if p.price_per_m2 > 0:
        price_score += w.price_per_m2 * min(PRICE_PER_M2_CAP, market / p.price_per_m2)
    max_price = criteria.hard_requirements.max_price
    if max_price and p.total_price > 0:
        price_score += w.price_per_m2 * max(0.0, 1.0 - p.total_price / max_price)

    area_score = 0.0
    min_area = criteria.hard_requirements.min_area
    if min_area and p.area > min_area:
        area_score = min(AREA_BONUS_CAP, (p.area - min_area) / 100.0)

    quality = 0.0
    if len(p.images) > 3:
        quality += QUALITY_BONUS
    if len(p.description) > 100:
        quality += QUALITY_BONUS

    return ScoreBreakdown(
        preferences=pref_score,
        location=loc_score,
        price=price_score,
        area=area_score,
        quality=quality,
        matches=tuple(matches),
    )


def explain(b: ScoreBreakdown) -> str:
    """
    Human-debuggable explanation string.

    Example:
      preferences=2.80 | location=0.90 | price=0.61 | area=0.10 | quality=0.10 | matches=jacuzzi,gimnasio
    """
    bits = [
        f"preferences={b.preferences:.2f}",
        f"location={b.location:.2f}",
        f"price={b.price:.2f}",
        f"area={b.area:.2f}",
        f"quality={b.quality:.2f}",
    ]
    if b.matches:
        bits.append("matches=" + ",".join(b.matches))
    return " | ".join(bits)


def explain_score(p: Property, criteria: SearchCriteria) -> str:
    return explain(score_breakdown(p, criteria))


def score_property(p: Property, criteria: SearchCriteria) -> Property:
    b = score_breakdown(p, criteria)
    return replace(p, score=b.total, preference_matches=b.matches, score_explain=explain(b))


def rank(
    properties: Iterable[Property],
    criteria: SearchCriteria,
    priorities: Mapping[str, int] | None = None,
) -> list[Property]:
    """
    Score and order. Pure and deterministic: descending score, then lower total
    price, then source priority, then id. Arrival order never matters.
    """
    prio = priorities or {}
    scored = [score_property(p, criteria) for p in properties]
    scored.sort(key=lambda p: (-(p.score or 0.0), p.total_price, prio.get(p.source_id, 10_000), p.id))
    return scored
