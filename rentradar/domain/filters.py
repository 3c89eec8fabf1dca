# rentradar/domain/filters.py
from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from .criteria import HardRequirements, OptionalFilters, SearchCriteria
from .locations import matches_any, real_terms
from .parsing import fold
from .types import Property

KNOWN_PROPERTY_TYPES = ("apartamento", "apartaestudio", "casa", "habitacion", "oficina", "local", "bodega", "lote", "finca")

_FURNISHED_RE = re.compile(r"\b(?:amoblad[oa]|amueblad[oa])\b")
_PETS_RE = re.compile(r"\b(?:mascotas?|perros?|gatos?|pet friendly)\b")


def _outside(value: float | None, lo: float | None, hi: float | None, *, unknown_passes: bool) -> bool:
    if lo is None and hi is None:
        return False
    if value is None:
        return not unknown_passes
    if lo is not None and value < lo:
        return True
    if hi is not None and value > hi:
        return True
    return False


def _text(p: Property) -> str:
    return fold(f"{p.title} {p.description}")


def hard_reason(p: Property, hard: HardRequirements) -> str | None:
    """
    None when p meets every populated hard requirement, else the first failing one.

    rooms/area/price are mandatory listing fields (0 means unresolved and fails any
    range). bathrooms/parking/stratum are often missing upstream, so unknown passes.
    """
    if _outside(p.rooms, hard.min_rooms, hard.max_rooms, unknown_passes=False):
        return "rooms"
    if _outside(p.area, hard.min_area, hard.max_area, unknown_passes=False):
        return "area"

    price = p.price if hard.allow_admin_overage else p.total_price
    if _outside(price, hard.min_price, hard.max_price, unknown_passes=False):
        return "price"

    if _outside(p.bathrooms, hard.min_bathrooms, hard.max_bathrooms, unknown_passes=True):
        return "bathrooms"
    if _outside(p.parking, hard.min_parking, hard.max_parking, unknown_passes=True):
        return "parking"
    if _outside(p.stratum, hard.min_stratum, hard.max_stratum, unknown_passes=True):
        return "stratum"

    if hard.property_types:
        wanted = {fold(t) for t in hard.property_types}
        text = fold(p.title)
        mentioned = {t for t in KNOWN_PROPERTY_TYPES if t in text}
        if mentioned and not any(w in m or m in w for w in wanted for m in mentioned):
            return "property_type"

    terms = real_terms(list(hard.location.neighborhoods) + list(hard.location.zones))
    if terms:
        hay = [p.location.neighborhood, p.location.address, p.title, p.description]
        if not matches_any(terms, hay):
            return "location"

    return None


def optional_reason(p: Property, opt: OptionalFilters) -> str | None:
    if opt.sources:
        names = (fold(p.source), fold(p.source_id))
        wanted = [fold(s) for s in opt.sources if s and s.strip()]
        if wanted and not any(w == n or w in n or n in w for w in wanted for n in names if n):
            return "sources"

    terms = real_terms(opt.neighborhoods)
    if terms and not matches_any(terms, [p.location.neighborhood, p.location.address]):
        return "neighborhoods"

    if _outside(p.total_price, opt.min_price, opt.max_price, unknown_passes=False):
        return "price_range"

    if opt.furnished:
        if not (p.metadata.get("furnished") or _FURNISHED_RE.search(_text(p))):
            return "furnished"

    if opt.parking:
        if not ((p.parking or 0) > 0 or p.metadata.get("parking")):
            return "parking"

    if opt.pets:
        if not (p.metadata.get("pets") or _PETS_RE.search(_text(p))):
            return "pets"

    return None


@dataclass
class FilterOutcome:
    hard_matches: list[Property]
    kept: list[Property]
    drop_reasons: dict[str, int] = field(default_factory=dict)


def apply_filters(properties: Iterable[Property], criteria: SearchCriteria) -> FilterOutcome:
    """Hard pass, then the independent optional pass. Order of the input is kept."""
    drops: dict[str, int] = defaultdict(int)

    hard_matches: list[Property] = []
    for p in properties:
        reason = hard_reason(p, criteria.hard_requirements)
        if reason:
            drops[f"hard_filter::{reason}"] += 1
            continue
        hard_matches.append(p)

    kept: list[Property] = []
    for p in hard_matches:
        reason = optional_reason(p, criteria.optional_filters)
        if reason:
            drops[f"optional_filter::{reason}"] += 1
            continue
        kept.append(p)

    return FilterOutcome(hard_matches=hard_matches, kept=kept, drop_reasons=dict(drops))
