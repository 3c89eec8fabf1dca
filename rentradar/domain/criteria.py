# rentradar/domain/criteria.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..config import settings
from .errors import CriteriaError
from .types import Operation


class PreferenceLevel(str, Enum):
    nice = "nice"
    essential = "essential"


@dataclass(frozen=True)
class Preference:
    name: str
    level: PreferenceLevel = PreferenceLevel.nice


@dataclass(frozen=True)
class PreferenceWeights:
    wet_areas: float = 1.0
    sports: float = 1.0
    amenities: float = 0.8
    location: float = 0.6
    price_per_m2: float = 0.4


@dataclass(frozen=True)
class Preferences:
    wet_areas: tuple[Preference, ...] = ()
    sports: tuple[Preference, ...] = ()
    amenities: tuple[Preference, ...] = ()
    weights: PreferenceWeights = field(default_factory=PreferenceWeights)


@dataclass(frozen=True)
class LocationQuery:
    city: str | None = None
    neighborhoods: tuple[str, ...] = ()
    zones: tuple[str, ...] = ()


@dataclass(frozen=True)
class HardRequirements:
    min_rooms: int | None = None
    max_rooms: int | None = None
    min_bathrooms: int | None = None
    max_bathrooms: int | None = None
    min_parking: int | None = None
    max_parking: int | None = None
    min_area: float | None = None
    max_area: float | None = None
    min_price: int | None = None
    max_price: int | None = None
    min_stratum: int | None = None
    max_stratum: int | None = None
    # let the admin fee push total price past max_price as long as base rent fits
    allow_admin_overage: bool = False
    operation: Operation = field(default_factory=lambda: Operation(settings.DEFAULT_OPERATION))
    property_types: tuple[str, ...] = ()
    location: LocationQuery = field(default_factory=LocationQuery)


@dataclass(frozen=True)
class OptionalFilters:
    sources: tuple[str, ...] = ()
    neighborhoods: tuple[str, ...] = ()
    min_price: int | None = None
    max_price: int | None = None
    furnished: bool | None = None
    parking: bool | None = None
    pets: bool | None = None


@dataclass(frozen=True)
class SearchCriteria:
    hard_requirements: HardRequirements = field(default_factory=HardRequirements)
    preferences: Preferences = field(default_factory=Preferences)
    optional_filters: OptionalFilters = field(default_factory=OptionalFilters)


_RANGES = (
    ("rooms", "min_rooms", "max_rooms"),
    ("bathrooms", "min_bathrooms", "max_bathrooms"),
    ("parking", "min_parking", "max_parking"),
    ("area", "min_area", "max_area"),
    ("price", "min_price", "max_price"),
    ("stratum", "min_stratum", "max_stratum"),
)


def validate_criteria(criteria: SearchCriteria) -> list[str]:
    """
    Problems that make the query unsatisfiable. Empty list means OK.
    Checked before fan-out so a bad query never costs a scrape cycle.
    """
    problems: list[str] = []
    hard = criteria.hard_requirements

    for name, lo_attr, hi_attr in _RANGES:
        lo = getattr(hard, lo_attr)
        hi = getattr(hard, hi_attr)
        if lo is not None and lo < 0:
            problems.append(f"{lo_attr} must be >= 0")
        if hi is not None and hi < 0:
            problems.append(f"{hi_attr} must be >= 0")
        if lo is not None and hi is not None and lo > hi:
            problems.append(f"{name}: min ({lo}) is greater than max ({hi})")

    for attr in ("min_stratum", "max_stratum"):
        v = getattr(hard, attr)
        if v is not None and not (1 <= v <= 6):
            problems.append(f"{attr} must be between 1 and 6")

    opt = criteria.optional_filters
    if opt.min_price is not None and opt.max_price is not None and opt.min_price > opt.max_price:
        problems.append(f"optional price range: min ({opt.min_price}) is greater than max ({opt.max_price})")

    w = criteria.preferences.weights
    for attr in ("wet_areas", "sports", "amenities", "location", "price_per_m2"):
        if getattr(w, attr) < 0:
            problems.append(f"weights.{attr} must be >= 0")

    return problems


def ensure_criteria(criteria: SearchCriteria) -> SearchCriteria:
    problems = validate_criteria(criteria)
    if problems:
        raise CriteriaError(problems)
    return criteria
