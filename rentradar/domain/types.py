# rentradar/domain/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class Operation(str, Enum):
    arriendo = "arriendo"
    venta = "venta"


class PaginationStyle(str, Enum):
    query = "query"  # ?page=N
    offset = "offset"  # path suffix such as _Desde_51
    none = "none"


def _frozen_map(m: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(m or {}))


@dataclass(frozen=True)
class RateLimit:
    requests_per_minute: int = 30
    delay_between_requests_s: float = 2.0
    max_concurrent_requests: int = 2


@dataclass(frozen=True)
class Pagination:
    style: PaginationStyle = PaginationStyle.query
    param: str = "page"
    page_size: int = 48
    # used by the offset style; {offset} is replaced by the first item index
    offset_template: str = "_Desde_{offset}"


@dataclass(frozen=True)
class ExtractionDescriptor:
    """
    Everything the generic scraper needs to know about one site's markup.

    Every mapping is keyed by canonical RawRecord field name and holds an ordered
    tuple of candidates; earlier candidates win.
    """

    card_selectors: tuple[str, ...] = ()
    field_selectors: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    regex_patterns: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    structured_keys: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    next_page_selectors: tuple[str, ...] = ()
    wait_selector: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_selectors", _frozen_map(self.field_selectors))
        object.__setattr__(self, "regex_patterns", _frozen_map(self.regex_patterns))
        object.__setattr__(self, "structured_keys", _frozen_map(self.structured_keys))


@dataclass(frozen=True)
class ScrapingSource:
    id: str
    name: str
    base_url: str
    search_url_template: str
    is_active: bool = True
    priority: int = 100
    rate_limit: RateLimit = field(default_factory=RateLimit)
    pagination: Pagination = field(default_factory=Pagination)
    extraction: ExtractionDescriptor = field(default_factory=ExtractionDescriptor)
    # extra query string; values are templates over the same placeholders as the URL
    query_params: Mapping[str, str] = field(default_factory=dict)
    max_pages: int | None = None
    timeout_s: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "query_params", _frozen_map(self.query_params))


@dataclass
class RawRecord:
    """One scraped listing, before any interpretation."""

    source_id: str
    title: str | None = None
    price: str | int | float | None = None
    admin_fee: str | int | float | None = None
    area: str | int | float | None = None
    rooms: str | int | float | None = None
    bathrooms: str | int | float | None = None
    parking: str | int | float | None = None
    stratum: str | int | float | None = None
    location: str | dict[str, Any] | None = None
    images: list[str] = field(default_factory=list)
    url: str | None = None
    description: str | None = None
    amenities: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    origin: str = "markup"  # markup|structured


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True)
class Location:
    address: str
    city: str
    neighborhood: str | None = None
    coordinates: Coordinates | None = None


@dataclass(frozen=True)
class Property:
    id: str
    source: str  # display name
    source_id: str
    title: str
    price: int
    admin_fee: int
    area: float
    rooms: int
    location: Location
    url: str
    scraped_date: datetime
    first_seen_at: datetime
    description: str = ""
    images: tuple[str, ...] = ()
    amenities: tuple[str, ...] = ()
    bathrooms: int | None = None
    parking: int | None = None
    stratum: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    is_active: bool = True
    score: float | None = None
    preference_matches: tuple[str, ...] = ()
    score_explain: str | None = None

    @property
    def total_price(self) -> int:
        if self.admin_fee > 0:
            return self.price + self.admin_fee
        return self.price

    @property
    def price_per_m2(self) -> int:
        if self.area > 0:
            return round(self.price / self.area)
        return 0


@dataclass(frozen=True)
class ResolvedLocation:
    city: str
    neighborhood: str | None = None
    confidence: float = 0.0


@dataclass
class PriceBucket:
    range: str
    count: int
    percentage: int


@dataclass
class SearchSummary:
    average_price: int = 0
    average_price_per_m2: int = 0
    average_area: int = 0
    source_breakdown: dict[str, int] = field(default_factory=dict)
    neighborhood_breakdown: dict[str, int] = field(default_factory=dict)
    price_distribution: list[PriceBucket] = field(default_factory=list)
    total_found: int = 0
    hard_matches: int = 0


@dataclass
class SourceRun:
    source_id: str
    status: str = "ok"  # ok|empty|timeout|error
    raw: int = 0
    normalized: int = 0
    elapsed_s: float = 0.0
    error: str | None = None
    pages: int = 0
    escalated: bool = False
    # a page-level failure that stopped pagination early (status can still be ok)
    last_error: str | None = None


@dataclass
class SearchResult:
    properties: list[Property]
    total: int
    page: int
    limit: int
    execution_time: int  # milliseconds
    summary: SearchSummary
    sources: list[SourceRun] = field(default_factory=list)
    drop_reasons: dict[str, int] = field(default_factory=dict)
