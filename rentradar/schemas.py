from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import settings
from .domain.criteria import (
    HardRequirements,
    LocationQuery,
    OptionalFilters,
    Preference,
    PreferenceLevel,
    Preferences,
    PreferenceWeights,
    SearchCriteria,
)
from .domain.types import Operation, Property, SearchResult


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----- Request side -----


class PreferenceIn(_Camel):
    name: str = Field(..., min_length=1)
    level: Literal["nice", "essential"] = "nice"


class WeightsIn(_Camel):
    wet_areas: float = 1.0
    sports: float = 1.0
    amenities: float = 0.8
    location: float = 0.6
    price_per_m2: float = 0.4


class PreferencesIn(_Camel):
    wet_areas: list[PreferenceIn] = Field(default_factory=list)
    sports: list[PreferenceIn] = Field(default_factory=list)
    amenities: list[PreferenceIn] = Field(default_factory=list)
    weights: WeightsIn = Field(default_factory=WeightsIn)

    @field_validator("wet_areas", "sports", "amenities", mode="before")
    @classmethod
    def _plain_names(cls, v: Any) -> Any:
        # ["jacuzzi", {"name": "bbq", "level": "essential"}] are both fine
        if isinstance(v, list):
            return [{"name": x} if isinstance(x, str) else x for x in v]
        return v


class LocationIn(_Camel):
    city: str | None = None
    neighborhoods: list[str] = Field(default_factory=list)
    zones: list[str] = Field(default_factory=list)


class HardRequirementsIn(_Camel):
    min_rooms: int | None = None
    max_rooms: int | None = None
    min_bathrooms: int | None = None
    max_bathrooms: int | None = None
    min_parking: int | None = None
    max_parking: int | None = None
    min_area: float | None = None
    max_area: float | None = None
    min_price: int | None = Field(default=None, validation_alias=AliasChoices("minPrice", "minTotalPrice", "min_price"))
    max_price: int | None = Field(default=None, validation_alias=AliasChoices("maxPrice", "maxTotalPrice", "max_price"))
    min_stratum: int | None = None
    max_stratum: int | None = None
    allow_admin_overage: bool = False
    # None falls back to DEFAULT_OPERATION
    operation: Literal["arriendo", "venta"] | None = None
    property_types: list[str] = Field(default_factory=list)
    location: LocationIn = Field(default_factory=LocationIn)


class PriceRangeIn(_Camel):
    min: int | None = None
    max: int | None = None


class OptionalFiltersIn(_Camel):
    sources: list[str] = Field(default_factory=list)
    neighborhoods: list[str] = Field(default_factory=list)
    price_range: PriceRangeIn | None = None
    furnished: bool | None = None
    parking: bool | None = None
    pets: bool | None = None


class SearchCriteriaIn(_Camel):
    hard_requirements: HardRequirementsIn = Field(default_factory=HardRequirementsIn)
    preferences: PreferencesIn = Field(default_factory=PreferencesIn)
    optional_filters: OptionalFiltersIn = Field(default_factory=OptionalFiltersIn)

    def to_domain(self) -> SearchCriteria:
        h = self.hard_requirements
        p = self.preferences
        o = self.optional_filters

        def _prefs(items: list[PreferenceIn]) -> tuple[Preference, ...]:
            return tuple(Preference(name=i.name, level=PreferenceLevel(i.level)) for i in items)

        return SearchCriteria(
            hard_requirements=HardRequirements(
                min_rooms=h.min_rooms,
                max_rooms=h.max_rooms,
                min_bathrooms=h.min_bathrooms,
                max_bathrooms=h.max_bathrooms,
                min_parking=h.min_parking,
                max_parking=h.max_parking,
                min_area=h.min_area,
                max_area=h.max_area,
                min_price=h.min_price,
                max_price=h.max_price,
                min_stratum=h.min_stratum,
                max_stratum=h.max_stratum,
                allow_admin_overage=h.allow_admin_overage,
                operation=Operation(h.operation or settings.DEFAULT_OPERATION),
                property_types=tuple(h.property_types),
                location=LocationQuery(
                    city=h.location.city,
                    neighborhoods=tuple(h.location.neighborhoods),
                    zones=tuple(h.location.zones),
                ),
            ),
            preferences=Preferences(
                wet_areas=_prefs(p.wet_areas),
                sports=_prefs(p.sports),
                amenities=_prefs(p.amenities),
                weights=PreferenceWeights(**p.weights.model_dump()),
            ),
            optional_filters=OptionalFilters(
                sources=tuple(o.sources),
                neighborhoods=tuple(o.neighborhoods),
                min_price=o.price_range.min if o.price_range else None,
                max_price=o.price_range.max if o.price_range else None,
                furnished=o.furnished,
                parking=o.parking,
                pets=o.pets,
            ),
        )


class SearchRequest(_Camel):
    criteria: SearchCriteriaIn
    page: int = Field(1, ge=1)
    limit: int | None = Field(default=None, ge=1, le=500)


class RecommendationRequest(_Camel):
    criteria: SearchCriteriaIn
    limit: int = Field(10, ge=1, le=100)


# ----- Response side -----


class CoordinatesOut(_Camel):
    lat: float
    lng: float


class LocationOut(_Camel):
    address: str
    city: str
    neighborhood: str | None = None
    coordinates: CoordinatesOut | None = None


class PropertyOut(_Camel):
    id: str
    source: str
    source_id: str
    title: str
    price: int
    admin_fee: int
    total_price: int
    area: float
    rooms: int
    bathrooms: int | None = None
    parking: int | None = None
    stratum: int | None = None
    location: LocationOut
    amenities: list[str]
    description: str
    images: list[str]
    url: str
    scraped_date: datetime
    first_seen_at: datetime
    price_per_m2: int
    score: float | None = None
    preference_matches: list[str] = Field(default_factory=list)
    score_explain: str | None = None
    is_active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, p: Property) -> "PropertyOut":
        loc = p.location
        return cls(
            id=p.id,
            source=p.source,
            source_id=p.source_id,
            title=p.title,
            price=p.price,
            admin_fee=p.admin_fee,
            total_price=p.total_price,
            area=p.area,
            rooms=p.rooms,
            bathrooms=p.bathrooms,
            parking=p.parking,
            stratum=p.stratum,
            location=LocationOut(
                address=loc.address,
                city=loc.city,
                neighborhood=loc.neighborhood,
                coordinates=CoordinatesOut(lat=loc.coordinates.lat, lng=loc.coordinates.lng) if loc.coordinates else None,
            ),
            amenities=list(p.amenities),
            description=p.description,
            images=list(p.images),
            url=p.url,
            scraped_date=p.scraped_date,
            first_seen_at=p.first_seen_at,
            price_per_m2=p.price_per_m2,
            score=p.score,
            preference_matches=list(p.preference_matches),
            score_explain=p.score_explain,
            is_active=p.is_active,
            metadata=dict(p.metadata),
        )


class PriceBucketOut(_Camel):
    range: str
    count: int
    percentage: int


class SummaryOut(_Camel):
    average_price: int
    average_price_per_m2: int
    average_area: int
    source_breakdown: dict[str, int]
    neighborhood_breakdown: dict[str, int]
    price_distribution: list[PriceBucketOut]
    total_found: int
    hard_matches: int


class SourceRunOut(_Camel):
    source_id: str
    status: str
    raw: int
    normalized: int
    elapsed_s: float
    error: str | None = None
    pages: int = 0
    escalated: bool = False
    last_error: str | None = None


class SearchResultOut(_Camel):
    properties: list[PropertyOut]
    total: int
    page: int
    limit: int
    execution_time: int
    summary: SummaryOut
    sources: list[SourceRunOut] = Field(default_factory=list)
    drop_reasons: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, r: SearchResult) -> "SearchResultOut":
        s = r.summary
        return cls(
            properties=[PropertyOut.from_domain(p) for p in r.properties],
            total=r.total,
            page=r.page,
            limit=r.limit,
            execution_time=r.execution_time,
            summary=SummaryOut(
                average_price=s.average_price,
                average_price_per_m2=s.average_price_per_m2,
                average_area=s.average_area,
                source_breakdown=dict(s.source_breakdown),
                neighborhood_breakdown=dict(s.neighborhood_breakdown),
                price_distribution=[PriceBucketOut(range=b.range, count=b.count, percentage=b.percentage) for b in s.price_distribution],
                total_found=s.total_found,
                hard_matches=s.hard_matches,
            ),
            sources=[
                SourceRunOut(
                    source_id=x.source_id,
                    status=x.status,
                    raw=x.raw,
                    normalized=x.normalized,
                    elapsed_s=x.elapsed_s,
                    error=x.error,
                    pages=x.pages,
                    escalated=x.escalated,
                    last_error=x.last_error,
                )
                for x in r.sources
            ],
            drop_reasons=dict(r.drop_reasons),
        )


class SearchResponse(_Camel):
    success: bool = True
    data: SearchResultOut


class RecommendationsResponse(_Camel):
    success: bool = True
    data: list[PropertyOut]


class SourcesResponse(_Camel):
    success: bool = True
    data: list[str]


class SourceStatsResponse(_Camel):
    success: bool = True
    data: dict[str, dict[str, float | int]]


class ErrorResponse(_Camel):
    success: bool = False
    error: str
    details: list[str] = Field(default_factory=list)
