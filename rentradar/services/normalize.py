# rentradar/services/normalize.py
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any

from ..config import settings
from ..domain.errors import ParseError
from ..domain.parsing import clean_text, coerce_amount, first_int, first_number, fold, to_float
from ..domain.types import Coordinates, Location, Property, RawRecord, ScrapingSource
from .entity_resolution import canonical_url

MAX_TITLE_LEN = 200


def absolute_url(url: str | None, base_url: str) -> str:
    if not url:
        return ""
    u = url.strip()
    if u.startswith(("http://", "https://")):
        return u
    if u.startswith("//"):
        return "https:" + u
    base = base_url.rstrip("/")
    if u.startswith("/"):
        return base + u
    return f"{base}/{u}"


def property_id(source_id: str, url: str, title: str, total_price: int) -> str:
    """
    Content-addressed: the same listing gets the same id on every run.
    Recency lives in first_seen_at, not here.
    """
    canon = canonical_url(url)
    basis = canon if canon else f"{fold(title)}|{total_price}"
    digest = hashlib.sha1(f"{source_id}|{basis}".encode("utf-8")).hexdigest()[:12]
    return f"{source_id}_{digest}"


def _coordinates(raw: Any) -> Coordinates | None:
    if not isinstance(raw, dict):
        return None
    lat = to_float(raw.get("lat"))
    lng = to_float(raw.get("lng", raw.get("lon")))
    if lat is None or lng is None or (lat == 0 and lng == 0):
        return None
    return Coordinates(lat=lat, lng=lng)


def normalize_location(raw: str | dict[str, Any] | None, default_city: str | None = None) -> Location:
    city_default = default_city or settings.DEFAULT_CITY

    if isinstance(raw, dict):
        address = clean_text(raw.get("address")) or ""
        neighborhood = clean_text(raw.get("neighborhood"))
        return Location(
            address=address or (neighborhood or ""),
            city=clean_text(raw.get("city")) or city_default,
            neighborhood=neighborhood,
            coordinates=_coordinates(raw.get("coordinates")),
        )

    text = clean_text(raw) or ""
    parts = [p.strip() for p in text.split(",") if p.strip()]
    if len(parts) >= 2:
        neighborhood: str | None = parts[1]
    elif parts:
        neighborhood = parts[0]
    else:
        neighborhood = None
    return Location(address=text, city=city_default, neighborhood=neighborhood)


def _amenities(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = [str(x) for x in raw]
    else:
        items = []
    out: list[str] = []
    for it in items:
        s = clean_text(it)
        if s and s not in out:
            out.append(s)
    return tuple(out)


def normalize(
    raw: RawRecord,
    source: ScrapingSource,
    *,
    scraped_at: datetime | None = None,
) -> Property | ParseError:
    """
    RawRecord -> Property. Pure: no network, no rate limiter, no shared state.

    Unresolvable numbers default to 0 (or None for the optional counts). Only a record
    with no price, no area and no rooms at all is a ParseError, returned not raised.
    total_price / price_per_m2 are always derived, whatever the raw record says.
    """
    price = coerce_amount(raw.price) or 0
    admin_fee = coerce_amount(raw.admin_fee) or 0
    area = first_number(raw.area) or 0.0
    rooms = first_int(raw.rooms) or 0

    if price <= 0 and area <= 0 and rooms <= 0:
        return ParseError(f"no price, area or rooms in record from {source.id}", source_id=source.id)

    location = normalize_location(raw.location)

    title = clean_text(raw.title)
    if not title:
        title = f"Inmueble en {location.neighborhood or source.name}"
    title = title[:MAX_TITLE_LEN]

    url = absolute_url(raw.url, source.base_url)
    images = tuple(dict.fromkeys(absolute_url(i, source.base_url) for i in raw.images if i))

    parking = first_int(raw.parking)
    metadata = dict(raw.metadata)
    if parking is not None:
        metadata.setdefault("parking", parking > 0)
    stratum = first_int(raw.stratum)
    if stratum is not None and not (1 <= stratum <= 6):
        stratum = None

    now = scraped_at or datetime.now(timezone.utc)
    total = price + admin_fee if admin_fee > 0 else price

    return Property(
        id=property_id(source.id, url, title, total),
        source=source.name,
        source_id=source.id,
        title=title,
        price=price,
        admin_fee=admin_fee,
        area=round(area, 1),
        rooms=rooms,
        bathrooms=first_int(raw.bathrooms),
        parking=parking,
        stratum=stratum,
        location=location,
        url=url,
        description=clean_text(raw.description) or "",
        images=images,
        amenities=_amenities(raw.amenities),
        metadata=metadata,
        scraped_date=now,
        first_seen_at=now,
    )
