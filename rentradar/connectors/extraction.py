# rentradar/connectors/extraction.py
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterator
from urllib.parse import urljoin

import soupsieve
from bs4 import BeautifulSoup, Tag

from ..domain.parsing import clean_text, first_number, get_first
from ..domain.types import RawRecord, ScrapingSource

log = logging.getLogger(__name__)


# Generic candidates appended after each site's own (see registry._merge).
DEFAULT_FIELD_SELECTORS: dict[str, tuple[str, ...]] = {
    "title": (".property-title", ".listing-title", ".title", "h2", "h3", "h4"),
    "price": (".price", ".precio", '[class*="price"]', '[class*="precio"]'),
    "admin_fee": (".admin", ".administracion", '[class*="admin"]'),
    "area": (".area", ".superficie", ".m2", '[class*="area"]'),
    "rooms": (".rooms", ".habitaciones", ".alcobas", '[class*="room"]'),
    "bathrooms": (".bathrooms", ".banos", '[class*="bath"]'),
    "parking": (".parking", ".parqueaderos", ".garajes"),
    "location": (".location", ".ubicacion", ".address", ".direccion", ".neighborhood", ".barrio"),
    "description": (".description", ".descripcion", "p"),
    "amenities": (".amenities", ".caracteristicas", ".features"),
    "images": ("img",),
    "link": ("a",),
}

DEFAULT_REGEX_PATTERNS: dict[str, tuple[str, ...]] = {
    "price": (
        r"\$\s*(\d[\d.,]*)",
        r"(\d[\d.,]*)\s*(?:pesos|cop)\b",
        r"precio[:\s]*\$?\s*(\d[\d.,]*)",
    ),
    "admin_fee": (r"(?:administraci[oó]n|admin\.?)\s*[:+]?\s*\$?\s*(\d[\d.,]*)",),
    "area": (
        r"(\d+(?:[.,]\d+)?)\s*(?:m²|m2|mts2|mt2|mts|metros)",
        r"[aá]rea[:\s]*(\d+(?:[.,]\d+)?)",
    ),
    "rooms": (
        r"(\d+)\s*(?:habitaciones|habitaci[oó]n|habs?\.?|alcobas?|dormitorios?|cuartos?)",
        r"(?:habitaciones|habit\.|hab\.)\s*:?\s*(\d+)",
    ),
    "bathrooms": (
        r"(\d+)\s*(?:baños?|banos?|bañ\.?)",
        r"(?:baños|banos)\s*:?\s*(\d+)",
    ),
    "parking": (
        r"(\d+)\s*(?:parqueaderos?|garajes?|parq\.?)",
        r"(?:parqueaderos?|garajes?)\s*:?\s*(\d+)",
    ),
    "stratum": (r"estrato\s*:?\s*(\d)",),
}

DEFAULT_STRUCTURED_KEYS: dict[str, tuple[str, ...]] = {
    "id": ("id", "propertyId", "listingId", "propertyCode", "@id", "sku"),
    "price": ("rentPrice", "leaseFee", "price", "offers.price", "priceValue"),
    "title": ("title", "name", "headline"),
    "admin_fee": ("adminValue", "adminFee", "administrationFee"),
    "area": ("areaPrivate", "privateArea", "area", "builtArea", "floorSize.value", "surface"),
    "rooms": ("numRooms", "rooms", "bedrooms", "numberOfRooms", "numberOfBedrooms"),
    "bathrooms": ("numBathrooms", "bathrooms", "baths", "numberOfBathroomsTotal"),
    "parking": ("numParking", "garages", "parking", "parkingLots"),
    "stratum": ("stratum", "estrato"),
    "address": ("address.streetAddress", "address", "direccion"),
    "neighborhood": ("neighborhood", "neighbourhood", "barrio", "location.neighborhood", "address.addressLocality"),
    "city": ("city", "location.city", "address.addressRegion", "cityName"),
    "lat": ("location.lat", "latitude", "geo.latitude", "lat"),
    "lng": ("location.lon", "location.lng", "longitude", "geo.longitude", "lng", "lon"),
    "images": ("urlPhoto", "images", "photos", "image", "imageUrl", "pictures"),
    "url": ("url", "link", "permalink", "detailUrl"),
    "description": ("description", "descripcion"),
    "property_type": ("realEstateType", "propertyType", "@type"),
    "operation": ("typeTransaction", "operation"),
}

# Known global-state assignments that often hold the full result list
_STATE_ASSIGN_RE = re.compile(
    r"window\.(?:__NUXT__|__INITIAL_STATE__|__PRELOADED_STATE__|__NEXT_DATA__|__APOLLO_STATE__)\s*=\s*"
)
_PLAIN_NUMBER_RE = re.compile(r"^\s*\d[\d.,]*\s*$")
_AMENITY_SPLIT_RE = re.compile(r"[,;•|\n]+")
_FURNISHED_RE = re.compile(r"\b(?:amoblad[oa]|amueblad[oa]|furnished)\b", re.IGNORECASE)
_PETS_RE = re.compile(r"\b(?:mascotas?|pet[\s-]?friendly|se aceptan perros|se aceptan gatos)\b", re.IGNORECASE)

NUMERIC_FIELDS = ("area", "rooms", "bathrooms", "parking")
REGEX_FIELDS = ("price", "admin_fee", "area", "rooms", "bathrooms", "parking", "stratum")
_PLAUSIBLE = {
    "area": (10.0, 10000.0),
    "rooms": (1.0, 20.0),
    "bathrooms": (1.0, 20.0),
    "parking": (0.0, 20.0),
    "stratum": (1.0, 6.0),
}
_NEXT_REL = ('a[rel="next"]', 'link[rel="next"]')


@dataclass
class PageExtraction:
    records: list[RawRecord] = field(default_factory=list)
    has_next: bool = False
    structured: int = 0
    markup: int = 0
    discarded: int = 0


def _plausible(name: str, value: str) -> bool:
    bounds = _PLAUSIBLE.get(name)
    if bounds is None:
        return True
    n = first_number(value)
    return n is not None and bounds[0] <= n <= bounds[1]


def _valid_selectors(selectors: tuple[str, ...], source_id: str) -> tuple[str, ...]:
    ok: list[str] = []
    for sel in selectors:
        try:
            soupsieve.compile(sel)
        except soupsieve.SelectorSyntaxError as e:
            log.warning("source=%s dropping bad selector %r: %s", source_id, sel, e)
            continue
        ok.append(sel)
    return tuple(ok)


class ExtractionPipeline:
    """
    Turns one result page into RawRecords.

    Per item, strategies run in strict order and the first success wins:
      1. embedded structured data (authoritative when it yields an emittable record:
         skips 2 and 3 for that item; thin items fall through to the cards)
      2. selector cascade, per field
      3. regex fallback over the item's full text, per still-missing field
    Every strategy returns None/empty when it has nothing; nothing here raises for
    a missing field.
    """

    def __init__(self, source: ScrapingSource) -> None:
        self.source = source
        ex = source.extraction
        self.card_selectors = _valid_selectors(ex.card_selectors, source.id)
        self.next_selectors = _valid_selectors(ex.next_page_selectors + _NEXT_REL, source.id)
        self.field_selectors = {k: _valid_selectors(tuple(v), source.id) for k, v in ex.field_selectors.items()}
        self.keys = {k: tuple(v) for k, v in ex.structured_keys.items()}
        self.patterns: dict[str, list[re.Pattern[str]]] = {}
        for name, pats in ex.regex_patterns.items():
            compiled: list[re.Pattern[str]] = []
            for p in pats:
                try:
                    compiled.append(re.compile(p, re.IGNORECASE))
                except re.error as e:
                    log.warning("source=%s dropping bad %s pattern %r: %s", source.id, name, p, e)
            self.patterns[name] = compiled

    # ---- page level ----

    def extract(self, html: str, page_url: str) -> PageExtraction:
        soup = BeautifulSoup(html or "", "lxml")
        result = PageExtraction(has_next=self._has_next(soup))
        seen: set[tuple[Any, ...]] = set()

        def _emit(rec: RawRecord | None) -> None:
            if rec is None or not self.is_emittable(rec):
                result.discarded += 1
                return
            key = (rec.url, rec.title, str(rec.price))
            if key in seen:
                return
            seen.add(key)
            result.records.append(rec)
            if rec.origin == "structured":
                result.structured += 1
            else:
                result.markup += 1

        page_items = [self.map_structured(obj, page_url) for obj in self.find_structured(soup)]
        usable = [rec for rec in page_items if self.is_emittable(rec)]
        if usable:
            for rec in page_items:
                _emit(rec)
            return result
        if page_items:
            # page-level items too thin to emit: the cards still carry the data
            log.debug("source=%s %d structured items not emittable, using cards", self.source.id, len(page_items))

        for card in self._cards(soup):
            card_items = self.find_structured(card)
            rec = self.map_structured(card_items[0], page_url) if card_items else None
            if rec is None or not self.is_emittable(rec):
                rec = self.extract_card(card, page_url)
            _emit(rec)
        return result

    @staticmethod
    def is_emittable(rec: RawRecord) -> bool:
        has_head = bool(clean_text(rec.title)) or rec.price not in (None, "")
        has_size = rec.area not in (None, "") or rec.rooms not in (None, "")
        return has_head and has_size

    def _has_next(self, soup: BeautifulSoup) -> bool:
        for sel in self.next_selectors:
            node = soup.select_one(sel)
            if node is None:
                continue
            classes = " ".join(node.get("class") or [])
            if node.has_attr("disabled") or "disabled" in classes or node.get("aria-disabled") == "true":
                continue
            return True
        return False

    def _cards(self, soup: BeautifulSoup) -> list[Tag]:
        for sel in self.card_selectors:
            nodes = soup.select(sel)
            if not nodes:
                continue
            chosen = {id(n) for n in nodes}
            # a card nested inside another matched card is part of it
            return [n for n in nodes if not any(id(p) in chosen for p in n.parents)]
        return []

    # ---- strategy 1: structured data ----

    def find_structured(self, root: BeautifulSoup | Tag) -> list[dict[str, Any]]:
        found: list[dict[str, Any]] = []
        for payload in self._script_payloads(root):
            self._walk(payload, found, 0)
        return found

    def _script_payloads(self, root: BeautifulSoup | Tag) -> Iterator[Any]:
        for script in root.find_all("script"):
            text = (script.string or script.get_text() or "").strip()
            if not text:
                continue
            kind = str(script.get("type") or "").lower()
            if "json" in kind:
                try:
                    yield json.loads(text)
                except json.JSONDecodeError:
                    log.debug("source=%s unparseable json script block", self.source.id)
                continue
            for m in _STATE_ASSIGN_RE.finditer(text):
                try:
                    obj, _ = json.JSONDecoder().raw_decode(text, m.end())
                except json.JSONDecodeError:
                    # function-wrapped state (e.g. Nuxt's IIFE) is not JSON
                    continue
                yield obj

    def _looks_like_listing(self, obj: dict[str, Any]) -> bool:
        return (
            get_first(obj, *self.keys.get("id", ())) is not None
            and get_first(obj, *self.keys.get("price", ())) is not None
        )

    def _walk(self, node: Any, out: list[dict[str, Any]], depth: int) -> None:
        if depth > 16:
            return
        if isinstance(node, dict):
            if self._looks_like_listing(node):
                out.append(node)
                return
            for v in node.values():
                self._walk(v, out, depth + 1)
        elif isinstance(node, list):
            for v in node:
                self._walk(v, out, depth + 1)

    def map_structured(self, obj: dict[str, Any], page_url: str) -> RawRecord:
        def pick(name: str) -> Any:
            return get_first(obj, *self.keys.get(name, ()))

        address = pick("address")
        if isinstance(address, dict):
            address = get_first(address, "streetAddress", "addressLocality", "name")
        neighborhood = pick("neighborhood")
        location: dict[str, Any] = {
            "address": clean_text(address) or clean_text(neighborhood) or "",
            "neighborhood": clean_text(neighborhood),
            "city": clean_text(pick("city")),
        }
        lat, lng = pick("lat"), pick("lng")
        if lat is not None and lng is not None:
            location["coordinates"] = {"lat": lat, "lng": lng}

        title = clean_text(pick("title"))
        if not title:
            kind = clean_text(pick("property_type")) or "Inmueble"
            op = clean_text(pick("operation")) or "arriendo"
            where = location["neighborhood"] or location["address"] or ""
            title = f"{kind} en {op} en {where}".strip() if where else f"{kind} en {op}"

        url = pick("url")
        description = clean_text(pick("description"))
        amenities = obj.get("amenities") or obj.get("features") or []
        if isinstance(amenities, str):
            amenities = [a.strip() for a in _AMENITY_SPLIT_RE.split(amenities)]

        rec = RawRecord(
            source_id=self.source.id,
            title=title,
            price=pick("price"),
            admin_fee=pick("admin_fee"),
            area=pick("area"),
            rooms=pick("rooms"),
            bathrooms=pick("bathrooms"),
            parking=pick("parking"),
            stratum=pick("stratum"),
            location=location,
            images=self._structured_images(pick("images"), page_url),
            url=urljoin(page_url, str(url)) if url else None,
            description=description,
            amenities=[str(a) for a in amenities if isinstance(a, str) and a.strip()],
            origin="structured",
        )
        rec.metadata.update(self._flags(" ".join(filter(None, [title, description]))))
        return rec

    @staticmethod
    def _structured_images(value: Any, page_url: str) -> list[str]:
        items = value if isinstance(value, list) else [value]
        out: list[str] = []
        for it in items:
            if isinstance(it, dict):
                it = get_first(it, "url", "src", "image", "contentUrl")
            if isinstance(it, str) and it.strip() and not it.startswith("data:"):
                out.append(urljoin(page_url, it.strip()))
        return out

    # ---- strategies 2 + 3: markup ----

    def extract_card(self, card: Tag, page_url: str) -> RawRecord:
        rec = RawRecord(source_id=self.source.id)

        rec.title = self._select_text(card, "title")
        rec.price = self._select_text(card, "price")
        rec.admin_fee = self._select_text(card, "admin_fee")
        for name in NUMERIC_FIELDS:
            setattr(rec, name, self._select_numeric(card, name))
        rec.location = self._select_text(card, "location")
        rec.description = self._select_text(card, "description")
        rec.amenities = self._select_list(card, "amenities")
        rec.images = self._select_images(card, page_url)
        link = self._select_link(card)
        rec.url = urljoin(page_url, link) if link else None

        full_text = card.get_text(" ", strip=True)
        haystack = f"{full_text} {link or ''}"
        for name in REGEX_FIELDS:
            if getattr(rec, name) in (None, ""):
                setattr(rec, name, self._regex(name, haystack))

        rec.metadata.update(self._flags(full_text))
        return rec

    def _select_text(self, card: Tag, name: str) -> str | None:
        for sel in self.field_selectors.get(name, ()):
            node = card.select_one(sel)
            if node is None:
                continue
            text = clean_text(node.get_text(" ", strip=True))
            if text:
                return text
        return None

    def _select_numeric(self, card: Tag, name: str) -> str | None:
        # attribute lists often share one selector across fields, so each match
        # must carry this field's vocabulary or be a bare number
        for sel in self.field_selectors.get(name, ()):
            for node in card.select(sel):
                text = clean_text(node.get_text(" ", strip=True))
                if not text:
                    continue
                hit = self._regex(name, text)
                if hit is not None:
                    return hit
                if _PLAIN_NUMBER_RE.match(text) and _plausible(name, text):
                    return text
        return None

    def _select_list(self, card: Tag, name: str) -> list[str]:
        for sel in self.field_selectors.get(name, ()):
            node = card.select_one(sel)
            if node is None:
                continue
            items = [clean_text(li.get_text(" ", strip=True)) for li in node.select("li")]
            if not items:
                items = [clean_text(x) for x in _AMENITY_SPLIT_RE.split(node.get_text("\n", strip=True))]
            items = [x for x in items if x]
            if items:
                return items
        return []

    def _select_images(self, card: Tag, page_url: str) -> list[str]:
        for sel in self.field_selectors.get("images", ()):
            urls: list[str] = []
            for node in card.select(sel):
                src = node.get("src") or node.get("data-src") or node.get("data-lazy")
                if not src and node.get("srcset"):
                    src = str(node.get("srcset")).split(",")[0].strip().split(" ")[0]
                if not src or str(src).startswith("data:"):
                    continue
                full = urljoin(page_url, str(src))
                if full not in urls:
                    urls.append(full)
            if urls:
                return urls
        return []

    def _select_link(self, card: Tag) -> str | None:
        if card.name == "a" and card.get("href"):
            return str(card["href"])
        for sel in self.field_selectors.get("link", ()):
            node = card.select_one(sel)
            if node is None:
                continue
            href = node.get("href") or node.get("data-url") or node.get("data-href")
            if href and not str(href).startswith(("#", "javascript:")):
                return str(href)
        return None

    def _regex(self, name: str, text: str) -> str | None:
        for pat in self.patterns.get(name, ()):
            for m in pat.finditer(text):
                value = m.group(1) if m.groups() else m.group(0)
                value = value.strip()
                if not value or not _plausible(name, value):
                    continue
                if name in ("price", "admin_fee") and not self._looks_like_amount(value):
                    continue
                return value
        return None

    @staticmethod
    def _looks_like_amount(value: str) -> bool:
        # "$3" from "3 alcobas $" style noise is not a rent
        digits = re.sub(r"\D", "", value)
        return len(digits) >= 4

    @staticmethod
    def _flags(text: str) -> dict[str, bool]:
        flags: dict[str, bool] = {}
        if _FURNISHED_RE.search(text or ""):
            flags["furnished"] = True
        if _PETS_RE.search(text or ""):
            flags["pets"] = True
        return flags
