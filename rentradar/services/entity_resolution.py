# rentradar/services/entity_resolution.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

from ..domain.types import Property

log = logging.getLogger(__name__)


def canonical_url(url: str | None) -> str | None:
    """
    Absolute item URL in a comparable form, or None when the URL cannot identify
    one listing (relative, malformed, or just a site root).
    """
    if not url:
        return None
    parts = urlsplit(url.strip())
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return None
    path = parts.path.rstrip("/")
    if not path:
        return None
    host = parts.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    return urlunsplit(("https", host, path, parts.query, ""))


def dedup_key(p: Property) -> str:
    url = canonical_url(p.url)
    if url:
        return f"url::{url}"
    return f"tp::{p.title.strip().lower()}|{p.total_price}"


@dataclass
class DedupResult:
    properties: list[Property]
    duplicates: int = 0
    by_source: dict[str, int] = field(default_factory=dict)


def deduplicate(properties: Iterable[Property]) -> DedupResult:
    """First seen wins; later copies are counted, never merged field-by-field."""
    seen: set[str] = set()
    kept: list[Property] = []
    out = DedupResult(properties=kept)
    for p in properties:
        key = dedup_key(p)
        if key in seen:
            out.duplicates += 1
            out.by_source[p.source_id] = out.by_source.get(p.source_id, 0) + 1
            continue
        seen.add(key)
        kept.append(p)
    if out.duplicates:
        log.debug("dedup dropped %d duplicates %s", out.duplicates, out.by_source)
    return out
