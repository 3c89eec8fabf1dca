# rentradar/connectors/registry.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from ..config import settings
from ..domain.types import (
    ExtractionDescriptor,
    Pagination,
    PaginationStyle,
    RateLimit,
    ScrapingSource,
)
from .catalog import DEFAULT_SOURCES
from .extraction import DEFAULT_FIELD_SELECTORS, DEFAULT_REGEX_PATTERNS, DEFAULT_STRUCTURED_KEYS

log = logging.getLogger(__name__)


def _as_tuple(v: Any) -> tuple[str, ...]:
    if v is None:
        return ()
    if isinstance(v, str):
        return (v,)
    return tuple(str(x) for x in v if str(x).strip())


def _merge(specific: dict[str, Any] | None, defaults: dict[str, Sequence[str]]) -> dict[str, tuple[str, ...]]:
    """Site-specific candidates first, then the generic ones not already listed."""
    out: dict[str, tuple[str, ...]] = {}
    specific = specific or {}
    for key in list(specific.keys()) + [k for k in defaults.keys() if k not in specific]:
        ordered = list(_as_tuple(specific.get(key)))
        for cand in defaults.get(key, ()):
            if cand not in ordered:
                ordered.append(cand)
        out[key] = tuple(ordered)
    return out


def build_source(record: dict[str, Any]) -> ScrapingSource:
    for required in ("id", "base_url", "search_url_template"):
        if not record.get(required):
            raise ValueError(f"source record missing {required!r}: {record!r}")

    rl = record.get("rate_limit") or {}
    pg = record.get("pagination") or {}
    ex = record.get("extraction") or {}

    rate_limit = RateLimit(
        requests_per_minute=int(rl.get("requests_per_minute", 30)),
        delay_between_requests_s=float(rl.get("delay_between_requests_s", 2.0)),
        max_concurrent_requests=int(rl.get("max_concurrent_requests", 2)),
    )
    pagination = Pagination(
        style=PaginationStyle(pg.get("style", PaginationStyle.query.value)),
        param=str(pg.get("param", "page")),
        page_size=int(pg.get("page_size", 48)),
        offset_template=str(pg.get("offset_template", "_Desde_{offset}")),
    )
    extraction = ExtractionDescriptor(
        card_selectors=_as_tuple(ex.get("card_selectors")),
        field_selectors=_merge(ex.get("field_selectors"), DEFAULT_FIELD_SELECTORS),
        regex_patterns=_merge(ex.get("regex_patterns"), DEFAULT_REGEX_PATTERNS),
        structured_keys=_merge(ex.get("structured_keys"), DEFAULT_STRUCTURED_KEYS),
        next_page_selectors=_as_tuple(ex.get("next_page_selectors")),
        wait_selector=ex.get("wait_selector"),
    )

    return ScrapingSource(
        id=str(record["id"]),
        name=str(record.get("name") or record["id"]),
        base_url=str(record["base_url"]).rstrip("/"),
        search_url_template=str(record["search_url_template"]),
        is_active=bool(record.get("is_active", True)),
        priority=int(record.get("priority", 100)),
        rate_limit=rate_limit,
        pagination=pagination,
        extraction=extraction,
        query_params={str(k): str(v) for k, v in (record.get("query_params") or {}).items()},
        max_pages=record.get("max_pages"),
        timeout_s=record.get("timeout_s"),
    )


def load_source_records(path: str | Path | None = None) -> list[dict[str, Any]]:
    path = path or settings.SOURCES_FILE
    if not path:
        return [dict(r) for r in DEFAULT_SOURCES]

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("sources", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a list of source records")
    return [x for x in payload if isinstance(x, dict)]


class SourceRegistry:
    """Immutable set of sources, loaded once at startup. No hot reload."""

    def __init__(self, sources: Iterable[ScrapingSource]) -> None:
        by_id: dict[str, ScrapingSource] = {}
        for s in sources:
            if s.id in by_id:
                raise ValueError(f"duplicate source id: {s.id}")
            by_id[s.id] = s
        self._by_id = by_id

    @classmethod
    def load(cls, path: str | Path | None = None) -> "SourceRegistry":
        sources = [build_source(r) for r in load_source_records(path)]
        log.info("loaded %d sources (%d active)", len(sources), sum(1 for s in sources if s.is_active))
        return cls(sources)

    def get(self, source_id: str) -> ScrapingSource | None:
        return self._by_id.get(source_id)

    def all(self) -> list[ScrapingSource]:
        return sorted(self._by_id.values(), key=lambda s: (s.priority, s.id))

    def active(self) -> list[ScrapingSource]:
        return [s for s in self.all() if s.is_active]

    def active_ids(self) -> list[str]:
        return [s.id for s in self.active()]

    def priority_of(self, source_id: str) -> int:
        s = self._by_id.get(source_id)
        return s.priority if s else 10_000

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._by_id
