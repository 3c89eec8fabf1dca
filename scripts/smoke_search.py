# scripts/smoke_search.py
import asyncio
import json
import logging
import os

from rentradar.domain.criteria import HardRequirements, LocationQuery, OptionalFilters, SearchCriteria
from rentradar.service_layer.use_cases.search import SearchService


def _quiet_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _ints(name: str) -> int | None:
    v = os.environ.get(name)
    return int(v) if v else None


async def main():
    _quiet_logging()

    neighborhoods = [x for x in os.environ.get("NEIGHBORHOODS", "").split(",") if x.strip()]
    sources = [x for x in os.environ.get("SOURCES", "").split(",") if x.strip()]
    criteria = SearchCriteria(
        hard_requirements=HardRequirements(
            min_rooms=_ints("MIN_ROOMS"),
            min_area=_ints("MIN_AREA"),
            max_price=_ints("MAX_PRICE"),
            location=LocationQuery(city=os.environ.get("CITY", "Bogotá"), neighborhoods=tuple(neighborhoods)),
        ),
        optional_filters=OptionalFilters(sources=tuple(sources)),
    )

    service = SearchService(max_pages=int(os.environ.get("MAX_PAGES", "1")))
    res = await service.search(criteria, page=1, limit=int(os.environ.get("LIMIT", "10")))

    for p in res.properties:
        print(f"{p.score:>6.2f}  {p.total_price:>12,}  {p.area:>6.0f}m2  {p.rooms}h  {p.source:<14} {p.title[:60]}")
    print(f"total={res.total} in {res.execution_time}ms")
    print(json.dumps({r.source_id: {"status": r.status, "pages": r.pages, "escalated": r.escalated, "lastError": r.last_error} for r in res.sources}, indent=2))
    print(json.dumps(res.drop_reasons, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
