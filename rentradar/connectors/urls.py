# rentradar/connectors/urls.py
from __future__ import annotations

import string
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..config import settings
from ..domain.criteria import SearchCriteria
from ..domain.parsing import slugify
from ..domain.types import Operation, PaginationStyle, ResolvedLocation, ScrapingSource


class _Blank(dict):
    def __missing__(self, key: str) -> str:
        return ""


def _num(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def template_values(source: ScrapingSource, criteria: SearchCriteria, where: ResolvedLocation) -> dict[str, str]:
    hard = criteria.hard_requirements
    ptype = hard.property_types[0] if hard.property_types else settings.DEFAULT_PROPERTY_TYPE
    city = slugify(where.city or settings.DEFAULT_CITY)
    nb = slugify(where.neighborhood) if where.neighborhood else ""
    return {
        "base": source.base_url,
        "operation": slugify(Operation(hard.operation).value),
        "property_type": slugify(ptype),
        "city": city,
        "neighborhood": nb,
        "neighborhood_segment": f"/{nb}" if nb else "",
        "location": nb or city,
        "min_rooms": _num(hard.min_rooms),
        "max_rooms": _num(hard.max_rooms),
        "min_area": _num(hard.min_area),
        "max_area": _num(hard.max_area),
        "min_price": _num(hard.min_price),
        "max_price": _num(hard.max_price),
    }


def render(template: str, values: dict[str, str]) -> str:
    return string.Formatter().vformat(template, (), _Blank(values))


def build_search_url(source: ScrapingSource, criteria: SearchCriteria, where: ResolvedLocation) -> str:
    values = template_values(source, criteria, where)
    url = render(source.search_url_template, values)
    params = {k: render(v, values) for k, v in source.query_params.items()}
    params = {k: v for k, v in params.items() if v}
    if not params:
        return url
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True) + list(params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def page_url(source: ScrapingSource, search_url: str, page: int) -> str:
    """Page 1 is always the bare search URL."""
    if page <= 1:
        return search_url

    pg = source.pagination
    parts = urlsplit(search_url)

    if pg.style == PaginationStyle.query:
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != pg.param]
        query.append((pg.param, str(page)))
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

    if pg.style == PaginationStyle.offset:
        offset = (page - 1) * pg.page_size + 1
        suffix = pg.offset_template.format(offset=offset)
        path = parts.path.rstrip("/") + suffix
        return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))

    return search_url
