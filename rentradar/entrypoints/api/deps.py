# rentradar/entrypoints/api/deps.py
from __future__ import annotations

from functools import lru_cache

from fastapi import Header, HTTPException

from ...config import settings
from ...service_layer.use_cases.search import SearchService


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.API_KEY:
        if not x_api_key or x_api_key != settings.API_KEY:
            raise HTTPException(status_code=401, detail="Invalid API key")


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    # one per process so per-source rate limiter state spans requests
    return SearchService()
