# rentradar/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..deps import require_api_key
from ....config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    return {
        "ENV": settings.ENV,
        "SOURCES_FILE": settings.SOURCES_FILE,
        "SCRAPER_MAX_PAGES": settings.SCRAPER_MAX_PAGES,
        "SCRAPER_TIMEOUT_S": settings.SCRAPER_TIMEOUT_S,
        "BROWSER_ENABLED": settings.BROWSER_ENABLED,
        "API_KEY_SET": bool(settings.API_KEY),
    }


@router.get("/debug/routes", dependencies=[Depends(require_api_key)])
def debug_routes(request: Request) -> dict[str, Any]:
    """Shows what this running server has actually mounted."""
    routes: list[str] = []
    for r in request.app.routes:
        methods = getattr(r, "methods", None)
        path = getattr(r, "path", None)
        if path:
            if methods:
                routes.append(f"{sorted(list(methods))} {path}")
            else:
                routes.append(path)
    return {"count": len(routes), "routes": sorted(routes)}
