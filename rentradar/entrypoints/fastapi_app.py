# rentradar/entrypoints/fastapi_app.py
from __future__ import annotations

from fastapi import FastAPI

from .api.routers import health, search


def create_app() -> FastAPI:
    app = FastAPI(title="RentRadar - Rental Listing Aggregator")

    # Routers
    app.include_router(health.router)
    app.include_router(search.router)

    return app
