# rentradar/entrypoints/api/routers/search.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..deps import get_search_service, require_api_key
from ....domain.criteria import ensure_criteria
from ....domain.errors import CriteriaError
from ....schemas import (
    ErrorResponse,
    PropertyOut,
    RecommendationRequest,
    RecommendationsResponse,
    SearchRequest,
    SearchResponse,
    SearchResultOut,
    SourcesResponse,
    SourceStatsResponse,
)
from ....service_layer.use_cases.search import SearchService

router = APIRouter(prefix="/search", tags=["search"], dependencies=[Depends(require_api_key)])


def _invalid(problems: list[str]) -> JSONResponse:
    body = ErrorResponse(error="Invalid search criteria", details=problems)
    return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))


@router.post("", response_model=SearchResponse, responses={400: {"model": ErrorResponse}})
async def search(body: SearchRequest, service: SearchService = Depends(get_search_service)):
    try:
        criteria = ensure_criteria(body.criteria.to_domain())
    except CriteriaError as e:
        return _invalid(e.problems)

    result = await service.search(criteria, page=body.page, limit=body.limit)
    return SearchResponse(data=SearchResultOut.from_domain(result))


@router.post("/recommendations", response_model=RecommendationsResponse, responses={400: {"model": ErrorResponse}})
async def recommendations(body: RecommendationRequest, service: SearchService = Depends(get_search_service)):
    try:
        criteria = ensure_criteria(body.criteria.to_domain())
    except CriteriaError as e:
        return _invalid(e.problems)

    props = await service.recommend(criteria, limit=body.limit)
    return RecommendationsResponse(data=[PropertyOut.from_domain(p) for p in props])


@router.get("/sources", response_model=SourcesResponse)
def list_sources(service: SearchService = Depends(get_search_service)) -> SourcesResponse:
    return SourcesResponse(data=service.registry.active_ids())


@router.get("/sources/stats", response_model=SourceStatsResponse)
def source_stats(service: SearchService = Depends(get_search_service)) -> SourceStatsResponse:
    return SourceStatsResponse(data=service.limiter_stats())
