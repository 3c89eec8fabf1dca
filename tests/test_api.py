# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from rentradar.config import settings
from rentradar.connectors.registry import SourceRegistry
from rentradar.domain.types import RawRecord
from rentradar.entrypoints.api.deps import get_search_service
from rentradar.entrypoints.fastapi_app import create_app
from rentradar.service_layer.use_cases.search import SearchService


class CannedScraper:
    def __init__(self, source_id):
        self.source_id = source_id

    async def scrape(self, criteria, max_pages, *, collected=None):
        out = collected if collected is not None else []
        out.extend(
            [
                RawRecord(
                    source_id=self.source_id,
                    title="Apartamento con jacuzzi en Cedritos",
                    price="$3.200.000",
                    admin_fee="$300.000",
                    area="85 m2",
                    rooms="3",
                    location="Calle 147, Cedritos",
                    url=f"/inmueble/{self.source_id}-1",
                    amenities=["Jacuzzi", "Gimnasio"],
                ),
                RawRecord(
                    source_id=self.source_id,
                    title="Apartaestudio en Chapinero",
                    price="$1.700.000",
                    area="35 m2",
                    rooms="1",
                    location="Calle 57, Chapinero",
                    url=f"/inmueble/{self.source_id}-2",
                ),
            ]
        )
        return out


@pytest.fixture
def service(make_source):
    registry = SourceRegistry([make_source("alpha", priority=1), make_source("beta", priority=2)])
    return SearchService(registry, scraper_factory=lambda source, limiter: CannedScraper(source.id), timeout_s=5)


@pytest.fixture
def client(service):
    app = create_app()
    app.dependency_overrides[get_search_service] = lambda: service
    with TestClient(app) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_search_envelope_is_camel_case(client):
    body = {
        "criteria": {
            "hardRequirements": {"minRooms": 2, "maxPrice": 4_000_000},
            "preferences": {"amenities": ["jacuzzi"]},
            "optionalFilters": {"sources": ["alpha"]},
        },
        "page": 1,
        "limit": 10,
    }
    r = client.post("/search", json=body)
    assert r.status_code == 200

    payload = r.json()
    assert payload["success"] is True
    data = payload["data"]
    assert data["total"] == 1
    assert data["page"] == 1
    assert "executionTime" in data
    assert data["summary"]["hardMatches"] == 1
    assert data["dropReasons"]["hard_filter::rooms"] == 1
    run = {s["sourceId"]: s for s in data["sources"]}["alpha"]
    assert run["status"] == "ok"
    assert run["pages"] == 0
    assert run["escalated"] is False
    assert run["lastError"] is None

    prop = data["properties"][0]
    assert prop["sourceId"] == "alpha"
    assert prop["totalPrice"] == 3_500_000
    assert prop["pricePerM2"] == round(3_200_000 / 85)
    assert prop["preferenceMatches"] == ["jacuzzi"]
    assert prop["location"]["neighborhood"] == "Cedritos"
    assert prop["url"] == "https://www.alpha.example/inmueble/alpha-1"


def test_search_accepts_total_price_aliases(client):
    body = {"criteria": {"hardRequirements": {"maxTotalPrice": 2_000_000}}}
    r = client.post("/search", json=body)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total"] == 2
    assert all(p["totalPrice"] <= 2_000_000 for p in data["properties"])


def test_unsatisfiable_criteria_is_400(client):
    body = {"criteria": {"hardRequirements": {"minArea": 120, "maxArea": 60}}}
    r = client.post("/search", json=body)

    assert r.status_code == 400
    payload = r.json()
    assert payload["success"] is False
    assert payload["error"] == "Invalid search criteria"
    assert any("area" in d for d in payload["details"])


def test_malformed_body_is_422(client):
    r = client.post("/search", json={"criteria": {}, "limit": 100_000})
    assert r.status_code == 422


def test_recommendations(client):
    r = client.post("/search/recommendations", json={"criteria": {"preferences": {"amenities": ["gimnasio"]}}, "limit": 1})
    assert r.status_code == 200
    data = r.json()["data"]
    assert len(data) == 1
    assert data[0]["preferenceMatches"] == ["gimnasio"]


def test_sources(client):
    r = client.get("/search/sources")
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": ["alpha", "beta"]}


def test_source_stats(client):
    r = client.get("/search/sources/stats")
    assert r.status_code == 200
    data = r.json()["data"]
    assert set(data) == {"alpha", "beta"}
    assert data["alpha"]["active_requests"] == 0


def test_api_key_is_enforced(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "s3cret")

    assert client.get("/search/sources").status_code == 401
    assert client.get("/search/sources", headers={"X-API-Key": "s3cret"}).status_code == 200
    # health stays open
    assert client.get("/health").status_code == 200
