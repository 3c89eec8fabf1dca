import httpx
import pytest

from rentradar.adapters.clients.browser import BrowserSession
from rentradar.adapters.clients.http_resilience import browser_headers, fetch_document
from rentradar.config import settings
from rentradar.domain.errors import NetworkError

AGENTS = ["agent-a/1.0", "agent-b/2.0", "agent-c/3.0"]


@pytest.fixture
def agents(monkeypatch):
    monkeypatch.setattr(settings, "HTTP_USER_AGENTS", AGENTS)
    return AGENTS


async def test_user_agent_rotates_per_request(agents):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["user-agent"])
        return httpx.Response(200, text="<html></html>")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        for _ in range(60):
            await fetch_document(client, "https://www.demo.example/arriendo")

    assert set(seen) <= set(agents)
    assert len(set(seen)) > 1


def test_headers_and_browser_draw_from_pool(agents):
    assert browser_headers()["User-Agent"] in agents
    assert BrowserSession().user_agent in agents
    assert BrowserSession(user_agent="pinned").user_agent == "pinned"


async def test_non_retryable_status_fails_fast():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError) as exc:
            await fetch_document(client, "https://www.demo.example/nada", max_retries=3, backoff_base_s=0)

    assert exc.value.status_code == 404
    assert len(calls) == 1
