import logging
from unittest.mock import AsyncMock

import pytest

from switchboard import (
    ConfigError,
    HTTPResponseError,
    Switchboard,
    Transport,
    TransportError,
    TransportResponse,
    WrapperConfig,
)


class RecordingTransport(Transport):
    def __init__(self, status=200, data="{}"):
        self.status = status
        self.data = data
        self.requests = []
        self.closed = False

    async def send(self, request):
        self.requests.append(request)
        response = TransportResponse(status=self.status, data=self.data, request=request)
        if not response.ok:
            raise HTTPResponseError(response)
        return response

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_verbs_shape_pipeline_calls():
    sb = Switchboard()
    sb.pipeline.request = AsyncMock(return_value="ok")

    await sb.get("/a", {"q": 1})
    await sb.post("/a", {"b": 1}, headers={"X": "1"})
    await sb.put("/a", {"b": 2})
    await sb.patch("/a", {"b": 3}, params={"p": 1})
    await sb.delete("/a", params={"hard": True})

    calls = [(c.args, c.kwargs) for c in sb.pipeline.request.call_args_list]
    assert calls == [
        (("GET", "/a"), {"params": {"q": 1}}),
        (("POST", "/a"), {"body": {"b": 1}, "headers": {"X": "1"}}),
        (("PUT", "/a"), {"body": {"b": 2}}),
        (("PATCH", "/a"), {"body": {"b": 3}, "params": {"p": 1}}),
        (("DELETE", "/a"), {"params": {"hard": True}}),
    ]


@pytest.mark.asyncio
async def test_graphql_query_and_mutation_are_posts():
    t = RecordingTransport(data='{"data": {"x": 1}}')
    sb = Switchboard(transport=t)
    assert await sb.query_graphql("/graphql", "query{x}", {}) == {"data": {"x": 1}}
    await sb.mutation_graphql("/graphql", "mutation{y}", {"id": 2})
    assert [(r.method, r.body) for r in t.requests] == [
        ("POST", {"query": "query{x}", "variables": {}}),
        ("POST", {"query": "mutation{y}", "variables": {"id": 2}}),
    ]


@pytest.mark.asyncio
async def test_get_post_scenario_with_cache():
    t = RecordingTransport(data='{"id": 1, "title": "x"}')
    sb = Switchboard(base_url="https://jsonplaceholder.typicode.com", cache_enabled=True, transport=t)
    assert await sb.get("/posts/1") == {"id": 1, "title": "x"}
    assert await sb.get("/posts/1") == {"id": 1, "title": "x"}
    assert len(t.requests) == 1


@pytest.mark.asyncio
async def test_post_404_after_retries():
    t = RecordingTransport(status=404, data="{}")
    sb = Switchboard(retry_attempts=3, backoff_step=0, transport=t)
    with pytest.raises(TransportError) as ei:
        await sb.post("/posts", {"title": "t"})
    assert ei.value.status == 404  # noqa: PLR2004
    assert len(t.requests) == 3  # noqa: PLR2004


def test_config_or_options_not_both():
    with pytest.raises(TypeError):
        Switchboard(WrapperConfig(), base_url="https://x")


def test_unknown_options_are_rejected():
    with pytest.raises(ConfigError):
        Switchboard(baseURL="https://x")
    with pytest.raises(ConfigError):
        Switchboard(auth={"token": "t"})


def test_defaults_and_log_level():
    sb = Switchboard(log_level=logging.DEBUG)
    assert sb.config.timeout == 30_000  # noqa: PLR2004
    assert sb.config.retry_attempts == 3  # noqa: PLR2004
    assert sb.config.cache_enabled is False
    assert sb.config.cache_duration == 300_000  # noqa: PLR2004
    assert logging.getLogger("switchboard").level == logging.DEBUG


@pytest.mark.asyncio
async def test_async_context_closes_transport():
    t = RecordingTransport()
    async with Switchboard(transport=t) as sb:
        await sb.get("https://example.com")
    assert t.closed
