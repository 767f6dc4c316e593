import pytest

from switchboard import (
    AuthConfig,
    HTTPResponseError,
    LinearBackoff,
    MemoryCache,
    RequestPipeline,
    Transport,
    TransportError,
    TransportResponse,
    WrapperConfig,
)


class FakeTransport(Transport):
    """Replays outcomes in order; the last one repeats once the list runs out.

    An outcome is an exception instance or a (status, body) tuple.
    """

    network_errors = (ConnectionError,)

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def send(self, request):
        self.calls.append((request, dict(request.headers)))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        status, data = outcome
        response = TransportResponse(status=status, headers={}, data=data, request=request)
        if not response.ok:
            raise HTTPResponseError(response)
        return response


def _pipeline(transport, **options):
    options.setdefault("backoff_step", 0)
    return RequestPipeline(WrapperConfig(**options), transport=transport)


@pytest.mark.asyncio
async def test_success_returns_parsed_body():
    t = FakeTransport((200, '{"id": 1, "title": "x"}'))
    p = _pipeline(t)
    assert await p.request("GET", "/posts/1") == {"id": 1, "title": "x"}
    assert len(t.calls) == 1


@pytest.mark.asyncio
async def test_cache_disabled_always_hits_transport():
    t = FakeTransport((200, '{"a": 1}'))
    p = _pipeline(t)
    await p.request("GET", "/a")
    await p.request("GET", "/a")
    assert len(t.calls) == 2  # noqa: PLR2004


@pytest.mark.asyncio
async def test_cache_hit_skips_transport():
    t = FakeTransport((200, '{"a": 1}'))
    p = _pipeline(t, cache_enabled=True)
    first = await p.request("GET", "/a", params={"x": 1, "y": 2})
    second = await p.request("GET", "/a", params={"y": 2, "x": 1})
    assert first == second == {"a": 1}
    assert len(t.calls) == 1


@pytest.mark.asyncio
async def test_cache_entry_expires_after_duration():
    now = {"t": 100.0}
    cache = MemoryCache(timer=lambda: now["t"])
    t = FakeTransport((200, "1"))
    p = RequestPipeline(
        WrapperConfig(cache_enabled=True, cache_duration=5_000, backoff_step=0),
        transport=t,
        cache=cache,
    )
    await p.request("GET", "/a")
    now["t"] += 4.0
    await p.request("GET", "/a")
    assert len(t.calls) == 1
    now["t"] += 2.0
    await p.request("GET", "/a")
    assert len(t.calls) == 2  # noqa: PLR2004


@pytest.mark.asyncio
async def test_failures_are_not_cached():
    t = FakeTransport((500, "boom"), (200, "ok"))
    p = _pipeline(t, cache_enabled=True, retry_attempts=1)
    with pytest.raises(TransportError):
        await p.request("GET", "/a")
    assert await p.request("GET", "/a") == "ok"


@pytest.mark.asyncio
async def test_exhausted_retries_surface_last_error():
    t = FakeTransport((500, "first"), (502, "second"), (503, '{"message": "down"}'), (200, "late"))
    p = _pipeline(t, retry_attempts=3)
    with pytest.raises(TransportError) as ei:
        await p.request("GET", "/a")
    assert ei.value.status == 503  # noqa: PLR2004
    assert ei.value.message == "down"
    assert ei.value.data == {"message": "down"}
    assert len(t.calls) == 3  # noqa: PLR2004


@pytest.mark.asyncio
async def test_success_on_last_allowed_attempt():
    t = FakeTransport((500, ""), (500, ""), (200, '"fine"'))
    p = _pipeline(t, retry_attempts=3)
    assert await p.request("GET", "/a") == "fine"
    assert len(t.calls) == 3  # noqa: PLR2004


@pytest.mark.asyncio
async def test_post_404_becomes_transport_error():
    t = FakeTransport((404, "{}"))
    p = _pipeline(t, retry_attempts=3)
    with pytest.raises(TransportError) as ei:
        await p.request("POST", "/posts", body={"title": "t"})
    assert ei.value.status == 404  # noqa: PLR2004
    assert str(ei.value) == "Request failed with status code 404"
    assert len(t.calls) == 3  # noqa: PLR2004


@pytest.mark.asyncio
async def test_network_error_passes_through_unchanged():
    err = ConnectionError("reset by peer")
    t = FakeTransport(err)
    p = _pipeline(t, retry_attempts=2)
    with pytest.raises(ConnectionError) as ei:
        await p.request("GET", "/a")
    assert ei.value is err
    assert len(t.calls) == 2  # noqa: PLR2004


@pytest.mark.asyncio
async def test_unexpected_errors_are_not_retried():
    t = FakeTransport(ValueError("bug"))
    p = _pipeline(t, retry_attempts=3)
    with pytest.raises(ValueError):
        await p.request("GET", "/a")
    assert len(t.calls) == 1


@pytest.mark.asyncio
async def test_backoff_is_linear():
    delays = []

    class Recording(LinearBackoff):
        def delay(self, attempt, error=None):
            delays.append(super().delay(attempt, error))
            return 0.0

    t = FakeTransport((500, ""))
    p = RequestPipeline(WrapperConfig(retry_attempts=4), transport=t, backoff=Recording())
    with pytest.raises(TransportError):
        await p.request("GET", "/a")
    # no wait after the final failure
    assert delays == [1.0, 2.0, 3.0]


@pytest.mark.asyncio
async def test_method_defaults_from_body():
    t = FakeTransport((200, "{}"))
    p = _pipeline(t)
    await p.request(None, "/a")
    await p.request(None, "/a", body={"k": "v"})
    assert [c[0].method for c in t.calls] == ["GET", "POST"]


@pytest.mark.asyncio
async def test_base_url_join_and_absolute_urls():
    t = FakeTransport((200, "{}"))
    p = _pipeline(t, base_url="https://api.example.com/v1/")
    await p.request("GET", "/posts/1")
    await p.request("GET", "https://other.example.com/x")
    assert [c[0].url for c in t.calls] == [
        "https://api.example.com/v1/posts/1",
        "https://other.example.com/x",
    ]


@pytest.mark.asyncio
async def test_auth_and_timeout_applied_to_every_attempt():
    t = FakeTransport((500, ""), (200, "{}"))
    p = _pipeline(t, timeout=5_000, auth=AuthConfig(api_key="K", bearer_token="B"))
    await p.request("GET", "/a", headers={"Accept": "application/json"})
    for request, headers in t.calls:
        assert headers == {
            "Accept": "application/json",
            "X-API-Key": "K",
            "Authorization": "Bearer B",
        }
        assert request.timeout == 5_000  # noqa: PLR2004


def test_parse_response_body_never_raises():
    p = RequestPipeline(transport=FakeTransport((200, "")))
    assert p.parse_response_body('{"a": 1}') == {"a": 1}
    assert p.parse_response_body("plain text") == "plain text"
    assert p.parse_response_body(b'[1, 2]') == [1, 2]
    assert p.parse_response_body(b"\xff\xfe") == b"\xff\xfe"
    obj = {"already": "parsed"}
    assert p.parse_response_body(obj) is obj


def test_handle_error_reraises_errors_without_response():
    p = RequestPipeline(transport=FakeTransport((200, "")))
    err = TimeoutError("slow")
    with pytest.raises(TimeoutError) as ei:
        p.handle_error(err)
    assert ei.value is err
