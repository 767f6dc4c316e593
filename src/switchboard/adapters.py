import asyncio
import contextlib
import threading
from collections.abc import Mapping

from .errors import HTTPResponseError
from .types import TransportRequest, TransportResponse


def _body_kwargs(body, json_key: str, raw_key: str) -> dict:
    """Mappings and lists go out as JSON; str/bytes are sent verbatim."""
    if body is None:
        return {}
    if isinstance(body, (str, bytes, bytearray)):
        return {raw_key: body}
    return {json_key: body}


def _finish(request: TransportRequest, status: int, headers: Mapping, text) -> TransportResponse:
    response = TransportResponse(status=status, headers=dict(headers), data=text, request=request)
    if not response.ok:
        raise HTTPResponseError(response)
    return response


class Transport:
    """Base HTTP transport.

    ``send`` returns a TransportResponse for 2xx statuses and raises
    HTTPResponseError otherwise. ``network_errors`` lists the exception types
    that mean no response was received at all; the pipeline retries those and
    lets them through unchanged.
    """

    network_errors: tuple = (OSError, asyncio.TimeoutError)

    async def send(self, request: TransportRequest) -> TransportResponse:
        raise NotImplementedError

    async def aclose(self):
        return None


# ---------- httpx (async, default) ----------
class HttpxTransport(Transport):
    def __init__(self, client=None):
        import httpx  # noqa: PLC0415

        self.network_errors = (httpx.RequestError,)
        self.client = client
        self._own_client = client is None

    def _ensure_client(self):
        if self.client is None:
            import httpx  # noqa: PLC0415

            self.client = httpx.AsyncClient()
        return self.client

    async def send(self, request):
        client = self._ensure_client()
        resp = await client.request(
            request.method,
            request.url,
            headers=request.headers,
            params=request.params or None,
            timeout=request.timeout / 1000.0,
            **_body_kwargs(request.body, "json", "content"),
        )
        return _finish(request, resp.status_code, resp.headers, resp.text)

    async def aclose(self):
        if self._own_client and self.client is not None:
            with contextlib.suppress(Exception):
                await self.client.aclose()
            self.client = None


# ---------- aiohttp (async) ----------
class AiohttpTransport(Transport):
    def __init__(self, session=None):
        import aiohttp  # noqa: PLC0415

        self.network_errors = (aiohttp.ClientError, asyncio.TimeoutError)
        self.session = session
        self._own_session = session is None

    async def send(self, request):
        import aiohttp  # noqa: PLC0415

        if self.session is None:
            self.session = aiohttp.ClientSession()
        async with self.session.request(
            request.method,
            request.url,
            headers=request.headers,
            params=request.params or None,
            timeout=aiohttp.ClientTimeout(total=request.timeout / 1000.0),
            **_body_kwargs(request.body, "json", "data"),
        ) as resp:
            text = await resp.text()
            return _finish(request, resp.status, resp.headers, text)

    async def aclose(self):
        if self._own_session and self.session is not None:
            await self.session.close()
            self.session = None


# ---------- requests (sync session, run off the event loop) ----------
class RequestsTransport(Transport):
    def __init__(self, session=None):
        import requests  # noqa: PLC0415

        self.network_errors = (requests.RequestException,)
        self.session = session
        self._own_session = session is None
        self._session_lock = threading.Lock()

    def _get_session(self):
        # worker threads race on the first request
        with self._session_lock:
            if self.session is None:
                import requests  # noqa: PLC0415

                self.session = requests.Session()
            return self.session

    def _send_sync(self, request):
        resp = self._get_session().request(
            request.method,
            request.url,
            headers=request.headers,
            params=request.params or None,
            timeout=request.timeout / 1000.0,
            **_body_kwargs(request.body, "json", "data"),
        )
        return _finish(request, resp.status_code, resp.headers, resp.text)

    async def send(self, request):
        return await asyncio.to_thread(self._send_sync, request)

    async def aclose(self):
        if self._own_session and self.session is not None:
            with contextlib.suppress(Exception):
                self.session.close()
            self.session = None
