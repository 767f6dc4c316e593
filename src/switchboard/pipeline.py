import asyncio
import json
import logging
from typing import Any, Callable, Union

from .adapters import HttpxTransport, Transport
from .auth import auth_headers
from .cache import MemoryCache, cache_key
from .errors import HTTPResponseError, MaxRetriesExceededError, TransportError
from .policies import BackoffPolicy, coerce_backoff
from .refresh import TokenRefresher
from .types import RequestSpec, TransportRequest, TransportResponse, WrapperConfig
from .websocket import AiohttpWebSocketTransport, WebSocketConnection, _dispatch

REFRESH_AND_RETRY = "refresh-and-retry"

_CURRENT = object()

logger = logging.getLogger("switchboard")


def parse_response_body(raw: Any) -> Any:
    """Decode JSON text when possible; anything undecodable comes back unchanged."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return raw
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw


def _error_message(response: TransportResponse) -> str:
    body = parse_response_body(response.data)
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"Request failed with status code {response.status}"


class RequestPipeline:
    """Executes logical requests with auth, caching, retry and 401 refresh applied.

    Flow per request:
        cache lookup -> [attempt: auth headers -> transport -> parse + cache]
        failed attempt -> handle_error -> refresh once on 401, else backoff/raise

    Collaborators are pluggable:
    - transport: HTTP Transport (default HttpxTransport)
    - cache: object with get/put/clear (default MemoryCache)
    - refresh_hook: callable returning a new access token (sync or async)
    - backoff: None | "linear" | BackoffPolicy | delay_fn(attempt[, error])
    - ws_transport: object with async connect(url) (default AiohttpWebSocketTransport)
    """

    def __init__(
        self,
        config: Union[WrapperConfig, None] = None,
        *,
        transport: Union[Transport, None] = None,
        cache=None,
        refresh_hook: Union[Callable, None] = None,
        backoff: Union[object, None] = None,
        ws_transport=None,
    ):
        self.config = config or WrapperConfig()
        self.transport = transport or HttpxTransport()
        self.cache = cache if cache is not None else MemoryCache()
        self.ws_transport = ws_transport or AiohttpWebSocketTransport()
        self.backoff: BackoffPolicy = coerce_backoff(backoff, self.config.backoff_step)
        self.refresher = TokenRefresher(self.config.auth, refresh_hook)

    # ------------------------ building blocks ------------------------
    def derive_auth_headers(self, existing=None) -> dict[str, str]:
        return auth_headers(self.config.auth, existing)

    def cache_key(self, method: str, endpoint: str, params=None, body=None) -> str:
        return cache_key(method, endpoint, params, body)

    parse_response_body = staticmethod(parse_response_body)

    def resolve_url(self, endpoint: str) -> str:
        base = self.config.base_url
        if not base or endpoint.startswith(("http://", "https://", "ws://", "wss://")):
            return endpoint
        return f"{base.rstrip('/')}/{endpoint.lstrip('/')}"

    # ------------------------ cache capability ------------------------
    def cache_lookup(self, key: str) -> Any:
        """Cached value for ``key``, or None on a miss or when caching is off."""
        if not self.config.cache_enabled:
            return None
        return self.cache.get(key)

    def cache_store(self, key: str, value: Any) -> None:
        if self.config.cache_enabled:
            self.cache.put(key, value, self.config.cache_duration)
            logger.debug(f"cache store key={key}")

    # ------------------------ interception ------------------------
    def handle_response(self, response: TransportResponse, key: Union[str, None]) -> Any:
        data = parse_response_body(response.data)
        if key is not None:
            self.cache_store(key, data)
        return data

    @staticmethod
    def normalize_error(error: HTTPResponseError) -> TransportError:
        response = error.response
        return TransportError(
            response.status, _error_message(response), parse_response_body(response.data)
        )

    def handle_error(self, error: BaseException, *, allow_refresh: bool = True) -> str:
        """Classify a failed transport call.

        Returns REFRESH_AND_RETRY for a 401 when a refresh token is configured.
        Otherwise raises: a TransportError(status, message, data) for errors that
        carry an HTTP response, or the original error unchanged when no response
        was received.
        """
        response = getattr(error, "response", None)
        if not isinstance(response, TransportResponse):
            raise error
        if response.status == 401 and allow_refresh and self.config.auth.refresh_token:  # noqa: PLR2004
            return REFRESH_AND_RETRY
        raise self.normalize_error(error) from error

    async def refresh_and_retry(
        self, error: HTTPResponseError, stale_token: Any = _CURRENT
    ) -> TransportResponse:
        """Get a fresh token and resend the exact request that failed, once.

        ``stale_token`` is the bearer token the failed request was sent with;
        it defaults to the one configured right now.
        """
        if stale_token is _CURRENT:
            stale_token = self.config.auth.bearer_token
        token = await self.refresher.refresh(stale_token)
        request: TransportRequest = error.request
        request.headers["Authorization"] = f"Bearer {token}"
        logger.info(f"resending after token refresh method={request.method} url={request.url}")
        try:
            return await self.transport.send(request)
        except HTTPResponseError as e:
            raise self.normalize_error(e) from e

    # ------------------------ request ------------------------
    def _prepare(self, spec: RequestSpec) -> TransportRequest:
        return TransportRequest(
            method=spec.method,
            url=self.resolve_url(spec.endpoint),
            headers=self.derive_auth_headers(spec.headers),
            params=spec.params,
            body=spec.body,
            timeout=self.config.timeout,
        )

    async def _attempt(self, spec: RequestSpec) -> TransportResponse:
        """One transport call, plus at most one refresh-and-resend per logical request."""
        request = self._prepare(spec)
        stale_token = self.config.auth.bearer_token
        logger.debug(f"req start method={request.method} url={request.url}")
        try:
            response = await self.transport.send(request)
        except HTTPResponseError as e:
            self.handle_error(e, allow_refresh=not spec.refreshed)
            failed = e
        else:
            logger.debug(
                f"req done method={request.method} url={request.url} status={response.status}"
            )
            return response
        spec.refreshed = True
        return await self.refresh_and_retry(failed, stale_token)

    async def request(
        self,
        method: Union[str, None],
        endpoint: str,
        *,
        params=None,
        body=None,
        headers=None,
    ) -> Any:
        """Run one logical request and return the parsed response body.

        ``method`` defaults to POST when a body is given, GET otherwise.
        Raises TransportError for non-2xx responses and the transport's own
        exception for network failures, once ``retry_attempts`` is used up.
        A RefreshError from the refresh hook is raised immediately.
        """
        if method is None:
            method = "POST" if body is not None else "GET"
        spec = RequestSpec(method.upper(), endpoint, params, body, headers)

        key = None
        if self.config.cache_enabled:
            key = self.cache_key(spec.method, endpoint, params, body)
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"cache hit key={key}")
                return cached

        retryable = (TransportError, *getattr(self.transport, "network_errors", ()))
        attempts = self.config.retry_attempts
        attempt = 0
        last_error = None
        while attempt < attempts:
            try:
                response = await self._attempt(spec)
            except retryable as e:
                attempt += 1
                last_error = e
                if attempt >= attempts:
                    logger.warning(
                        f"request failed method={spec.method} endpoint={endpoint} "
                        f"attempts={attempt}: {e!r}"
                    )
                    raise
                delay = self.backoff.delay(attempt, e)
                logger.info(
                    f"retrying method={spec.method} endpoint={endpoint} "
                    f"attempt={attempt}/{attempts} delay={delay:.2f}s: {e!r}"
                )
                await asyncio.sleep(delay)
                continue
            return self.handle_response(response, key)
        raise MaxRetriesExceededError(last_error=last_error)

    # ------------------------ websocket ------------------------
    async def connect_websocket(
        self,
        url: str,
        *,
        on_open=None,
        on_message=None,
        on_error=None,
        on_close=None,
        **connect_kwargs,
    ) -> WebSocketConnection:
        """Open a WebSocket and wire the lifecycle callbacks.

        Frames are passed through parse_response_body before ``on_message``.
        Retry, cache and auth policies do not apply here.
        """
        try:
            ws = await self.ws_transport.connect(url, **connect_kwargs)
        except Exception as e:
            logger.warning(f"websocket connect failed url={url}: {e!r}")
            await _dispatch(on_error, e)
            raise
        conn = WebSocketConnection(
            ws,
            parse_response_body,
            on_open=on_open,
            on_message=on_message,
            on_error=on_error,
            on_close=on_close,
        )
        return await conn.start()

    async def aclose(self):
        await self.transport.aclose()
        await self.ws_transport.aclose()
