import contextlib
import logging
from typing import Any, Union

from .pipeline import RequestPipeline
from .types import WrapperConfig


class Switchboard:
    """REST, GraphQL and WebSocket access over one RequestPipeline.

    Every verb method only shapes its arguments into ``pipeline.request``; auth,
    caching, retry and refresh all happen there.

    Construct with a WrapperConfig or with keyword options (not both):
        Switchboard(WrapperConfig(base_url=...))
        Switchboard(base_url=..., cache_enabled=True, auth={"api_key": ...})

    Other keywords:
    - transport: HTTP Transport (HttpxTransport by default)
    - cache: cache store with get/put/clear
    - refresh_hook: callable producing a new access token on 401
    - backoff: None | "linear" | BackoffPolicy | callable
    - ws_transport: WebSocket transport
    - log_level: level for the "switchboard" logger
    """

    def __init__(
        self,
        config: Union[WrapperConfig, None] = None,
        *,
        transport=None,
        cache=None,
        refresh_hook=None,
        backoff=None,
        ws_transport=None,
        log_level: Union[int, None] = None,
        **options,
    ):
        if config is not None and options:
            raise TypeError("pass either a WrapperConfig or keyword options, not both")
        if config is None:
            config = WrapperConfig.from_dict(options)
        self.pipeline = RequestPipeline(
            config,
            transport=transport,
            cache=cache,
            refresh_hook=refresh_hook,
            backoff=backoff,
            ws_transport=ws_transport,
        )
        if log_level is not None:
            with contextlib.suppress(Exception):
                logging.getLogger("switchboard").setLevel(log_level)

    @property
    def config(self) -> WrapperConfig:
        return self.pipeline.config

    # ---------- convenience: build config from env ----------
    @classmethod
    def from_env(cls, prefix: str = "SWITCHBOARD_", env_path: Union[str, None] = None, **kwargs):
        """Build a client whose config comes from environment variables.

        Collaborator keywords (transport, cache, refresh_hook, backoff,
        ws_transport, log_level) are forwarded to the constructor; any other
        keyword overrides the value read from the environment.
        """
        from .env import load_config_from_env  # noqa: PLC0415

        collaborators = {
            k: kwargs.pop(k)
            for k in list(kwargs.keys())
            if k in {"transport", "cache", "refresh_hook", "backoff", "ws_transport", "log_level"}
        }
        config = load_config_from_env(prefix=prefix, env_path=env_path, **kwargs)
        return cls(config, **collaborators)

    async def aclose(self):
        await self.pipeline.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    # ---------- REST ----------
    async def request(self, method: Union[str, None], endpoint: str, **options) -> Any:
        return await self.pipeline.request(method, endpoint, **options)

    async def get(self, endpoint: str, params: Union[dict, None] = None) -> Any:
        return await self.pipeline.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, body: Any = None, **extra) -> Any:
        return await self.pipeline.request("POST", endpoint, body=body, **extra)

    async def put(self, endpoint: str, body: Any = None, **extra) -> Any:
        return await self.pipeline.request("PUT", endpoint, body=body, **extra)

    async def patch(self, endpoint: str, body: Any = None, **extra) -> Any:
        return await self.pipeline.request("PATCH", endpoint, body=body, **extra)

    async def delete(self, endpoint: str, **extra) -> Any:
        return await self.pipeline.request("DELETE", endpoint, **extra)

    # ---------- GraphQL ----------
    async def query_graphql(
        self, endpoint: str, query: str, variables: Union[dict, None] = None
    ) -> Any:
        return await self.pipeline.request(
            "POST", endpoint, body={"query": query, "variables": variables or {}}
        )

    async def mutation_graphql(
        self, endpoint: str, mutation: str, variables: Union[dict, None] = None
    ) -> Any:
        # executed exactly like a query; only the argument name differs
        return await self.pipeline.request(
            "POST", endpoint, body={"query": mutation, "variables": variables or {}}
        )

    # ---------- WebSocket ----------
    async def connect_websocket(self, url: str, **callbacks):
        return await self.pipeline.connect_websocket(url, **callbacks)
