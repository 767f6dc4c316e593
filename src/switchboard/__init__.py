from .adapters import AiohttpTransport, HttpxTransport, RequestsTransport, Transport
from .auth import auth_headers
from .cache import MemoryCache, cache_key
from .client import Switchboard
from .env import load_auth_from_env, load_config_from_env
from .errors import (
    ConfigError,
    HTTPResponseError,
    LLMResponseError,
    MaxRetriesExceededError,
    RefreshError,
    SwitchboardError,
    TransportError,
)
from .pipeline import REFRESH_AND_RETRY, RequestPipeline, parse_response_body
from .policies import BackoffPolicy, FunctionalBackoff, LinearBackoff, coerce_backoff
from .refresh import TokenRefresher
from .types import (
    AuthConfig,
    BasicAuth,
    RequestSpec,
    TransportRequest,
    TransportResponse,
    WrapperConfig,
)
from .websocket import AiohttpWebSocketTransport, WebSocketConnection

__all__ = [
    "WrapperConfig",
    "AuthConfig",
    "BasicAuth",
    "RequestSpec",
    "TransportRequest",
    "TransportResponse",
    "Switchboard",
    "RequestPipeline",
    "REFRESH_AND_RETRY",
    "parse_response_body",
    "auth_headers",
    "cache_key",
    "MemoryCache",
    "TokenRefresher",
    "BackoffPolicy",
    "LinearBackoff",
    "FunctionalBackoff",
    "coerce_backoff",
    "Transport",
    "HttpxTransport",
    "AiohttpTransport",
    "RequestsTransport",
    "AiohttpWebSocketTransport",
    "WebSocketConnection",
    "load_config_from_env",
    "load_auth_from_env",
    "SwitchboardError",
    "ConfigError",
    "HTTPResponseError",
    "TransportError",
    "RefreshError",
    "MaxRetriesExceededError",
    "LLMResponseError",
]
