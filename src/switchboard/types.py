from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from .errors import ConfigError

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_CACHE_DURATION_MS = 300_000
DEFAULT_BACKOFF_STEP_MS = 1_000


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str


@dataclass
class AuthConfig:
    api_key: str | None = None
    bearer_token: str | None = None  # replaced in place after a successful refresh
    basic_auth: BasicAuth | None = None
    refresh_token: str | None = None
    api_key_header: str = "X-API-Key"

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "AuthConfig":
        data = _checked(cls, values, "auth")
        basic = data.get("basic_auth")
        if isinstance(basic, Mapping):
            data["basic_auth"] = BasicAuth(**_checked(BasicAuth, basic, "auth.basic_auth"))
        return cls(**data)


@dataclass(frozen=True)
class WrapperConfig:
    """Every option the pipeline understands. Durations are milliseconds."""

    base_url: str = ""
    timeout: int = DEFAULT_TIMEOUT_MS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    cache_enabled: bool = False
    cache_duration: int = DEFAULT_CACHE_DURATION_MS
    auth: AuthConfig = field(default_factory=AuthConfig)
    openapi_document: Any = None
    backoff_step: int = DEFAULT_BACKOFF_STEP_MS

    def __post_init__(self):
        if self.retry_attempts < 1:
            raise ConfigError(f"retry_attempts must be >= 1, got {self.retry_attempts}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        for name in ("cache_duration", "backoff_step"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative, got {getattr(self, name)}")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "WrapperConfig":
        """Build a config from a plain mapping; unknown keys raise ConfigError."""
        data = _checked(cls, values, "config")
        auth = data.get("auth")
        if auth is None:
            data.pop("auth", None)
        elif isinstance(auth, Mapping):
            data["auth"] = AuthConfig.from_dict(auth)
        return cls(**data)


@dataclass
class RequestSpec:
    """One logical request as the caller described it."""

    method: str
    endpoint: str
    params: dict[str, Any] | None = None
    body: Any = None
    headers: dict[str, str] | None = None
    # set once a 401 refresh has been spent on this request
    refreshed: bool = False


@dataclass
class TransportRequest:
    """What a transport receives for a single attempt."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    body: Any = None
    timeout: int = DEFAULT_TIMEOUT_MS  # ms


@dataclass
class TransportResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    data: Any = None
    request: TransportRequest | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300  # noqa: PLR2004


def _checked(cls, values: Mapping[str, Any], where: str) -> dict[str, Any]:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"unknown {where} option(s): {', '.join(unknown)}")
    return dict(values)
