import os
from typing import Any

from .errors import ConfigError
from .types import AuthConfig, BasicAuth, WrapperConfig

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_env_file(env_path: str) -> dict[str, str]:
    """Parse a simple .env file into a dict without modifying os.environ.

    Supports KEY=VALUE lines (an optional leading ``export`` is ignored),
    skipping comments and blank lines. Surrounding quotes are stripped.
    """
    values: dict[str, str] = {}
    try:
        with open(env_path) as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, val = line.split("=", 1)
                key = key.strip().removeprefix("export ").strip()
                if key:
                    values[key] = val.strip().strip('"').strip("'")
    except FileNotFoundError:
        # a missing .env simply contributes nothing
        pass
    return values


def _as_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _as_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def load_auth_from_env(prefix: str = "SWITCHBOARD_", env_path: str | None = None) -> AuthConfig:
    """Read credentials: API_KEY, BEARER_TOKEN, BASIC_USERNAME/BASIC_PASSWORD, REFRESH_TOKEN."""
    env_map = _env_map(env_path)

    def _get(name):
        return env_map.get(f"{prefix}{name}") or None

    basic = None
    username, password = _get("BASIC_USERNAME"), _get("BASIC_PASSWORD")
    if username is not None:
        basic = BasicAuth(username=username, password=password or "")
    elif password is not None:
        raise ConfigError(f"{prefix}BASIC_PASSWORD is set without {prefix}BASIC_USERNAME")
    return AuthConfig(
        api_key=_get("API_KEY"),
        bearer_token=_get("BEARER_TOKEN"),
        basic_auth=basic,
        refresh_token=_get("REFRESH_TOKEN"),
    )


def load_config_from_env(
    prefix: str = "SWITCHBOARD_",
    env_path: str | None = None,
    **overrides: Any,
) -> WrapperConfig:
    """Create a WrapperConfig from environment variables.

    - Looks up <prefix>BASE_URL, TIMEOUT, RETRY_ATTEMPTS, CACHE_ENABLED,
        CACHE_DURATION, BACKOFF_STEP plus the credentials read by load_auth_from_env.
    - If 'env_path' is provided, variables from the .env file augment the lookup
        (without mutating the process environment). Values in the actual
        environment take precedence over the file.
    - Keyword overrides win over both and go through WrapperConfig.from_dict,
        so unknown names raise ConfigError.
    """
    env_map = _env_map(env_path)
    values: dict[str, Any] = {}
    if f"{prefix}BASE_URL" in env_map:
        values["base_url"] = env_map[f"{prefix}BASE_URL"]
    for field_name in ("timeout", "retry_attempts", "cache_duration", "backoff_step"):
        var = f"{prefix}{field_name.upper()}"
        if env_map.get(var):
            values[field_name] = _as_int(var, env_map[var])
    if f"{prefix}CACHE_ENABLED" in env_map:
        var = f"{prefix}CACHE_ENABLED"
        values["cache_enabled"] = _as_bool(var, env_map[var])
    values["auth"] = load_auth_from_env(prefix=prefix, env_path=env_path)
    values.update(overrides)
    return WrapperConfig.from_dict(values)


def _env_map(env_path: str | None) -> dict[str, str]:
    file_env = _parse_env_file(env_path) if env_path else {}
    return {**file_env, **os.environ}
