import base64
from collections.abc import Mapping

from .types import AuthConfig


def basic_credentials(username: str, password: str) -> str:
    raw = f"{username}:{password}".encode()
    return base64.b64encode(raw).decode("ascii")


def auth_headers(auth: AuthConfig, existing: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return ``existing`` merged with every configured credential.

    Schemes are applied in a fixed order: api key, bearer, basic. Bearer and
    basic both write ``Authorization``; when both are configured basic is
    applied last and wins.
    """
    headers = dict(existing or {})
    if auth.api_key:
        headers[auth.api_key_header] = auth.api_key
    if auth.bearer_token:
        headers["Authorization"] = f"Bearer {auth.bearer_token}"
    if auth.basic_auth is not None:
        creds = basic_credentials(auth.basic_auth.username, auth.basic_auth.password)
        headers["Authorization"] = f"Basic {creds}"
    return headers
