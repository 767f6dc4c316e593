import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Union

from .errors import RefreshError
from .policies import _count_positional_args
from .types import AuthConfig

logger = logging.getLogger("switchboard")

# hooks receive the configured refresh token at 1+ args
HOOK_WITH_REFRESH_TOKEN_ARGC = 1


def _no_hook():
    raise RefreshError(
        "401 received but no refresh hook is configured; pass refresh_hook=... to obtain tokens"
    )


def coerce_refresh_hook(hook: Union[Callable, None]) -> Callable[[Union[str, None]], Awaitable[str]]:
    """Normalize a sync or async hook into ``async fn(refresh_token) -> token``.

    Accepted hook signatures:
        - hook() -> token
        - hook(refresh_token) -> token
    """
    fn = hook or _no_hook
    if not callable(fn):
        raise TypeError("refresh_hook must be a callable")
    takes_token = _count_positional_args(fn, 0) >= HOOK_WITH_REFRESH_TOKEN_ARGC

    async def _call(refresh_token):
        result = fn(refresh_token) if takes_token else fn()
        if inspect.isawaitable(result):
            result = await result
        return result

    return _call


class TokenRefresher:
    """Single-flight wrapper around the refresh hook.

    At most one refresh runs at a time. A caller holding a token that was already
    replaced while it waited gets the new token without another hook call, so a
    burst of concurrent 401s costs exactly one refresh.
    """

    def __init__(self, auth: AuthConfig, hook: Union[Callable, None] = None):
        self.auth = auth
        self._hook = coerce_refresh_hook(hook)
        self._lock = asyncio.Lock()
        self.refreshes = 0

    async def refresh(self, stale_token: Union[str, None]) -> str:
        async with self._lock:
            current = self.auth.bearer_token
            if current and current != stale_token:
                logger.debug("token already refreshed by a concurrent request; reusing it")
                return current
            try:
                token = await self._hook(self.auth.refresh_token)
            except RefreshError:
                raise
            except Exception as e:
                raise RefreshError(f"token refresh failed: {e}") from e
            if not token:
                raise RefreshError("token refresh hook returned no token")
            self.auth.bearer_token = token
            self.refreshes += 1
            logger.info(f"access token refreshed count={self.refreshes}")
            return token
