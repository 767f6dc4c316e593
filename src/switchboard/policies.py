import inspect
from typing import Callable, Union

from .types import DEFAULT_BACKOFF_STEP_MS

# Defaults used when inspect.signature cannot determine argument counts
DEFAULT_BACKOFF_ARGC = 1  # delay_fn(attempt)

# delay functions receive the failure at 2+ args
BACKOFF_WITH_ERROR_ARGC = 2


def _count_positional_args(fn, default: int) -> int:
    """Return count of positional params for fn; fall back to default on failure."""
    try:
        sig = inspect.signature(fn)
        return len(
            [
                p
                for p in sig.parameters.values()
                if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
            ]
        )
    except (TypeError, ValueError):
        return default


class BackoffPolicy:
    """Decides how long to wait (seconds) before retry number ``attempt``."""

    def delay(self, attempt: int, error: Union[BaseException, None] = None) -> float:
        raise NotImplementedError


class LinearBackoff(BackoffPolicy):
    """attempt * step: 1s, 2s, 3s ... with the default 1000ms step."""

    def __init__(self, step_ms: int = DEFAULT_BACKOFF_STEP_MS):
        self.step_ms = step_ms

    def delay(self, attempt, error=None):
        return attempt * self.step_ms / 1000.0


class FunctionalBackoff(BackoffPolicy):
    """Wrap a user-supplied delay function into a BackoffPolicy.

    Accepted function signatures:
        - delay_fn(attempt) -> seconds
        - delay_fn(attempt, error) -> seconds
    """

    def __init__(self, delay_fn: Callable):
        self.delay_fn = delay_fn

    def delay(self, attempt, error=None):
        argc = _count_positional_args(self.delay_fn, DEFAULT_BACKOFF_ARGC)
        if argc >= BACKOFF_WITH_ERROR_ARGC:
            seconds = self.delay_fn(attempt, error)
        else:
            seconds = self.delay_fn(attempt)
        if seconds < 0:
            raise ValueError("Custom delay function returned a negative delay")
        return float(seconds)


def coerce_backoff(
    policy: Union[object, None], step_ms: int = DEFAULT_BACKOFF_STEP_MS
) -> BackoffPolicy:
    """Turn None | str | BackoffPolicy | callable into a BackoffPolicy.

    Accepted inputs:
      - None      -> LinearBackoff(step_ms)
      - "linear"  -> LinearBackoff(step_ms)
      - BackoffPolicy instance (returned as-is)
      - callable: delay_fn(attempt[, error]) wrapped into FunctionalBackoff
    """
    if policy is None:
        return LinearBackoff(step_ms)
    if isinstance(policy, BackoffPolicy):
        return policy
    if isinstance(policy, str):
        if policy.lower() == "linear":
            return LinearBackoff(step_ms)
        raise ValueError("Unknown backoff string. Use 'linear', or pass a callable/BackoffPolicy.")
    if callable(policy):
        return FunctionalBackoff(policy)
    raise TypeError("backoff must be None, 'linear', BackoffPolicy, or a callable")
