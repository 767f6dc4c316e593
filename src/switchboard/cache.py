import json
import time
from typing import Any, Callable, NamedTuple

from cachetools import TLRUCache

DEFAULT_MAX_ENTRIES = 4096


class _Entry(NamedTuple):
    value: Any
    ttl: float  # seconds


def _expires_at(_key, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class MemoryCache:
    """In-process cache with a TTL per entry.

    Expiry is lazy: an expired entry is simply invisible to ``get`` and is
    evicted whenever cachetools next expires items.
    """

    def __init__(self, maxsize: int = DEFAULT_MAX_ENTRIES, timer: Callable[[], float] = time.monotonic):
        self._data: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return default
        return entry.value

    def put(self, key: str, value: Any, ttl_ms: float) -> None:
        if ttl_ms <= 0:
            self._data.pop(key, None)
            return
        self._data[key] = _Entry(value, ttl_ms / 1000.0)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._data


def canonical_json(value: Any) -> str:
    return json.dumps(
        value if value is not None else {},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


def cache_key(method: str, endpoint: str, params: Any = None, body: Any = None) -> str:
    """Deterministic fingerprint of a request, independent of dict key order."""
    return f"{method.upper()}-{endpoint}-{canonical_json(params)}-{canonical_json(body)}"
