"""
Response Cache
Flat time-to-live cache for normalized Alpha Vantage records.

Each entry is stored as {"timestamp": <epoch ms>, "data": <json value>}.
The cache is best-effort: missing, stale, corrupt or unreadable entries are
reported as a miss and every I/O failure is logged, never raised.
"""
import hashlib
import json
import math
import os
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

from exceptions import CacheError
from services.logging_config import get_logger

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "alpha-vantage"

Clock = Callable[[], int]


def epoch_ms() -> int:
    return int(time.time() * 1000)


def make_cache_key(kind: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Deterministic cache key for an upstream request.

    Pairs are sorted and JSON-encoded, so {a:1, b:2} and {b:2, a:1} map to
    the same key.
    """
    merged: Dict[str, str] = {"function": str(getattr(kind, "value", kind))}
    for name, value in (params or {}).items():
        merged[str(name)] = str(getattr(value, "value", value))
    return f"{CACHE_KEY_PREFIX}:{json.dumps(sorted(merged.items()))}"


def _ttl_ms(ttl: Union[timedelta, int, float]) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds() * 1000
    return float(ttl) * 1000


@dataclass(frozen=True)
class CacheHit:
    """A cached value and the instant it was written"""
    data: Any
    timestamp_ms: int

    @property
    def written_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)


class DiskCache:
    """
    One JSON file per key, named by the SHA-256 of the key.

    When disabled (e.g. APP_ENV=production) reads always miss and writes are
    dropped, so callers see pure pass-through behaviour.
    """

    def __init__(self, root: str, enabled: bool = True, clock: Clock = epoch_ms):
        self.root = root
        self.enabled = enabled
        self._clock = clock

    def path_for(self, key: str) -> str:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return os.path.join(self.root, f"{digest}.json")

    def read(self, key: str, ttl: Union[timedelta, int, float]) -> Optional[CacheHit]:
        """Return the entry for `key` if it is younger than `ttl` (inclusive)."""
        if not self.enabled:
            return None

        path = self.path_for(key)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                container = json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            self._log_failure(CacheError(f"Unreadable cache entry: {e}", key=key))
            self._discard(path)
            return None

        timestamp = container.get("timestamp") if isinstance(container, dict) else None
        if (
            isinstance(timestamp, (int, float))
            and not isinstance(timestamp, bool)
            and math.isfinite(timestamp)
            and "data" in container
        ):
            age = self._clock() - timestamp
            if age <= _ttl_ms(ttl):
                return CacheHit(data=container["data"], timestamp_ms=int(timestamp))
            logger.debug(f"Cache entry expired ({age / 1000:.0f}s old)", extra={"cache_key": key[:80]})

        self._discard(path)
        return None

    def write(self, key: str, value: Any) -> None:
        """Store `value` stamped with the current instant, replacing any prior entry."""
        if not self.enabled:
            return

        path = self.path_for(key)
        container = {"timestamp": self._clock(), "data": value}
        tmp_path = None
        try:
            os.makedirs(self.root, exist_ok=True)
            # One temp file per writer; concurrent writers to a key race only on os.replace
            fd, tmp_path = tempfile.mkstemp(dir=self.root, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(container, fh)
            os.replace(tmp_path, path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            self._log_failure(CacheError(f"Cache write failed: {e}", key=key))
        finally:
            if tmp_path is not None:
                self._discard(tmp_path)

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns True if a file was removed."""
        return self._discard(self.path_for(key))

    def clear(self) -> int:
        """Delete every entry. Returns the number of files removed."""
        removed = 0
        try:
            names = os.listdir(self.root)
        except FileNotFoundError:
            return 0
        except OSError as e:
            self._log_failure(CacheError(f"Cache clear failed: {e}"))
            return 0
        for name in names:
            if name.endswith(".json") and self._discard(os.path.join(self.root, name)):
                removed += 1
        return removed

    @staticmethod
    def _discard(path: str) -> bool:
        try:
            os.remove(path)
            return True
        except OSError:
            # Best-effort; the entry is already being treated as a miss
            return False

    @staticmethod
    def _log_failure(error: CacheError) -> None:
        logger.warning(str(error), extra={"cache_key": (error.key or "")[:80]})


class MemoryCache:
    """Process-local cache with the same contract as DiskCache."""

    def __init__(self, enabled: bool = True, clock: Clock = epoch_ms):
        self.enabled = enabled
        self._clock = clock
        self._entries: Dict[str, tuple] = {}

    def read(self, key: str, ttl: Union[timedelta, int, float]) -> Optional[CacheHit]:
        if not self.enabled:
            return None
        entry = self._entries.get(key)
        if entry is None:
            return None
        timestamp, payload = entry
        if self._clock() - timestamp <= _ttl_ms(ttl):
            # Round-trip through JSON so callers never share mutable state with the store
            return CacheHit(data=json.loads(payload), timestamp_ms=timestamp)
        # Another thread may have expired or replaced the entry since the lookup
        if self._entries.get(key) is entry:
            self._entries.pop(key, None)
        return None

    def write(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        try:
            self._entries[key] = (self._clock(), json.dumps(value))
        except (TypeError, ValueError) as e:
            logger.warning(str(CacheError(f"Cache write failed: {e}", key=key)))

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        return removed


def build_cache(
    backend: str,
    root: str,
    enabled: bool = True,
    clock: Clock = epoch_ms,
) -> Union[DiskCache, MemoryCache]:
    """Cache factory used at startup; backend is 'disk' or 'memory'."""
    if backend == "memory":
        return MemoryCache(enabled=enabled, clock=clock)
    return DiskCache(root=root, enabled=enabled, clock=clock)
