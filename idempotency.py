# idempotency.py
# In-memory replay protection for Ödeal webhooks. State is lost on restart.
import threading
import time
from collections.abc import Mapping
from itertools import islice
from typing import Any, Callable, Dict, Optional

import config

NA = "n/a"


def now_ms() -> int:
    return int(time.time() * 1000)


def make_event_key(event_type: Any, payload: Any) -> str:
    """``<type>:<reference>:<transaction>`` with ``n/a`` for missing parts.

    Two payloads sharing reference and transaction id (or createdAt) collide on
    purpose; nothing else in the payload is looked at.
    """
    get = payload.get if isinstance(payload, Mapping) else (lambda _key: None)
    ref = get("basketReferenceCode") or get("referenceCode") or NA
    tx = get("transactionId") or get("createdAt") or NA
    event = getattr(event_type, "value", event_type)
    return f"{event}:{ref}:{tx}"


class IdempotencyStore:
    """Bounded key -> expiry map.

    ``ttl_ms`` and ``max_keys`` fall back to IDEMPOTENCY_TTL_MS /
    IDEMPOTENCY_MAX_KEYS, looked up on every call. Eviction is by insertion
    order; refreshing a key does not move it.
    """

    def __init__(
        self,
        ttl_ms: Optional[int] = None,
        max_keys: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._ttl_ms = ttl_ms
        self._max_keys = max_keys
        self._clock = clock
        self._seen: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms if self._ttl_ms is not None else config.idempotency_ttl_ms()

    @property
    def max_keys(self) -> int:
        return self._max_keys if self._max_keys is not None else config.idempotency_max_keys()

    def is_duplicate(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._seen.get(key)
            if expires_at is None:
                return False
            if expires_at > now:
                return True
            del self._seen[key]
            return False

    def remember(self, key: str, ttl_ms: Optional[int] = None) -> None:
        ttl = self.ttl_ms if ttl_ms is None else ttl_ms
        max_keys = self.max_keys
        with self._lock:
            self._seen[key] = self._clock() + ttl
            overflow = len(self._seen) - max_keys
            if overflow > 0:
                # dicts iterate in insertion order: oldest first
                for old in list(islice(self._seen, overflow)):
                    del self._seen[old]

    def expires_at(self, key: str) -> Optional[int]:
        with self._lock:
            return self._seen.get(key)

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


# process-wide instance used by the HTTP handlers
store = IdempotencyStore()
