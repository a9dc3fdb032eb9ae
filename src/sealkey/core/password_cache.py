# src/sealkey/core/password_cache.py
from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, Optional, Protocol

from sealkey.utils.fingerprint import short_id

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 15 * 60

@dataclass
class CacheEntry:
    key_id: str
    passphrase: str
    created_at: float

class CacheStore(Protocol):
    """Miejsce przechowywania wpisów; wyłącznie pamięć procesu."""

    def get(self, key_id: str) -> Optional[CacheEntry]: ...
    def put(self, entry: CacheEntry) -> None: ...
    def pop(self, key_id: str) -> None: ...
    def clear(self) -> None: ...

class MemoryStore:
    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key_id: str) -> Optional[CacheEntry]:
        return self._entries.get(key_id)

    def put(self, entry: CacheEntry) -> None:
        self._entries[entry.key_id] = entry

    def pop(self, key_id: str) -> None:
        self._entries.pop(key_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

class PasswordCache:
    """
    Pamięć haseł na czas jednego uruchomienia procesu.

    Tworzona raz (w main) i przekazywana do resolvera. Nic nie trafia na dysk
    ani do zmiennych środowiskowych. Wpis wygasa, gdy now - created_at > ttl;
    wygasłe wpisy usuwamy leniwie przy get().
    """

    def __init__(self, enabled: bool = True, ttl: float | timedelta = DEFAULT_TTL_SECONDS,
                 store: CacheStore | None = None, clock: Callable[[], float] = time.monotonic):
        self._lock = threading.Lock()
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._enabled = True
        self._ttl = float(DEFAULT_TTL_SECONDS)
        self.configure(enabled=enabled, ttl=ttl)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def ttl(self) -> float:
        return self._ttl

    def configure(self, enabled: bool | None = None, ttl: float | timedelta | None = None) -> "PasswordCache":
        if isinstance(ttl, timedelta):
            ttl = ttl.total_seconds()
        if ttl is not None and ttl < 0:
            raise ValueError("ttl must be >= 0")
        with self._lock:
            if enabled is not None:
                self._enabled = bool(enabled)
            if ttl is not None:
                self._ttl = float(ttl)
            if not self._enabled:
                self._store.clear()
        return self

    def get(self, key_id: str) -> Optional[str]:
        with self._lock:
            if not self._enabled:
                return None
            entry = self._store.get(key_id)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self._ttl:
                log.debug("[cache] expired entry %s purged", short_id(key_id))
                self._store.pop(key_id)
                return None
            return entry.passphrase

    def set(self, key_id: str, passphrase: str) -> None:
        with self._lock:
            if not self._enabled:
                return
            self._store.put(CacheEntry(key_id=key_id, passphrase=passphrase, created_at=self._clock()))

    def delete(self, key_id: str) -> None:
        with self._lock:
            self._store.pop(key_id)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
