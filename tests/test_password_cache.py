# tests/test_password_cache.py
from datetime import timedelta

import pytest

from sealkey.core.password_cache import MemoryStore, PasswordCache


def test_set_then_get(cache):
    cache.set("k1", "secret")
    assert cache.get("k1") == "secret"
    assert cache.get("k2") is None


def test_overwrite_refreshes_timestamp(cache, clock):
    cache.set("k1", "old")
    clock.advance(50)
    cache.set("k1", "new")
    clock.advance(50)
    assert cache.get("k1") == "new"


def test_expired_entry_is_purged_on_lookup(clock):
    store = MemoryStore()
    cache = PasswordCache(ttl=60, store=store, clock=clock)
    cache.set("k1", "secret")
    clock.advance(60)
    assert cache.get("k1") == "secret"  # now - created_at == ttl: jeszcze ważny
    clock.advance(1)
    assert cache.get("k1") is None
    assert len(store) == 0


def test_disabled_cache_is_a_noop(clock):
    cache = PasswordCache(enabled=False, clock=clock)
    cache.set("k1", "secret")
    assert cache.get("k1") is None


def test_disabling_drops_entries(cache):
    cache.set("k1", "secret")
    cache.configure(enabled=False)
    cache.configure(enabled=True)
    assert cache.get("k1") is None


def test_configure_is_idempotent_and_accepts_timedelta(cache):
    cache.configure(enabled=True, ttl=timedelta(minutes=5))
    cache.configure(enabled=True, ttl=timedelta(minutes=5))
    assert cache.enabled is True
    assert cache.ttl == 300.0


def test_configure_rejects_negative_ttl(cache):
    with pytest.raises(ValueError):
        cache.configure(enabled=True, ttl=-1)


def test_delete_and_clear(cache):
    cache.set("k1", "a")
    cache.set("k2", "b")
    cache.delete("k1")
    cache.delete("missing")
    assert cache.get("k1") is None
    assert cache.get("k2") == "b"
    cache.clear()
    assert cache.get("k2") is None


def test_distinct_caches_do_not_share_entries(clock):
    a = PasswordCache(clock=clock)
    b = PasswordCache(clock=clock)
    a.set("k1", "secret")
    assert b.get("k1") is None


def test_configure_ttl_only_keeps_enabled_state(clock):
    cache = PasswordCache(enabled=False, clock=clock)
    cache.configure(ttl=5)
    assert cache.enabled is False
    assert cache.ttl == 5.0
    cache.set("k1", "secret")
    assert cache.get("k1") is None

    cache.configure(enabled=True)
    cache.configure(ttl=10)
    assert cache.enabled is True


class LockCheckingCache(PasswordCache):
    """Zapisuje, czy flaga enabled była czytana pod blokadą."""

    @property
    def _enabled(self):
        self.__dict__.setdefault("reads", []).append(self._lock.locked())
        return self.__dict__["_flag"]

    @_enabled.setter
    def _enabled(self, value):
        self.__dict__["_flag"] = value


def test_get_and_set_check_enabled_under_lock(clock):
    cache = LockCheckingCache(clock=clock)
    cache.reads = []
    cache.set("k1", "secret")
    cache.get("k1")
    assert cache.reads and all(cache.reads)
