# tests/conftest.py
import pytest

from sealkey.core.crypto import IntegrityError
from sealkey.core.envelope import EnvelopeError
from sealkey.core.password_cache import PasswordCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCipher:
    """enc:<hasło>:<klucz> - szybka atrapa zamiast Argon2."""

    def __init__(self):
        self.decrypt_calls = 0

    def is_encrypted(self, value):
        return bool(value) and value.startswith("enc:")

    def encrypt(self, plaintext, passphrase):
        return f"enc:{passphrase}:{plaintext}"

    def decrypt(self, ciphertext, passphrase):
        self.decrypt_calls += 1
        parts = ciphertext.split(":", 2)
        if len(parts) != 3 or parts[0] != "enc":
            raise EnvelopeError("not an envelope")
        if parts[1] != passphrase:
            raise IntegrityError("bad password")
        return parts[2]


class FakePrompter:
    def __init__(self, answers=(), interactive=True):
        self.answers = list(answers)
        self.interactive = interactive
        self.prompts = []

    def is_interactive(self):
        return self.interactive

    def ask(self, prompt):
        self.prompts.append(prompt)
        return self.answers.pop(0)


class FakeKeychain:
    def __init__(self, entries=None, available=True):
        self.entries = dict(entries or {})
        self._available = available
        self.calls = []

    def available(self):
        self.calls.append("available")
        return self._available

    def fetch(self, name):
        self.calls.append(("fetch", name))
        return self.entries.get(name)

    def store(self, name, value):
        self.calls.append(("store", name))
        self.entries[name] = value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return PasswordCache(enabled=True, ttl=60, clock=clock)


@pytest.fixture
def cipher():
    return FakeCipher()


# Argon2 z minimalnymi parametrami, żeby testy były szybkie
@pytest.fixture
def fast_kdf():
    return {"m": 65536, "t": 1, "p": 1}


@pytest.fixture
def cfg(fast_kdf):
    return {
        "cache": {"enabled": True, "ttl_seconds": 900},
        "argon2": fast_kdf,
        "keychain": {"service": "sealkey-test"},
        "prompt": {"retries": 3},
    }
