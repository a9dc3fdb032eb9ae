# src/sealkey/core/keychain.py
from __future__ import annotations
import logging
from typing import Optional, Protocol

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError

log = logging.getLogger(__name__)

DEFAULT_SERVICE = "sealkey"

class Keychain(Protocol):
    def available(self) -> bool: ...
    def fetch(self, name: str) -> Optional[str]: ...
    def store(self, name: str, value: str) -> None: ...

class NullKeychain:
    """Platforma bez magazynu poświadczeń: nic nie ma i nic nie zapisujemy."""

    def available(self) -> bool:
        return False

    def fetch(self, name: str) -> Optional[str]:
        return None

    def store(self, name: str, value: str) -> None:
        return None

class KeyringKeychain:
    """
    Klucze trzymane w systemowym magazynie (Keychain / Credential Manager /
    Secret Service) przez bibliotekę keyring, pod (service, name).
    """

    def __init__(self, service: str = DEFAULT_SERVICE, backend: KeyringBackend | None = None):
        self.service = service
        self._backend = backend

    @property
    def backend(self) -> KeyringBackend:
        return self._backend if self._backend is not None else keyring.get_keyring()

    def available(self) -> bool:
        try:
            return self.backend.priority > 0
        except Exception as e:
            log.debug("[keychain] backend priority unavailable: %s", e)
            return False

    def fetch(self, name: str) -> Optional[str]:
        try:
            value = self.backend.get_password(self.service, name)
        except KeyringError as e:
            log.warning("[keychain] read of '%s' failed: %s", name, e)
            return None
        return value or None

    def store(self, name: str, value: str) -> None:
        self.backend.set_password(self.service, name, value)
        log.debug("[keychain] stored entry '%s' in service '%s'", name, self.service)

def select_keychain(service: str = DEFAULT_SERVICE, backend: KeyringBackend | None = None) -> Keychain:
    """Wybór implementacji raz, przy starcie programu."""
    candidate = KeyringKeychain(service, backend)
    if candidate.available():
        return candidate
    log.debug("[keychain] no usable keyring backend, keychain source disabled")
    return NullKeychain()
