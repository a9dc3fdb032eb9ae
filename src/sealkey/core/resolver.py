# src/sealkey/core/resolver.py
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from sealkey.core.crypto import IntegrityError
from sealkey.core.envelope import EnvelopeCipher, EnvelopeError, KeyCipher
from sealkey.core.errors import (
    InvalidPassphraseError,
    MalformedKeyError,
    NoKeySourceError,
    NoTTYError,
)
from sealkey.core.keychain import Keychain, NullKeychain
from sealkey.core.password_cache import PasswordCache
from sealkey.core.prompter import PASSWORD_PROMPT, Prompter, TerminalPrompter
from sealkey.utils.fingerprint import key_id as fingerprint, short_id

log = logging.getLogger(__name__)

class KeySource(enum.Enum):
    EXPLICIT = "explicit"
    ENCRYPTED = "encrypted"
    KEYCHAIN = "keychain"
    ENV_DEFAULT = "env_default"

@dataclass(frozen=True)
class ResolutionRequest:
    """Opcje wyciągnięte przez CLI z flag i środowiska; resolver nie czyta argv ani env."""
    explicit_key: Optional[str] = None
    key_is_encrypted: bool = False
    keychain_name: Optional[str] = None
    env_default_key: Optional[str] = None
    passphrase_override: Optional[str] = field(default=None, repr=False)

@dataclass(frozen=True)
class ResolvedKey:
    """
    Wynik rozwiązania klucza. Właścicielem plaintextu jest wołający i to on
    odpowiada za jego wyczyszczenie po użyciu (np. nadpisanie referencji,
    brak logowania). repr() nigdy nie pokazuje klucza.
    """
    plaintext: str = field(repr=False)
    source: KeySource

def _present(value: Optional[str]) -> Optional[str]:
    # pusty string == brak wartości
    return value if value else None

class PrivateKeyResolver:
    """
    Ustala klucz prywatny z dostępnych źródeł w stałej kolejności:

      1. explicit_key (jawny)            → EXPLICIT
      2. explicit_key (zaszyfrowany)     → ENCRYPTED (pętla odszyfrowania)
      3. keychain_name, jeśli keychain dostępny → KEYCHAIN albo ENCRYPTED
      4. env_default_key                 → ENV_DEFAULT
      5. nic                             → NoKeySourceError

    Jedno wywołanie resolve() pyta o hasło najwyżej raz; przy złym haśle
    rzuca InvalidPassphraseError, a ponowienie należy do wołającego.
    """

    def __init__(self, cache: PasswordCache | None = None, prompter: Prompter | None = None,
                 keychain: Keychain | None = None, cipher: KeyCipher | None = None):
        self.cache = cache if cache is not None else PasswordCache()
        self.prompter = prompter if prompter is not None else TerminalPrompter()
        self.keychain = keychain if keychain is not None else NullKeychain()
        self.cipher = cipher if cipher is not None else EnvelopeCipher()

    def resolve(self, request: ResolutionRequest) -> ResolvedKey:
        resolved = self._resolve(request)
        log.debug("[resolver] private key resolved from source '%s'", resolved.source.value)
        return resolved

    def _resolve(self, request: ResolutionRequest) -> ResolvedKey:
        explicit = _present(request.explicit_key)
        if explicit is not None:
            if not request.key_is_encrypted:
                return ResolvedKey(explicit, KeySource.EXPLICIT)
            return ResolvedKey(self._decrypt(explicit, request.passphrase_override), KeySource.ENCRYPTED)

        name = _present(request.keychain_name)
        if name is not None:
            fetched = self._from_keychain(name)
            if fetched is not None:
                if self.cipher.is_encrypted(fetched):
                    return ResolvedKey(self._decrypt(fetched, request.passphrase_override), KeySource.ENCRYPTED)
                return ResolvedKey(fetched, KeySource.KEYCHAIN)

        env_key = _present(request.env_default_key)
        if env_key is not None:
            return ResolvedKey(env_key, KeySource.ENV_DEFAULT)

        raise NoKeySourceError()

    def _from_keychain(self, name: str) -> Optional[str]:
        if not self.keychain.available():
            log.debug("[resolver] keychain not available, skipping '%s'", name)
            return None
        value = _present(self.keychain.fetch(name))
        if value is None:
            log.debug("[resolver] keychain entry '%s' not found", name)
        return value

    def _try_decrypt(self, ciphertext: str, passphrase: str) -> Optional[str]:
        try:
            return self.cipher.decrypt(ciphertext, passphrase)
        except IntegrityError:
            return None
        except EnvelopeError as e:
            raise MalformedKeyError(f"Encrypted private key is damaged: {e}") from e

    def _decrypt(self, ciphertext: str, passphrase_override: Optional[str]) -> str:
        if not self.cipher.is_encrypted(ciphertext):
            raise MalformedKeyError()
        kid = fingerprint(ciphertext)

        override = _present(passphrase_override)
        if override is not None:
            plaintext = self._try_decrypt(ciphertext, override)
            if plaintext is None:
                raise InvalidPassphraseError()
            return plaintext

        cached = self.cache.get(kid)
        if cached is not None:
            plaintext = self._try_decrypt(ciphertext, cached)
            if plaintext is not None:
                log.debug("[resolver] cached password used for key %s", short_id(kid))
                return plaintext
            log.debug("[resolver] cached password for key %s is stale, purging", short_id(kid))
            self.cache.delete(kid)

        if not self.prompter.is_interactive():
            raise NoTTYError()
        passphrase = self.prompter.ask(PASSWORD_PROMPT)
        plaintext = self._try_decrypt(ciphertext, passphrase)
        if plaintext is None:
            raise InvalidPassphraseError()
        self.cache.set(kid, passphrase)
        return plaintext
