# src/sealkey/core/errors.py
from __future__ import annotations


class ResolverError(Exception):
    """Classified failure of a private key resolution."""

    kind = "resolver_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__)


class NoKeySourceError(ResolverError):
    """No private key source was given (use -k, -K or SEALKEY_PRIVATE_KEY)."""

    kind = "no_key_source"


class InvalidPassphraseError(ResolverError):
    """Invalid password for the encrypted private key."""

    kind = "invalid_passphrase"


class NoTTYError(ResolverError):
    """A password is required but no terminal is attached (pass -p or run interactively)."""

    kind = "no_tty"


class MalformedKeyError(ResolverError):
    """Private key is marked as encrypted but is not a valid encrypted key."""

    kind = "malformed_key"
