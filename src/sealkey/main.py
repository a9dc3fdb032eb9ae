# src/sealkey/main.py
import argparse
import logging
import os
import sys

from sealkey.config import manager as cfgman
from sealkey.core.crypto import generate_private_key
from sealkey.core.envelope import EnvelopeCipher
from sealkey.core.errors import InvalidPassphraseError, NoTTYError, ResolverError
from sealkey.core.keychain import NullKeychain, select_keychain
from sealkey.core.password_cache import PasswordCache
from sealkey.core.prompter import TerminalPrompter
from sealkey.core.resolver import KeySource, PrivateKeyResolver, ResolutionRequest

ENV_KEY_VARIABLE = "SEALKEY_PRIVATE_KEY"

log = logging.getLogger("sealkey")

def parse_args(argv):
    p = argparse.ArgumentParser(prog="sealkey", description="SealKey: klucz prywatny z wielu źródeł")
    p.add_argument("-g", "--generate", action="store_true",
                   help="Wygeneruj nowy klucz prywatny (bez -g: pokaż ustalony klucz)")
    p.add_argument("-k", "--private-key", metavar="KEY", help="Klucz prywatny (jawny lub zaszyfrowany)")
    p.add_argument("-e", "--encrypted", action="store_true",
                   help="Klucz z -k jest zaszyfrowany; przy --generate zaszyfruj nowy klucz")
    p.add_argument("-K", "--keychain", metavar="NAME", help="Nazwa wpisu w systemowym keychainie")
    p.add_argument("-p", "--password", help="Hasło, ENV:ZMIENNA lub PROMPT")
    p.add_argument("-x", "--store-keychain", metavar="NAME", help="Zapisz klucz w keychainie pod tą nazwą")
    p.add_argument("--no-cache", action="store_true", help="Nie pamiętaj haseł w tym uruchomieniu")
    p.add_argument("--cache-ttl", type=float, metavar="SECONDS", help="Czas pamiętania hasła")
    p.add_argument("--retries", type=int, metavar="N", help="Ile razy pytać o hasło przy błędzie")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)

def _password_resolver(opt: str | None, environ=None) -> str | None:
    environ = os.environ if environ is None else environ
    if opt and opt.upper().startswith("ENV:"):
        envname = opt.split(":", 1)[1]
        return environ.get(envname) or None
    if opt and opt.upper() == "PROMPT":
        return None
    return opt or None

def build_request(ns, environ=None) -> ResolutionRequest:
    environ = os.environ if environ is None else environ
    return ResolutionRequest(
        explicit_key=ns.private_key,
        key_is_encrypted=ns.encrypted,
        keychain_name=ns.keychain,
        env_default_key=environ.get(ENV_KEY_VARIABLE),
        passphrase_override=_password_resolver(ns.password, environ),
    )

def build_cache(ns, cfg: dict) -> PasswordCache:
    c = cfg.get("cache", {})
    enabled = c.get("enabled", True) and not ns.no_cache
    ttl = ns.cache_ttl if ns.cache_ttl is not None else c.get("ttl_seconds", 900)
    return PasswordCache().configure(enabled=enabled, ttl=ttl)

def _ask_new_password(prompter) -> str:
    if not prompter.is_interactive():
        raise NoTTYError()
    first = prompter.ask("New password: ")
    second = prompter.ask("Confirm password: ")
    if first != second:
        raise InvalidPassphraseError("Passwords do not match")
    if not first:
        raise InvalidPassphraseError("Password cannot be empty")
    return first

def resolve_with_retries(resolver: PrivateKeyResolver, request: ResolutionRequest, retries: int, err=None):
    """Resolver pyta raz; tutaj ponawiamy, dopóki użytkownik ma próby."""
    err = sys.stderr if err is None else err
    attempt = 0
    while True:
        try:
            return resolver.resolve(request)
        except InvalidPassphraseError:
            attempt += 1
            if request.passphrase_override or attempt >= retries:
                raise
            print("Invalid password. Please try again.", file=err)

def _store(keychain, name: str, value: str, err) -> None:
    if not keychain.available():
        print(f"[WARN] keychain not available, '{name}' not stored", file=err)
        return
    keychain.store(name, value)

def run_cli(ns, *, cfg=None, prompter=None, keychain=None, cache=None, environ=None, out=None, err=None) -> int:
    out = sys.stdout if out is None else out
    err = sys.stderr if err is None else err
    cfg = cfgman.load_config() if cfg is None else cfg
    prompter = TerminalPrompter() if prompter is None else prompter
    if keychain is None:
        keychain = select_keychain(cfg.get("keychain", {}).get("service", "sealkey")) \
            if (ns.keychain or ns.store_keychain) else NullKeychain()
    cache = build_cache(ns, cfg) if cache is None else cache
    cipher = EnvelopeCipher(cfg.get("argon2"))
    retries = ns.retries if ns.retries is not None else cfg.get("prompt", {}).get("retries", 3)

    try:
        if ns.generate:
            key = generate_private_key()
            if ns.encrypted:
                passphrase = _password_resolver(ns.password, environ) or _ask_new_password(prompter)
                key = cipher.encrypt(key, passphrase)
            if ns.store_keychain:
                _store(keychain, ns.store_keychain, key, err)
            print(key, file=out)
            return 0

        request = build_request(ns, environ)
        resolver = PrivateKeyResolver(cache=cache, prompter=prompter, keychain=keychain, cipher=cipher)
        resolved = resolve_with_retries(resolver, request, max(1, retries), err)
        if ns.store_keychain:
            # zaszyfrowany klucz z -k zapisujemy w postaci zaszyfrowanej
            to_store = request.explicit_key if resolved.source is KeySource.ENCRYPTED and request.explicit_key \
                else resolved.plaintext
            _store(keychain, ns.store_keychain, to_store, err)
        print(resolved.plaintext, file=out)
        return 0
    except ResolverError as e:
        log.debug("resolution failed: %s", e.kind)
        print(f"[ERROR] {e}", file=err)
        return 1
    except Exception as e:
        log.debug("unexpected failure", exc_info=True)
        print(f"[ERROR] {e}", file=err)
        return 2

def main() -> int:
    ns = parse_args(sys.argv[1:])
    logging.basicConfig(level=logging.DEBUG if ns.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    return run_cli(ns)

if __name__ == "__main__":
    raise SystemExit(main())
