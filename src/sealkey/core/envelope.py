# src/sealkey/core/envelope.py
from __future__ import annotations
import base64
import binascii
import json
import os
import struct
from typing import Protocol

from argon2.exceptions import HashingError

from sealkey.core.crypto import derive_key_argon2id, encrypt_bytes, decrypt_bytes

MAGIC = b"SKE1"
PREFIX = "sealkey:"
MAX_HEADER_LEN = 64 * 1024

DEFAULT_KDF = {"m": 67108864, "t": 3, "p": 1}
MAX_KDF_M = 1024 * 1024 * 1024
MAX_KDF_T = 64
MAX_KDF_P = 16
NONCE_LEN = 12
MIN_SALT_LEN = 8

class EnvelopeError(Exception):
    pass

class KeyCipher(Protocol):
    """Czarna skrzynka szyfrująca klucz prywatny hasłem."""

    def is_encrypted(self, value: str) -> bool: ...

    def encrypt(self, plaintext: str, passphrase: str) -> str: ...

    def decrypt(self, ciphertext: str, passphrase: str) -> str: ...

def _b64(bs: bytes) -> str:
    return base64.b64encode(bs).decode("ascii")

def _b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)

def build_header_json(*, kdf_params: dict, cipher_params: dict) -> bytes:
    """
    UTF-8 JSON: {"kdf": ..., "cipher": ...}.
    Te same bajty są AAD dla AES-GCM, więc serializacja musi być deterministyczna.
    """
    obj = {"kdf": kdf_params, "cipher": cipher_params}
    try:
        return json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EnvelopeError(f"Failed to serialize header JSON: {e}") from e

def pack(header_json: bytes, payload: bytes) -> str:
    """
    magic(4) + header_len(uint32_le) + header_json + payload → "sealkey:" + base64url
    """
    header_len = len(header_json)
    if header_len <= 0:
        raise EnvelopeError("header_json cannot be empty")
    if header_len > MAX_HEADER_LEN:
        raise EnvelopeError("header_json too large")
    raw = MAGIC + struct.pack("<I", header_len) + header_json + payload
    return PREFIX + base64.urlsafe_b64encode(raw).decode("ascii")

def unpack(value: str) -> tuple[dict, bytes, bytes]:
    """
    Odczyt: → (header_dict, header_json, payload)
    """
    if not isinstance(value, str) or not value.startswith(PREFIX):
        raise EnvelopeError("Missing envelope prefix")
    try:
        raw = base64.urlsafe_b64decode(value[len(PREFIX):].strip().encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise EnvelopeError(f"Invalid base64: {e}") from e
    if raw[:4] != MAGIC:
        raise EnvelopeError("Bad magic")
    if len(raw) < 8:
        raise EnvelopeError("Unexpected end of data while reading header length")
    (header_len,) = struct.unpack("<I", raw[4:8])
    if header_len <= 0 or header_len > MAX_HEADER_LEN:
        raise EnvelopeError("Unreasonable header length")
    header_json = raw[8:8 + header_len]
    if len(header_json) != header_len:
        raise EnvelopeError("Unexpected end of data while reading header JSON")
    try:
        obj = json.loads(header_json.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise EnvelopeError(f"Invalid JSON: {e}") from e
    if not isinstance(obj, dict) or not isinstance(obj.get("kdf"), dict) or not isinstance(obj.get("cipher"), dict):
        raise EnvelopeError("Header must contain 'kdf' and 'cipher' objects")
    payload = raw[8 + header_len:]
    if not payload:
        raise EnvelopeError("Empty payload")
    return obj, header_json, payload

def is_encrypted(value: str | None) -> bool:
    if not value:
        return False
    try:
        unpack(value)
    except EnvelopeError:
        return False
    return True

def encrypt_private_key(plaintext: str, passphrase: str, kdf: dict | None = None) -> str:
    k = {**DEFAULT_KDF, **(kdf or {})}
    salt = os.urandom(16)
    nonce = os.urandom(12)
    header_json = build_header_json(
        kdf_params={"algo": "argon2id", "m": k["m"], "t": k["t"], "p": k["p"], "salt": _b64(salt)},
        cipher_params={"algo": "aes-256-gcm", "nonce": _b64(nonce)},
    )
    key = derive_key_argon2id(passphrase.encode("utf-8"), salt, k["m"], k["t"], k["p"])
    payload = encrypt_bytes(plaintext.encode("utf-8"), key, nonce, header_json)
    return pack(header_json, payload)

def _check_params(salt: bytes, nonce: bytes, m: int, t: int, p: int) -> None:
    # zakresy, które sami zapisujemy; reszta to uszkodzona koperta
    if len(salt) < MIN_SALT_LEN:
        raise EnvelopeError("Salt too short")
    if len(nonce) != NONCE_LEN:
        raise EnvelopeError("Nonce must be 12 bytes")
    if not 1 <= p <= MAX_KDF_P:
        raise EnvelopeError("Unreasonable argon2 parallelism")
    if not 1 <= t <= MAX_KDF_T:
        raise EnvelopeError("Unreasonable argon2 time cost")
    if not 8 * 1024 * p <= m <= MAX_KDF_M:
        raise EnvelopeError("Unreasonable argon2 memory cost")

def decrypt_private_key(ciphertext: str, passphrase: str) -> str:
    """
    Rzuca EnvelopeError przy uszkodzonej kopercie, IntegrityError przy złym haśle.
    """
    obj, header_json, payload = unpack(ciphertext)
    kdf = obj["kdf"]; cipher = obj["cipher"]
    try:
        salt = _b64d(kdf["salt"]); nonce = _b64d(cipher["nonce"])
        m, t, p = int(kdf["m"]), int(kdf["t"]), int(kdf["p"])
    except (KeyError, TypeError, ValueError, binascii.Error) as e:
        raise EnvelopeError(f"Invalid header parameters: {e}") from e
    _check_params(salt, nonce, m, t, p)
    try:
        key = derive_key_argon2id(passphrase.encode("utf-8"), salt, m, t, p)
    except HashingError as e:
        raise EnvelopeError(f"KDF rejected header parameters: {e}") from e
    plain = decrypt_bytes(payload, key, nonce, header_json)
    try:
        return plain.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EnvelopeError("Decrypted key is not valid UTF-8") from e

class EnvelopeCipher:
    """Domyślny KeyCipher: Argon2id + AES-256-GCM w kopercie "sealkey:"."""

    def __init__(self, kdf: dict | None = None):
        self.kdf = {**DEFAULT_KDF, **(kdf or {})}

    def is_encrypted(self, value: str) -> bool:
        return is_encrypted(value)

    def encrypt(self, plaintext: str, passphrase: str) -> str:
        return encrypt_private_key(plaintext, passphrase, self.kdf)

    def decrypt(self, ciphertext: str, passphrase: str) -> str:
        return decrypt_private_key(ciphertext, passphrase)
