# src/sealkey/core/crypto.py
from __future__ import annotations
from argon2.low_level import hash_secret_raw, Type
from cryptography.exceptions import InvalidTag
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

class IntegrityError(Exception):
    pass

def generate_private_key() -> str:
    """32 losowe bajty w base64 (urlsafe), zgodne z Fernet."""
    return Fernet.generate_key().decode("ascii")

def derive_key_argon2id(password: bytes, salt: bytes, m_cost: int, t_cost: int, parallelism: int) -> bytes:
    if not isinstance(password, (bytes, bytearray)):
        raise TypeError("password must be bytes")
    if not isinstance(salt, (bytes, bytearray)):
        raise TypeError("salt must be bytes")
    # argon2 expects memory_cost in KiB
    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=t_cost,
        memory_cost=m_cost // 1024,
        parallelism=parallelism,
        hash_len=32,
        type=Type.ID,
    )

def encrypt_bytes(plaintext: bytes, key: bytes, nonce: bytes, aad: bytes) -> bytes:
    """AES-256-GCM; zwraca ciphertext z doklejonym 16-bajtowym tagiem."""
    return AESGCM(key).encrypt(nonce, plaintext, aad)

def decrypt_bytes(ciphertext_and_tag: bytes, key: bytes, nonce: bytes, aad: bytes) -> bytes:
    aes = AESGCM(key)
    try:
        return aes.decrypt(nonce, ciphertext_and_tag, aad)
    except InvalidTag as e:
        raise IntegrityError("GCM integrity failed (bad password or damaged key)") from e
