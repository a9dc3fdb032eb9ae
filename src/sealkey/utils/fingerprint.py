# src/sealkey/utils/fingerprint.py
from __future__ import annotations
import hashlib

def key_id(ciphertext: str) -> str:
    """SHA-256 (hex) zaszyfrowanego klucza; nigdy nie liczymy go z plaintextu."""
    return hashlib.sha256(ciphertext.strip().encode("utf-8")).hexdigest()

def short_id(kid: str, n: int = 8) -> str:
    return kid[:n]
