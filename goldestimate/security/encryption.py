"""Encryption utilities for estimation backups.

SECURITY CONFIGURATION
======================

Encryption Algorithm: AES-256-GCM
----------------------------------
- Key Size: 256 bits (32 bytes)
- Authentication: Built-in AEAD tag, so tampered or mis-keyed payloads fail
- Nonce Size: 96 bits (12 bytes) - randomly generated per encryption

Key Derivation: PBKDF2-HMAC-SHA256
-----------------------------------
- Iterations: 100,000 (DEFAULT_KDF_ITERATIONS)
- Salt Size: 128 bits (16 bytes) - randomly generated per backup file and
  stored in the clear next to the payload
"""
from __future__ import annotations

import logging
import os
import time
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

DEFAULT_SALT_BYTES = 16  # 128 bits
DEFAULT_KDF_ITERATIONS = 100_000
NONCE_BYTES = 12  # 96 bits (GCM standard)


def new_salt(length: int = DEFAULT_SALT_BYTES) -> bytes:
    return os.urandom(length)


def derive_key(
    password: str,
    salt: bytes,
    *,
    iterations: int = DEFAULT_KDF_ITERATIONS,
    logger: Optional[logging.Logger] = None,
) -> bytes:
    """Derive a 32-byte AES key using PBKDF2."""
    if not password:
        raise ValueError("Password cannot be empty for key derivation.")
    if not salt:
        raise ValueError("Salt cannot be empty for key derivation.")

    if logger:
        logger.debug("Deriving encryption key")
    start = time.time()
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    key = kdf.derive(password.encode("utf-8"))
    if logger:
        logger.debug("Encryption key derived in %.2f seconds", time.time() - start)
    return key


def encrypt_payload(
    plaintext: bytes,
    key: bytes,
    *,
    logger: Optional[logging.Logger] = None,
) -> bytes:
    """Encrypt plaintext and return nonce+ciphertext payload."""
    if not key:
        raise ValueError("Encryption key is required.")

    aesgcm = AESGCM(key)
    nonce = os.urandom(NONCE_BYTES)
    if not plaintext:
        if logger:
            logger.warning("Encrypting empty payload; writing nonce only.")
        return nonce

    ciphertext = aesgcm.encrypt(nonce, plaintext, None)
    return nonce + ciphertext


def decrypt_payload(
    payload: bytes,
    key: bytes,
    *,
    logger: Optional[logging.Logger] = None,
) -> bytes:
    """Decrypt a nonce+ciphertext payload and return plaintext."""
    if not key:
        raise ValueError("Encryption key is required.")
    if not payload or len(payload) <= NONCE_BYTES:
        raise ValueError("Encrypted payload is incomplete or missing nonce.")

    nonce, ciphertext = payload[:NONCE_BYTES], payload[NONCE_BYTES:]

    aesgcm = AESGCM(key)
    try:
        return aesgcm.decrypt(nonce, ciphertext, None)
    except InvalidTag:
        if logger:
            logger.error("Decryption failed: InvalidTag")
        raise
