"""
CredManager - Cryptography Module

This single file contains ALL cryptographic operations for the credential store.
Everything else (models, codec, stores) calls into these few functions.

Security Architecture:
    1. Each secret gets random key material (256-bit, base64 text) + 8-byte salt
    2. Key material → PBKDF2-HMAC-SHA256 (65536 rounds) → AES-256 key
    3. AES-256-GCM encrypts the bytes, fresh nonce every call
    4. Whole record files get a second layer with one process-wide key

Why this works for a single-user store:
    - Fresh salt + fresh key material per secret: same password twice → different bytes
    - PBKDF2 with a high fixed count slows brute force but stays interactive
    - GCM tag detects corrupted or tampered files (decrypt returns None)
"""

import base64
import hashlib
import json
import logging
import os
import secrets
import string
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import InvalidParameter


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

AES_KEY_SIZE = 32        # 256-bit stretched key
NONCE_SIZE = 12          # 96-bit nonce for AES-GCM
TAG_SIZE = 16            # 128-bit authentication tag

# PBKDF2 parameters. Changing these makes existing files unreadable.
KDF_ITERATIONS = 65536

SECRET_SALT_SIZE = 8     # bytes of salt per secret value
SECRET_KEY_BITS = 256    # bits of random key material per secret value

# Associated-data labels, one per encryption layer
SECRET_CONTEXT = "secret-value"
RECORD_CONTEXT = "record-file"


# =============================================================================
# Random Material
# =============================================================================

def derive_key(size: int = SECRET_KEY_BITS) -> str:
    """
    Generate random symmetric key material.

    The result is not used as an AES key directly: it is the "password"
    that encrypt()/decrypt() stretch with PBKDF2.

    Args:
        size: Key size in bits (positive multiple of 8)

    Returns:
        Base64 text of size/8 random bytes
    """
    if size <= 0 or size % 8:
        raise InvalidParameter(f"Key size must be a positive multiple of 8, got {size}")
    return base64.b64encode(os.urandom(size // 8)).decode('ascii')


def generate_salt(length: int) -> bytes:
    """Return `length` cryptographically random bytes."""
    if length <= 0:
        raise InvalidParameter("Salt length must be positive.")
    return os.urandom(length)


# =============================================================================
# Key Derivation
# =============================================================================

def stretch_key(key_material: str, salt: bytes) -> bytes:
    """
    Turn key material + salt into a 32-byte AES key with PBKDF2-HMAC-SHA256.

    Deterministic: same (key_material, salt) always gives the same key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=AES_KEY_SIZE,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(key_material.encode('utf-8'))


# =============================================================================
# Canonical JSON
# =============================================================================

def canonical_json(data: dict) -> bytes:
    """
    Convert a dict to canonical JSON bytes.

    Same dict ALWAYS produces same bytes (sorted keys, compact, UTF-8).
    Used for associated data and for the on-disk record layout.
    """
    json_str = json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return json_str.encode('utf-8')


# =============================================================================
# Encryption (PBKDF2 + AES-256-GCM)
# =============================================================================

def encrypt(plaintext: bytes, salt: bytes, key_material: str,
            context: str = SECRET_CONTEXT) -> Optional[bytes]:
    """
    Encrypt bytes under password-style key material.

    Args:
        plaintext: Data to encrypt
        salt: Salt for PBKDF2 (stored next to the ciphertext, NOT secret)
        key_material: Text from derive_key() (or the process-wide key)
        context: Label bound as associated data; decrypt() must pass the same one

    Returns:
        base64(nonce || ciphertext || tag), or None if anything failed.
        Callers must treat None as fatal for their operation.
    """
    try:
        key = stretch_key(key_material, salt)
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext, canonical_json({"ctx": context}))
        return base64.b64encode(nonce + ciphertext)
    except (TypeError, ValueError, AttributeError) as e:
        logger.error("Encryption failed (%s): %s", context, e)
        return None


def decrypt(ciphertext: bytes, salt: bytes, key_material: str,
            context: str = SECRET_CONTEXT) -> Optional[bytes]:
    """
    Inverse of encrypt().

    Returns:
        Plaintext bytes, or None on wrong key, wrong salt, wrong context,
        corrupted/truncated input or bad encoding.
    """
    try:
        raw = base64.b64decode(ciphertext, validate=True)
        if len(raw) < NONCE_SIZE + TAG_SIZE:
            logger.error("Decryption failed (%s): input truncated", context)
            return None
        key = stretch_key(key_material, salt)
        nonce, body = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        return AESGCM(key).decrypt(nonce, body, canonical_json({"ctx": context}))
    except InvalidTag:
        logger.error("Decryption failed (%s): authentication tag mismatch", context)
        return None
    except (TypeError, ValueError, AttributeError) as e:
        logger.error("Decryption failed (%s): %s", context, e)
        return None


# =============================================================================
# Hashing
# =============================================================================

def hash_name(text: str) -> str:
    """Lowercase hex SHA-256 of `text`. Used for record file names."""
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


# =============================================================================
# Password Generation
# =============================================================================

def generate_password(length: int = 20, use_symbols: bool = True) -> str:
    """
    Generate a strong random password.

    Character sets: A-Z, a-z, 0-9 and optionally !@#$%^&*()_+-=
    """
    if length <= 0:
        raise InvalidParameter("Password length must be positive.")

    chars = string.ascii_letters + string.digits
    if use_symbols:
        chars += "!@#$%^&*()_+-="

    return ''.join(secrets.choice(chars) for _ in range(length))
