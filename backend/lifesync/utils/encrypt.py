"""Credential vault for third-party API keys.

AES-256-GCM with a fresh 96-bit nonce per call. The stored value is
base64(nonce || ciphertext || tag). Neither plaintext nor ciphertext is ever
logged; use ``mask_secret`` when a log line needs to identify a key.
"""

import base64
import binascii
import os
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from lifesync.config import settings
from lifesync.exceptions import ConfigError, DecryptionError

KEY_LENGTH = 32  # bytes, AES-256
NONCE_LENGTH = 12  # bytes, recommended for GCM


def get_aesgcm() -> AESGCM:
    """Returns an AESGCM cipher built from the configured encryption key."""
    key = settings.encryption_key
    if not key:
        raise ConfigError(
            "ENCRYPTION_KEY environment variable is required. "
            "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
        )
    if len(key) < KEY_LENGTH:
        raise ConfigError(
            f"ENCRYPTION_KEY must be at least {KEY_LENGTH} characters long. Current length: {len(key)}"
        )
    return AESGCM(key.encode("utf-8")[:KEY_LENGTH])


def encrypt_api_key(plaintext: str) -> str:
    """Encrypts a string and returns base64(nonce + ciphertext)."""
    if not plaintext:
        raise ValueError("Cannot encrypt empty string")
    aesgcm = get_aesgcm()
    nonce = os.urandom(NONCE_LENGTH)
    ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + ciphertext).decode("ascii")


def decrypt_api_key(encrypted_data: str) -> str:
    """Decrypts a value produced by ``encrypt_api_key``."""
    if not encrypted_data:
        raise DecryptionError("Cannot decrypt empty string")
    aesgcm = get_aesgcm()

    try:
        combined = base64.b64decode(encrypted_data, validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError("Invalid encrypted data: not valid base64")

    if len(combined) <= NONCE_LENGTH:
        raise DecryptionError("Invalid encrypted data: too short")

    nonce, ciphertext = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
    try:
        plaintext = aesgcm.decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise DecryptionError(
            "Decryption failed: invalid encryption key or corrupted data. "
            "This usually happens when ENCRYPTION_KEY has changed; reconnect the integration."
        )
    return plaintext.decode("utf-8")


def validate_encryption() -> bool:
    """Round-trips a sample value to check the environment is set up."""
    sample = "test-api-key-12345"
    if decrypt_api_key(encrypt_api_key(sample)) != sample:
        raise ConfigError("Encryption validation failed: decrypted data does not match original")
    return True


def generate_encryption_key(length: int = KEY_LENGTH) -> str:
    """Hex key suitable for ENCRYPTION_KEY. Rotating it invalidates stored keys."""
    return secrets.token_hex(length)


def mask_secret(secret: str) -> str:
    """First 8 characters followed by ``****``; safe to log."""
    if not secret or len(secret) < 8:
        return "****"
    return secret[:8] + "****"
