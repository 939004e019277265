"""AES-256-GCM encryption for secrets stored in the database (git tokens).

Master key is a base64-encoded 32-byte value sourced from LEMMA_ENCRYPTION_KEY.
Ciphertext format: base64(nonce || sealed), with a fresh 12-byte nonce per value.
"""

import base64
import binascii
import os
from typing import Protocol, runtime_checkable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from lemma.logging_config import get_logger

logger = get_logger(__name__)

KEY_SIZE = 32
NONCE_SIZE = 12


@runtime_checkable
class SecretsService(Protocol):
    """Encrypt/decrypt contract consumed by the data layer.

    Empty input returns empty output without touching the cipher.
    """

    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, ciphertext: str) -> str: ...


def _decode_key(key: str) -> bytes:
    if not key:
        raise ValueError("Encryption key is required")
    try:
        key_bytes = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 encoding for encryption key: {e}") from None
    if len(key_bytes) != KEY_SIZE:
        raise ValueError(
            f"Encryption key must be {KEY_SIZE} bytes (256 bits): got {len(key_bytes)} bytes"
        )
    return key_bytes


def validate_key(key: str) -> None:
    """Raise ValueError unless ``key`` is a base64-encoded 256-bit key."""
    _decode_key(key)


def generate_key() -> str:
    """Generate a new base64-encoded 256-bit key."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode()


class AESGCMSecretsService:
    """SecretsService backed by AES-256-GCM."""

    def __init__(self, key: str) -> None:
        self._aesgcm = AESGCM(_decode_key(key))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string. Returns base64 nonce+ciphertext."""
        if plaintext == "":
            logger.debug("Empty plaintext, skipping encryption")
            return ""
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode(), None)
        return base64.b64encode(nonce + sealed).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a value produced by ``encrypt``. Returns plaintext."""
        if ciphertext == "":
            logger.debug("Empty ciphertext, skipping decryption")
            return ""
        try:
            data = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Failed to decrypt value: invalid base64 encoding") from None
        if len(data) <= NONCE_SIZE:
            raise ValueError("Failed to decrypt value: ciphertext too short")
        try:
            return self._aesgcm.decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None).decode()
        except InvalidTag:
            raise ValueError("Failed to decrypt value: key mismatch or corrupted data") from None


def init_secrets_service(key: str) -> AESGCMSecretsService:
    """Build the secrets service from config. Call once at startup."""
    try:
        service = AESGCMSecretsService(key)
    except ValueError as e:
        logger.error("Invalid encryption key", error=str(e))
        raise
    logger.info("Encryption initialized")
    return service
