"""Cryptographic utilities for wallet secret storage.

Uses Fernet (AES-128-CBC with HMAC) for symmetric encryption. Every
secret column of a wallet row goes through SecretCodec before it is
written and after it is read.
"""

import base64
import hashlib
import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from momo.errors import DecryptionError, ValidationError

logger = logging.getLogger(__name__)


def generate_encryption_key() -> str:
    """Generate a new encryption key.

    Returns:
        Base64-encoded 32-byte key suitable for Fernet
    """
    return Fernet.generate_key().decode()


def derive_key_from_password(password: str, salt: Optional[bytes] = None) -> tuple[str, bytes]:
    """Derive a Fernet key from a password using PBKDF2.

    Args:
        password: Operator-provided password
        salt: Optional salt (generated if not provided)

    Returns:
        Tuple of (base64-encoded key, salt)
    """
    if salt is None:
        salt = os.urandom(16)

    # PBKDF2 with SHA256, 100k iterations
    key = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt,
        100000,
        dklen=32,
    )

    fernet_key = base64.urlsafe_b64encode(key)
    return fernet_key.decode(), salt


class SecretCodec:
    """Encrypts and decrypts wallet secrets using Fernet.

    Usage:
        codec = SecretCodec(encryption_key)
        ciphertext = codec.encrypt("0xabc...")
        plaintext = codec.decrypt(ciphertext)
    """

    def __init__(self, encryption_key: str):
        """Initialize with the encryption key.

        Args:
            encryption_key: Base64-encoded Fernet key (32 bytes)
        """
        self._fernet = Fernet(encryption_key.encode())

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret value.

        Raises:
            ValidationError: If the value is empty
        """
        if not plaintext:
            raise ValidationError("Cannot encrypt an empty value")
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a value produced by encrypt().

        Raises:
            DecryptionError: Wrong key, corrupted or foreign data
        """
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except (InvalidToken, ValueError, TypeError, AttributeError) as e:
            raise DecryptionError("Stored secret failed integrity check") from e

    def rotate(self, new_key: str, ciphertext: str) -> str:
        """Re-encrypt a value with a new key."""
        plaintext = self.decrypt(ciphertext)
        return SecretCodec(new_key).encrypt(plaintext)


def get_codec() -> SecretCodec:
    """Get codec instance using ENCRYPTION_KEY from settings.

    Raises:
        RuntimeError: If ENCRYPTION_KEY is not configured
    """
    from momo.config import get_settings

    settings = get_settings()
    if not settings.encryption_key:
        raise RuntimeError("ENCRYPTION_KEY is not set - cannot store wallet secrets")

    return SecretCodec(settings.encryption_key)
