"""
Encryption of tenancy client secrets at rest.

Secrets are encrypted with Fernet (AES-128-CBC + HMAC) using the key from
TENANCY_SECRET_KEY.
"""
import os
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

SECRET_MASK = "••••"


def is_masked(secret: Optional[str]) -> bool:
    """Whether a submitted secret is the masked placeholder shown in the UI."""
    return bool(secret) and SECRET_MASK in secret


def mask_secret(secret: Optional[str]) -> Optional[str]:
    """Mask a plaintext secret, keeping its last four characters as a hint."""
    if not secret:
        return None
    tail = secret[-4:] if len(secret) > 8 else ""
    return f"{SECRET_MASK}{tail}"


class SecretCipher:
    """Symmetric encryption for secrets stored in the database."""

    def __init__(self, key: Optional[str] = None):
        """
        Initialize cipher.

        Args:
            key: URL-safe base64 Fernet key (defaults to TENANCY_SECRET_KEY)
        """
        key = key or os.getenv("TENANCY_SECRET_KEY")
        if not key:
            logger.warning(
                "⚠️ TENANCY_SECRET_KEY not set, using an ephemeral key "
                "(stored secrets will not survive a restart)"
            )
            key = Fernet.generate_key().decode()
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a stored secret.

        Raises:
            ValueError: If the token was not produced with this key
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise ValueError("Stored client secret cannot be decrypted") from e
