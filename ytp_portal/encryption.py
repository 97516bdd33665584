import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken

from .config import ENCRYPTION_KEY, SECRET_KEY

logger = logging.getLogger(__name__)


def _build_cipher() -> Fernet:
    if ENCRYPTION_KEY:
        return Fernet(ENCRYPTION_KEY.encode())
    # Fernet needs 32 url-safe base64 encoded bytes
    derived = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
    return Fernet(derived)


cipher_suite = _build_cipher()


def encrypt_secret(value: str) -> str:
    """Encrypt a token or credential for storage"""
    return cipher_suite.encrypt(value.encode()).decode()


def decrypt_secret(encrypted_value: str) -> str:
    """Decrypt a stored token or credential; ValueError if the key changed"""
    try:
        return cipher_suite.decrypt(encrypted_value.encode()).decode()
    except InvalidToken as e:
        logger.error("❌ Failed to decrypt stored secret (wrong ENCRYPTION_KEY?)")
        raise ValueError("Stored secret could not be decrypted") from e
