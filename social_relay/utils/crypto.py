import secrets
import uuid
import base64
import binascii
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from .logger import get_logger

logger = get_logger(__name__)

def b64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')

def b64url_decode(value: str) -> bytes:
    """
    Decode base64url data, with or without padding.

    Raises:
        ValueError: If the value is not valid base64url
    """
    try:
        padded = value + '=' * (-len(value) % 4)
        return base64.urlsafe_b64decode(padded.encode('ascii'))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64url data: {str(e)}") from e

def generate_oauth_state() -> str:
    """Generate an unguessable OAuth state value."""
    return f"{uuid.uuid4().hex}{secrets.token_hex(12)}"

def generate_confirmation_code() -> str:
    """Generate a data deletion confirmation code."""
    return secrets.token_hex(12)

class FernetEncryption:
    """Encrypts and decrypts short strings with a Fernet key."""

    def __init__(self, key: str):
        try:
            key_bytes = base64.urlsafe_b64decode(key)
            if len(key_bytes) != 32:
                raise ValueError(f"Invalid key length: {len(key_bytes)} bytes. Expected 32 bytes.")
            self.cipher_suite = Fernet(key.encode())
        except (binascii.Error, ValueError) as e:
            logger.error(f"Invalid encryption key format: {str(e)}")
            raise ValueError("Encryption key must be 32 url-safe base64-encoded bytes") from e

    def encrypt(self, data: str) -> str:
        """Encrypt string data."""
        return self.cipher_suite.encrypt(data.encode()).decode()

    def decrypt(self, encrypted_data: str) -> Optional[str]:
        """Decrypt encrypted string, returning None when the token is invalid."""
        try:
            return self.cipher_suite.decrypt(encrypted_data.encode()).decode()
        except (InvalidToken, UnicodeError) as e:
            logger.warning(f"Decryption failed: {type(e).__name__}")
            return None
