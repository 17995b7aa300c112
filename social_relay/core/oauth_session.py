"""
Cookies carrying the Threads OAuth state and the OAuth outcome.

The state cookie binds the authorize redirect to the callback. The result
cookie hands the outcome to the browser, which reads it exactly once through
the session endpoint. Without a key the result is base64url JSON; with a
Fernet key it is encrypted.
"""

from typing import Dict, Optional
import json
from fastapi import Request, Response
from ..utils.crypto import FernetEncryption, b64url_decode, b64url_encode
from ..utils.logger import get_logger

logger = get_logger(__name__)

STATE_COOKIE = "threads_oauth_state"
RESULT_COOKIE = "threads_oauth_result"
STATE_MAX_AGE_SECONDS = 10 * 60
RESULT_MAX_AGE_SECONDS = 2 * 60

class ResultCodec:
    """Encodes OAuth results for the result cookie."""

    def __init__(self, key: Optional[str] = None):
        self.cipher = FernetEncryption(key) if key else None

    def encode(self, payload: Dict) -> str:
        raw = json.dumps(payload, separators=(',', ':'))
        if self.cipher:
            return self.cipher.encrypt(raw)
        return b64url_encode(raw.encode('utf-8'))

    def decode(self, value: str) -> Optional[Dict]:
        """Decode a cookie value, returning None if it cannot be read."""
        try:
            if self.cipher:
                raw = self.cipher.decrypt(value)
                if raw is None:
                    return None
            else:
                raw = b64url_decode(value).decode('utf-8')
            data = json.loads(raw)
        except (ValueError, UnicodeError) as e:
            logger.warning(f"Could not decode OAuth result cookie: {type(e).__name__}")
            return None
        if not isinstance(data, dict) or not isinstance(data.get('ok'), bool):
            logger.warning("OAuth result cookie has an unexpected shape")
            return None
        return data

def is_secure(request: Request) -> bool:
    return request.url.scheme == "https"

def _set(response: Response, request: Request, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        path="/",
        secure=is_secure(request),
        httponly=True,
        samesite="lax"
    )

def set_state_cookie(response: Response, request: Request, state: str) -> None:
    _set(response, request, STATE_COOKIE, state, STATE_MAX_AGE_SECONDS)

def set_result_cookie(response: Response, request: Request, value: str) -> None:
    _set(response, request, RESULT_COOKIE, value, RESULT_MAX_AGE_SECONDS)

def clear_cookie(response: Response, request: Request, name: str) -> None:
    response.delete_cookie(
        key=name,
        path="/",
        secure=is_secure(request),
        httponly=True,
        samesite="lax"
    )
