"""
Verification of Meta signed requests.

A signed request is ``<signature>.<payload>``: both segments base64url
without padding, the payload a JSON object and the signature the
HMAC-SHA256 of the raw payload segment keyed with the app secret.
"""

from typing import Dict, Optional
import hashlib
import hmac
import json
from ..utils.crypto import b64url_decode, b64url_encode
from ..utils.logger import get_logger

logger = get_logger(__name__)

SIGNED_REQUEST_ALGORITHM = "HMAC-SHA256"

def _signature(encoded_payload: str, secret: str) -> bytes:
    return hmac.new(secret.encode('utf-8'), encoded_payload.encode('ascii'), hashlib.sha256).digest()

def parse_signed_request(signed_request: str, secret: str) -> Optional[Dict]:
    """
    Verify a signed request and return its payload.

    Args:
        signed_request: Value posted by the provider
        secret: App secret shared with the provider

    Returns:
        Optional[Dict]: Decoded payload, or None if anything fails to verify
    """
    parts = signed_request.split('.')
    if len(parts) != 2:
        logger.warning("Signed request rejected: malformed")
        return None

    # Meta sends the signature first, then the payload
    encoded_signature, encoded_payload = parts
    try:
        payload = json.loads(b64url_decode(encoded_payload).decode('utf-8'))
        signature = b64url_decode(encoded_signature)
        expected = _signature(encoded_payload, secret)
    except (ValueError, UnicodeError):
        logger.warning("Signed request rejected: undecodable")
        return None

    if not isinstance(payload, dict):
        logger.warning("Signed request rejected: payload is not an object")
        return None

    algorithm = payload.get('algorithm')
    if algorithm and str(algorithm).upper() != SIGNED_REQUEST_ALGORITHM:
        logger.warning("Signed request rejected: unexpected algorithm")
        return None

    if len(signature) != len(expected) or not hmac.compare_digest(signature, expected):
        logger.warning("Signed request rejected: signature mismatch")
        return None

    return payload

def sign_payload(payload: Dict, secret: str) -> str:
    """Build a signed request for a payload."""
    data = dict(payload)
    data.setdefault('algorithm', SIGNED_REQUEST_ALGORITHM)
    encoded_payload = b64url_encode(json.dumps(data, separators=(',', ':')).encode('utf-8'))
    return f"{b64url_encode(_signature(encoded_payload, secret))}.{encoded_payload}"
