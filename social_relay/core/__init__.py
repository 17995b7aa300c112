"""
Core relay functionality.
"""

from .oauth_base import OAuthBase
from .credentials import resolve_credential
from .exceptions import RelayError, TextLimitError, ThreadsAPIError, BlueskyAPIError
from .signed_request import parse_signed_request, sign_payload

__all__ = [
    'OAuthBase',
    'resolve_credential',
    'RelayError',
    'TextLimitError',
    'ThreadsAPIError',
    'BlueskyAPIError',
    'parse_signed_request',
    'sign_payload'
]
