"""
Platform-specific clients.
"""

from .threads import ThreadsOAuth
from .bluesky import BlueskyClient

__all__ = [
    'ThreadsOAuth',
    'BlueskyClient'
]
