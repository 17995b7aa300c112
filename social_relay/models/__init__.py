"""
Request and response models.
"""

from .relay_models import (
    PostRequest, PostChannels, PostCredentials, ChannelResult, PostResponse,
    ConnectRequest, ThreadsUser, ThreadsToken, TokenMeta, OAuthResult,
    ThreadsPublishResult, BlueskyPostResult, DataDeletionResponse
)

__all__ = [
    'PostRequest', 'PostChannels', 'PostCredentials', 'ChannelResult',
    'PostResponse', 'ConnectRequest', 'ThreadsUser', 'ThreadsToken',
    'TokenMeta', 'OAuthResult', 'ThreadsPublishResult', 'BlueskyPostResult',
    'DataDeletionResponse'
]
