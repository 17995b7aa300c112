"""
HTTP routes.
"""

from .post_routes import router as post_router
from .oauth_routes import router as oauth_router
from .oauth_callbacks import callback_router, status_router

__all__ = ['post_router', 'oauth_router', 'callback_router', 'status_router']
