from abc import ABC, abstractmethod
from typing import List, Optional
from urllib.parse import urlencode
from .http_client import ApiResponse, send_request
from ..utils.logger import get_logger

logger = get_logger(__name__)

class OAuthBase(ABC):
    """Base class for OAuth implementations."""

    auth_url: str = ""
    default_scopes: List[str] = []

    def __init__(self, client_id: str, client_secret: str, callback_url: str):
        self.client_id = client_id
        self._client_secret = client_secret
        self.callback_url = callback_url
        # Extract base platform name without 'OAuth' suffix
        self.platform_name = self.__class__.__name__.lower().replace('oauth', '')

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self._client_secret)

    def get_authorization_url(self, state: str, scopes: Optional[List[str]] = None) -> str:
        """
        Build the provider authorize URL.

        Args:
            state: Anti-forgery token echoed back on the callback
            scopes: Scopes to request, defaults to the platform scopes

        Returns:
            Authorization URL string
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "scope": ",".join(scopes or self.default_scopes),
            "response_type": "code",
            "state": state
        }
        logger.debug(f"Built {self.platform_name} authorization URL for {self.callback_url}")
        return f"{self.auth_url}?{urlencode(params)}"

    async def _send(self, method: str, url: str, **kwargs) -> ApiResponse:
        """Network seam for all provider calls."""
        return await send_request(method, url, **kwargs)

    @abstractmethod
    async def get_access_token(self, code: str):
        """Exchange authorization code for access token."""
        pass

    @abstractmethod
    async def get_user_profile(self, access_token: str):
        """Resolve an access token to the user it belongs to."""
        pass
