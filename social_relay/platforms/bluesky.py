from typing import Any, Dict
from datetime import datetime, timezone
from ..core.exceptions import BlueskyAPIError, TextLimitError
from ..core.http_client import ApiResponse, send_request
from ..models.relay_models import BlueskyPostResult
from ..utils.logger import get_logger

logger = get_logger(__name__)

BLUESKY_TEXT_LIMIT = 300
BLUESKY_SERVICE_URL = "https://bsky.social"
POST_COLLECTION = "app.bsky.feed.post"

def _error_detail(response: ApiResponse) -> str:
    for key in ("message", "error"):
        if response.payload.get(key):
            return str(response.payload[key])
    if response.transport_error:
        return f"Network error: {response.transport_error}"
    return f"HTTP {response.status}"

class BlueskyClient:
    """Client for posting to Bluesky via the AT Protocol."""

    def __init__(self, identifier: str, app_password: str, service_url: str = BLUESKY_SERVICE_URL):
        self.identifier = identifier
        self._app_password = app_password
        self.service_url = (service_url or BLUESKY_SERVICE_URL).rstrip("/")

    async def _send(self, method: str, url: str, **kwargs) -> ApiResponse:
        return await send_request(method, url, **kwargs)

    async def _create_session(self) -> Dict[str, Any]:
        """Authenticate and create an AT Protocol session."""
        response = await self._send(
            "POST",
            f"{self.service_url}/xrpc/com.atproto.server.createSession",
            json_body={"identifier": self.identifier, "password": self._app_password}
        )
        session = response.payload
        if not response.ok or not session.get("did") or not session.get("accessJwt"):
            raise BlueskyAPIError(f"Bluesky login failed: {_error_detail(response)}")
        return session

    async def create_post(self, text: str) -> BlueskyPostResult:
        """
        Log in and create a post record.

        Args:
            text: Post text

        Returns:
            BlueskyPostResult with the record uri and cid

        Raises:
            TextLimitError: If text is longer than the Bluesky limit
            BlueskyAPIError: If login or record creation fails
        """
        if len(text) > BLUESKY_TEXT_LIMIT:
            raise TextLimitError("Bluesky", BLUESKY_TEXT_LIMIT)

        session = await self._create_session()
        response = await self._send(
            "POST",
            f"{self.service_url}/xrpc/com.atproto.repo.createRecord",
            json_body={
                "repo": session["did"],
                "collection": POST_COLLECTION,
                "record": {
                    "$type": POST_COLLECTION,
                    "text": text,
                    "createdAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
                }
            },
            headers={"Authorization": f"Bearer {session['accessJwt']}"}
        )
        uri = response.payload.get("uri")
        cid = response.payload.get("cid")
        if not response.ok or not uri or not cid:
            raise BlueskyAPIError(f"Bluesky post failed: {_error_detail(response)}")

        logger.info(f"Published Bluesky post {uri}")
        return BlueskyPostResult(uri=str(uri), cid=str(cid))
