from typing import Dict, Tuple
import asyncio
from ..config import Settings
from ..core.credentials import resolve_credential
from ..models.relay_models import ChannelResult, PostCredentials, PostRequest
from ..platforms.bluesky import BlueskyClient
from ..platforms.threads import ThreadsOAuth
from ..utils.logger import get_logger

logger = get_logger(__name__)

HTTP_OK = 200
HTTP_MULTI_STATUS = 207
HTTP_BAD_REQUEST = 400

def aggregate_status(results: Dict[str, ChannelResult]) -> int:
    """200 when nothing failed, 207 when some failed, 400 when all failed."""
    ok_count = sum(1 for result in results.values() if result.ok)
    fail_count = len(results) - ok_count
    if ok_count and fail_count:
        return HTTP_MULTI_STATUS
    if fail_count:
        return HTTP_BAD_REQUEST
    return HTTP_OK

class PostDispatcher:
    """Relays one post to every selected channel and collects the outcomes."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def dispatch(self, request: PostRequest) -> Tuple[Dict[str, ChannelResult], int]:
        """
        Publish to each selected channel independently.

        Args:
            request: Validated post request

        Returns:
            Results keyed by channel (selected channels only) and HTTP status
        """
        credentials = request.credentials or PostCredentials()
        handlers = {
            "bluesky": self._post_bluesky,
            "threads": self._post_threads,
        }
        channels = request.channels.selected()
        outcomes = await asyncio.gather(
            *(handlers[channel](request.text, credentials) for channel in channels)
        )
        results = dict(zip(channels, outcomes))
        status = aggregate_status(results)
        logger.info(
            "Post dispatched: "
            + ", ".join(f"{name}={'ok' if result.ok else 'failed'}" for name, result in results.items())
            + f" (status {status})"
        )
        return results, status

    async def _post_bluesky(self, text: str, credentials: PostCredentials) -> ChannelResult:
        identifier = resolve_credential(credentials.bluesky_identifier, self.settings.BLUESKY_IDENTIFIER)
        app_password = resolve_credential(credentials.bluesky_app_password, self.settings.BLUESKY_APP_PASSWORD)
        if not identifier or not app_password:
            return ChannelResult(
                ok=False,
                message="Bluesky credentials are missing. Configure the server or send them with the request."
            )

        client = BlueskyClient(identifier, app_password, self.settings.BLUESKY_SERVICE_URL)
        try:
            output = await client.create_post(text)
        except Exception as e:
            logger.error(f"Bluesky post failed: {str(e)}")
            return ChannelResult(ok=False, message=str(e) or "Bluesky post failed.")
        return ChannelResult(ok=True, message="Published to Bluesky.", uri=output.uri)

    async def _post_threads(self, text: str, credentials: PostCredentials) -> ChannelResult:
        access_token = resolve_credential(credentials.threads_access_token, self.settings.THREADS_ACCESS_TOKEN)
        user_id = resolve_credential(credentials.threads_user_id, self.settings.THREADS_USER_ID)
        if not access_token:
            return ChannelResult(
                ok=False,
                message="Threads credentials are missing. Configure the server or send them with the request."
            )

        client = ThreadsOAuth(
            client_id=self.settings.THREADS_APP_ID,
            client_secret=self.settings.THREADS_APP_SECRET,
            callback_url=self.settings.THREADS_REDIRECT_URI,
            api_versions=self.settings.threads_api_versions
        )
        try:
            output = await client.create_post(text, access_token, user_id)
        except Exception as e:
            logger.error(f"Threads post failed: {str(e)}")
            return ChannelResult(ok=False, message=str(e) or "Threads post failed.")
        return ChannelResult(ok=True, message="Published to Threads.", id=output.post_id)
