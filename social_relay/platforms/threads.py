from typing import Dict, List, Optional, Union
from ..core.exceptions import TextLimitError
from ..core.http_client import ApiResponse
from ..core.oauth_base import OAuthBase
from ..core.version_fallback import CandidateFailure, first_successful
from ..models.relay_models import ThreadsPublishResult, ThreadsToken, ThreadsUser
from ..utils.logger import get_logger

logger = get_logger(__name__)

THREADS_TEXT_LIMIT = 500
THREADS_GRAPH_URL = "https://graph.threads.net"
DEFAULT_ACTOR = "me"
INVALID_TOKEN_MESSAGE = "Invalid Threads token (the access token was rejected)."
BODY_SNIPPET_LENGTH = 200

def describe_error(response: ApiResponse) -> CandidateFailure:
    """
    Turn a failed Graph API response into a candidate failure.

    Preference: auth challenge header, provider error message, body snippet,
    transport error, HTTP status.
    """
    if "invalid_token" in response.header("www-authenticate").lower():
        return CandidateFailure(version="", message=INVALID_TOKEN_MESSAGE, token_invalid=True)

    error = response.payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return CandidateFailure(version="", message=str(error["message"]))

    snippet = response.text.strip()[:BODY_SNIPPET_LENGTH]
    if snippet:
        return CandidateFailure(version="", message=snippet)
    if response.transport_error:
        return CandidateFailure(version="", message=f"Network error: {response.transport_error}")
    return CandidateFailure(version="", message=f"HTTP {response.status}")

def _failure(version: str, response: ApiResponse, missing: str) -> CandidateFailure:
    if response.ok:
        return CandidateFailure(version=version, message=f"response has no {missing}")
    failure = describe_error(response)
    failure.version = version
    return failure

class ThreadsOAuth(OAuthBase):
    """Threads OAuth 2.0 and publishing against the Threads Graph API."""

    auth_url = "https://threads.net/oauth/authorize"
    default_scopes = ["threads_basic", "threads_content_publish"]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        callback_url: str,
        api_versions: Optional[List[str]] = None,
        graph_url: str = THREADS_GRAPH_URL
    ):
        super().__init__(client_id, client_secret, callback_url)
        self.api_versions = list(api_versions) if api_versions is not None else ["v1.0", ""]
        self.graph_url = graph_url.rstrip("/")

    def endpoint(self, version: str, path: str) -> str:
        """Graph URL for a path, with the version segment only when one is set."""
        if version:
            return f"{self.graph_url}/{version}/{path}"
        return f"{self.graph_url}/{path}"

    async def get_access_token(self, code: str) -> ThreadsToken:
        """
        Exchange authorization code for access token.

        The short-lived token is upgraded to a long-lived one at the same
        API version when possible; a failed upgrade keeps the short-lived
        token.

        Args:
            code: Authorization code from callback

        Returns:
            ThreadsToken with the winning API version

        Raises:
            ThreadsAPIError: If every version candidate fails
        """
        async def attempt(version: str) -> Union[ThreadsToken, CandidateFailure]:
            response = await self._send(
                "POST",
                self.endpoint(version, "oauth/access_token"),
                data={
                    "client_id": self.client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.callback_url,
                    "code": code
                }
            )
            short_lived = response.payload.get("access_token")
            if not response.ok or not short_lived:
                return _failure(version, response, "access_token")

            token = ThreadsToken(
                access_token=str(short_lived),
                api_version=version,
                is_long_lived=False,
                expires_in=_as_int(response.payload.get("expires_in"))
            )
            return await self._exchange_long_lived(version, token)

        result = await first_successful(self.api_versions, attempt)
        return result.unwrap("Threads token exchange failed")

    async def _exchange_long_lived(self, version: str, token: ThreadsToken) -> ThreadsToken:
        response = await self._send(
            "GET",
            self.endpoint(version, "access_token"),
            params={
                "grant_type": "th_exchange_token",
                "client_secret": self._client_secret,
                "access_token": token.access_token
            }
        )
        long_lived = response.payload.get("access_token")
        if not response.ok or not long_lived:
            logger.info("Long-lived token exchange failed, keeping short-lived token")
            return token
        return ThreadsToken(
            access_token=str(long_lived),
            api_version=version,
            is_long_lived=True,
            expires_in=_as_int(response.payload.get("expires_in"))
        )

    async def get_user_profile(self, access_token: str) -> ThreadsUser:
        """
        Resolve an access token to the Threads user id and handle.

        Raises:
            ThreadsAPIError: If every version candidate fails
        """
        async def attempt(version: str) -> Union[ThreadsUser, CandidateFailure]:
            response = await self._send(
                "GET",
                self.endpoint(version, "me"),
                params={"fields": "id,username", "access_token": access_token}
            )
            user_id = response.payload.get("id")
            username = response.payload.get("username")
            if not response.ok or not user_id or not username:
                return _failure(version, response, "id and username")
            return ThreadsUser(id=str(user_id), username=str(username))

        result = await first_successful(self.api_versions, attempt)
        return result.unwrap("Could not validate Threads token")

    async def create_post(
        self,
        text: str,
        access_token: str,
        user_id: Optional[str] = None
    ) -> ThreadsPublishResult:
        """
        Publish a text post: create a container, then publish it.

        Args:
            text: Post text
            access_token: Threads user access token
            user_id: Threads user id, "me" when absent

        Returns:
            ThreadsPublishResult with creation id, post id and API version

        Raises:
            TextLimitError: If text is longer than the Threads limit
            ThreadsAPIError: If every version candidate fails
        """
        if len(text) > THREADS_TEXT_LIMIT:
            raise TextLimitError("Threads", THREADS_TEXT_LIMIT)

        actor = (user_id or "").strip() or DEFAULT_ACTOR

        async def attempt(version: str) -> Union[Dict[str, str], CandidateFailure]:
            created = await self._send(
                "POST",
                self.endpoint(version, f"{actor}/threads"),
                data={"media_type": "TEXT", "text": text, "access_token": access_token}
            )
            creation_id = created.payload.get("id")
            if not created.ok or not creation_id:
                return _failure(version, created, "container id")

            published = await self._send(
                "POST",
                self.endpoint(version, f"{actor}/threads_publish"),
                data={"creation_id": str(creation_id), "access_token": access_token}
            )
            post_id = published.payload.get("id")
            if not published.ok or not post_id:
                return _failure(version, published, "post id")
            return {"creation_id": str(creation_id), "post_id": str(post_id)}

        result = await first_successful(self.api_versions, attempt)
        ids = result.unwrap("Threads publish failed")
        logger.info(f"Published Threads post {ids['post_id']}")
        return ThreadsPublishResult(api_version=result.api_version, **ids)

def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
