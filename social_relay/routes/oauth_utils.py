from typing import Optional
from fastapi import Request
from fastapi.responses import RedirectResponse
from ..config import Settings
from ..core.oauth_session import ResultCodec, set_result_cookie
from ..models.relay_models import OAuthResult
from ..platforms.threads import ThreadsOAuth
from ..utils.logger import get_logger

logger = get_logger(__name__)

CALLBACK_PATH = "/oauth/callback"

def get_callback_url(request: Request, settings: Settings) -> str:
    """Configured redirect URI, else the callback route on this origin."""
    if settings.THREADS_REDIRECT_URI:
        return settings.THREADS_REDIRECT_URI
    return f"{get_origin(request)}{CALLBACK_PATH}"

def get_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"

def get_threads_handler(settings: Settings, callback_url: Optional[str] = None) -> ThreadsOAuth:
    """Get the Threads OAuth handler for the configured app."""
    return ThreadsOAuth(
        client_id=settings.THREADS_APP_ID,
        client_secret=settings.THREADS_APP_SECRET,
        callback_url=callback_url or settings.THREADS_REDIRECT_URI,
        api_versions=settings.threads_api_versions
    )

def redirect_with_result(request: Request, settings: Settings, result: OAuthResult) -> RedirectResponse:
    """Redirect to the app root, handing the OAuth outcome over in the result cookie."""
    response = RedirectResponse(url="/", status_code=307)
    codec = ResultCodec(settings.RESULT_COOKIE_KEY)
    set_result_cookie(response, request, codec.encode(result.to_json()))
    if not result.ok:
        logger.warning(f"Threads OAuth failed: {result.error}")
    return response
