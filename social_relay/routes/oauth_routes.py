from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
import hmac
from ..config import Settings, get_settings
from ..core.exceptions import RelayError
from ..core.oauth_session import (
    RESULT_COOKIE, STATE_COOKIE, ResultCodec, clear_cookie, set_state_cookie
)
from ..core.version_fallback import version_label
from ..models.relay_models import OAuthResult, TokenMeta
from ..utils.crypto import generate_oauth_state
from ..utils.logger import get_logger
from .oauth_utils import get_callback_url, get_threads_handler, redirect_with_result

logger = get_logger(__name__)
router = APIRouter()

def _states_match(expected: str, returned: str) -> bool:
    if not expected or not returned:
        return False
    return hmac.compare_digest(expected.encode(), returned.encode())

@router.get("/start")
async def start_authorization(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> RedirectResponse:
    """Send the browser to the Threads authorize page."""
    if not settings.threads_app_configured:
        return redirect_with_result(
            request, settings,
            OAuthResult.failure("THREADS_APP_ID and THREADS_APP_SECRET are not configured on the server.")
        )

    state = generate_oauth_state()
    handler = get_threads_handler(settings, get_callback_url(request, settings))
    response = RedirectResponse(url=handler.get_authorization_url(state=state), status_code=307)
    set_state_cookie(response, request, state)
    logger.info("Threads OAuth started")
    return response

@router.get("/callback")
async def complete_authorization(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> RedirectResponse:
    """Handle the Threads OAuth callback and store the outcome for the browser."""
    params = request.query_params
    expected_state = request.cookies.get(STATE_COOKIE, "")
    returned_state = params.get("state", "")
    code = params.get("code", "")
    oauth_error = params.get("error_description") or params.get("error") or ""

    result = await _resolve_callback(request, settings, expected_state, returned_state, code, oauth_error)
    response = redirect_with_result(request, settings, result)
    clear_cookie(response, request, STATE_COOKIE)
    return response

async def _resolve_callback(
    request: Request,
    settings: Settings,
    expected_state: str,
    returned_state: str,
    code: str,
    oauth_error: str
) -> OAuthResult:
    if oauth_error:
        return OAuthResult.failure(f"Threads OAuth returned an error: {oauth_error}")

    if not _states_match(expected_state, returned_state):
        return OAuthResult.failure("Threads OAuth security check failed (invalid state).")

    if not code:
        return OAuthResult.failure("Threads OAuth did not return a code.")

    if not settings.threads_app_configured:
        return OAuthResult.failure("THREADS_APP_ID and THREADS_APP_SECRET are not configured.")

    handler = get_threads_handler(settings, get_callback_url(request, settings))
    try:
        token = await handler.get_access_token(code)
        user = await handler.get_user_profile(token.access_token)
    except RelayError as e:
        return OAuthResult.failure(str(e) or "Could not complete Threads OAuth.")
    except Exception as e:
        logger.error(f"Unexpected error completing Threads OAuth: {str(e)}")
        return OAuthResult.failure("Could not complete Threads OAuth.")

    logger.info(f"Threads OAuth completed for @{user.username}")
    return OAuthResult(
        ok=True,
        message=f"Connected to Threads OAuth as @{user.username}.",
        access_token=token.access_token,
        user=user,
        token_meta=TokenMeta(
            api_version=version_label(token.api_version),
            is_long_lived=token.is_long_lived,
            expires_in=token.expires_in
        )
    )

@router.get("/session")
async def poll_result(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> JSONResponse:
    """Return the OAuth outcome once, clearing it on every read."""
    value = request.cookies.get(RESULT_COOKIE)

    if not value:
        response = JSONResponse({"ok": False, "empty": True}, status_code=200)
    else:
        decoded = ResultCodec(settings.RESULT_COOKIE_KEY).decode(value)
        if decoded is None:
            response = JSONResponse(
                {"ok": False, "error": "Could not read the Threads OAuth result."},
                status_code=400
            )
        else:
            response = JSONResponse(decoded, status_code=200 if decoded["ok"] else 400)

    clear_cookie(response, request, RESULT_COOKIE)
    return response
