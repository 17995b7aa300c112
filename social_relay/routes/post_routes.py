from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from typing import Type, TypeVar
import json
from ..config import Settings, get_settings
from ..core.exceptions import ThreadsAPIError
from ..models.relay_models import ConnectRequest, PostRequest, PostResponse
from ..services.dispatcher import PostDispatcher
from ..utils.logger import get_logger
from .oauth_utils import get_threads_handler

logger = get_logger(__name__)
router = APIRouter()

TOKEN_GUIDANCE = (
    "Generate a new user token in the Threads API product and confirm the "
    "threads_basic and threads_content_publish permissions."
)

M = TypeVar("M", bound=BaseModel)

async def parse_body(request: Request, model: Type[M]) -> M:
    """
    Parse a JSON request body into a model.

    Raises:
        HTTPException: 400 if the body is not valid JSON or does not match the model
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON in request body.")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object.")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        logger.debug(f"Rejected {model.__name__}: {e.error_count()} validation error(s)")
        raise HTTPException(status_code=400, detail="Invalid request body.")

@router.post("/post", response_model=PostResponse)
async def create_post(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> JSONResponse:
    """Relay one post to the selected channels."""
    payload = await parse_body(request, PostRequest)

    if not payload.text:
        raise HTTPException(status_code=400, detail="Post text is required.")
    if not payload.channels.selected():
        raise HTTPException(status_code=400, detail="Select at least one social network.")

    results, status = await PostDispatcher(settings).dispatch(payload)
    return JSONResponse(PostResponse(results=results).to_json(), status_code=status)

@router.post("/connect")
async def connect_threads(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> JSONResponse:
    """Validate a Threads access token and return the user it belongs to."""
    payload = await parse_body(request, ConnectRequest)
    access_token = (payload.access_token or "").strip()
    if not access_token:
        return JSONResponse({"ok": False, "error": "Provide the Threads access token."}, status_code=400)

    handler = get_threads_handler(settings)
    try:
        user = await handler.get_user_profile(access_token)
    except ThreadsAPIError as e:
        message = str(e)
        if e.token_invalid:
            message = f"{message} {TOKEN_GUIDANCE}"
        return JSONResponse({"ok": False, "error": message}, status_code=400)
    except Exception as e:
        logger.error(f"Error validating Threads token: {str(e)}")
        return JSONResponse({"ok": False, "error": "Could not validate the Threads token."}, status_code=400)

    return JSONResponse(
        {"ok": True, "user": user.to_json(), "message": f"Connected as @{user.username}."},
        status_code=200
    )
