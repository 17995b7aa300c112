from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse
from typing import Optional
from urllib.parse import urlencode
import html
from ..config import Settings, get_settings
from ..core.signed_request import parse_signed_request
from ..models.relay_models import DataDeletionResponse
from ..utils.crypto import generate_confirmation_code
from ..utils.logger import get_logger
from .oauth_utils import get_origin

logger = get_logger(__name__)
callback_router = APIRouter()
status_router = APIRouter()

DELETION_STATUS_PATH = "/threads/data-deletion"

# No user data is stored server-side, so the compliance callbacks below only
# acknowledge the provider's request.

@callback_router.post("/data-deletion", response_model=DataDeletionResponse)
async def data_deletion(
    request: Request,
    signed_request: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings)
):
    """Handle the data deletion request callback."""
    if not settings.THREADS_APP_SECRET:
        logger.error("Data deletion callback received but THREADS_APP_SECRET is not configured")
        return JSONResponse({"error": "THREADS_APP_SECRET is not configured."}, status_code=500)

    signed_request = (signed_request or "").strip()
    if not signed_request:
        return JSONResponse({"error": "signed_request is missing."}, status_code=400)

    payload = parse_signed_request(signed_request, settings.THREADS_APP_SECRET)
    if payload is None:
        return JSONResponse({"error": "signed_request is invalid."}, status_code=400)

    confirmation_code = generate_confirmation_code()
    query = {"code": confirmation_code}
    if payload.get("user_id"):
        query["user_id"] = str(payload["user_id"])

    logger.info(f"Data deletion acknowledged with confirmation code {confirmation_code}")
    return DataDeletionResponse(
        url=f"{get_origin(request)}{DELETION_STATUS_PATH}?{urlencode(query)}",
        confirmation_code=confirmation_code
    )

@callback_router.get("/data-deletion")
async def data_deletion_status_url(request: Request):
    return {"ok": True, "status_url": f"{get_origin(request)}{DELETION_STATUS_PATH}"}

@callback_router.api_route("/deauthorize", methods=["GET", "POST"])
async def deauthorize():
    """Acknowledge an app removal."""
    logger.info("Deauthorize callback received")
    return {"ok": True}

@status_router.get(DELETION_STATUS_PATH, response_class=HTMLResponse)
async def data_deletion_status(code: Optional[str] = None, user_id: Optional[str] = None) -> HTMLResponse:
    """Status page linked from the data deletion response."""
    user_line = f"<p>User ID: {html.escape(user_id)}</p>" if user_id else ""
    html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <title>Data Deletion Status</title>
        </head>
        <body>
            <h2>Threads data deletion status</h2>
            <p>This app does not store Threads data on the server. Credentials stay in the user's browser.</p>
            <p>Confirmation code: {html.escape(code) if code else 'not provided'}</p>
            {user_line}
        </body>
        </html>
    """
    return HTMLResponse(content=html_content)
