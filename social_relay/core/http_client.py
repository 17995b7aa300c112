from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import asyncio
import json
import aiohttp
from ..utils.logger import get_logger

logger = get_logger(__name__)

@dataclass
class ApiResponse:
    """Decoded HTTP response. status is 0 when the request never completed."""
    status: int
    payload: Dict[str, Any] = field(default_factory=dict)
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    transport_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str:
        return self.headers.get(name.lower(), "")

def _decode_payload(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}

async def send_request(
    method: str,
    url: str,
    *,
    params: Optional[Dict[str, str]] = None,
    data: Optional[Dict[str, str]] = None,
    json_body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> ApiResponse:
    """
    Send one request and decode the JSON body.

    Transport failures are returned as an ApiResponse with status 0 so that
    callers handle them like any other failed response.

    Args:
        method: HTTP method
        url: Absolute URL
        params: Query string parameters
        data: Form encoded body
        json_body: JSON body
        headers: Extra request headers

    Returns:
        ApiResponse with status, decoded payload, raw text and headers
    """
    try:
        async with aiohttp.ClientSession() as session:
            async with session.request(
                method,
                url,
                params=params,
                data=data,
                json=json_body,
                headers=headers
            ) as response:
                # Providers do not always send valid UTF-8 on error pages
                text = await response.text(errors="replace")
                logger.debug(f"{method} {url.split('?')[0]} -> {response.status}")
                return ApiResponse(
                    status=response.status,
                    payload=_decode_payload(text),
                    text=text,
                    headers={k.lower(): v for k, v in response.headers.items()}
                )
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"{method} {url.split('?')[0]} failed: {type(e).__name__}")
        return ApiResponse(status=0, transport_error=str(e) or type(e).__name__)
