"""
Render Routes
=============

FastAPI routes for rendering HTML to images and reading embedded metadata.
"""

from typing import Any, Awaitable, Dict, TypeVar
import asyncio
import base64
import binascii

from fastapi import APIRouter, Depends, Response

from html2img.api.errors import ApiError
from html2img.api.security import reject_malicious_content, validate_api_key
from html2img.config.logging import get_logger
from html2img.config.settings import get_settings
from html2img.core.rendering.capture import get_capture_engine
from html2img.core.rendering.metadata import MetadataExtractionError, extract_metadata
from html2img.core.rendering.response import format_render_response
from html2img.models.schemas import MetadataExtractionRequest, RenderRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/render", tags=["Rendering"], dependencies=[Depends(validate_api_key)])

T = TypeVar("T")


def _reap_abandoned(task: "asyncio.Task[Any]") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("Abandoned render failed after request timeout", error=str(error))
    else:
        logger.info("Abandoned render finished after request timeout")


async def run_with_deadline(operation: Awaitable[T], timeout_ms: int) -> T:
    """
    Await an operation, giving up on it after timeout_ms.

    The operation is not cancelled when the deadline passes: it runs on in the
    background so its page and context still get closed.

    Raises:
        ApiError: 408 when the deadline passes first
    """
    task = asyncio.ensure_future(operation)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        task.add_done_callback(_reap_abandoned)
        raise ApiError("Request timeout", 408)


@router.post("")
async def render(payload: RenderRequest) -> Response:
    """
    Render HTML content and return the screenshot.

    Returns the raw image with metadata headers, or a JSON envelope when
    responseFormat is json.
    """
    reject_malicious_content(payload.html, payload.javascript, payload.css)

    logger.info(
        "Render requested",
        format=payload.format.value,
        response_format=payload.response_format.value,
        has_wait_selector=bool(payload.wait_for_selector),
        has_clip_selector=bool(payload.clip_selector),
        asset_count=len(payload.assets),
        font_count=len(payload.fonts),
    )

    result = await run_with_deadline(
        get_capture_engine().render(payload), get_settings().request_timeout
    )
    return format_render_response(result, payload.response_format)


@router.post("/metadata")
async def render_metadata(payload: MetadataExtractionRequest) -> Dict[str, Any]:
    """Extract the metadata embedded in a PNG previously returned by /render."""
    if not payload.image:
        raise ApiError("Image data is required", 400)

    encoded = payload.image
    if encoded.startswith("data:"):
        encoded = encoded.split(",", 1)[-1]

    try:
        image_bytes = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ApiError("Image data is not valid base64", 400)

    try:
        metadata = extract_metadata(image_bytes)
    except MetadataExtractionError as e:
        raise ApiError(str(e), 400)

    if metadata is None:
        raise ApiError("No render metadata found in image", 404)

    return {"metadata": metadata}
