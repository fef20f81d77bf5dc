"""
Response Formatter
==================

Turns a RenderResult into an HTTP response: either the raw image with the
metadata mirrored into X-* headers, or a JSON envelope carrying the image as
base64.
"""

from typing import Any, Dict
import base64

from fastapi import Response
from fastapi.responses import JSONResponse

from html2img.models.schemas import (
    JsonRenderResponse,
    RenderMetadata,
    RenderResult,
    ResponseFormat,
)


# Every header metadata_headers() can emit
METADATA_HEADERS = (
    "X-Screenshot-Id",
    "X-Rendering-Time",
    "X-Browser-Version",
    "X-Rendered-At",
    "X-Viewport-Width",
    "X-Viewport-Height",
    "X-Viewport-DeviceScaleFactor",
)


def _header_value(value: Any) -> str:
    # 2.0 -> "2" so header values match the numbers callers sent
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _header_suffix(key: str) -> str:
    return key[:1].upper() + key[1:]


def metadata_headers(metadata: RenderMetadata) -> Dict[str, str]:
    """Mirror every metadata field into a response header."""
    wire = metadata.to_wire()
    headers = {
        "X-Screenshot-Id": _header_value(wire["screenshotId"]),
        "X-Rendering-Time": _header_value(wire["renderingTime"]),
        "X-Browser-Version": _header_value(wire["browserVersion"]),
        "X-Rendered-At": _header_value(wire["renderedAt"]),
    }
    for key, value in wire["viewport"].items():
        headers[f"X-Viewport-{_header_suffix(key)}"] = _header_value(value)
    return headers


def build_json_payload(result: RenderResult) -> Dict[str, Any]:
    """Build the {image, contentType, metadata} envelope."""
    envelope = JsonRenderResponse(
        image=base64.b64encode(result.image).decode("ascii"),
        content_type=result.content_type,
        metadata=result.metadata,
    )
    return envelope.model_dump(mode="json", by_alias=True)


def format_render_response(
    result: RenderResult, response_format: ResponseFormat = ResponseFormat.IMAGE
) -> Response:
    """
    Serialize a render result in the requested response shape.

    Args:
        result: Completed render
        response_format: image (binary body) or json (base64 envelope)

    Returns:
        FastAPI response ready to send
    """
    if response_format is ResponseFormat.JSON:
        return JSONResponse(content=build_json_payload(result))

    return Response(
        content=result.image,
        media_type=result.content_type,
        headers=metadata_headers(result.metadata),
    )
