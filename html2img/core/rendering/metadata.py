"""
Metadata Embedder
=================

Writes render metadata into PNG output as a private text chunk and reads it
back. Embedding never turns a successful render into a failed one: any decode
or encode problem yields the original bytes.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import io
import json

from PIL import Image, PngImagePlugin

from html2img.config.logging import get_logger
from html2img.models.schemas import ImageFormat, RenderMetadata

logger = get_logger(__name__)

METADATA_CHUNK_KEY = "metadata"


class MetadataExtractionError(Exception):
    """Exception raised when an image cannot be read for metadata."""

    pass


@dataclass(frozen=True)
class EmbedOutcome:
    """Bytes to return plus whether metadata made it into them."""

    image: bytes
    embedded: bool
    fallback_reason: Optional[str] = None


def embed_metadata(
    image_bytes: bytes,
    metadata: RenderMetadata,
    image_format: ImageFormat = ImageFormat.PNG,
    enabled: bool = True,
) -> EmbedOutcome:
    """
    Embed metadata into a PNG as a text chunk.

    Args:
        image_bytes: Encoded screenshot
        metadata: Render metadata to serialize as JSON
        image_format: Encoding of image_bytes; only PNG carries metadata
        enabled: Caller's embedMetadata flag

    Returns:
        EmbedOutcome with the new bytes, or the original bytes and the reason
        embedding was skipped
    """
    if not enabled:
        return EmbedOutcome(image_bytes, embedded=False, fallback_reason="disabled")
    if image_format is not ImageFormat.PNG:
        return EmbedOutcome(image_bytes, embedded=False, fallback_reason="unsupported_format")

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            png_info = PngImagePlugin.PngInfo()
            png_info.add_text(METADATA_CHUNK_KEY, json.dumps(metadata.to_wire()))

            output = io.BytesIO()
            image.save(output, format="PNG", pnginfo=png_info)
    except Exception as e:
        logger.warning(
            "Error embedding metadata in PNG, returning original",
            screenshot_id=metadata.screenshot_id,
            error=str(e),
        )
        return EmbedOutcome(image_bytes, embedded=False, fallback_reason="encode_failed")

    return EmbedOutcome(output.getvalue(), embedded=True)


def extract_metadata(image_bytes: bytes) -> Optional[Dict[str, Any]]:
    """
    Read embedded render metadata from a PNG.

    Returns:
        The parsed metadata dictionary, or None when the image has none

    Raises:
        MetadataExtractionError: If the bytes are not a readable image or the
            chunk does not hold JSON
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            text_chunks = dict(getattr(image, "text", {}) or {})
    except Exception as e:
        raise MetadataExtractionError(f"Unable to read image: {e}") from e

    raw = text_chunks.get(METADATA_CHUNK_KEY)
    if raw is None:
        return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MetadataExtractionError(f"Embedded metadata is not valid JSON: {e}") from e
