"""
Pydantic Models and Schemas
===========================

Core data models for render requests, render metadata, API responses and
error envelopes. Field names are camelCase on the wire and snake_case in Python.
"""

from typing import Optional, List, Dict, Any, Literal
from datetime import datetime, timezone
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from html2img.config.settings import get_settings

MAX_VIEWPORT_DIMENSION = 5000
MAX_DEVICE_SCALE_FACTOR = 5


# Enums
class ImageFormat(str, Enum):
    """Screenshot encodings supported by the capture engine."""

    PNG = "png"
    JPEG = "jpeg"

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"


class ResponseFormat(str, Enum):
    """Shapes the render endpoint can answer with."""

    IMAGE = "image"
    JSON = "json"


class CamelModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)


# Request Models
class Viewport(CamelModel):
    """Browser viewport used for a single render."""

    width: int = Field(None, validate_default=True)
    height: int = Field(None, validate_default=True)
    device_scale_factor: float = Field(1, alias="deviceScaleFactor")

    @classmethod
    def default(cls) -> "Viewport":
        """Viewport used when a request does not send one."""
        settings = get_settings()
        return cls(
            width=settings.default_viewport_width, height=settings.default_viewport_height
        )

    @field_validator("width", "height", mode="before")
    @classmethod
    def validate_dimension(cls, v: Any, info: ValidationInfo) -> Any:
        # A supplied viewport must carry both dimensions as numbers
        numeric = isinstance(v, (int, float)) and not isinstance(v, bool)
        if not numeric or v <= 0 or v > MAX_VIEWPORT_DIMENSION:
            raise ValueError(f"Invalid viewport {info.field_name} (must be between 1-5000)")
        return v

    @field_validator("device_scale_factor", mode="before")
    @classmethod
    def default_scale_factor(cls, v: Any) -> Any:
        # A falsy scale factor means "unspecified"
        return 1 if v is None or v == 0 else v

    @field_validator("device_scale_factor")
    @classmethod
    def validate_scale_factor(cls, v: float) -> float:
        if v <= 0 or v > MAX_DEVICE_SCALE_FACTOR:
            raise ValueError("Invalid deviceScaleFactor (must be between 0-5)")
        return v


class FontSpec(CamelModel):
    """A caller-supplied font registered through an @font-face rule."""

    name: str = Field(..., min_length=1, description="CSS font-family name")
    data: str = Field(..., description="Base64-encoded woff2 payload")
    weight: Optional[str] = Field(None, description="CSS font-weight, defaults to normal")
    style: Optional[str] = Field(None, description="CSS font-style, defaults to normal")

    @field_validator("weight", mode="before")
    @classmethod
    def coerce_weight(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class RenderRequest(CamelModel):
    """Request body of POST /render."""

    html: Optional[str] = Field(None, description="HTML fragment placed in the body")
    css: Optional[str] = Field(None, description="CSS appended after the reset stylesheet")
    javascript: Optional[str] = Field(None, description="Script placed in a trailing tag")
    viewport: Viewport = Field(default_factory=Viewport.default)
    wait_for_selector: Optional[str] = Field(None, alias="waitForSelector")
    clip_selector: Optional[str] = Field(None, alias="clipSelector")
    assets: Dict[str, str] = Field(default_factory=dict, description="filename -> base64 bytes")
    fonts: List[FontSpec] = Field(default_factory=list)
    format: ImageFormat = Field(ImageFormat.PNG, description="Output encoding")
    quality: int = Field(default_factory=lambda: get_settings().default_jpeg_quality)
    response_format: ResponseFormat = Field(ResponseFormat.IMAGE, alias="responseFormat")
    embed_metadata: bool = Field(True, alias="embedMetadata")

    @field_validator("viewport", mode="before")
    @classmethod
    def default_viewport(cls, v: Any) -> Any:
        return Viewport.default() if v is None else v

    @field_validator("assets", mode="before")
    @classmethod
    def default_assets(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("fonts", mode="before")
    @classmethod
    def default_fonts(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("quality", mode="before")
    @classmethod
    def default_quality(cls, v: Any) -> Any:
        return get_settings().default_jpeg_quality if v is None else v

    @field_validator("embed_metadata", mode="before")
    @classmethod
    def default_embed_metadata(cls, v: Any) -> Any:
        return True if v is None else v

    @field_validator("format", mode="before")
    @classmethod
    def validate_format(cls, v: Any) -> Any:
        if v is None:
            return ImageFormat.PNG
        if not isinstance(v, str) or v not in {f.value for f in ImageFormat}:
            raise ValueError('Format must be either "png" or "jpeg"')
        return v

    @field_validator("response_format", mode="before")
    @classmethod
    def validate_response_format(cls, v: Any) -> Any:
        if v is None:
            return ResponseFormat.IMAGE
        if not isinstance(v, str) or v not in {f.value for f in ResponseFormat}:
            raise ValueError('responseFormat must be either "image" or "json"')
        return v

    @model_validator(mode="after")
    def validate_request(self) -> "RenderRequest":
        if not self.html:
            raise ValueError("HTML content is required")
        # Quality only matters for JPEG output
        if self.format is ImageFormat.JPEG and not 1 <= self.quality <= 100:
            raise ValueError("JPEG quality must be between 1 and 100")
        return self

    @property
    def has_assets(self) -> bool:
        return bool(self.assets) or bool(self.fonts)


class MetadataExtractionRequest(CamelModel):
    """Request body of POST /render/metadata."""

    image: Optional[str] = Field(None, description="Base64-encoded PNG produced by /render")


# Render Results
class RenderMetadata(CamelModel):
    """Provenance record produced for every completed render."""

    screenshot_id: str = Field(..., alias="screenshotId")
    rendered_at: str = Field(..., alias="renderedAt", description="ISO-8601 completion time")
    viewport: Viewport
    browser_version: str = Field(..., alias="browserVersion")
    rendering_time: int = Field(..., alias="renderingTime", description="Capture time in ms")

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, as embedded and returned to callers."""
        return self.model_dump(mode="json", by_alias=True)


class RenderResult(BaseModel):
    """Image bytes plus the metadata describing them."""

    image: bytes = Field(..., exclude=True)
    metadata: RenderMetadata
    content_type: str
    metadata_embedded: bool = False


# API Response Models
class JsonRenderResponse(CamelModel):
    """Envelope returned when responseFormat is json."""

    image: str = Field(..., description="Base64 encoded image")
    content_type: str = Field(..., alias="contentType")
    metadata: RenderMetadata


class BrowserHealth(BaseModel):
    """Browser resource state reported by /health."""

    connected: bool
    version: Optional[str] = None


class HealthStatus(BaseModel):
    """Health check status."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(..., description="Application version")
    browser: BrowserHealth


# Error Models
class ErrorDetail(BaseModel):
    """Body of the error envelope."""

    message: str
    status: int
    details: Optional[Dict[str, Any]] = None
    stack: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: ErrorDetail
