"""
Unit Tests for Request Models
=============================

Defaults and validation messages of render requests.
"""

import pytest
from pydantic import ValidationError

from html2img.models.schemas import (
    ImageFormat,
    MetadataExtractionRequest,
    RenderRequest,
    ResponseFormat,
    Viewport,
)


def error_message(exc_info) -> str:
    return exc_info.value.errors()[0]["msg"]


class TestViewport:
    """Test viewport defaults and bounds."""

    def test_defaults_from_settings(self):
        """Test the default viewport comes from settings."""
        viewport = Viewport.default()

        assert viewport.width == 1280
        assert viewport.height == 720
        assert viewport.device_scale_factor == 1

    def test_camel_case_alias(self):
        """Test the deviceScaleFactor alias."""
        viewport = Viewport.model_validate({"width": 10, "height": 10, "deviceScaleFactor": 3})

        assert viewport.device_scale_factor == 3

    @pytest.mark.parametrize("value", [None, 0])
    def test_unspecified_scale_factor_means_one(self, value):
        """Test a null or zero scale factor means one."""
        viewport = Viewport.model_validate({"width": 10, "height": 10, "deviceScaleFactor": value})

        assert viewport.device_scale_factor == 1

    @pytest.mark.parametrize("width", [0, -1, 5001])
    def test_width_out_of_range(self, width):
        """Test out-of-range widths are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Viewport(width=width, height=100)

        assert "Invalid viewport width (must be between 1-5000)" in error_message(exc_info)

    @pytest.mark.parametrize("height", [0, 5001])
    def test_height_out_of_range(self, height):
        """Test out-of-range heights are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Viewport(width=100, height=height)

        assert "Invalid viewport height (must be between 1-5000)" in error_message(exc_info)

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"height": 600}, "Invalid viewport width (must be between 1-5000)"),
            ({"width": 800}, "Invalid viewport height (must be between 1-5000)"),
            ({}, "Invalid viewport width (must be between 1-5000)"),
            ({"width": "800", "height": 600}, "Invalid viewport width (must be between 1-5000)"),
            ({"width": 800, "height": None}, "Invalid viewport height (must be between 1-5000)"),
            ({"width": True, "height": 600}, "Invalid viewport width (must be between 1-5000)"),
        ],
    )
    def test_supplied_viewport_needs_numeric_dimensions(self, payload, message):
        """Test a supplied viewport without numeric width and height is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Viewport.model_validate(payload)

        assert message in error_message(exc_info)

    @pytest.mark.parametrize("scale", [-1, 5.5, 10])
    def test_scale_factor_out_of_range(self, scale):
        """Test out-of-range scale factors are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Viewport(width=100, height=100, device_scale_factor=scale)

        assert "Invalid deviceScaleFactor (must be between 0-5)" in error_message(exc_info)

    def test_bounds_are_inclusive(self):
        """Test the dimension bounds are inclusive."""
        viewport = Viewport(width=5000, height=1, device_scale_factor=5)

        assert viewport.width == 5000
        assert viewport.height == 1


class TestRenderRequest:
    """Test render request defaults and validation."""

    def test_minimal_request_defaults(self):
        """Test defaults of a request with only html."""
        request = RenderRequest.model_validate({"html": "<p>x</p>"})

        assert request.format is ImageFormat.PNG
        assert request.response_format is ResponseFormat.IMAGE
        assert request.quality == 90
        assert request.embed_metadata is True
        assert request.assets == {}
        assert request.fonts == []
        assert request.viewport.width == 1280
        assert not request.has_assets

    def test_nulls_take_defaults(self):
        """Test null optional fields take their defaults."""
        request = RenderRequest.model_validate(
            {
                "html": "<p>x</p>",
                "viewport": None,
                "assets": None,
                "fonts": None,
                "format": None,
                "responseFormat": None,
                "quality": None,
                "embedMetadata": None,
            }
        )

        assert request.viewport.height == 720
        assert request.format is ImageFormat.PNG
        assert request.response_format is ResponseFormat.IMAGE
        assert request.quality == 90
        assert request.embed_metadata is True

    def test_null_quality_on_jpeg_uses_default(self, override_settings):
        """Test a null JPEG quality falls back to the configured default."""
        override_settings(default_jpeg_quality=75)

        request = RenderRequest.model_validate({"html": "x", "format": "jpeg", "quality": None})

        assert request.quality == 75

    def test_partial_viewport_in_request_rejected(self):
        """Test a request viewport missing its width is not filled with defaults."""
        with pytest.raises(ValidationError) as exc_info:
            RenderRequest.model_validate({"html": "x", "viewport": {"height": 600}})

        assert "Invalid viewport width (must be between 1-5000)" in error_message(exc_info)

    def test_camel_case_fields(self):
        """Test camelCase request fields."""
        request = RenderRequest.model_validate(
            {
                "html": "<p>x</p>",
                "waitForSelector": "#ready",
                "clipSelector": "#card",
                "responseFormat": "json",
                "embedMetadata": False,
            }
        )

        assert request.wait_for_selector == "#ready"
        assert request.clip_selector == "#card"
        assert request.response_format is ResponseFormat.JSON
        assert request.embed_metadata is False

    @pytest.mark.parametrize("html", [None, ""])
    def test_html_required(self, html):
        """Test missing or empty html is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            RenderRequest.model_validate({"html": html})

        assert "HTML content is required" in error_message(exc_info)

    @pytest.mark.parametrize("fmt", ["gif", "PNG", 1])
    def test_bad_format(self, fmt):
        """Test unknown image formats are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            RenderRequest.model_validate({"html": "x", "format": fmt})

        assert 'Format must be either "png" or "jpeg"' in error_message(exc_info)

    def test_bad_response_format(self):
        """Test unknown response formats are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            RenderRequest.model_validate({"html": "x", "responseFormat": "xml"})

        assert 'responseFormat must be either "image" or "json"' in error_message(exc_info)

    @pytest.mark.parametrize("quality", [0, 101, -5])
    def test_jpeg_quality_bounds(self, quality):
        """Test JPEG quality outside 1-100 is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            RenderRequest.model_validate({"html": "x", "format": "jpeg", "quality": quality})

        assert "JPEG quality must be between 1 and 100" in error_message(exc_info)

    def test_png_quality_not_checked(self):
        """Test quality is not validated for PNG."""
        request = RenderRequest.model_validate({"html": "x", "quality": 0})

        assert request.format is ImageFormat.PNG

    def test_has_assets_with_fonts_only(self):
        """Test fonts alone count as assets."""
        request = RenderRequest.model_validate(
            {"html": "x", "fonts": [{"name": "Brand", "data": "QUJD"}]}
        )

        assert request.has_assets

    def test_image_format_content_type(self):
        """Test image format content types."""
        assert ImageFormat.PNG.content_type == "image/png"
        assert ImageFormat.JPEG.content_type == "image/jpeg"


class TestMetadataExtractionRequest:
    """Test the metadata extraction body."""

    def test_image_optional(self):
        """Test the image field may be omitted."""
        assert MetadataExtractionRequest.model_validate({}).image is None
