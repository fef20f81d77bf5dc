"""
Capture Engine
==============

Drives one render request through the browser: load the assembled document,
inject assets, wait for a selector, resolve an optional clip region, take the
screenshot and attach provenance metadata.

Each render is single-shot. The per-request context and page are always closed
before a result or an error leaves this module.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import math
import time
import uuid

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from html2img.config.logging import get_logger
from html2img.config.settings import get_settings
from html2img.core.rendering.assets import AssetInjector
from html2img.core.rendering.browser import (
    BrowserLaunchError,
    BrowserProvider,
    get_browser_manager,
)
from html2img.core.rendering.content import assemble_document
from html2img.core.rendering.metadata import embed_metadata
from html2img.models.schemas import ImageFormat, RenderMetadata, RenderRequest, RenderResult

logger = get_logger(__name__)


class RenderError(Exception):
    """Exception raised when a render fails."""

    pass


class RenderTimeoutError(RenderError):
    """Exception raised when page content never became ready in time."""

    pass


class CaptureState(str, Enum):
    """Steps a render passes through, in order."""

    IDLE = "idle"
    PAGE_CREATED = "page_created"
    CONTENT_LOADED = "content_loaded"
    ASSETS_INJECTED = "assets_injected"
    SELECTOR_AWAITED = "selector_awaited"
    CAPTURED = "captured"
    METADATA_ATTACHED = "metadata_attached"


class ClipFallback(str, Enum):
    """Reasons a clip selector did not produce a clip region."""

    NOT_FOUND = "not_found"
    NO_BOUNDING_BOX = "no_bounding_box"
    EMPTY_BOUNDING_BOX = "empty_bounding_box"
    LOOKUP_FAILED = "lookup_failed"


@dataclass(frozen=True)
class ClipResolution:
    """Clip region for a selector, or the reason the full page is captured."""

    clip: Optional[Dict[str, float]] = None
    fallback: Optional[ClipFallback] = None


async def resolve_clip(page: Page, selector: str) -> ClipResolution:
    """
    Look up the bounding box of the first element matching a selector.

    A selector that matches nothing, or an element without a visible box,
    falls back to full-page capture instead of failing the render.
    """
    try:
        element = await page.query_selector(selector)
        if element is None:
            return ClipResolution(fallback=ClipFallback.NOT_FOUND)
        box = await element.bounding_box()
    except Exception as e:
        logger.warning("Error clipping to selector", selector=selector, error=str(e))
        return ClipResolution(fallback=ClipFallback.LOOKUP_FAILED)

    if not box:
        return ClipResolution(fallback=ClipFallback.NO_BOUNDING_BOX)
    if box["width"] <= 0 or box["height"] <= 0:
        return ClipResolution(fallback=ClipFallback.EMPTY_BOUNDING_BOX)

    return ClipResolution(
        clip={"x": box["x"], "y": box["y"], "width": box["width"], "height": box["height"]}
    )


def build_screenshot_options(
    request: RenderRequest, clip: Optional[Dict[str, float]] = None
) -> Dict[str, Any]:
    """Translate a request and optional clip region into page.screenshot() kwargs."""
    options: Dict[str, Any] = {
        "type": request.format.value,
        "omit_background": False,
    }

    if request.format is ImageFormat.JPEG:
        options["quality"] = request.quality

    if clip is not None:
        options["clip"] = clip
    else:
        options["full_page"] = True

    return options


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CaptureEngine:
    """Renders a RenderRequest to image bytes plus metadata."""

    def __init__(
        self,
        browser_provider: Optional[BrowserProvider] = None,
        asset_injector: Optional[AssetInjector] = None,
    ):
        self.settings = get_settings()
        self.logger = logger.bind(component="capture_engine")
        self._browser_provider = browser_provider
        self.asset_injector = asset_injector or AssetInjector()

    @property
    def browser_provider(self) -> BrowserProvider:
        return self._browser_provider or get_browser_manager()

    async def render(self, request: RenderRequest) -> RenderResult:
        """
        Render HTML content and return the screenshot.

        Args:
            request: Validated render request

        Returns:
            RenderResult with the final image bytes and metadata

        Raises:
            RenderTimeoutError: If the page or a waited-for selector timed out
            BrowserLaunchError: If the shared browser could not be started
            RenderError: For any other failure
        """
        state = CaptureState.IDLE
        self.logger.info(
            "Render started",
            html_length=len(request.html or ""),
            width=request.viewport.width,
            height=request.viewport.height,
            format=request.format.value,
        )

        try:
            browser = await self.browser_provider.acquire()
            async with self.browser_provider.session(request.viewport) as page:
                state = CaptureState.PAGE_CREATED

                await page.set_content(
                    assemble_document(request.html, request.css, request.javascript),
                    wait_until="networkidle",
                )
                state = CaptureState.CONTENT_LOADED

                if request.has_assets:
                    await self.asset_injector.inject(page, request.assets, request.fonts)
                    state = CaptureState.ASSETS_INJECTED

                if request.wait_for_selector:
                    await page.wait_for_selector(
                        request.wait_for_selector, timeout=self.settings.selector_timeout
                    )
                    state = CaptureState.SELECTOR_AWAITED

                clip = None
                if request.clip_selector:
                    resolution = await resolve_clip(page, request.clip_selector)
                    if resolution.fallback is not None:
                        self.logger.warning(
                            "Clip selector unresolved, capturing full page",
                            selector=request.clip_selector,
                            reason=resolution.fallback.value,
                        )
                    clip = resolution.clip

                screenshot_options = build_screenshot_options(request, clip)
                started = time.perf_counter()
                screenshot = await page.screenshot(**screenshot_options)
                rendering_time = math.ceil((time.perf_counter() - started) * 1000)
                state = CaptureState.CAPTURED

                metadata = RenderMetadata(
                    screenshot_id=str(uuid.uuid4()),
                    rendered_at=utc_timestamp(),
                    viewport=request.viewport,
                    browser_version=browser.version,
                    rendering_time=rendering_time,
                )
                outcome = embed_metadata(
                    screenshot, metadata, request.format, enabled=request.embed_metadata
                )
                state = CaptureState.METADATA_ATTACHED

        except PlaywrightTimeoutError as e:
            self.logger.warning("Render timed out", state=state.value, error=str(e))
            raise RenderTimeoutError(f"Render timed out: {e}") from e
        except (BrowserLaunchError, RenderError):
            raise
        except Exception as e:
            self.logger.error("Render failed", state=state.value, error=str(e))
            raise RenderError(f"Render failed: {e}") from e

        self.logger.info(
            "Render completed",
            screenshot_id=metadata.screenshot_id,
            rendering_time=metadata.rendering_time,
            size=len(outcome.image),
            clipped=clip is not None,
            metadata_embedded=outcome.embedded,
        )

        return RenderResult(
            image=outcome.image,
            metadata=metadata,
            content_type=request.format.content_type,
            metadata_embedded=outcome.embedded,
        )


# Global capture engine instance
_capture_engine: Optional[CaptureEngine] = None


def get_capture_engine() -> CaptureEngine:
    """Get the process-wide capture engine."""
    global _capture_engine
    if _capture_engine is None:
        _capture_engine = CaptureEngine()
    return _capture_engine


async def render_html(request: RenderRequest) -> RenderResult:
    """Render a request with the process-wide capture engine."""
    return await get_capture_engine().render(request)
