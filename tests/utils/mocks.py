"""
Test Mocks
===========

Stand-ins for the Playwright browser, context and page that count every
open/close call, so tests can check resource cleanup without Chromium.
"""

import io
from typing import Any, Awaitable, Callable, Dict, List, Optional

from PIL import Image
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from html2img.core.rendering.browser import BrowserProvider

MOCK_BROWSER_VERSION = "131.0.6778.33"


def make_png(width: int = 10, height: int = 10, color: tuple = (255, 0, 0)) -> bytes:
    """Encode a solid-colour PNG."""
    output = io.BytesIO()
    Image.new("RGB", (width, height), color).save(output, format="PNG")
    return output.getvalue()


def make_jpeg(
    width: int = 10, height: int = 10, color: tuple = (0, 0, 255), quality: int = 90
) -> bytes:
    """Encode a solid-colour JPEG."""
    output = io.BytesIO()
    Image.new("RGB", (width, height), color).save(output, format="JPEG", quality=quality)
    return output.getvalue()


class MockRequest:
    """Mock of the request attached to an intercepted route."""

    def __init__(self, url: str):
        self.url = url


class MockRoute:
    """Mock route recording how an intercepted request was answered."""

    def __init__(self, url: str, fulfill_error: Optional[Exception] = None):
        self.request = MockRequest(url)
        self.fulfill_error = fulfill_error
        self.fulfilled: Optional[Dict[str, Any]] = None
        self.continued = False
        self.aborted = False

    async def fulfill(self, **kwargs: Any) -> None:
        if self.fulfill_error is not None:
            raise self.fulfill_error
        self.fulfilled = kwargs

    async def continue_(self) -> None:
        self.continued = True

    async def abort(self) -> None:
        self.aborted = True


class MockElement:
    """Mock element handle with a fixed bounding box."""

    def __init__(self, box: Optional[Dict[str, float]]):
        self.box = box

    async def bounding_box(self) -> Optional[Dict[str, float]]:
        return self.box


class MockPage:
    """Mock Playwright page producing real image bytes from its viewport."""

    def __init__(self, context: "MockContext"):
        self.context = context
        self.closed = False
        self.close_calls = 0
        self.content: Optional[str] = None
        self.wait_until: Optional[str] = None
        self.default_timeout: Optional[int] = None
        self.style_tags: List[str] = []
        self.routes: List[tuple] = []
        self.waited_selectors: List[tuple] = []
        self.timeouts: List[int] = []
        self.screenshot_calls: List[Dict[str, Any]] = []
        self.events: List[str] = []

    @property
    def browser(self) -> "MockBrowser":
        return self.context.browser

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    async def set_content(self, html: str, wait_until: Optional[str] = None) -> None:
        self.events.append("set_content")
        if self.browser.set_content_error is not None:
            raise self.browser.set_content_error
        self.content = html
        self.wait_until = wait_until

    async def route(self, pattern: str, handler: Callable[[Any], Awaitable[None]]) -> None:
        self.events.append("route")
        if self.browser.route_error is not None:
            raise self.browser.route_error
        self.routes.append((pattern, handler))

    async def add_style_tag(self, content: Optional[str] = None, **kwargs: Any) -> None:
        self.events.append("add_style_tag")
        self.style_tags.append(content or "")

    async def wait_for_timeout(self, timeout: int) -> None:
        self.timeouts.append(timeout)

    async def wait_for_selector(self, selector: str, timeout: Optional[int] = None) -> MockElement:
        self.events.append("wait_for_selector")
        self.waited_selectors.append((selector, timeout))
        if selector in self.browser.missing_selectors:
            raise PlaywrightTimeoutError(
                f'Timeout {timeout}ms exceeded waiting for locator("{selector}")'
            )
        return MockElement(self.browser.elements.get(selector))

    async def query_selector(self, selector: str) -> Optional[MockElement]:
        if self.browser.query_error is not None:
            raise self.browser.query_error
        if selector not in self.browser.elements:
            return None
        return MockElement(self.browser.elements[selector])

    async def screenshot(self, **options: Any) -> bytes:
        self.events.append("screenshot")
        self.screenshot_calls.append(options)
        if self.browser.screenshot_error is not None:
            raise self.browser.screenshot_error

        scale = self.context.options.get("device_scale_factor", 1)
        region = options.get("clip") or self.context.options["viewport"]
        width = int(region["width"] * scale)
        height = int(region["height"] * scale)

        if options.get("type") == "jpeg":
            return make_jpeg(width, height, quality=options.get("quality", 90))
        return make_png(width, height)

    async def close(self) -> None:
        self.closed = True
        self.close_calls += 1
        self.context.browser.record("page.close")
        if self.browser.page_close_error is not None:
            raise self.browser.page_close_error


class MockContext:
    """Mock browser context owning a single page."""

    def __init__(self, browser: "MockBrowser", options: Dict[str, Any]):
        self.browser = browser
        self.options = options
        self.pages: List[MockPage] = []
        self.closed = False
        self.close_calls = 0

    async def new_page(self) -> MockPage:
        if self.browser.new_page_error is not None:
            raise self.browser.new_page_error
        page = MockPage(self)
        self.pages.append(page)
        self.browser.record("page.open")
        return page

    async def close(self) -> None:
        self.closed = True
        self.close_calls += 1
        self.browser.record("context.close")
        if self.browser.context_close_error is not None:
            raise self.browser.context_close_error


class MockBrowser:
    """Mock Playwright browser with knobs for failure injection."""

    def __init__(self, version: str = MOCK_BROWSER_VERSION):
        self.version = version
        self.connected = True
        self.contexts: List[MockContext] = []
        self.close_calls = 0
        self.log: List[str] = []

        # Page behaviour
        self.elements: Dict[str, Optional[Dict[str, float]]] = {}
        self.missing_selectors: set = set()
        self.set_content_error: Optional[Exception] = None
        self.route_error: Optional[Exception] = None
        self.query_error: Optional[Exception] = None
        self.screenshot_error: Optional[Exception] = None
        self.new_page_error: Optional[Exception] = None
        self.page_close_error: Optional[Exception] = None
        self.context_close_error: Optional[Exception] = None

    def record(self, event: str) -> None:
        self.log.append(event)

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **options: Any) -> MockContext:
        context = MockContext(self, options)
        self.contexts.append(context)
        self.record("context.open")
        return context

    async def close(self) -> None:
        self.close_calls += 1
        self.connected = False

    @property
    def pages(self) -> List[MockPage]:
        return [page for context in self.contexts for page in context.pages]

    @property
    def open_contexts(self) -> int:
        return sum(1 for context in self.contexts if not context.closed)

    @property
    def open_pages(self) -> int:
        return sum(1 for page in self.pages if not page.closed)


class MockBrowserProvider(BrowserProvider):
    """Browser provider handing out a MockBrowser."""

    def __init__(self, browser: Optional[MockBrowser] = None):
        self.browser = browser or MockBrowser()
        self.acquire_calls = 0
        self.shutdown_calls = 0
        self.launch_error: Optional[Exception] = None

    async def acquire(self) -> MockBrowser:  # type: ignore[override]
        self.acquire_calls += 1
        if self.launch_error is not None:
            raise self.launch_error
        return self.browser

    async def shutdown(self) -> None:
        self.shutdown_calls += 1

    @property
    def is_connected(self) -> bool:
        return self.browser.connected

    @property
    def browser_version(self) -> Optional[str]:
        return self.browser.version if self.browser.connected else None
