"""
Browser Resource Manager
========================

Owns the single long-lived Chromium handle shared by all render requests.
The handle is launched lazily on first use and reused until shutdown; every
request gets its own isolated browser context and page, torn down when the
request finishes whether it succeeded or not.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional
import asyncio

from playwright.async_api import async_playwright, Browser, Page, Playwright

from html2img.config.logging import get_logger
from html2img.config.settings import get_settings
from html2img.models.schemas import Viewport

logger = get_logger(__name__)


class BrowserLaunchError(Exception):
    """Exception raised when the headless browser cannot be started."""

    pass


async def _close_quietly(kind: str, target: Any) -> None:
    # Teardown errors must not replace the error the request is unwinding with
    if target is None:
        return
    try:
        await target.close()
    except Exception as e:
        logger.warning("Error closing browser session", target=kind, error=str(e))


class BrowserProvider(ABC):
    """Hands out a shared browser and scopes a context + page to one request."""

    @abstractmethod
    async def acquire(self) -> Browser:
        """Return the shared browser, launching it if needed."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Release the shared browser. Safe to call repeatedly."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether a live browser handle currently exists."""

    @asynccontextmanager
    async def session(
        self, viewport: Viewport, user_agent: Optional[str] = None
    ) -> AsyncGenerator[Page, None]:
        """
        Open an isolated context and page for a single request.

        The page and then the context are closed on exit, including when the
        body raises. Close failures are logged and never mask the error the
        body raised. The browser itself stays open.
        """
        settings = get_settings()
        browser = await self.acquire()
        context = await browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height},
            device_scale_factor=viewport.device_scale_factor,
            user_agent=user_agent or settings.user_agent,
        )

        page: Optional[Page] = None
        try:
            page = await context.new_page()
            page.set_default_timeout(settings.playwright_timeout)
            yield page
        finally:
            await _close_quietly("page", page)
            await _close_quietly("context", context)


class PlaywrightBrowserManager(BrowserProvider):
    """Lazily launched, process-wide Chromium handle."""

    def __init__(self, playwright_factory: Callable[[], Any] = async_playwright):
        self.settings = get_settings()
        self.logger = logger.bind(component="browser_manager")
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def browser_version(self) -> Optional[str]:
        return self._browser.version if self.is_connected else None

    async def acquire(self) -> Browser:
        """
        Get the shared browser, creating it if it doesn't exist.

        Concurrent first callers wait on the same launch instead of racing to
        create a second handle. A handle that lost its connection is discarded
        and replaced.

        Raises:
            BrowserLaunchError: If Chromium cannot be started. The handle stays
                absent so the next call retries the launch.
        """
        browser = self._browser
        if browser is not None and browser.is_connected():
            return browser

        async with self._lock:
            if self._browser is not None:
                if self._browser.is_connected():
                    return self._browser
                self.logger.warning("Browser disconnected, relaunching")
                await self._release()

            self._browser = await self._launch()
            return self._browser

    async def shutdown(self) -> None:
        """Close the browser and stop Playwright if they are running."""
        async with self._lock:
            if self._browser is None and self._playwright is None:
                return
            await self._release()
            self.logger.info("Browser closed")

    async def _launch(self) -> Browser:
        try:
            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()

            browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=self.settings.browser_args,
            )
        except Exception as e:
            self.logger.error("Failed to launch browser", error=str(e))
            await self._stop_playwright()
            raise BrowserLaunchError(f"Browser launch failed: {e}") from e

        self.logger.info("Browser launched", version=browser.version)
        return browser

    async def _release(self) -> None:
        browser, self._browser = self._browser, None
        try:
            if browser is not None:
                await browser.close()
        except Exception as e:
            # A crashed browser may refuse to close; its handle is dropped either way
            self.logger.warning("Error closing browser", error=str(e))
        finally:
            await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        playwright, self._playwright = self._playwright, None
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                self.logger.warning("Error stopping Playwright", error=str(e))


# Global browser manager instance
_browser_manager: Optional[BrowserProvider] = None


def get_browser_manager() -> BrowserProvider:
    """Get the process-wide browser provider."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = PlaywrightBrowserManager()
    return _browser_manager


def set_browser_manager(manager: Optional[BrowserProvider]) -> None:
    """Replace the process-wide browser provider (used by tests and embedders)."""
    global _browser_manager
    _browser_manager = manager


async def get_browser() -> Browser:
    """Return the shared browser handle, launching it on first use."""
    return await get_browser_manager().acquire()


async def close_browser() -> None:
    """Cleanly close the shared browser. No-op when none is running."""
    if _browser_manager is not None:
        await _browser_manager.shutdown()
