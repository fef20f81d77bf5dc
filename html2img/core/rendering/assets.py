"""
Asset Injector
==============

Serves caller-supplied base64 assets to the render page through request
interception and registers caller-supplied fonts as @font-face rules.

Injection is best effort: failures are logged and never fail the render.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence
from urllib.parse import unquote, urlsplit
import base64
import binascii

from playwright.async_api import Page, Route

from html2img.config.logging import get_logger
from html2img.config.settings import get_settings
from html2img.models.schemas import FontSpec
from html2img.utils.network import is_safe_url

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES: Dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "eot": "application/vnd.ms-fontobject",
}


class AssetAction(str, Enum):
    """What the route handler does with an intercepted request."""

    FULFILL = "fulfill"
    CONTINUE = "continue"
    ABORT = "abort"


class AssetFallback(str, Enum):
    """Why an intercepted request was not fulfilled from the asset table."""

    MISS = "miss"
    UNDECODABLE = "undecodable"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class AssetDecision:
    """Outcome of matching one intercepted request against the asset table."""

    action: AssetAction
    key: str
    body: Optional[bytes] = None
    content_type: Optional[str] = None
    fallback: Optional[AssetFallback] = None


def get_mime_type(filename: str) -> str:
    """Determine the MIME type from a file extension."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def asset_key_from_url(url: str) -> str:
    """Return the trailing path segment of a URL, used as the asset lookup key."""
    path = urlsplit(url).path
    return unquote(path.rsplit("/", 1)[-1])


def resolve_asset_request(
    url: str, assets: Dict[str, str], block_private_network: bool = False
) -> AssetDecision:
    """
    Decide how an intercepted request is answered.

    Args:
        url: URL requested by the page
        assets: Mapping of filename to base64-encoded bytes
        block_private_network: Abort misses that target loopback/private hosts

    Returns:
        AssetDecision naming the action and, for fallbacks, the reason
    """
    key = asset_key_from_url(url)
    encoded = assets.get(key) if key else None

    if encoded is None:
        scheme = urlsplit(url).scheme
        if block_private_network and scheme in ("http", "https") and not is_safe_url(url):
            return AssetDecision(AssetAction.ABORT, key, fallback=AssetFallback.BLOCKED)
        return AssetDecision(AssetAction.CONTINUE, key, fallback=AssetFallback.MISS)

    try:
        body = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return AssetDecision(AssetAction.CONTINUE, key, fallback=AssetFallback.UNDECODABLE)

    return AssetDecision(AssetAction.FULFILL, key, body=body, content_type=get_mime_type(key))


def build_font_face_css(fonts: Sequence[FontSpec]) -> str:
    """Build one @font-face rule per font entry, in request order."""
    rules: List[str] = []
    for font in fonts:
        rules.append(
            "@font-face {\n"
            f"  font-family: '{font.name}';\n"
            f"  font-weight: {font.weight or 'normal'};\n"
            f"  font-style: {font.style or 'normal'};\n"
            f"  src: url(data:font/woff2;base64,{font.data}) format('woff2');\n"
            "  font-display: swap;\n"
            "}"
        )
    return "\n".join(rules)


class AssetInjector:
    """Installs asset interception and font rules on a render page."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.logger = logger.bind(component="asset_injector")

    async def inject(
        self,
        page: Page,
        assets: Optional[Dict[str, str]] = None,
        fonts: Optional[Sequence[FontSpec]] = None,
    ) -> None:
        """
        Add assets and fonts to a page.

        Errors are logged and swallowed so asset problems never fail a render.
        """
        try:
            if assets:
                await self._install_asset_route(page, assets)
            if fonts:
                await self._add_fonts(page, fonts)
        except Exception as e:
            self.logger.warning("Error adding assets to page", error=str(e))

    async def _install_asset_route(self, page: Page, assets: Dict[str, str]) -> None:
        block_private_network = self.settings.block_private_network

        async def handle_route(route: Route) -> None:
            url = route.request.url
            decision = resolve_asset_request(url, assets, block_private_network)

            if decision.action is AssetAction.ABORT:
                self.logger.info("Blocked request to private address", url=url)
                await route.abort()
                return

            if decision.action is AssetAction.FULFILL:
                try:
                    await route.fulfill(
                        status=200, content_type=decision.content_type, body=decision.body
                    )
                    return
                except Exception as e:
                    self.logger.warning("Error serving asset", asset=decision.key, error=str(e))
            elif decision.fallback is AssetFallback.UNDECODABLE:
                self.logger.warning("Asset is not valid base64", asset=decision.key)

            await route.continue_()

        await page.route("**/*", handle_route)
        self.logger.debug("Asset interceptor installed", asset_count=len(assets))

    async def _add_fonts(self, page: Page, fonts: Sequence[FontSpec]) -> None:
        font_face_css = build_font_face_css(fonts)
        await page.add_style_tag(content=font_face_css)

        # Give the layout engine a moment to pick up the new faces
        await page.wait_for_timeout(self.settings.font_settle_delay)
        self.logger.debug("Fonts injected", font_count=len(fonts), css_length=len(font_face_css))
