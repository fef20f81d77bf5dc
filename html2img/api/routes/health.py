"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter

from html2img.config.settings import get_settings
from html2img.core.rendering.browser import get_browser_manager
from html2img.models.schemas import BrowserHealth, HealthStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """
    Report service health without launching a browser.

    The service is unhealthy when no API key is configured, since every render
    would be refused.
    """
    settings = get_settings()
    manager = get_browser_manager()

    return HealthStatus(
        status="healthy" if settings.api_key else "unhealthy",
        version=settings.app_version,
        browser=BrowserHealth(
            connected=manager.is_connected,
            version=getattr(manager, "browser_version", None),
        ),
    )
