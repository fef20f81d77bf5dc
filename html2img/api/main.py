"""
FastAPI Application
==================

Main FastAPI application exposing the HTML to image render endpoints.
"""

from contextlib import asynccontextmanager
import time
import uuid
from typing import AsyncGenerator, Any, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from html2img.api.errors import ApiError, api_error_handler, register_exception_handlers
from html2img.api.routes.health import router as health_router
from html2img.api.routes.render import router as render_router
from html2img.api.security import check_payload_size, get_rate_limiter
from html2img.config.logging import bind_request_context, clear_request_context, get_logger
from html2img.config.settings import get_settings
from html2img.core.rendering.browser import close_browser
from html2img.core.rendering.response import METADATA_HEADERS

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "Starting render server",
        environment=settings.environment,
        auth_configured=bool(settings.api_key),
    )

    try:
        yield
    finally:
        # The browser is launched lazily by the first render; release it here
        logger.info("Shutting down render server")
        try:
            await close_browser()
        except Exception as e:
            logger.error("Error closing browser", error=str(e))


def create_app() -> FastAPI:
    """
    Application factory function for creating FastAPI app instance.

    Returns:
        FastAPI application instance
    """
    settings = get_settings()
    application = FastAPI(
        title=settings.app_name,
        description="Render HTML/CSS/JS fragments to PNG or JPEG screenshots",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[*METADATA_HEADERS, "X-Request-ID"],
    )

    @application.middleware("http")
    async def request_guard(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Tag the request, enforce rate and size limits, and write the access log."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        client = request.client.host if request.client else "unknown"
        bind_request_context(request_id=request_id, client=client)
        started = time.perf_counter()

        try:
            get_rate_limiter().check(client)
            if request.method == "POST":
                check_payload_size(request.headers.get("content-length"))
        except ApiError as e:
            response: Response = await api_error_handler(request, e)
        else:
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        clear_request_context()
        return response

    register_exception_handlers(application)
    application.include_router(health_router)
    application.include_router(render_router)

    @application.get("/", tags=["General"])
    async def root() -> dict[str, Any]:
        """Root endpoint with basic API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "health_check": "/health",
            "endpoints": {
                "render": "POST /render?apiKey=...",
                "metadata": "POST /render/metadata?apiKey=...",
            },
        }

    return application


app = create_app()


# Development server runner
def run_server(host: str, port: int, log_level: str = "info") -> None:
    """Run the API server with uvicorn."""
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower(), access_log=False)


if __name__ == "__main__":
    settings = get_settings()
    run_server(settings.host, settings.port, settings.log_level)
