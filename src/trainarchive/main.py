"""Main application entrypoint for the training archive service."""

from fastapi import FastAPI

from trainarchive.api.middleware import HTTPErrorLoggingMiddleware
from trainarchive.api.v1 import routes_health
from trainarchive.api.v1.routes_archive import router as archive_router
from trainarchive.api.v1.routes_upload import router as upload_router
from trainarchive.core.config import settings
from trainarchive.core.logging import setup_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )
    app.add_middleware(HTTPErrorLoggingMiddleware)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)
    app.include_router(archive_router)

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
