import logging

from fastapi import FastAPI

from app.api.v1.router import v1_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        description="Land registry verification workflow, ledger mirror and device sessions.",
        docs_url="/docs" if settings.is_dev else None,
        redoc_url=None,
    )

    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)
    app.include_router(v1_router, prefix=settings.api_prefix)

    logger.info(
        "[app] started",
        extra={"environment": settings.environment, "sync_bridge": settings.sync_bridge_url},
    )
    return app


app = create_app()
