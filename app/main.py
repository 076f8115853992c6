from fastapi import FastAPI

from app.api.v1.router import v1_router
from app.core.config import Settings, get_settings
from app.core.error_handlers import register_error_handlers
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.app_name, version="0.1.0")

    # every response carries the id its log lines were written under
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)
    register_error_handlers(app)

    app.include_router(v1_router, prefix=settings.api_prefix)
    return app


app = create_app()
