"""
FastAPI application factory.

DESIGN DECISION: ``create_app`` takes prebuilt components so tests can
run the whole HTTP surface against mongomock and a fake AI agent. In
production it builds them from settings.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from budgetpages import __version__
from budgetpages.api import auth
from budgetpages.api.errors import register_exception_handlers
from budgetpages.api.routes import ROUTERS
from budgetpages.config import Settings, get_settings, validate_all_settings
from budgetpages.log import configure_logging, get_logger
from budgetpages.orchestrator import AppComponents, create_app_components


logger = get_logger(__name__)


def create_app(
    components: Optional[AppComponents] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.debug_mode)

    components = components or create_app_components()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if components.mongo_client is not None:
            components.mongo_client.ensure_indexes()
        logger.info("app_started", environment=app_settings.app_environment)
        yield
        if components.mongo_client is not None:
            components.mongo_client.close()

    app = FastAPI(
        title="Budget Pages API",
        version=__version__,
        debug=app_settings.debug_mode,
        lifespan=lifespan,
    )
    app.state.components = components

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.security.session_secret,
        same_site="lax",
        https_only=app_settings.app_environment == "production",
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health")
    async def health():
        checks = validate_all_settings()
        return {
            "status": "ok",
            "version": __version__,
            "settings": {k: v for k, v in checks.items() if not k.endswith("_error")},
        }

    return app
