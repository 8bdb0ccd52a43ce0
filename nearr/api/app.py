"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from ..config import Config
from ..logging_config import get_logger
from ..services import AppContext, build_context
from .errors import register_error_handlers
from .routes import accounts, admin, cohorts

logger = get_logger(__name__)


def create_app(config: Optional[Config] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: Configuration manager used to build the context
        context: Prebuilt context (tests pass in-memory doubles here)

    Returns:
        FastAPI app whose lifespan opens and closes the context
    """
    if context is None:
        context = build_context(config or Config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context.open()
        logger.info("NEARR API started")
        try:
            yield
        finally:
            context.close()
            logger.info("NEARR API stopped")

    app = FastAPI(title="NEARR", version=__version__, lifespan=lifespan)
    app.state.context = context

    register_error_handlers(app)
    app.include_router(cohorts.router)
    app.include_router(accounts.router)
    app.include_router(admin.router)

    @app.get("/health")
    def health():
        return {"success": True, "version": __version__}

    return app
