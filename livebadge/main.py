"""LiveBadge: FastAPI Application Entry Point.

Live metric badges for remote database projects.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from livebadge.config import Settings, load_settings
from livebadge.database import _mask_url, build_engine, init_db, test_connection
from livebadge.api.badge_routes import router as badge_router
from livebadge.api.setup_routes import router as setup_router
from livebadge.core.logging import configure_logging, get_logger

logger = get_logger("main")

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 LiveBadge starting up...")
    logger.info(f"🌍 Environment: {'SERVERLESS' if app.state.settings.serverless else 'LOCAL'}")
    if test_connection(app.state.engine):
        try:
            init_db(app.state.engine)
        except Exception as e:
            logger.error(f"❌ Table creation failed: {e}")
    else:
        logger.error("❌ Database NOT connected: endpoints will fail")
    yield
    app.state.engine.dispose()
    logger.info("LiveBadge shut down")


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the application around explicit settings.

    ``transport`` replaces the network layer of every outbound client; tests
    use it to stand in for the remote project.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="LiveBadge",
        description="Embeddable badges showing live row and user counts from remote database projects.",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.transport = transport
    app.state.engine = build_engine(settings.effective_database_url)

    # CORS: badges are embedded anywhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    # Routers
    app.include_router(badge_router)
    app.include_router(setup_router)

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "livebadge",
            "version": VERSION,
        }

    @app.get("/debug/db", tags=["System"])
    async def debug_db(request: Request):
        """Debug endpoint: check database connectivity."""
        db_url = request.app.state.settings.effective_database_url
        error = None
        connected = False
        try:
            connected = test_connection(request.app.state.engine)
        except Exception as e:
            error = str(e)

        backend = "postgresql" if db_url.startswith("postgresql") else "sqlite"
        return {
            "connected": connected,
            "backend": backend,
            "url": _mask_url(db_url),
            "environment": "serverless" if request.app.state.settings.serverless else "local",
            "error": error,
        }

    return app


app = create_app()
