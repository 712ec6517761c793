"""
FastAPI application entry point.
Mounts routes, CORS, Prometheus metrics and the fault handlers. The database
handle is opened and closed by the lifespan, not at import.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from garage.api.router import api_router
from garage.cache.redis_client import close_redis
from garage.config import get_settings
from garage.core.faults import FaultMiddleware, register_exception_handlers
from garage.db.session import Database
from garage.search.elasticsearch_client import close_elasticsearch, ensure_cars_index

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: open the database and, if used, the search index. Shutdown: close them."""
    settings = get_settings()
    database = Database(settings.database_url, echo=settings.debug)
    await database.ping()
    app.state.db = database
    if settings.search_backend == "elasticsearch":
        try:
            await ensure_cars_index()
        except Exception as e:
            # Search falls back to database ranking while the cluster is down
            logger.warning("Elasticsearch unavailable at startup: %s", e)
    logger.info("%s started (%s mode)", settings.app_name, settings.environment)
    try:
        yield
    finally:
        await close_elasticsearch()
        await close_redis()
        await database.dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(
        title=settings.app_name,
        description="Personal car records behind cookie or bearer-token sessions.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Added first so it sits inside CORS: unexpected 500s keep CORS headers
    app.add_middleware(FaultMiddleware)

    # Single allowed cross-origin caller; credentials needed for the session cookie
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    # Prometheus metrics at /metrics
    app.mount("/metrics", make_asgi_app())

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
