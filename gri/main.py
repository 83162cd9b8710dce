"""GRI Backend API - Main Application"""
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gri.config import get_settings
from gri.api.v1.router import api_router
from gri.models.database import init_db, close_db, async_session_factory
from gri.services.indexer import DAOIndexer
from gri.services.near_client import NearClient
from gri.services.refresh_scheduler import RefreshScheduler
from gri.services.store import DAOStore

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting GRI API", version=settings.app_version)

    await init_db()
    logger.info("Database initialized")

    client = NearClient(
        settings.near_rpc_url,
        timeout=settings.near_rpc_timeout,
        network_id=settings.near_network_id,
    )
    await client.connect()

    store = DAOStore(async_session_factory)
    indexer = DAOIndexer.from_settings(client, store, settings)
    scheduler = RefreshScheduler(
        indexer,
        refresh_interval_ms=settings.refresh_interval_ms,
        check_interval_ms=settings.refresh_check_interval_ms,
    )

    app.state.store = store
    app.state.indexer = indexer
    app.state.scheduler = scheduler

    # The first pass runs in the background; requests get partial data until it completes
    await scheduler.start()

    yield

    # Cleanup
    await scheduler.stop()
    await client.disconnect()
    await close_db()
    logger.info("GRI API shutdown complete")


def create_app() -> FastAPI:
    """Create FastAPI application"""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="NEAR Protocol governance observability and telemetry",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Service descriptor"""
        prefix = settings.api_prefix
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "description": "NEAR Protocol governance observability and telemetry",
            "endpoints": [
                f"GET {prefix}/daos",
                f"GET {prefix}/dao/:id/overview",
                f"GET {prefix}/dao/:id/proposals",
                f"GET {prefix}/dao/:id/gri",
                f"GET {prefix}/dao/:id/proposal/:proposalId",
                f"GET {prefix}/network/health",
                f"GET {prefix}/network/status",
                f"POST {prefix}/sync/refresh",
            ],
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "network": settings.near_network_id,
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "gri.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
