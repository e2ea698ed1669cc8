"""TokenVest API - Main Application"""
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware

from tokenvest.config import get_settings
from tokenvest.api.v1.router import api_router
from tokenvest.api.websocket import websocket_router, event_stream
from tokenvest.errors import (
    VestingError,
    global_exception_handler,
    http_exception_handler,
    transfer_error_handler,
    vesting_error_handler,
)
from tokenvest.models.database import init_db, close_db, async_session_factory
from tokenvest.services.asset_ledger import (
    InMemoryAssetLedger,
    TransferError,
    close_asset_ledger,
    get_asset_ledger,
)
from tokenvest.services.engine_guard import get_engine_guard, reset_engine_guard
from tokenvest.services.vesting_engine import VestingEngine

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


async def bootstrap_engine() -> None:
    """Create the engine state row and seed development assets from settings"""
    ledger = get_asset_ledger()
    async with async_session_factory() as db:
        engine = VestingEngine(db, ledger, guard=get_engine_guard(), settings=settings)
        await engine.ensure_state()
        await db.commit()

        if not settings.bootstrap_assets:
            return
        if not isinstance(ledger, InMemoryAssetLedger):
            logger.warning("Asset bootstrap skipped, ledger is not in-memory")
            return

        admin = await engine.administrator()
        for asset, amount in settings.bootstrap_assets.items():
            ledger.mint(asset, admin, amount)
            if settings.bootstrap_supported:
                await engine.add_supported_asset(admin, asset)
        logger.info("Bootstrapped assets", assets=list(settings.bootstrap_assets), admin=admin)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting TokenVest API", version=settings.app_version)

    await init_db()
    logger.info("Database initialized")

    await bootstrap_engine()
    await event_stream.start()

    yield

    await event_stream.stop()
    close_asset_ledger()
    reset_engine_guard()
    await close_db()
    logger.info("TokenVest API shutdown complete")


def create_app() -> FastAPI:
    """Create FastAPI application"""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Token vesting engine: locked schedules, claims, revocation and admin controls",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VestingError, vesting_error_handler)
    app.add_exception_handler(TransferError, transfer_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(websocket_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "claim_mode": settings.claim_mode,
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tokenvest.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
