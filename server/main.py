"""
evote API Server

FastAPI application wiring: lifespan (database pool, settings), middleware,
exception handlers and routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth.jwt import init_jwt, is_initialized
from config import config, get_logger
from database.db_postgres import Database
from elections.settings import SettingsService
from server.errors import register_exception_handlers
from server.middleware.logging import log_requests
from server.middleware.metrics import metrics_middleware
from server.middleware.request_id import RequestIDMiddleware
from server.routes import candidates, elections, monitoring, settings, voters

logger = get_logger(__name__).bind(component="api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the connection pool and load settings; close the pool on shutdown"""
    db = await Database.create()
    await db.init_schema()
    app.state.db = db

    settings_service = SettingsService(db.settings)
    await settings_service.load()
    app.state.settings = settings_service
    logger.info("api started", config_summary=config.summary())

    yield

    try:
        await db.close()
    except Exception as e:
        # Don't crash on shutdown - log and continue
        logger.error("error closing connection pool", error=str(e), exc_info=True)


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Build the application

    Tests pass use_lifespan=False and set app.state.db/settings themselves.
    """
    if config.JWT_SECRET and not is_initialized():
        init_jwt(config.JWT_SECRET)

    app = FastAPI(
        title="evote API",
        description="Election management and voting",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    # Request ID middleware (must be early in stack for tracing)
    app.add_middleware(RequestIDMiddleware)

    # Last registered runs first: metrics -> logging
    @app.middleware("http")
    async def log_requests_middleware(request, call_next):
        return await log_requests(request, call_next)

    @app.middleware("http")
    async def metrics_middleware_wrapper(request, call_next):
        return await metrics_middleware(request, call_next)

    register_exception_handlers(app)

    app.include_router(monitoring.router)   # Root, health and metrics
    app.include_router(elections.router)    # Election CRUD and cancellation
    app.include_router(candidates.router)   # Candidates embedded in elections
    app.include_router(voters.router)       # Ballots and results
    app.include_router(settings.router)     # Global settings

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("starting evote API server")
    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        access_log=False,  # request logging middleware covers this
    )
