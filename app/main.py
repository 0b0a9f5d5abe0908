# app/main.py
import os
import logging
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from contextlib import asynccontextmanager

from app.core.config import get_app_settings, load_settings
from app.core.lifespan import lifespan_manager
from app.api.routers import (
    cases as cases_router,
    filing as filing_router,
    health as health_router,
    language as language_router,
    reports as reports_router,
    service_control as service_control_router,
    users as users_router,
)
from app.db.session import SQLALCHEMY_DATABASE_URL
from app.db.init_db import init_db

load_dotenv()
initial_settings = load_settings()

log_level_str = os.getenv("LOG_LEVEL", initial_settings.LOG_LEVEL if initial_settings else "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level_str, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app_fastapi: FastAPI):
    logger.info("FastAPI application startup...")
    logger.info(f"Using database at: {SQLALCHEMY_DATABASE_URL}")

    app_fastapi.state.service_ready = False
    app_fastapi.state.shutting_down = False

    async with lifespan_manager(app_fastapi):
        init_db()
        if not app_fastapi.state.service_ready:
            logger.error("Service not ready after lifespan setup. Filing requests will fail until credentials are configured.")
        logger.info("FastAPI application startup complete.")
        yield
        logger.info("FastAPI application shutdown...")
    logger.info("FastAPI application shutdown complete.")


app = FastAPI(
    title="BoloNyay Case Filing API",
    lifespan=app_lifespan,
    openapi_url="/api/v1/openapi.json"
)

app.include_router(health_router.router, prefix="/api/v1", tags=["Health"])
app.include_router(users_router.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(language_router.router, prefix="/api/v1/language", tags=["Language"])
app.include_router(filing_router.router, prefix="/api/v1/filing", tags=["Filing"])
app.include_router(cases_router.router, prefix="/api/v1/cases", tags=["Cases"])
app.include_router(reports_router.router, prefix="/api/v1/reports", tags=["Reports"])
app.include_router(service_control_router.router, prefix="/api/v1/service", tags=["Service Control"])


@app.middleware("http")
async def settings_middleware(request: Request, call_next):
    if not hasattr(request.app.state, 'settings') or request.app.state.settings is None:
        logger.debug("Settings middleware: app.state.settings not found or None, ensuring fresh load.")
        request.app.state.settings = get_app_settings()
    response = await call_next(request)
    return response

if __name__ == "__main__":
    import uvicorn
    effective_settings = get_app_settings()
    host = effective_settings.HOST
    port = effective_settings.PORT
    reload_dev = os.getenv("RELOAD_DEV", "false").lower() == "true"
    effective_log_level_str = effective_settings.LOG_LEVEL

    logger.info(f"Starting Uvicorn server on {host}:{port} (Reload: {reload_dev}, LogLevel: {effective_log_level_str})")

    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload_dev,
        log_level=effective_log_level_str.lower()
    )
