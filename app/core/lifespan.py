# app/core/lifespan.py
import os
import logging
from contextlib import asynccontextmanager

import httpx

from app.core.config import get_app_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan_manager(app):
    app_settings = get_app_settings()
    logger.info("--- FastAPI App Starting Up (Lifespan Manager) ---")
    app.state.settings = app_settings
    app.state.filing_sessions = {}
    app.state.chat_sessions = {}
    app.state.http_client = None

    data_loc = os.path.abspath(app_settings.DATA_LOCATION)
    if not os.path.exists(data_loc):
        logger.critical(f"CRITICAL: Data directory {data_loc} does not exist and was not created during settings load.")
        app.state.service_ready = False
        yield
        return

    reports_dir = app_settings.REPORTS_DIRECTORY
    if not os.path.exists(reports_dir):
        try:
            os.makedirs(reports_dir, exist_ok=True)
            logger.info(f"Created reports directory: {reports_dir}")
        except OSError as e:
            logger.critical(f"CRITICAL: Could not create reports directory {reports_dir}: {e}")
            app.state.service_ready = False
            yield
            return

    missing = app_settings.missing_credentials()
    if missing:
        logger.critical(f"CRITICAL STARTUP FAILURE: credentials not set or still default: {', '.join(missing)}.")
        app.state.service_ready = False
    else:
        app.state.service_ready = True

    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(max(app_settings.LLM_TIMEOUT_SECONDS, app_settings.SPEECH_TIMEOUT_SECONDS))
    )
    logger.info("--- Shared HTTP client initialized (Lifespan) ---")

    yield # Application is running

    logger.info("--- FastAPI App Shutting Down (Lifespan Manager) ---")
    app.state.shutting_down = True

    open_sessions = len(app.state.filing_sessions)
    if open_sessions:
        logger.warning(f"Discarding {open_sessions} unfinished filing session(s) held in memory.")
    app.state.filing_sessions.clear()
    app.state.chat_sessions.clear()

    if app.state.http_client is not None:
        try:
            await app.state.http_client.aclose()
            logger.info("Shared HTTP client closed (Lifespan).")
        except Exception as e:
            logger.error(f"Error closing shared HTTP client: {e}")
        app.state.http_client = None

    logger.info("--- FastAPI App Shutdown Complete (Lifespan Manager) ---")
