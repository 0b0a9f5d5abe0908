# app/api/routers/health.py
from fastapi import APIRouter, Request, status
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/healthz", status_code=status.HTTP_200_OK, summary="Health Check")
async def health_check(request: Request):
    service_is_ready = getattr(request.app.state, "service_ready", False)
    http_client_ok = getattr(request.app.state, "http_client", None) is not None

    if service_is_ready and http_client_ok:
        return {"status": "healthy", "message": "Service is ready, credentials configured and HTTP client initialized."}
    elif http_client_ok and not service_is_ready:
        logger.warning("Health check: HTTP client OK, but service not fully ready (e.g., missing Bhashini/Azure credentials).")
        return {"status": "degraded", "message": "HTTP client initialized, but service not fully ready (e.g., missing credentials)."}
    else:
        logger.error("Health check: HTTP client not initialized or service in a bad state.")
        return {"status": "unhealthy", "message": "HTTP client not initialized or service not ready."}
