# app/api/routers/service_control.py
import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, HTTPException, Request, status
from app.core.config import AppSettings
from app.api.deps import get_write_api_key, get_current_settings, get_report_store
from app.models_api import service as api_models
from app.services.config_manager import ConfigManager
from app.services.report_store import ReportStore

logger = logging.getLogger(__name__)
router = APIRouter()

config_manager_instance = ConfigManager()


@router.get("/status", response_model=api_models.ServiceStatusResponse)
async def get_service_status_info(
    request: Request,
    settings: AppSettings = Depends(get_current_settings),
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_write_api_key)
):
    return api_models.ServiceStatusResponse(
        service_ready=getattr(request.app.state, "service_ready", False),
        missing_credentials=settings.missing_credentials(),
        active_filing_sessions=len(getattr(request.app.state, "filing_sessions", {})),
        http_client_initialized=getattr(request.app.state, "http_client", None) is not None,
        data_location=settings.DATA_LOCATION,
        reports_directory=settings.REPORTS_DIRECTORY,
        stored_reports=len(report_store.list()),
        azure_deployment=settings.AZURE_OPENAI_DEPLOYMENT,
    )


@router.get("/config", response_model=Dict[str, Any])
async def get_current_client_configuration(
    api_key: str = Depends(get_write_api_key)
):
    try:
        return config_manager_instance.get_current_client_config_dict()
    except Exception as e:
        logger.error(f"Failed to get client configuration: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Could not read client configuration: {e}")


@router.put("/config", response_model=api_models.ConfigUpdateResponse)
async def update_client_configuration(
    update_payload: api_models.ConfigUpdateRequest,
    api_key: str = Depends(get_write_api_key)
):
    logger.info(f"Received request to update client configuration fields: {sorted(update_payload.model_dump(exclude_unset=True))}")
    try:
        changed_fields, restart_needed = config_manager_instance.update_client_config(update_payload)

        if not changed_fields:
            return api_models.ConfigUpdateResponse(
                message="No client-configurable settings were changed.",
                updated_fields={},
                restart_required=False
            )
        msg = "Client configuration updated successfully. A server restart is required for changes to take effect."
        return api_models.ConfigUpdateResponse(
            message=msg,
            updated_fields=changed_fields,
            restart_required=restart_needed
        )
    except Exception as e:
        logger.error(f"Failed to update client configuration: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Could not update client configuration: {e}")
