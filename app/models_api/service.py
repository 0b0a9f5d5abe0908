# app/models_api/service.py
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List


class ConfigUpdateRequest(BaseModel):
    BHASHINI_AUTH_KEY: Optional[str] = None
    BHASHINI_PIPELINE_ID: Optional[str] = None
    AZURE_OPENAI_ENDPOINT: Optional[str] = None
    AZURE_OPENAI_API_KEY: Optional[str] = None
    AZURE_OPENAI_DEPLOYMENT: Optional[str] = None
    AZURE_OPENAI_API_VERSION: Optional[str] = None
    REPORT_RETENTION_DAYS: Optional[int] = Field(None, gt=0)

    class Config:
        extra = 'forbid'


class ConfigUpdateResponse(BaseModel):
    message: str
    updated_fields: Dict[str, Any]
    restart_required: bool


class ServiceStatusResponse(BaseModel):
    service_ready: bool
    missing_credentials: List[str]
    active_filing_sessions: int
    http_client_initialized: bool
    data_location: str
    reports_directory: str
    stored_reports: int
    azure_deployment: str
