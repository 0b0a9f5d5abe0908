# app/models_api/reports.py
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional, Dict


class ReportMetadata(BaseModel):
    template: str
    language: str
    page_count: int
    is_official_document: bool = True
    tags: List[str] = []
    summary: str = ""


class SavedReport(BaseModel):
    id: str
    case_id: str
    case_number: str
    case_type: str
    report_title: str
    file_name: str
    file_path: str
    file_size: int
    created_at: datetime
    last_accessed_at: Optional[datetime] = None
    is_downloaded: bool = False
    download_progress: float = Field(0.0, ge=0.0, le=1.0)
    metadata: ReportMetadata


class ReportStatisticsResponse(BaseModel):
    total_reports: int
    total_size_bytes: int
    average_size_bytes: float
    by_case_type: Dict[str, int] = {}
    by_language: Dict[str, int] = {}
    by_template: Dict[str, int] = {}


class ReportCleanupRequest(BaseModel):
    older_than_days: Optional[int] = Field(None, gt=0, description="Defaults to REPORT_RETENTION_DAYS.")


class ReportCleanupResponse(BaseModel):
    removed_reports: int
    remaining_reports: int
    remaining_size_bytes: int = 0
