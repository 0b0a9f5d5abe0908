# app/models_api/cases.py
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from app.db.models import CaseStatusEnum


class CaseRecord(BaseModel):
    id: str
    case_number: str
    user_id: str
    case_type: str
    case_details: str = ""
    conversation_summary: str = ""
    filing_questions: List[str] = []
    user_responses: List[str] = []
    status: CaseStatusEnum = CaseStatusEnum.FILED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    session_id: Optional[str] = None
    azure_session_id: Optional[str] = None
    language: str = "hindi"

    @property
    def status_display_name(self) -> str:
        return self.status.display_name

    class Config:
        from_attributes = True


class CaseStatusUpdateRequest(BaseModel):
    status: CaseStatusEnum = Field(..., description="New status set by an operator.")


class CaseStatisticsResponse(BaseModel):
    total_cases: int
    by_status: Dict[str, int] = {}
    by_case_type: Dict[str, int] = {}
    by_language: Dict[str, int] = {}
