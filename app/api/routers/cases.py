# app/api/routers/cases.py
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db import crud, models as db_models
from app.models_api import cases as api_models
from app.models_api.reports import SavedReport
from app.api.deps import (
    get_db, get_write_api_key, get_read_api_key, get_legal_assistant, get_document_composer, get_report_store,
    http_error_from,
)
from app.core.errors import BoloNyayError
from app.services.case_filing_orchestrator import generate_document_for_case
from app.services.document_composer import DocumentComposer
from app.services.legal_assistant import LegalAssistant
from app.services.report_store import ReportStore

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_case_or_404(db: Session, case_id: str) -> db_models.Case:
    db_case = crud.get_case(db, case_id)
    if not db_case:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Case {case_id} not found.")
    return db_case


@router.get("/statistics", response_model=api_models.CaseStatisticsResponse)
async def get_case_statistics(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_read_api_key)
):
    return crud.get_case_statistics(db, user_id=user_id)


@router.get("/by-number/{case_number}", response_model=api_models.CaseRecord)
async def get_case_by_number(
    case_number: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_read_api_key)
):
    db_case = crud.get_case_by_case_number(db, case_number)
    if not db_case:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Case number {case_number} not found.")
    return api_models.CaseRecord.model_validate(db_case)


@router.get("/{case_id}", response_model=api_models.CaseRecord)
async def get_case_details(
    case_id: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_read_api_key)
):
    return api_models.CaseRecord.model_validate(_get_case_or_404(db, case_id))


@router.patch("/{case_id}/status", response_model=api_models.CaseRecord)
async def update_case_status(
    case_id: str,
    payload: api_models.CaseStatusUpdateRequest,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_write_api_key)
):
    _get_case_or_404(db, case_id)
    db_case = crud.update_case_status(db, case_id, payload.status)
    return api_models.CaseRecord.model_validate(db_case)


@router.get("/{case_id}/reports", response_model=List[SavedReport])
async def list_case_reports(
    case_id: str,
    db: Session = Depends(get_db),
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_read_api_key)
):
    _get_case_or_404(db, case_id)
    return report_store.reports_for_case(case_id)


@router.post("/{case_id}/document", response_model=SavedReport, status_code=status.HTTP_201_CREATED)
async def regenerate_case_document(
    case_id: str,
    db: Session = Depends(get_db),
    assistant: LegalAssistant = Depends(get_legal_assistant),
    composer: DocumentComposer = Depends(get_document_composer),
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_write_api_key)
):
    """Render a fresh filing document for a case filed in an earlier session."""
    case_record = api_models.CaseRecord.model_validate(_get_case_or_404(db, case_id))
    try:
        return await generate_document_for_case(case_record, assistant, composer, report_store)
    except BoloNyayError as e:
        raise http_error_from(e)
