# app/api/deps.py
from typing import Callable, Dict
from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
import httpx
from app.db.session import get_db, SessionLocal
from app.core.security import get_api_key
from app.core.config import AppSettings, get_app_settings
from app.core.errors import (
    BoloNyayError, PermissionDenied, RecordingInProgress, InvalidFilingState, UserNotFound,
    PersistenceError, ReportStorageError, DocumentRenderError,
)
from app.services.bhashini_client import BhashiniClient
from app.services.case_filing_orchestrator import CaseFilingOrchestrator
from app.services.document_composer import DocumentComposer
from app.services.language_service import LanguageService
from app.services.legal_assistant import LegalAssistant
from app.services.llm_gateway import AzureOpenAIClient
from app.services.report_store import ReportStore
from app.services.voice_chatbot import VoiceChatbot
import logging

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    RecordingInProgress: status.HTTP_409_CONFLICT,
    InvalidFilingState: status.HTTP_409_CONFLICT,
    UserNotFound: status.HTTP_404_NOT_FOUND,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ReportStorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DocumentRenderError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_error_from(error: BoloNyayError) -> HTTPException:
    """Translate a pipeline error; anything raised by an upstream service maps to 502."""
    status_code = ERROR_STATUS_CODES.get(type(error), status.HTTP_502_BAD_GATEWAY)
    if status_code == status.HTTP_502_BAD_GATEWAY:
        logger.error(f"Upstream failure ({type(error).__name__}): {error.message}")
    elif status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"Local failure ({type(error).__name__}): {error.message}")
    return HTTPException(status_code=status_code, detail=f"{type(error).__name__}: {error.message}")


def get_current_settings(request: Request) -> AppSettings:
    if hasattr(request.app.state, 'settings') and request.app.state.settings is not None:
        return request.app.state.settings
    logger.warning("Settings not found in app.state or is None, attempting to load fresh. This should ideally not happen frequently post-startup.")
    return get_app_settings() # Fallback


def get_http_client(request: Request):
    return getattr(request.app.state, "http_client", None)


def get_db_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_speech_client(
    settings: AppSettings = Depends(get_current_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> BhashiniClient:
    return BhashiniClient(settings, http_client)


def get_legal_assistant(
    settings: AppSettings = Depends(get_current_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> LegalAssistant:
    return LegalAssistant(AzureOpenAIClient(settings, http_client))


def get_language_service(
    assistant: LegalAssistant = Depends(get_legal_assistant),
    speech_client: BhashiniClient = Depends(get_speech_client),
) -> LanguageService:
    return LanguageService(assistant, speech_client)


def get_document_composer(settings: AppSettings = Depends(get_current_settings)) -> DocumentComposer:
    return DocumentComposer(unicode_font_path=settings.PDF_UNICODE_FONT_PATH)


def get_report_store(settings: AppSettings = Depends(get_current_settings)) -> ReportStore:
    return ReportStore(settings.REPORTS_DIRECTORY)


def get_filing_registry(request: Request) -> Dict[str, CaseFilingOrchestrator]:
    if not hasattr(request.app.state, "filing_sessions"):
        request.app.state.filing_sessions = {}
    return request.app.state.filing_sessions


def get_filing_session(
    session_id: str,
    registry: Dict[str, CaseFilingOrchestrator] = Depends(get_filing_registry),
) -> CaseFilingOrchestrator:
    orchestrator = registry.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Filing session {session_id} not found.")
    return orchestrator


def get_chat_registry(request: Request) -> Dict[str, VoiceChatbot]:
    if not hasattr(request.app.state, "chat_sessions"):
        request.app.state.chat_sessions = {}
    return request.app.state.chat_sessions


def get_chat_session(
    chat_id: str,
    registry: Dict[str, VoiceChatbot] = Depends(get_chat_registry),
) -> VoiceChatbot:
    chatbot = registry.get(chat_id)
    if chatbot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Chat session {chat_id} not found.")
    return chatbot


def get_read_api_key(api_key: str = Depends(get_api_key)):
    return api_key


def get_write_api_key(api_key: str = Depends(get_api_key)):
    return api_key
