# app/api/routers/filing.py
import logging
from typing import Dict
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.db import crud
from app.core.config import AppSettings
from app.core.errors import BoloNyayError
from app.api.deps import (
    get_db, get_current_settings, get_write_api_key, get_read_api_key, get_speech_client, get_legal_assistant,
    get_document_composer, get_report_store, get_db_session_factory, get_filing_registry, get_filing_session,
    get_chat_registry, get_chat_session, http_error_from,
)
from app.models_api import filing as api_models
from app.models_api.cases import CaseRecord
from app.models_api.reports import SavedReport
from app.services.bhashini_client import BhashiniClient
from app.services.case_filing_orchestrator import CaseFilingOrchestrator
from app.services.document_composer import DocumentComposer
from app.services.legal_assistant import LegalAssistant
from app.services.report_store import ReportStore
from app.services.voice_chatbot import VoiceChatbot

logger = logging.getLogger(__name__)
router = APIRouter()


def _session_response(orchestrator: CaseFilingOrchestrator) -> api_models.FilingSessionResponse:
    return api_models.FilingSessionResponse(**orchestrator.snapshot())


@router.post("/sessions", response_model=api_models.FilingSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_filing_session(
    payload: api_models.FilingSessionCreateRequest,
    db: Session = Depends(get_db),
    settings: AppSettings = Depends(get_current_settings),
    speech_client: BhashiniClient = Depends(get_speech_client),
    assistant: LegalAssistant = Depends(get_legal_assistant),
    composer: DocumentComposer = Depends(get_document_composer),
    report_store: ReportStore = Depends(get_report_store),
    session_factory=Depends(get_db_session_factory),
    registry: Dict[str, CaseFilingOrchestrator] = Depends(get_filing_registry),
    api_key: str = Depends(get_write_api_key)
):
    crud.ensure_user(db, payload.user_id, email=payload.email, name=payload.name)
    orchestrator = CaseFilingOrchestrator(
        user_id=payload.user_id,
        speech_client=speech_client,
        assistant=assistant,
        db_session_factory=session_factory,
        composer=composer,
        report_store=report_store,
        language=payload.language,
        max_recording_bytes=settings.MAX_RECORDING_BYTES,
    )
    registry[orchestrator.id] = orchestrator
    logger.info(f"Opened filing session {orchestrator.id} for user {payload.user_id} ({orchestrator.language.value}).")
    return _session_response(orchestrator)


@router.get("/sessions/{session_id}", response_model=api_models.FilingSessionResponse)
async def get_filing_session_state(
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_read_api_key)
):
    return _session_response(orchestrator)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_filing_session(
    session_id: str,
    registry: Dict[str, CaseFilingOrchestrator] = Depends(get_filing_registry),
    api_key: str = Depends(get_write_api_key)
):
    if registry.pop(session_id, None) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Filing session {session_id} not found.")
    logger.info(f"Closed filing session {session_id}.")
    return None


@router.post("/sessions/{session_id}/recording/start", response_model=api_models.FilingSessionResponse)
async def start_recording(
    payload: api_models.RecordingStartRequest,
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_write_api_key)
):
    try:
        orchestrator.begin_recording(payload.permission_granted, payload.question_index)
    except BoloNyayError as e:
        raise http_error_from(e)
    return _session_response(orchestrator)


@router.post("/sessions/{session_id}/recording/stop", response_model=api_models.ConversationTurnResponse)
async def stop_recording(
    request: Request,
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_write_api_key)
):
    audio = await request.body()
    if not audio:
        orchestrator.cancel_recording()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must contain audio.")
    try:
        turn = await orchestrator.finish_recording(audio)
    except BoloNyayError as e:
        raise http_error_from(e)
    return api_models.ConversationTurnResponse(**turn.model_dump(), state=orchestrator.state)


@router.post("/sessions/{session_id}/messages", response_model=api_models.ConversationTurnResponse)
async def add_text_message(
    payload: api_models.TextMessageRequest,
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_write_api_key)
):
    try:
        turn = await orchestrator.add_user_message(payload.text)
    except BoloNyayError as e:
        raise http_error_from(e)
    return api_models.ConversationTurnResponse(**turn.model_dump(), state=orchestrator.state)


@router.post("/sessions/{session_id}/classify", response_model=api_models.CaseAnalysisResponse)
async def classify_case(
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_write_api_key)
):
    try:
        analysis = await orchestrator.start_case_filing()
    except BoloNyayError as e:
        raise http_error_from(e)
    return api_models.CaseAnalysisResponse(**analysis.model_dump())


@router.put("/sessions/{session_id}/answers/{question_index}", response_model=api_models.AnswerResponse)
async def submit_answer(
    question_index: int,
    payload: api_models.AnswerRequest,
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_write_api_key)
):
    try:
        accepted = orchestrator.submit_case_response(payload.text, question_index)
    except BoloNyayError as e:
        raise http_error_from(e)
    return api_models.AnswerResponse(
        accepted=accepted, question_index=question_index, ready_to_file=orchestrator.ready_to_file
    )


@router.post("/sessions/{session_id}/finalize", response_model=CaseRecord)
async def finalize_filing(
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_write_api_key)
):
    try:
        return await orchestrator.finalize()
    except BoloNyayError as e:
        raise http_error_from(e)


@router.post("/sessions/{session_id}/document", response_model=SavedReport, status_code=status.HTTP_201_CREATED)
async def generate_filing_document(
    orchestrator: CaseFilingOrchestrator = Depends(get_filing_session),
    api_key: str = Depends(get_write_api_key)
):
    try:
        return await orchestrator.generate_document()
    except BoloNyayError as e:
        raise http_error_from(e)


@router.post("/chat", response_model=api_models.ChatResponse)
async def chat(
    payload: api_models.ChatRequest,
    assistant: LegalAssistant = Depends(get_legal_assistant),
    api_key: str = Depends(get_read_api_key)
):
    try:
        reply = await assistant.chatbot_reply(payload.text)
    except BoloNyayError as e:
        raise http_error_from(e)
    return api_models.ChatResponse(reply=reply.strip())


# --- Voice chatbot sessions ---

def _chat_response(chatbot: VoiceChatbot) -> api_models.ChatSessionResponse:
    return api_models.ChatSessionResponse(
        id=chatbot.id, language=chatbot.language.value, error_message=chatbot.error_message, messages=chatbot.history
    )


@router.post("/chat/sessions", response_model=api_models.ChatSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_chat_session(
    payload: api_models.ChatSessionCreateRequest,
    settings: AppSettings = Depends(get_current_settings),
    speech_client: BhashiniClient = Depends(get_speech_client),
    assistant: LegalAssistant = Depends(get_legal_assistant),
    registry: Dict[str, VoiceChatbot] = Depends(get_chat_registry),
    api_key: str = Depends(get_write_api_key)
):
    chatbot = VoiceChatbot(speech_client, assistant, language=payload.language,
                           max_recording_bytes=settings.MAX_RECORDING_BYTES)
    registry[chatbot.id] = chatbot
    logger.info(f"Opened chat session {chatbot.id} ({chatbot.language.value}).")
    return _chat_response(chatbot)


@router.get("/chat/sessions/{chat_id}", response_model=api_models.ChatSessionResponse)
async def get_chat_session_state(
    chatbot: VoiceChatbot = Depends(get_chat_session),
    api_key: str = Depends(get_read_api_key)
):
    return _chat_response(chatbot)


@router.post("/chat/sessions/{chat_id}/messages", response_model=api_models.ChatTurnResponse)
async def send_chat_message(
    payload: api_models.ChatRequest,
    chatbot: VoiceChatbot = Depends(get_chat_session),
    api_key: str = Depends(get_write_api_key)
):
    try:
        turn = await chatbot.send_text(payload.text)
    except BoloNyayError as e:
        raise http_error_from(e)
    return api_models.ChatTurnResponse(**turn.model_dump(), total_messages=len(chatbot.history))


@router.post("/chat/sessions/{chat_id}/audio", response_model=api_models.ChatTurnResponse)
async def send_chat_audio(
    request: Request,
    chatbot: VoiceChatbot = Depends(get_chat_session),
    api_key: str = Depends(get_write_api_key)
):
    audio = await request.body()
    if not audio:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must contain audio.")
    try:
        turn = await chatbot.send_audio(audio)
    except BoloNyayError as e:
        raise http_error_from(e)
    return api_models.ChatTurnResponse(**turn.model_dump(), total_messages=len(chatbot.history))


@router.delete("/chat/sessions/{chat_id}/messages", response_model=api_models.ChatSessionResponse)
async def clear_chat_history(
    chatbot: VoiceChatbot = Depends(get_chat_session),
    api_key: str = Depends(get_write_api_key)
):
    chatbot.clear()
    return _chat_response(chatbot)


@router.delete("/chat/sessions/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_chat_session(
    chat_id: str,
    registry: Dict[str, VoiceChatbot] = Depends(get_chat_registry),
    api_key: str = Depends(get_write_api_key)
):
    if registry.pop(chat_id, None) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Chat session {chat_id} not found.")
    logger.info(f"Closed chat session {chat_id}.")
    return None
