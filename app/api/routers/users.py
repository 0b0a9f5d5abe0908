# app/api/routers/users.py
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.db import crud
from app.models_api import users as api_models
from app.models_api.cases import CaseRecord
from app.api.deps import (
    get_db, get_read_api_key, get_write_api_key, get_speech_client, get_legal_assistant, http_error_from,
)
from app.core.errors import BoloNyayError
from app.services.bhashini_client import BhashiniClient
from app.services.legal_assistant import LegalAssistant

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=api_models.UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: api_models.UserCreateRequest,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_write_api_key)
):
    existing = crud.get_user_by_email(db, payload.email)
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A user with email {payload.email} already exists.")
    return crud.create_user(
        db, email=payload.email, name=payload.name, user_type=payload.user_type,
        language=payload.language, user_id=payload.user_id,
    )


@router.post("/voice-autofill", response_model=api_models.VoiceAutofillResponse)
async def voice_autofill(
    request: Request,
    source_language: str = "hi",
    speech_client: BhashiniClient = Depends(get_speech_client),
    assistant: LegalAssistant = Depends(get_legal_assistant),
    api_key: str = Depends(get_write_api_key)
):
    """Transcribe a spoken introduction and pull sign-up form fields out of it."""
    audio = await request.body()
    if not audio:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must contain audio.")
    try:
        transcript = await speech_client.transcribe(audio, source_language)
        form_data = await assistant.extract_form_data(transcript)
    except BoloNyayError as e:
        raise http_error_from(e)
    if not form_data.has_any_data:
        logger.warning("Voice autofill found no form fields in the transcript.")
    logger.info(f"Voice autofill extracted data with confidence '{form_data.confidence}'.")
    return api_models.VoiceAutofillResponse(transcript=transcript, form_data=form_data,
                                            has_data=form_data.has_any_data)


@router.get("/{user_id}", response_model=api_models.UserResponse)
async def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_read_api_key)
):
    db_user = crud.get_user(db, user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found.")
    return db_user


@router.get("/{user_id}/cases", response_model=List[CaseRecord])
async def list_user_cases(
    user_id: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_read_api_key)
):
    if not crud.get_user(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found.")
    return [CaseRecord.model_validate(db_case) for db_case in crud.get_user_cases(db, user_id)]


@router.get("/{user_id}/sessions", response_model=List[api_models.ConversationSessionResponse])
async def list_user_sessions(
    user_id: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(get_read_api_key)
):
    if not crud.get_user(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found.")
    return crud.get_user_sessions(db, user_id)
