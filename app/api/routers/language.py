# app/api/routers/language.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import get_language_service, get_read_api_key, http_error_from
from app.core.errors import BoloNyayError
from app.models_api import language as api_models
from app.services.language_service import Language, LanguageService, language_code, language_display_name, validate

logger = logging.getLogger(__name__)
router = APIRouter()


def _language_response(language: Language) -> api_models.LanguageResponse:
    code = language_code(language)
    return api_models.LanguageResponse(language=language, code=code, display_name=language_display_name(code))


@router.post("/detect-text", response_model=api_models.LanguageResponse)
async def detect_text_language(
    payload: api_models.TextLanguageRequest,
    language_service: LanguageService = Depends(get_language_service),
    api_key: str = Depends(get_read_api_key)
):
    try:
        language = await language_service.detect_from_text(payload.text)
    except BoloNyayError as e:
        raise http_error_from(e)
    return _language_response(language)


@router.post("/detect-audio", response_model=api_models.AudioLanguageResponse)
async def detect_audio_language(
    request: Request,
    language_service: LanguageService = Depends(get_language_service),
    api_key: str = Depends(get_read_api_key)
):
    audio = await request.body()
    if not audio:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must contain audio.")
    try:
        detected_code, language = await language_service.detect_spoken_language(audio)
    except BoloNyayError as e:
        raise http_error_from(e)
    base = _language_response(language)
    return api_models.AudioLanguageResponse(**base.model_dump(), detected_code=detected_code)


@router.post("/validate", response_model=api_models.LanguageResponse)
async def validate_language(
    payload: api_models.LanguageValidationRequest,
    language_service: LanguageService = Depends(get_language_service),
    api_key: str = Depends(get_read_api_key)
):
    if not payload.use_llm:
        return _language_response(validate(payload.label))
    try:
        language = await language_service.validate_with_llm(payload.label)
    except BoloNyayError as e:
        raise http_error_from(e)
    return _language_response(language)
