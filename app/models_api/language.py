# app/models_api/language.py
from pydantic import BaseModel, Field
from app.services.language_service import Language


class TextLanguageRequest(BaseModel):
    text: str = Field(..., min_length=1)


class LanguageValidationRequest(BaseModel):
    label: str = Field(..., description="Raw language label or code, e.g. 'hin' or 'gu'.")
    use_llm: bool = Field(False, description="Validate through the LLM instead of the local alias table.")


class LanguageResponse(BaseModel):
    language: Language
    code: str
    display_name: str


class AudioLanguageResponse(LanguageResponse):
    detected_code: str
