# app/models_api/users.py
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from app.db.models import UserTypeEnum
from app.models_api.documents import ExtractedFormData


class UserCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, description="Account email, unique per user.")
    name: Optional[str] = None
    user_type: UserTypeEnum = UserTypeEnum.PETITIONER
    language: str = "english"
    user_id: Optional[str] = Field(None, description="Optional id issued by the client's auth provider.")


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    user_type: UserTypeEnum
    language: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationSessionResponse(BaseModel):
    id: str
    user_id: str
    messages: List[Dict[str, Any]] = []
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    language: str
    azure_session_id: Optional[str] = None
    total_messages: int = 0
    case_number: Optional[str] = None

    class Config:
        from_attributes = True


class VoiceAutofillResponse(BaseModel):
    transcript: str
    form_data: ExtractedFormData
    has_data: bool = False
