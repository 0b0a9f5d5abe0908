# app/models_api/filing.py
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from app.models_api.cases import CaseRecord
from app.services.case_filing_orchestrator import FilingState
from app.services.voice_chatbot import ChatMessage


class FilingSessionCreateRequest(BaseModel):
    user_id: str = Field(..., description="Owner of the filing. Created with defaults if unknown.")
    language: str = "hindi"
    email: Optional[str] = None
    name: Optional[str] = None


class FilingSessionResponse(BaseModel):
    id: str
    user_id: str
    state: FilingState
    language: str
    error_message: Optional[str] = None
    messages: List[Dict[str, Any]] = []
    case_type: Optional[str] = None
    case_details: Optional[str] = None
    questions: List[str] = []
    user_responses: List[str] = []
    ready_to_file: bool = False
    case_record: Optional[CaseRecord] = None


class RecordingStartRequest(BaseModel):
    permission_granted: bool = True
    question_index: Optional[int] = Field(None, ge=0, description="Set when the recording answers a filing question.")


class TextMessageRequest(BaseModel):
    text: str = Field(..., min_length=1)


class ConversationTurnResponse(BaseModel):
    transcript: str
    reply: Optional[str] = None
    question_index: Optional[int] = None
    state: FilingState


class CaseAnalysisResponse(BaseModel):
    case_type: str
    case_details: str
    questions: List[str]
    missing_headers: List[str] = []


class AnswerRequest(BaseModel):
    text: str


class AnswerResponse(BaseModel):
    accepted: bool
    question_index: int
    ready_to_file: bool


class ChatRequest(BaseModel):
    text: str = Field(..., min_length=1)


class ChatResponse(BaseModel):
    reply: str


class ChatSessionCreateRequest(BaseModel):
    language: str = "hindi"


class ChatSessionResponse(BaseModel):
    id: str
    language: str
    error_message: Optional[str] = None
    messages: List[ChatMessage] = []


class ChatTurnResponse(BaseModel):
    transcript: str
    reply: str
    total_messages: int
